"""Pre-scan validation: per-language property detection."""

from scanwell.scanning.validation.base import LanguageAnalyzer, LanguageFindings
from scanwell.scanning.validation.cpp import CppAnalyzer
from scanwell.scanning.validation.existing import ExistingConfigValidator, parse_properties
from scanwell.scanning.validation.go import GoAnalyzer
from scanwell.scanning.validation.java import JavaAnalyzer
from scanwell.scanning.validation.javascript import JavaScriptAnalyzer
from scanwell.scanning.validation.prescan import PreScanValidator, format_validation_output
from scanwell.scanning.validation.python import PythonAnalyzer

__all__ = [
    "CppAnalyzer",
    "ExistingConfigValidator",
    "GoAnalyzer",
    "JavaAnalyzer",
    "JavaScriptAnalyzer",
    "LanguageAnalyzer",
    "LanguageFindings",
    "PreScanValidator",
    "PythonAnalyzer",
    "format_validation_output",
    "parse_properties",
]
