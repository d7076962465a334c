"""Shared type definitions."""

from scanwell.foundation.types.config import (
    LockConfig,
    PollConfig,
    RetryConfig,
    ScannerConfig,
    ServerConfig,
)
from scanwell.foundation.types.scan import (
    ErrorCategory,
    ExecutionOutcome,
    FallbackAnalysisResult,
    LanguageInfo,
    LockRecord,
    ModuleInfo,
    ParsedScanError,
    ProjectContext,
    ProjectStructure,
    ScanConfig,
    ScannerInvocation,
    ScannerStrategy,
)
from scanwell.foundation.types.validation import (
    DetectedProperty,
    ExistingConfigAnalysis,
    LanguageAnalysisResult,
    PreScanValidationResult,
    ValidationWarning,
)

__all__ = [
    "DetectedProperty",
    "ErrorCategory",
    "ExecutionOutcome",
    "ExistingConfigAnalysis",
    "FallbackAnalysisResult",
    "LanguageAnalysisResult",
    "LanguageInfo",
    "LockConfig",
    "LockRecord",
    "ModuleInfo",
    "ParsedScanError",
    "PollConfig",
    "PreScanValidationResult",
    "ProjectContext",
    "ProjectStructure",
    "RetryConfig",
    "ScanConfig",
    "ScannerConfig",
    "ScannerInvocation",
    "ScannerStrategy",
    "ServerConfig",
    "ValidationWarning",
]
