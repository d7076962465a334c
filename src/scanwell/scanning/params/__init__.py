"""Scanner parameter building."""

from scanwell.scanning.params.builder import ParameterBuilder
from scanwell.scanning.params.paths import (
    count_libraries,
    make_relative_if_possible,
    process_library_paths,
    summarize_libraries,
)

__all__ = [
    "ParameterBuilder",
    "count_libraries",
    "make_relative_if_possible",
    "process_library_paths",
    "summarize_libraries",
]
