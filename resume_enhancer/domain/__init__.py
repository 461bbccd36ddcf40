"""Resume Enhancer Domain - Pure validation and recovery logic.

This package contains pure functions with no network or LLM dependencies.
Providers hand it raw model text or parsed dicts; it never performs I/O.
"""

from .json_recovery import JsonRecovery, extract_balanced_object, extract_fenced_json, recover_json, repair_json_text
from .response_validator import (
    VALID_IMPROVEMENT_TYPES,
    ResponseKind,
    ValidationOptions,
    ValidationOutcome,
    format_validation_report,
    validate_improvements_only,
    validate_response,
    validate_resume_structure_only,
)
from .resume_validator import validate_resume_data

__all__ = [
    # JSON recovery
    "JsonRecovery",
    "recover_json",
    "extract_fenced_json",
    "extract_balanced_object",
    "repair_json_text",
    # Response validator
    "ResponseKind",
    "ValidationOptions",
    "ValidationOutcome",
    "VALID_IMPROVEMENT_TYPES",
    "validate_response",
    "validate_resume_structure_only",
    "validate_improvements_only",
    "format_validation_report",
    # Resume validator
    "validate_resume_data",
]
