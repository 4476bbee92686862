"""
Validation component - Publish-readiness gate.
"""

from ._impl import (
    RULE_SEVERITIES,
    ValidationConfig,
    ValidationGateService,
    count_words,
    create_validation_gate,
)
from .component import build_config, run, run_history, run_validate
from .models import (
    Severity,
    ValidateContentInput,
    ValidationHistoryInput,
    ValidationResult,
)
from .ports import TimePort, ValidationLogRepoPort

__all__ = [
    # Entry points
    "run",
    "run_history",
    "run_validate",
    "build_config",
    # Input models
    "ValidateContentInput",
    "ValidationHistoryInput",
    # Output models
    "Severity",
    "ValidationResult",
    # Ports
    "TimePort",
    "ValidationLogRepoPort",
    # Service
    "RULE_SEVERITIES",
    "ValidationConfig",
    "ValidationGateService",
    "count_words",
    "create_validation_gate",
]
