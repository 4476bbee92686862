"""
Validation component - Publish-readiness gate.

Invariants:
- One ValidationLog row per run, pass or fail
- Could-not-check is never reported as passed
- Severity of each rule is fixed; thresholds come from rules
"""

from __future__ import annotations

from pubflow.domain.entities import ValidationLog
from pubflow.rules.models import Rules

from ._impl import ValidationConfig, ValidationGateService
from .models import ValidateContentInput, ValidationHistoryInput, ValidationResult
from .ports import TimePort, ValidationLogRepoPort


def build_config(rules: Rules | None) -> ValidationConfig:
    """Build validation config from rules."""
    if rules is None:
        return ValidationConfig()

    v = rules.validation
    return ValidationConfig(
        internal_links_min=v.internal_links.min,
        internal_links_max=v.internal_links.max,
        min_external_links=v.min_external_links,
        word_count_min=v.word_count.min,
        word_count_max=v.word_count.max,
        word_count_tolerance=v.word_count_tolerance,
        title_min=v.title_length.min,
        title_max=v.title_length.max,
        meta_description_min=v.meta_description_length.min,
        meta_description_max=v.meta_description_length.max,
        require_structured_data=v.require_structured_data,
        token_prefix=rules.links.token_prefix,
    )


# --- Component Entry Points ---


def run_validate(
    inp: ValidateContentInput,
    *,
    log_repo: ValidationLogRepoPort,
    time_port: TimePort | None = None,
    rules: Rules | None = None,
) -> ValidationResult:
    """
    Run the publish-readiness checks and log the run.

    Args:
        inp: Body, title and meta description to check.
        log_repo: Validation log repository port.
        time_port: Optional time port for log timestamps.
        rules: Optional rules for thresholds.

    Returns:
        ValidationResult with verdict, structured issues and metrics.
    """
    service = ValidationGateService(log_repo, time_port, build_config(rules))
    return service.validate(inp.html, inp.title, inp.meta_description, inp.content_id)


def run_history(
    inp: ValidationHistoryInput,
    *,
    log_repo: ValidationLogRepoPort,
) -> list[ValidationLog]:
    """Past validation runs for an item, newest first."""
    service = ValidationGateService(log_repo)
    return service.get_history(inp.content_id, inp.limit)


def run(
    inp: ValidateContentInput | ValidationHistoryInput,
    *,
    log_repo: ValidationLogRepoPort,
    time_port: TimePort | None = None,
    rules: Rules | None = None,
) -> ValidationResult | list[ValidationLog]:
    """
    Main entry point for the validation component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, ValidateContentInput):
        return run_validate(inp, log_repo=log_repo, time_port=time_port, rules=rules)
    elif isinstance(inp, ValidationHistoryInput):
        return run_history(inp, log_repo=log_repo)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
