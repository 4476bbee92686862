"""
Scheduler component - Review SLA clock and auto-approval.

Invariants:
- Only pending_review items are ever auto-approved
- Each overdue item is approved at most once across concurrent sweeps
- Exactly one auto-approve Feedback per applied transition
- Items skipped by the policy stay in pending_review
"""

from __future__ import annotations

from pubflow.components.validation import ValidationGateService
from pubflow.components.workflow import WorkflowService
from pubflow.rules.models import Rules

from ._impl import AutoApprovePolicy, SchedulerConfig, SlaSchedulerService
from .models import SlaStatus, SlaStatusInput, SweepInput, SweepReport
from .ports import TimePort


def build_config(rules: Rules | None) -> SchedulerConfig:
    """Build scheduler config from rules."""
    if rules is None:
        return SchedulerConfig()

    sla = rules.sla
    return SchedulerConfig(
        window_days=sla.window_days,
        urgent_hours=sla.urgent_hours,
        warning_days=sla.warning_days,
        publish_approved=sla.publish_approved,
        max_items_per_sweep=sla.max_items_per_sweep,
    )


def build_policy(
    rules: Rules | None,
    validator: ValidationGateService | None = None,
) -> AutoApprovePolicy:
    """Build the auto-approve policy named in rules."""
    if rules is None:
        return AutoApprovePolicy()
    return AutoApprovePolicy(rules.sla.auto_approve_policy, validator)


def _create_service(
    workflow: WorkflowService,
    time_port: TimePort | None,
    rules: Rules | None,
) -> SlaSchedulerService:
    return SlaSchedulerService(
        workflow=workflow,
        policy=build_policy(rules, workflow.validator),
        time_port=time_port,
        config=build_config(rules),
    )


# --- Component Entry Points ---


def run_sla_status(
    inp: SlaStatusInput,
    *,
    workflow: WorkflowService,
    time_port: TimePort | None = None,
    rules: Rules | None = None,
) -> SlaStatus | None:
    """
    Compute the SLA status of an item.

    Returns:
        SlaStatus, or None if the item does not exist.
    """
    item = workflow.get_item(inp.content_id)
    if item is None:
        return None
    return _create_service(workflow, time_port, rules).status_for(item)


def run_sweep(
    inp: SweepInput,
    *,
    workflow: WorkflowService,
    time_port: TimePort | None = None,
    rules: Rules | None = None,
) -> SweepReport:
    """
    Run one SLA sweep.

    Args:
        inp: Sweep options.
        workflow: Workflow service performing the transitions.
        time_port: Optional time port for the review clock.
        rules: Optional rules for window, policy and publish pass.

    Returns:
        SweepReport with per-item results.
    """
    service = _create_service(workflow, time_port, rules)
    return service.sweep(publish_approved=inp.publish_approved)


def run(
    inp: SlaStatusInput | SweepInput,
    *,
    workflow: WorkflowService,
    time_port: TimePort | None = None,
    rules: Rules | None = None,
) -> SlaStatus | SweepReport | None:
    """
    Main entry point for the scheduler component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, SlaStatusInput):
        return run_sla_status(inp, workflow=workflow, time_port=time_port, rules=rules)
    elif isinstance(inp, SweepInput):
        return run_sweep(inp, workflow=workflow, time_port=time_port, rules=rules)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
