"""
Scheduler component - Review SLA clock and auto-approval.
"""

from ._impl import (
    AutoApprovePolicy,
    SchedulerConfig,
    SlaSchedulerService,
    compute_sla_status,
    create_sla_scheduler,
)
from .component import build_config, build_policy, run, run_sla_status, run_sweep
from .models import (
    PolicyVerdict,
    SlaStatus,
    SlaStatusInput,
    SlaTier,
    SweepInput,
    SweepItemResult,
    SweepReport,
)
from .ports import TimePort

__all__ = [
    # Entry points
    "run",
    "run_sla_status",
    "run_sweep",
    # Input models
    "SlaStatusInput",
    "SweepInput",
    # Output models
    "PolicyVerdict",
    "SlaStatus",
    "SlaTier",
    "SweepItemResult",
    "SweepReport",
    # Ports
    "TimePort",
    # Service
    "AutoApprovePolicy",
    "SchedulerConfig",
    "SlaSchedulerService",
    "build_config",
    "build_policy",
    "compute_sla_status",
    "create_sla_scheduler",
]
