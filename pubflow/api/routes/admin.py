from dataclasses import asdict

from fastapi import APIRouter, Depends

from pubflow.api.deps import get_scheduler
from pubflow.api.schemas import SweepResponse
from pubflow.components.scheduler import SlaSchedulerService

router = APIRouter()


@router.post("/sla/sweep", response_model=SweepResponse)
def run_sla_sweep(
    publish_approved: bool | None = None,
    scheduler: SlaSchedulerService = Depends(get_scheduler),
) -> SweepResponse:
    """Run one SLA sweep now. Safe alongside the background loop."""
    report = scheduler.sweep(publish_approved=publish_approved)
    return SweepResponse(**asdict(report))
