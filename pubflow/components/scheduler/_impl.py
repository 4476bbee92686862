"""
SlaSchedulerService - Review SLA clock and auto-approval sweep.

Key behaviors:
- days_pending is whole elapsed days since pending_since
- An item is eligible once days_pending reaches the SLA window
- Auto-approval goes through the orchestrator's conditional update, so
  overlapping sweeps approve each item exactly once
- Eligibility is further gated by a named auto-approve policy
- One item failing never aborts the rest of the sweep
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from pubflow.components.validation import ValidationGateService
from pubflow.components.workflow import WorkflowError, WorkflowService
from pubflow.domain.entities import ContentItem
from pubflow.rules.models import AutoApprovePolicyName

from .models import PolicyVerdict, SlaStatus, SlaTier, SweepItemResult, SweepReport
from .ports import TimePort

logger = logging.getLogger(__name__)

DAY = timedelta(days=1)
HOUR = timedelta(hours=1)


# --- SLA math ---


def compute_sla_status(
    pending_since: datetime | None,
    now: datetime,
    window_days: int = 5,
    urgent_hours: int = 24,
    warning_days: int = 3,
) -> SlaStatus:
    """
    Compute the review-clock status of an item.

    Pure function: the same inputs always give the same status.
    """
    if pending_since is None:
        return SlaStatus(pending=False)

    elapsed = max(now - pending_since, timedelta(0))
    days_pending = elapsed // DAY
    deadline = pending_since + timedelta(days=window_days)
    remaining = max(deadline - now, timedelta(0))
    eligible = days_pending >= window_days

    tier: SlaTier
    if eligible:
        tier = "auto_approved"
    elif remaining < timedelta(hours=urgent_hours):
        tier = "urgent"
    elif remaining < timedelta(days=warning_days):
        tier = "warning"
    else:
        tier = "ok"

    return SlaStatus(
        pending=True,
        days_pending=days_pending,
        days_remaining=max(window_days - days_pending, 0),
        hours_remaining=remaining // HOUR,
        auto_publish_eligible=eligible,
        tier=tier,
        deadline=deadline,
    )


# --- Auto-approve policy ---


class AutoApprovePolicy:
    """
    Decides whether an SLA-expired item may be approved without a human.

    - elapsed_only: the deadline alone is enough
    - require_valid: the item must carry validation_status == valid
    - revalidate: re-run the validation gate and require a pass. The fresh
      verdict is stored on the item and only logged when it changed
    """

    def __init__(
        self,
        name: AutoApprovePolicyName = "require_valid",
        validator: ValidationGateService | None = None,
    ) -> None:
        if name == "revalidate" and validator is None:
            raise ValueError("The revalidate policy needs a validation gate")
        self.name = name
        self._validator = validator

    def review(self, item: ContentItem) -> PolicyVerdict:
        """Decide for one item. The verdict carries any fresh validation result."""
        if self.name == "elapsed_only":
            return PolicyVerdict()

        if self.name == "require_valid":
            if item.validation_status != "valid":
                return PolicyVerdict(f"validation_status is {item.validation_status}")
            return PolicyVerdict()

        if self._validator is None:
            raise ValueError("The revalidate policy needs a validation gate")
        result = self._validator.revalidate(
            item.body_html, item.title, item.meta_description, item.id
        )
        if result.infrastructure_failure:
            return PolicyVerdict("validation unavailable", result)
        if not result.passed:
            reason = "revalidation failed: " + ", ".join(e.type for e in result.errors)
            return PolicyVerdict(reason, result)
        return PolicyVerdict(None, result)


# --- Configuration ---


@dataclass(frozen=True)
class SchedulerConfig:
    """Scheduler configuration from rules."""

    window_days: int = 5
    urgent_hours: int = 24
    warning_days: int = 3
    publish_approved: bool = False
    max_items_per_sweep: int = 50
    pending_scan_limit: int = 1000


DEFAULT_CONFIG = SchedulerConfig()


# --- SlaSchedulerService ---


class SlaSchedulerService:
    """SLA sweep over pending_review items."""

    def __init__(
        self,
        workflow: WorkflowService,
        policy: AutoApprovePolicy | None = None,
        time_port: TimePort | None = None,
        config: SchedulerConfig | None = None,
    ) -> None:
        self._workflow = workflow
        self._policy = policy or AutoApprovePolicy()
        self._time = time_port
        self._config = config or DEFAULT_CONFIG

    def _now_utc(self) -> datetime:
        if self._time:
            return self._time.now_utc()
        return datetime.now(UTC)

    @property
    def policy(self) -> AutoApprovePolicy:
        return self._policy

    def status_for(self, item: ContentItem) -> SlaStatus:
        """SLA status of an item as of now."""
        cfg = self._config
        if item.status != "pending_review":
            return SlaStatus(pending=False)
        return compute_sla_status(
            item.pending_since,
            self._now_utc(),
            cfg.window_days,
            cfg.urgent_hours,
            cfg.warning_days,
        )

    def sweep(self, publish_approved: bool | None = None) -> SweepReport:
        """
        Run one sweep.

        Safe to run concurrently with itself and with manual reviews.
        """
        started = self._now_utc()
        results: list[SweepItemResult] = []

        pending = self._workflow.list_by_status(
            "pending_review", self._config.pending_scan_limit
        )
        for item in pending:
            result = self._sweep_item(item)
            if result is not None:
                results.append(result)

        if publish_approved is None:
            publish_approved = self._config.publish_approved
        if publish_approved:
            results.extend(self._publish_approved())

        def count(action: str) -> int:
            return sum(1 for r in results if r.action == action)

        report = SweepReport(
            started_at=started,
            checked=len(pending),
            auto_approved=count("auto_approved"),
            skipped=count("skipped"),
            lost_races=count("lost_race"),
            published=count("published"),
            errors=count("error") + count("publish_failed"),
            results=results,
        )
        logger.info(
            "SLA sweep: checked=%d auto_approved=%d skipped=%d lost_races=%d "
            "published=%d errors=%d",
            report.checked,
            report.auto_approved,
            report.skipped,
            report.lost_races,
            report.published,
            report.errors,
        )
        return report

    def _sweep_item(self, item: ContentItem) -> SweepItemResult | None:
        status = self.status_for(item)
        if not status.auto_publish_eligible:
            return None

        try:
            verdict = self._policy.review(item)
            if verdict.validation is not None and not verdict.validation.infrastructure_failure:
                current = self._workflow.record_revalidation(item, verdict.validation)
                if current is None:
                    return SweepItemResult(item.id, "lost_race", "revalidation")
                item = current
            if verdict.reason is not None:
                logger.info("SLA expired for %s but left pending: %s", item.id, verdict.reason)
                return SweepItemResult(item.id, "skipped", verdict.reason)

            outcome = self._workflow.auto_approve(item, status.days_pending, self._policy.name)
        except Exception as e:
            logger.exception("SLA sweep failed on %s", item.id)
            return SweepItemResult(item.id, "error", str(e))

        if outcome.changed:
            return SweepItemResult(
                item.id, "auto_approved", f"{status.days_pending} days pending"
            )
        return SweepItemResult(
            item.id,
            "lost_race",
            outcome.errors[0].message if outcome.errors else "",
        )

    def _publish_approved(self) -> list[SweepItemResult]:
        results: list[SweepItemResult] = []
        for item in self._workflow.list_by_status("approved", self._config.max_items_per_sweep):
            try:
                outcome = self._workflow.publish(item.id)
            except WorkflowError as e:
                results.append(SweepItemResult(item.id, "publish_failed", e.message))
                continue

            if outcome.changed:
                url = outcome.receipt.url if outcome.receipt else ""
                results.append(SweepItemResult(item.id, "published", url))
            else:
                results.append(SweepItemResult(item.id, "lost_race", "publish"))
        return results


# --- Factory ---


def create_sla_scheduler(
    workflow: WorkflowService,
    policy: AutoApprovePolicy | None = None,
    time_port: TimePort | None = None,
    config: SchedulerConfig | None = None,
) -> SlaSchedulerService:
    """Create an SlaSchedulerService."""
    return SlaSchedulerService(
        workflow=workflow, policy=policy, time_port=time_port, config=config
    )
