import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from uuid import UUID

from pubflow.adapters.clock import SystemClock
from pubflow.adapters.link_rewriter import HttpLinkRewriter
from pubflow.adapters.sqlite.migrator import SQLiteMigrator
from pubflow.adapters.sqlite.repos import (
    SQLiteContentRepo,
    SQLiteFeedbackRepo,
    SQLiteUsageLogRepo,
    SQLiteValidationLogRepo,
)
from pubflow.adapters.sweep_loop import SlaSweepLoop
from pubflow.adapters.wordpress import WordPressPublisher
from pubflow.api.deps import Settings
from pubflow.app_shell.config import validate_ops_rules
from pubflow.components import costs, links, scheduler, validation, workflow
from pubflow.components.costs import CostAccountantService
from pubflow.components.scheduler import SlaSchedulerService
from pubflow.components.workflow import WorkflowError, WorkflowService
from pubflow.rules.loader import load_rules
from pubflow.rules.models import Rules

logger = logging.getLogger("pubflow.cli")


@dataclass
class ServiceContext:
    settings: Settings
    rules: Rules
    workflow: WorkflowService
    scheduler: SlaSchedulerService
    accountant: CostAccountantService
    http_adapters: list[HttpLinkRewriter | WordPressPublisher] = field(default_factory=list)

    @classmethod
    def create(cls, settings: Settings, rules: Rules) -> "ServiceContext":
        clock = SystemClock()
        repo = SQLiteContentRepo(settings.db_path)

        rewriter = None
        if settings.link_rewriter_url:
            rewriter = HttpLinkRewriter(
                settings.link_rewriter_url,
                timeout_seconds=rules.links.rewriter_timeout_seconds,
                api_key=settings.service_api_key,
            )
        publisher = None
        if settings.cms_site_url:
            publisher = WordPressPublisher(
                settings.cms_site_url,
                settings.cms_username,
                settings.cms_app_password,
                timeout_seconds=rules.publish.timeout_seconds,
            )

        validator = validation.create_validation_gate(
            SQLiteValidationLogRepo(settings.db_path), clock, validation.build_config(rules)
        )
        workflow_service = workflow.create_workflow_service(
            repo=repo,
            feedback_repo=SQLiteFeedbackRepo(settings.db_path),
            links=links.create_link_transformer(rewriter, links.build_config(rules.links)),
            validator=validator,
            publisher=publisher,
            time_port=clock,
            config=workflow.build_config(rules),
        )
        return cls(
            settings=settings,
            rules=rules,
            workflow=workflow_service,
            scheduler=scheduler.create_sla_scheduler(
                workflow_service,
                scheduler.build_policy(rules, validator),
                clock,
                scheduler.build_config(rules),
            ),
            accountant=costs.create_cost_accountant(
                SQLiteUsageLogRepo(settings.db_path), repo, clock, costs.build_config(rules)
            ),
            http_adapters=[a for a in (rewriter, publisher) if a is not None],
        )

    def close(self) -> None:
        for adapter in self.http_adapters:
            adapter.close()


def get_context(settings: Settings) -> ServiceContext:
    if not Path(settings.rules_path).exists():
        logger.error("Rules file %s not found.", settings.rules_path)
        sys.exit(1)

    rules = load_rules(settings.rules_path)
    validate_ops_rules(rules, settings.data_dir)
    return ServiceContext.create(settings, rules)


def handle_migrate(settings: Settings, args: argparse.Namespace) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(settings.db_path, str(settings.migrations_dir)).run_migrations()
    print(f"Applied {len(applied)} migrations.")


def handle_serve(settings: Settings, args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("pubflow.api.main:app", host=args.host, port=args.port)


def handle_sweep(ctx: ServiceContext, args: argparse.Namespace) -> None:
    if args.loop:
        interval = args.interval or ctx.rules.sla.sweep_interval_seconds
        loop = SlaSweepLoop(ctx.scheduler, interval_seconds=interval)
        try:
            loop.run_forever()
        except KeyboardInterrupt:
            loop.stop()
        return

    report = ctx.scheduler.sweep(publish_approved=args.publish_approved or None)
    print(
        f"Checked {report.checked} pending items: {report.auto_approved} auto-approved, "
        f"{report.skipped} skipped, {report.lost_races} lost races, "
        f"{report.published} published, {report.errors} errors."
    )
    for result in report.results:
        print(f"  {result.content_id} {result.action} {result.message}")


def handle_publish(ctx: ServiceContext, args: argparse.Namespace) -> None:
    try:
        outcome = ctx.workflow.publish(UUID(args.content_id))
    except WorkflowError as e:
        logger.error("Publish failed (%s): %s", e.code, e.message)
        sys.exit(1)

    if not outcome.changed:
        for issue in outcome.errors:
            logger.error("%s: %s", issue.code, issue.message)
        sys.exit(1)
    url = outcome.receipt.url if outcome.receipt else ""
    print(f"Published {args.content_id} -> {url}")


def handle_costs(ctx: ServiceContext, args: argparse.Namespace) -> None:
    content_id = UUID(args.content_id)
    summary = (
        ctx.accountant.refresh_item_costs(content_id)
        if args.refresh
        else ctx.accountant.summarize(content_id)
    )
    print(f"Content {content_id}")
    print(f"  generation:   ${summary.generation_cost}")
    print(f"  verification: ${summary.verification_cost}")
    print(f"  total:        ${summary.total_cost} of ${summary.budget} budget")
    print(f"  calls:        {summary.call_count} ({summary.failed_calls} failed)")
    for model, cost in sorted(summary.by_model.items()):
        print(f"    {model}: ${cost}")
    if not summary.within_budget:
        print("  OVER BUDGET")


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Pubflow CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)

    # sweep
    sweep_parser = subparsers.add_parser("sweep", help="Run the SLA auto-approval sweep")
    sweep_parser.add_argument("--loop", action="store_true", help="Keep sweeping on an interval")
    sweep_parser.add_argument("--interval", type=float, help="Seconds between sweeps")
    sweep_parser.add_argument(
        "--publish-approved", action="store_true", help="Also publish approved items"
    )

    # publish
    publish_parser = subparsers.add_parser("publish", help="Publish an approved item")
    publish_parser.add_argument("content_id")

    # costs
    costs_parser = subparsers.add_parser("costs", help="Show an item's AI spend")
    costs_parser.add_argument("content_id")
    costs_parser.add_argument(
        "--refresh", action="store_true", help="Rewrite the cached cost columns"
    )

    args = parser.parse_args(argv)
    settings = Settings()

    if args.command == "migrate":
        handle_migrate(settings, args)
        return
    if args.command == "serve":
        handle_serve(settings, args)
        return

    ctx = get_context(settings)
    try:
        if args.command == "sweep":
            handle_sweep(ctx, args)
        elif args.command == "publish":
            handle_publish(ctx, args)
        elif args.command == "costs":
            handle_costs(ctx, args)
    finally:
        ctx.close()


if __name__ == "__main__":
    main()
