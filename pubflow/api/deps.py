import os
from collections.abc import Iterator
from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from pubflow.adapters.clock import SystemClock
from pubflow.adapters.link_rewriter import HttpLinkRewriter
from pubflow.adapters.llm_gateway import HttpLLMGateway
from pubflow.adapters.sqlite.repos import (
    SQLiteContentRepo,
    SQLiteFeedbackRepo,
    SQLiteUsageLogRepo,
    SQLiteValidationLogRepo,
)
from pubflow.adapters.wordpress import WordPressPublisher

# Components are stateless; their collaborators are injected as ports/repos/adapters.
from pubflow.components import costs, links, scheduler, validation, workflow
from pubflow.components.costs import CostAccountantService, MeteredLLMClient
from pubflow.components.links import LinkTransformerService
from pubflow.components.publish import CMSPublisherPort
from pubflow.components.scheduler import SlaSchedulerService
from pubflow.components.validation import ValidationGateService
from pubflow.components.workflow import WorkflowService
from pubflow.rules.loader import load_rules
from pubflow.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("PUBFLOW_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "pubflow.db")
        self.migrations_dir = self.base_dir / "migrations"
        self.rules_path = Path(
            os.environ.get("PUBFLOW_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )

        # CMS (WordPress application password)
        self.cms_site_url = os.environ.get("CMS_SITE_URL")
        self.cms_username = os.environ.get("CMS_USERNAME", "")
        self.cms_app_password = os.environ.get("CMS_APP_PASSWORD", "")

        # Remote services; in-process fallbacks when unset
        self.link_rewriter_url = os.environ.get("LINK_REWRITER_URL")
        self.llm_gateway_url = os.environ.get("LLM_GATEWAY_URL")
        self.service_api_key = os.environ.get("PUBFLOW_SERVICE_API_KEY")


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


def get_webhook_secret(rules: Rules = Depends(get_rules)) -> str | None:
    return os.environ.get(rules.webhook.secret_env) or None


def get_webhook_require_secret(rules: Rules = Depends(get_rules)) -> bool:
    return rules.webhook.require_secret


# --- Repos ---
def get_content_repo(settings: Settings = Depends(get_settings)) -> SQLiteContentRepo:
    return SQLiteContentRepo(settings.db_path)


def get_feedback_repo(settings: Settings = Depends(get_settings)) -> SQLiteFeedbackRepo:
    return SQLiteFeedbackRepo(settings.db_path)


def get_usage_repo(settings: Settings = Depends(get_settings)) -> SQLiteUsageLogRepo:
    return SQLiteUsageLogRepo(settings.db_path)


def get_validation_log_repo(
    settings: Settings = Depends(get_settings),
) -> SQLiteValidationLogRepo:
    return SQLiteValidationLogRepo(settings.db_path)


def get_time_port() -> SystemClock:
    return SystemClock()


# --- Adapters ---
# Adapters holding an HTTP client are yielded and closed when the request ends.
def get_publisher(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> Iterator[CMSPublisherPort | None]:
    if not settings.cms_site_url:
        yield None
        return
    publisher = WordPressPublisher(
        settings.cms_site_url,
        settings.cms_username,
        settings.cms_app_password,
        timeout_seconds=rules.publish.timeout_seconds,
    )
    try:
        yield publisher
    finally:
        publisher.close()


# --- Component Services ---
def get_link_transformer(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> Iterator[LinkTransformerService]:
    """Get link transformer component service."""
    config = links.build_config(rules.links)
    if not settings.link_rewriter_url:
        yield LinkTransformerService(config=config)
        return
    rewriter = HttpLinkRewriter(
        settings.link_rewriter_url,
        timeout_seconds=rules.links.rewriter_timeout_seconds,
        api_key=settings.service_api_key,
    )
    try:
        yield LinkTransformerService(rewriter=rewriter, config=config)
    finally:
        rewriter.close()


def get_validation_gate(
    log_repo: SQLiteValidationLogRepo = Depends(get_validation_log_repo),
    time: SystemClock = Depends(get_time_port),
    rules: Rules = Depends(get_rules),
) -> ValidationGateService:
    """Get validation gate component service."""
    return ValidationGateService(log_repo, time, validation.build_config(rules))


def get_workflow_service(
    repo: SQLiteContentRepo = Depends(get_content_repo),
    feedback_repo: SQLiteFeedbackRepo = Depends(get_feedback_repo),
    link_service: LinkTransformerService = Depends(get_link_transformer),
    validator: ValidationGateService = Depends(get_validation_gate),
    publisher: CMSPublisherPort | None = Depends(get_publisher),
    time: SystemClock = Depends(get_time_port),
    rules: Rules = Depends(get_rules),
) -> WorkflowService:
    """Get workflow component service."""
    return WorkflowService(
        repo=repo,
        feedback_repo=feedback_repo,
        links=link_service,
        validator=validator,
        publisher=publisher,
        time_port=time,
        config=workflow.build_config(rules),
    )


def get_scheduler(
    workflow_service: WorkflowService = Depends(get_workflow_service),
    time: SystemClock = Depends(get_time_port),
    rules: Rules = Depends(get_rules),
) -> SlaSchedulerService:
    """Get SLA scheduler component service."""
    return SlaSchedulerService(
        workflow=workflow_service,
        policy=scheduler.build_policy(rules, workflow_service.validator),
        time_port=time,
        config=scheduler.build_config(rules),
    )


def get_cost_accountant(
    usage_repo: SQLiteUsageLogRepo = Depends(get_usage_repo),
    repo: SQLiteContentRepo = Depends(get_content_repo),
    time: SystemClock = Depends(get_time_port),
    rules: Rules = Depends(get_rules),
) -> CostAccountantService:
    """Get cost accountant component service."""
    return CostAccountantService(
        usage_repo=usage_repo,
        content_repo=repo,
        time_port=time,
        config=costs.build_config(rules),
    )


def get_llm_client(
    settings: Settings = Depends(get_settings),
    accountant: CostAccountantService = Depends(get_cost_accountant),
) -> Iterator[MeteredLLMClient | None]:
    """Get the metered LLM client, or None when no gateway is configured."""
    if not settings.llm_gateway_url:
        yield None
        return
    gateway = HttpLLMGateway(settings.llm_gateway_url, api_key=settings.service_api_key)
    try:
        yield MeteredLLMClient(gateway, accountant)
    finally:
        gateway.close()
