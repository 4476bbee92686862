from pathlib import Path

import pytest

from pubflow.components import links, validation, workflow
from pubflow.components.links import LinkTransformerService
from pubflow.components.validation import ValidationGateService
from pubflow.components.workflow import WorkflowService
from pubflow.rules.loader import load_rules
from pubflow.rules.models import Rules
from tests.fakes import (
    MockContentRepo,
    MockFeedbackRepo,
    MockPublisher,
    MockTimePort,
    MockUsageLogRepo,
    MockValidationLogRepo,
)


@pytest.fixture
def rules() -> Rules:
    """The project's real rules.yaml (tests run from the project root)."""
    rules_path = Path("rules.yaml").resolve()
    if not rules_path.exists():
        raise FileNotFoundError(f"Rules not found at {rules_path}")
    return load_rules(rules_path)


@pytest.fixture
def time_port() -> MockTimePort:
    return MockTimePort()


@pytest.fixture
def feedback_repo() -> MockFeedbackRepo:
    return MockFeedbackRepo()


@pytest.fixture
def content_repo(feedback_repo: MockFeedbackRepo) -> MockContentRepo:
    return MockContentRepo(feedback=feedback_repo)


@pytest.fixture
def validation_log_repo() -> MockValidationLogRepo:
    return MockValidationLogRepo()


@pytest.fixture
def usage_repo() -> MockUsageLogRepo:
    return MockUsageLogRepo()


@pytest.fixture
def publisher() -> MockPublisher:
    return MockPublisher()


@pytest.fixture
def link_service(rules: Rules) -> LinkTransformerService:
    return LinkTransformerService(config=links.build_config(rules.links))


@pytest.fixture
def validator(
    validation_log_repo: MockValidationLogRepo,
    time_port: MockTimePort,
    rules: Rules,
) -> ValidationGateService:
    return ValidationGateService(validation_log_repo, time_port, validation.build_config(rules))


@pytest.fixture
def workflow_service(
    content_repo: MockContentRepo,
    feedback_repo: MockFeedbackRepo,
    link_service: LinkTransformerService,
    validator: ValidationGateService,
    publisher: MockPublisher,
    time_port: MockTimePort,
    rules: Rules,
) -> WorkflowService:
    return WorkflowService(
        repo=content_repo,
        feedback_repo=feedback_repo,
        links=link_service,
        validator=validator,
        publisher=publisher,
        time_port=time_port,
        config=workflow.build_config(rules),
    )
