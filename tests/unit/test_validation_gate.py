"""
Tests for the validation gate.

Covers each rule in the table, the metrics it reports, logging of every run,
and fail-closed behaviour when the checks cannot run.
"""

from __future__ import annotations

from uuid import uuid4

import pytest

from pubflow.components.links import LinkTransformerService
from pubflow.components.validation import (
    RULE_SEVERITIES,
    ValidateContentInput,
    ValidationConfig,
    ValidationGateService,
    ValidationHistoryInput,
    count_words,
    run,
)
from tests.fakes import (
    PASSING_META,
    PASSING_TITLE,
    MockTimePort,
    MockValidationLogRepo,
    article_html,
    filler,
    json_ld,
)


@pytest.fixture
def log_repo() -> MockValidationLogRepo:
    return MockValidationLogRepo()


@pytest.fixture
def gate(log_repo: MockValidationLogRepo, time_port: MockTimePort) -> ValidationGateService:
    return ValidationGateService(log_repo, time_port, ValidationConfig())


def transformed(link_service: LinkTransformerService, **kwargs) -> str:
    return link_service.transform(article_html(**kwargs)).content


def error_types(result) -> set[str]:
    return {e.type for e in result.errors}


def warning_types(result) -> set[str]:
    return {w.type for w in result.warnings}


class TestPassingContent:
    """A compliant article passes."""

    def test_reference_article_passes(
        self, gate: ValidationGateService, link_service: LinkTransformerService
    ) -> None:
        """3 internal, 1 external, 1800 words, valid meta and JSON-LD."""
        html = transformed(link_service, internal=3, external=1, words=1800)

        result = gate.validate(html, PASSING_TITLE, PASSING_META)

        assert result.passed
        assert result.errors == []
        assert result.metrics["internal_link_count"] == 3
        assert result.metrics["external_link_count"] == 1
        assert result.metrics["raw_link_count"] == 0
        assert result.metrics["has_structured_data"] is True
        assert 1800 <= result.metrics["word_count"] < 1810

    def test_deterministic(
        self, gate: ValidationGateService, link_service: LinkTransformerService
    ) -> None:
        """Same input, same verdict and metrics."""
        html = transformed(link_service)

        first = gate.evaluate(html, PASSING_TITLE, PASSING_META)
        second = gate.evaluate(html, PASSING_TITLE, PASSING_META)

        assert first == second


class TestLinkRules:
    """Annotation and link-count rules."""

    def test_raw_links_error(self, gate: ValidationGateService) -> None:
        """Untransformed anchors fail validation."""
        result = gate.evaluate(article_html(), PASSING_TITLE, PASSING_META)

        assert "raw_links" in error_types(result)
        assert "no_annotations" in warning_types(result)

    def test_zero_external_links(
        self, gate: ValidationGateService, link_service: LinkTransformerService
    ) -> None:
        """Zero external links fails with an external-citation error."""
        html = transformed(link_service, external=0)

        result = gate.evaluate(html, PASSING_TITLE, PASSING_META)

        assert not result.passed
        assert "external_citation_missing" in error_types(result)

    def test_too_few_internal_links(
        self, gate: ValidationGateService, link_service: LinkTransformerService
    ) -> None:
        result = gate.evaluate(
            transformed(link_service, internal=1), PASSING_TITLE, PASSING_META
        )

        assert error_types(result) == {"internal_links_low"}

    def test_too_many_internal_links(
        self, gate: ValidationGateService, link_service: LinkTransformerService
    ) -> None:
        result = gate.evaluate(
            transformed(link_service, internal=6), PASSING_TITLE, PASSING_META
        )

        assert error_types(result) == {"internal_links_high"}

    def test_affiliate_links_counted_separately(
        self, gate: ValidationGateService, link_service: LinkTransformerService
    ) -> None:
        """Affiliate links neither satisfy nor break the other rules."""
        result = gate.evaluate(
            transformed(link_service, affiliate=2), PASSING_TITLE, PASSING_META
        )

        assert result.passed
        assert result.metrics["affiliate_link_count"] == 2


class TestWordCount:
    """Word count thresholds and tolerance."""

    def test_short_content_error(
        self, gate: ValidationGateService, link_service: LinkTransformerService
    ) -> None:
        result = gate.evaluate(
            transformed(link_service, words=900), PASSING_TITLE, PASSING_META
        )

        assert "word_count_low" in error_types(result)

    def test_long_content_error(
        self, gate: ValidationGateService, link_service: LinkTransformerService
    ) -> None:
        result = gate.evaluate(
            transformed(link_service, words=3500), PASSING_TITLE, PASSING_META
        )

        assert "word_count_high" in error_types(result)

    def test_tolerance_turns_near_miss_into_warning(
        self,
        log_repo: MockValidationLogRepo,
        link_service: LinkTransformerService,
    ) -> None:
        """With tolerance configured, a near miss is only a warning."""
        gate = ValidationGateService(log_repo, config=ValidationConfig(word_count_tolerance=100))

        result = gate.evaluate(
            transformed(link_service, words=1450), PASSING_TITLE, PASSING_META
        )

        assert result.passed
        assert "word_count_borderline" in warning_types(result)

    def test_count_ignores_scripts_and_tokens(self) -> None:
        """JSON-LD, tags and token markers are not words."""
        html = (
            "<p>one two</p>"
            '[ge_internal_link url="/a/"]three[/ge_internal_link]'
            + json_ld()
        )

        assert count_words(html) == 3


class TestMetadataRules:
    """Title and meta description."""

    @pytest.mark.parametrize(
        "title,meta,expected",
        [
            ("", PASSING_META, "title_missing"),
            ("Too short", PASSING_META, "title_length"),
            (PASSING_TITLE, None, "meta_description_missing"),
            (PASSING_TITLE, "Short description.", "meta_description_length"),
        ],
    )
    def test_metadata_errors(
        self,
        gate: ValidationGateService,
        link_service: LinkTransformerService,
        title: str,
        meta: str | None,
        expected: str,
    ) -> None:
        result = gate.evaluate(transformed(link_service), title, meta)

        assert error_types(result) == {expected}


class TestStructuredData:
    """JSON-LD and FAQ schema."""

    def test_missing_structured_data(
        self, gate: ValidationGateService, link_service: LinkTransformerService
    ) -> None:
        result = gate.evaluate(
            transformed(link_service, structured_data=False), PASSING_TITLE, PASSING_META
        )

        assert "structured_data_missing" in error_types(result)

    def test_structured_data_optional(
        self,
        log_repo: MockValidationLogRepo,
        link_service: LinkTransformerService,
    ) -> None:
        gate = ValidationGateService(
            log_repo, config=ValidationConfig(require_structured_data=False)
        )

        result = gate.evaluate(
            transformed(link_service, structured_data=False), PASSING_TITLE, PASSING_META
        )

        assert result.passed

    def test_invalid_json_ld(
        self, gate: ValidationGateService, link_service: LinkTransformerService
    ) -> None:
        html = transformed(link_service, structured_data=False)
        html += '<script type="application/ld+json">{"@context": </script>'

        result = gate.evaluate(html, PASSING_TITLE, PASSING_META)

        assert "structured_data_invalid" in error_types(result)

    def test_incomplete_json_ld_warns(
        self, gate: ValidationGateService, link_service: LinkTransformerService
    ) -> None:
        html = transformed(link_service, structured_data=False)
        html += json_ld({"headline": "No type or context"})

        result = gate.evaluate(html, PASSING_TITLE, PASSING_META)

        assert result.passed
        assert "structured_data_incomplete" in warning_types(result)

    def test_faq_without_schema_warns(
        self, gate: ValidationGateService, link_service: LinkTransformerService
    ) -> None:
        html = transformed(link_service) + "<h2>Frequently Asked Questions</h2>" + filler(5)

        result = gate.evaluate(html, PASSING_TITLE, PASSING_META)

        assert result.passed
        assert result.metrics["has_faq"] is True
        assert "faq_schema_missing" in warning_types(result)


class TestLogging:
    """Every run is logged."""

    def test_pass_and_fail_both_logged(
        self,
        gate: ValidationGateService,
        log_repo: MockValidationLogRepo,
        link_service: LinkTransformerService,
    ) -> None:
        content_id = uuid4()

        gate.validate(transformed(link_service), PASSING_TITLE, PASSING_META, content_id)
        gate.validate(article_html(), PASSING_TITLE, PASSING_META, content_id)

        assert [log.passed for log in log_repo.logs] == [True, False]
        assert all(log.content_id == content_id for log in log_repo.logs)
        assert log_repo.logs[1].errors[0].type == "raw_links"

    def test_evaluation_crash_fails_closed(
        self,
        gate: ValidationGateService,
        log_repo: MockValidationLogRepo,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A check that cannot run is reported as failed, never passed."""

        def boom(*args, **kwargs):
            raise RuntimeError("parser exploded")

        monkeypatch.setattr(gate, "evaluate", boom)

        result = gate.validate("<p>x</p>", PASSING_TITLE, PASSING_META)

        assert not result.passed
        assert result.infrastructure_failure
        assert len(log_repo.logs) == 1
        assert log_repo.logs[0].errors[0].type == "validation_unavailable"

    def test_log_write_failure_propagates(
        self, gate: ValidationGateService, log_repo: MockValidationLogRepo
    ) -> None:
        """An unloggable run is not silently accepted."""
        log_repo.fail = True

        with pytest.raises(RuntimeError):
            gate.validate("<p>x</p>", PASSING_TITLE, PASSING_META)

    def test_history_newest_first(
        self,
        log_repo: MockValidationLogRepo,
        time_port: MockTimePort,
        link_service: LinkTransformerService,
    ) -> None:
        content_id = uuid4()
        run(
            ValidateContentInput(article_html(), PASSING_TITLE, PASSING_META, content_id),
            log_repo=log_repo,
            time_port=time_port,
        )
        time_port.advance(seconds=60)
        run(
            ValidateContentInput(
                transformed(link_service), PASSING_TITLE, PASSING_META, content_id
            ),
            log_repo=log_repo,
            time_port=time_port,
        )

        history = run(ValidationHistoryInput(content_id), log_repo=log_repo)

        assert [log.passed for log in history] == [True, False]


class TestRevalidate:
    """Re-checks log only what changed."""

    def test_unchanged_content_not_logged_again(
        self, gate: ValidationGateService, log_repo: MockValidationLogRepo
    ) -> None:
        content_id = uuid4()
        gate.validate(article_html(), PASSING_TITLE, PASSING_META, content_id)

        for _ in range(3):
            result = gate.revalidate(article_html(), PASSING_TITLE, PASSING_META, content_id)

        assert not result.passed
        assert "raw_links" in error_types(result)
        assert len(log_repo.logs) == 1

    def test_first_check_logged(
        self, gate: ValidationGateService, log_repo: MockValidationLogRepo
    ) -> None:
        content_id = uuid4()

        gate.revalidate(article_html(), PASSING_TITLE, PASSING_META, content_id)

        [log] = log_repo.logs
        assert log.content_id == content_id
        assert len(log.metrics["content_digest"]) == 64

    def test_changed_body_logged(
        self, gate: ValidationGateService, log_repo: MockValidationLogRepo
    ) -> None:
        content_id = uuid4()
        gate.revalidate(article_html(), PASSING_TITLE, PASSING_META, content_id)

        gate.revalidate(article_html(internal=4), PASSING_TITLE, PASSING_META, content_id)

        assert len(log_repo.logs) == 2

    def test_changed_verdict_logged(
        self,
        log_repo: MockValidationLogRepo,
        time_port: MockTimePort,
        link_service: LinkTransformerService,
    ) -> None:
        """Same content under tightened thresholds is a new verdict."""
        content_id = uuid4()
        body = transformed(link_service)
        ValidationGateService(log_repo, time_port).validate(
            body, PASSING_TITLE, PASSING_META, content_id
        )
        strict = ValidationGateService(log_repo, time_port, ValidationConfig(word_count_min=5000))

        result = strict.revalidate(body, PASSING_TITLE, PASSING_META, content_id)

        assert "word_count_low" in error_types(result)
        assert [log.passed for log in log_repo.logs] == [True, False]

    def test_outage_always_logged(
        self,
        gate: ValidationGateService,
        log_repo: MockValidationLogRepo,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        content_id = uuid4()

        def boom(*args, **kwargs):
            raise RuntimeError("parser exploded")

        monkeypatch.setattr(gate, "evaluate", boom)
        gate.revalidate("<p>x</p>", PASSING_TITLE, PASSING_META, content_id)
        gate.revalidate("<p>x</p>", PASSING_TITLE, PASSING_META, content_id)

        assert [log.errors[0].type for log in log_repo.logs] == ["validation_unavailable"] * 2


def test_every_rule_has_a_severity() -> None:
    """Severities are either error or warning."""
    assert set(RULE_SEVERITIES.values()) == {"error", "warning"}
