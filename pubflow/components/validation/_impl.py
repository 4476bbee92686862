"""
ValidationGateService - Publish-readiness checks.

Runs a fixed rule table against an item's body and metadata. Severities are
fixed in RULE_SEVERITIES; only thresholds come from rules.yaml.

Key behaviors:
- passed is True only when no error-severity rule fired
- Every validate() run appends exactly one ValidationLog row, including runs
  where the checks themselves could not be evaluated
- revalidate() logs only when the content digest or the verdict changed
- A run that cannot be evaluated fails closed with validation_unavailable
- Same input, same verdict
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from pubflow.domain.entities import ValidationIssue, ValidationLog

from .models import Severity, ValidationResult
from .ports import TimePort, ValidationLogRepoPort

logger = logging.getLogger(__name__)

DIGEST_METRIC = "content_digest"

# --- Rule table ---

RULE_SEVERITIES: dict[str, Severity] = {
    "raw_links": "error",
    "internal_links_low": "error",
    "internal_links_high": "error",
    "external_citation_missing": "error",
    "word_count_low": "error",
    "word_count_high": "error",
    "title_missing": "error",
    "title_length": "error",
    "meta_description_missing": "error",
    "meta_description_length": "error",
    "structured_data_missing": "error",
    "structured_data_invalid": "error",
    "validation_unavailable": "error",
    "word_count_borderline": "warning",
    "structured_data_incomplete": "warning",
    "no_annotations": "warning",
    "faq_schema_missing": "warning",
}


# --- Configuration ---


@dataclass(frozen=True)
class ValidationConfig:
    """Validation thresholds from rules."""

    internal_links_min: int = 2
    internal_links_max: int = 5
    min_external_links: int = 1
    word_count_min: int = 1500
    word_count_max: int = 3000
    word_count_tolerance: int = 0
    title_min: int = 50
    title_max: int = 60
    meta_description_min: int = 150
    meta_description_max: int = 160
    require_structured_data: bool = True
    token_prefix: str = "ge"


DEFAULT_CONFIG = ValidationConfig()

# --- Patterns ---

RAW_LINK_RE = re.compile(r"<a\s+[^>]*href=", re.IGNORECASE)
TAG_RE = re.compile(r"<[^>]*>")
SCRIPT_STYLE_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL)
JSON_LD_RE = re.compile(
    r"""<script[^>]*type=["']application/ld\+json["'][^>]*>(.*?)</script>""",
    re.IGNORECASE | re.DOTALL,
)
FAQ_HEADING_RE = re.compile(
    r"<h[2-4][^>]*>\s*(FAQs?|Frequently Asked Questions)\s*</h[2-4]>",
    re.IGNORECASE,
)


def count_words(html: str, token_prefix: str = "ge") -> int:
    """Word count with scripts, tags and annotation markers removed."""
    text = SCRIPT_STYLE_RE.sub(" ", html)
    text = re.sub(rf"\[/?{re.escape(token_prefix)}_\w+_link\b[^\]]*\]", " ", text)
    text = TAG_RE.sub(" ", text)
    return len(text.split())


def content_digest(html: str, title: str | None, meta_description: str | None) -> str:
    """Fingerprint of the fields the rules read."""
    h = hashlib.sha256()
    for part in (html, title or "", meta_description or ""):
        h.update(part.encode("utf-8"))
        h.update(b"\x00")
    return h.hexdigest()


def _schema_types(node: Any) -> list[str]:
    """All @type values in a JSON-LD document, including @graph members."""
    types: list[str] = []
    if isinstance(node, list):
        for child in node:
            types.extend(_schema_types(child))
    elif isinstance(node, dict):
        t = node.get("@type")
        if isinstance(t, str):
            types.append(t)
        elif isinstance(t, list):
            types.extend(str(x) for x in t)
        types.extend(_schema_types(node.get("@graph", [])))
    return types


def _is_complete(node: Any) -> bool:
    if isinstance(node, list):
        return bool(node) and all(_is_complete(n) for n in node)
    if isinstance(node, dict):
        if "@graph" in node and "@context" in node:
            return True
        return "@context" in node and "@type" in node
    return False


class _RunCollector:
    """Collects issues by severity for one run."""

    def __init__(self) -> None:
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []

    def add(self, rule: str, message: str) -> None:
        issue = ValidationIssue(type=rule, message=message)
        if RULE_SEVERITIES[rule] == "error":
            self.errors.append(issue)
        else:
            self.warnings.append(issue)


# --- ValidationGateService ---


class ValidationGateService:
    """
    Validation gate service.

    Evaluates the rule table and records every run in the validation log.
    """

    def __init__(
        self,
        log_repo: ValidationLogRepoPort,
        time_port: TimePort | None = None,
        config: ValidationConfig | None = None,
    ) -> None:
        self._log_repo = log_repo
        self._time = time_port
        self._config = config or DEFAULT_CONFIG
        prefix = re.escape(self._config.token_prefix)
        self._token_re = {
            kind: re.compile(rf"\[{prefix}_{kind}_link\b")
            for kind in ("internal", "affiliate", "external")
        }

    def _now_utc(self) -> datetime:
        if self._time:
            return self._time.now_utc()
        return datetime.now(UTC)

    def validate(
        self,
        html: str,
        title: str | None,
        meta_description: str | None,
        content_id: UUID | None = None,
    ) -> ValidationResult:
        """
        Run every rule and append one log row.

        Raises only if the log row itself cannot be written.
        """
        result = self._evaluate_or_fail(html, title, meta_description, content_id)
        self._append_log(result, content_id, content_digest(html, title, meta_description))
        logger.info(
            "Validation for %s: passed=%s errors=%d warnings=%d",
            content_id,
            result.passed,
            len(result.errors),
            len(result.warnings),
        )
        return result

    def revalidate(
        self,
        html: str,
        title: str | None,
        meta_description: str | None,
        content_id: UUID | None = None,
    ) -> ValidationResult:
        """
        Re-check content that may have been validated before.

        A log row is appended only when the content or the verdict differs
        from the item's latest logged run. Repeated checks of unchanged
        content leave the history as it is.
        """
        digest = content_digest(html, title, meta_description)
        result = self._evaluate_or_fail(html, title, meta_description, content_id)

        latest = self._log_repo.list_by_content(content_id, 1) if content_id else []
        if (
            latest
            and not result.infrastructure_failure
            and latest[0].passed == result.passed
            and latest[0].metrics.get(DIGEST_METRIC) == digest
        ):
            logger.debug("Revalidation of %s unchanged, not logged", content_id)
            return result

        self._append_log(result, content_id, digest)
        logger.info(
            "Revalidation for %s: passed=%s errors=%d",
            content_id,
            result.passed,
            len(result.errors),
        )
        return result

    def _evaluate_or_fail(
        self,
        html: str,
        title: str | None,
        meta_description: str | None,
        content_id: UUID | None,
    ) -> ValidationResult:
        try:
            return self.evaluate(html, title, meta_description)
        except Exception as e:
            logger.exception("Validation could not run for %s", content_id)
            return ValidationResult(
                passed=False,
                errors=[
                    ValidationIssue(
                        type="validation_unavailable",
                        message=f"Validation could not be completed: {e}",
                    )
                ],
                warnings=[],
                metrics={},
            )

    def _append_log(
        self, result: ValidationResult, content_id: UUID | None, digest: str
    ) -> None:
        self._log_repo.append(
            ValidationLog(
                content_id=content_id,
                passed=result.passed,
                errors=list(result.errors),
                warnings=list(result.warnings),
                metrics={**result.metrics, DIGEST_METRIC: digest},
                created_at=self._now_utc(),
            )
        )

    def evaluate(
        self,
        html: str,
        title: str | None,
        meta_description: str | None,
    ) -> ValidationResult:
        """Pure rule evaluation, no side effects."""
        cfg = self._config
        run = _RunCollector()

        # Annotation compliance
        counts = {kind: len(rx.findall(html)) for kind, rx in self._token_re.items()}
        annotation_count = sum(counts.values())
        raw_link_count = len(RAW_LINK_RE.findall(html))

        if raw_link_count > 0:
            run.add(
                "raw_links",
                f"{raw_link_count} raw link(s) detected. All links must be annotation tokens; "
                "run the content through the link transformer first.",
            )
        if annotation_count == 0:
            run.add("no_annotations", "No link annotations found.")

        # Internal links
        internal = counts["internal"]
        if internal < cfg.internal_links_min:
            run.add(
                "internal_links_low",
                f"Insufficient internal links ({internal}). "
                f"Requirement: {cfg.internal_links_min}-{cfg.internal_links_max}.",
            )
        elif internal > cfg.internal_links_max:
            run.add(
                "internal_links_high",
                f"Too many internal links ({internal}). "
                f"Requirement: {cfg.internal_links_min}-{cfg.internal_links_max}.",
            )

        # External citations
        external = counts["external"]
        if external < cfg.min_external_links:
            run.add(
                "external_citation_missing",
                f"No external citation found ({external}). "
                f"Requirement: at least {cfg.min_external_links} link to an authoritative source.",
            )

        # Word count
        words = count_words(html, cfg.token_prefix)
        self._check_word_count(run, words)

        # Title
        title_length = len(title.strip()) if title else 0
        if title_length == 0:
            run.add("title_missing", "Missing title.")
        elif not cfg.title_min <= title_length <= cfg.title_max:
            run.add(
                "title_length",
                f"Title is {title_length} characters. "
                f"Requirement: {cfg.title_min}-{cfg.title_max}.",
            )

        # Meta description
        meta_length = len(meta_description.strip()) if meta_description else 0
        if meta_length == 0:
            run.add("meta_description_missing", "Missing meta description.")
        elif not cfg.meta_description_min <= meta_length <= cfg.meta_description_max:
            run.add(
                "meta_description_length",
                f"Meta description is {meta_length} characters. "
                f"Requirement: {cfg.meta_description_min}-{cfg.meta_description_max}.",
            )

        # Structured data and FAQ schema
        has_structured_data, schema_types = self._check_structured_data(run, html)
        has_faq = bool(FAQ_HEADING_RE.search(html))
        if has_faq and "FAQPage" not in schema_types:
            run.add("faq_schema_missing", "FAQ section found but no FAQPage schema.")

        metrics: dict[str, Any] = {
            "word_count": words,
            "internal_link_count": internal,
            "affiliate_link_count": counts["affiliate"],
            "external_link_count": external,
            "annotation_count": annotation_count,
            "raw_link_count": raw_link_count,
            "has_structured_data": has_structured_data,
            "has_faq": has_faq,
            "title_length": title_length,
            "meta_description_length": meta_length,
        }

        return ValidationResult(
            passed=not run.errors,
            errors=run.errors,
            warnings=run.warnings,
            metrics=metrics,
        )

    def _check_word_count(self, run: _RunCollector, words: int) -> None:
        cfg = self._config
        tol = cfg.word_count_tolerance
        if words < cfg.word_count_min:
            if tol and words >= cfg.word_count_min - tol:
                run.add(
                    "word_count_borderline",
                    f"Content slightly short ({words} words). Target: {cfg.word_count_min}+.",
                )
            else:
                run.add(
                    "word_count_low",
                    f"Content too short ({words} words). "
                    f"Requirement: {cfg.word_count_min}-{cfg.word_count_max}.",
                )
        elif words > cfg.word_count_max:
            if tol and words <= cfg.word_count_max + tol:
                run.add(
                    "word_count_borderline",
                    f"Content slightly long ({words} words). Target: {cfg.word_count_max} max.",
                )
            else:
                run.add(
                    "word_count_high",
                    f"Content too long ({words} words). "
                    f"Requirement: {cfg.word_count_min}-{cfg.word_count_max}.",
                )

    def _check_structured_data(self, run: _RunCollector, html: str) -> tuple[bool, list[str]]:
        blocks = JSON_LD_RE.findall(html)
        if not blocks:
            if self._config.require_structured_data:
                run.add(
                    "structured_data_missing",
                    "Missing JSON-LD structured data block (application/ld+json).",
                )
            return False, []

        schema_types: list[str] = []
        for raw in blocks:
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                run.add("structured_data_invalid", "Invalid JSON-LD syntax.")
                continue
            if not _is_complete(data):
                run.add(
                    "structured_data_incomplete",
                    "JSON-LD structure incomplete: missing @context or @type.",
                )
            schema_types.extend(_schema_types(data))
        return True, schema_types

    def get_history(self, content_id: UUID, limit: int = 50) -> list[ValidationLog]:
        """Past runs for an item, newest first."""
        return self._log_repo.list_by_content(content_id, limit)


# --- Factory ---


def create_validation_gate(
    log_repo: ValidationLogRepoPort,
    time_port: TimePort | None = None,
    config: ValidationConfig | None = None,
) -> ValidationGateService:
    """Create a ValidationGateService."""
    return ValidationGateService(log_repo=log_repo, time_port=time_port, config=config)
