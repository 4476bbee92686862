"""
LinkTransformerService - Rewrites raw anchors into annotation tokens.

Key behaviors:
- Relative paths and configured internal hosts -> internal
- Hosts on the affiliate allowlist -> affiliate (rel="sponsored nofollow")
- Anything else -> external (rel="nofollow", target="_blank")
- Idempotent: only raw <a> elements are matched, so existing tokens are
  never wrapped again
- A failing rewriter never alters the content
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from urllib.parse import urlsplit
from uuid import UUID

from .models import (
    AnnotationStats,
    LinkKind,
    LinkSummary,
    RewriteResult,
    RewriterError,
    TransformOutput,
)
from .ports import LinkRewriterPort

logger = logging.getLogger(__name__)

# --- Configuration ---


@dataclass(frozen=True)
class LinkTransformerConfig:
    """Link classification settings from rules."""

    internal_domains: tuple[str, ...] = ("geteducated.com", "www.geteducated.com")
    affiliate_domains: tuple[str, ...] = ()
    token_prefix: str = "ge"


DEFAULT_CONFIG = LinkTransformerConfig()

# --- Patterns ---

ANCHOR_RE = re.compile(
    r"""<a\s+([^>]*?)href=["']([^"']+)["']([^>]*?)>(.*?)</a>""",
    re.IGNORECASE | re.DOTALL,
)
RAW_ANCHOR_RE = re.compile(r"<a\s+", re.IGNORECASE)
ATTR_RE = re.compile(r"""([\w-]+)=["']([^"']*)["']""")

UNSAFE_SCHEMES = ("javascript:", "data:", "vbscript:")


def token_pattern(prefix: str) -> re.Pattern[str]:
    """Opening annotation tokens, e.g. [ge_internal_link url=...]."""
    return re.compile(rf"\[{re.escape(prefix)}_(internal|affiliate|external)_link\b")


def token_span_pattern(prefix: str) -> re.Pattern[str]:
    """Whole annotation tokens, opening tag through closing tag."""
    p = re.escape(prefix)
    return re.compile(
        rf"\[{p}_(internal|affiliate|external)_link\b[^\]]*\].*?\[/{p}_\1_link\]",
        re.DOTALL,
    )


# --- Classification ---


def _host_matches(hostname: str, domain: str) -> bool:
    domain = domain.lower()
    return hostname == domain or hostname.endswith("." + domain)


def classify_url(url: str, config: LinkTransformerConfig = DEFAULT_CONFIG) -> LinkKind:
    """Classify a link target as internal, affiliate or external."""
    url = url.strip()
    if url.startswith("/") and not url.startswith("//"):
        return "internal"

    parts = urlsplit(url)
    hostname = (parts.hostname or "").lower()
    if not hostname:
        # Same-site relative path or fragment; mailto: etc. go external
        return "external" if parts.scheme else "internal"

    if any(_host_matches(hostname, d) for d in config.internal_domains):
        return "internal"
    if any(_host_matches(hostname, d) for d in config.affiliate_domains):
        return "affiliate"
    return "external"


def _escape_attr(value: str) -> str:
    return value.replace('"', "&quot;")


def build_token(
    kind: LinkKind,
    url: str,
    text: str,
    attributes: dict[str, str],
    prefix: str = "ge",
) -> str:
    """Render an annotation token."""
    name = f"{prefix}_{kind}_link"
    parts = [f'url="{_escape_attr(url)}"']
    parts.extend(f'{k}="{_escape_attr(v)}"' for k, v in attributes.items())
    return f"[{name} {' '.join(parts)}]{text}[/{name}]"


# --- Default in-process rewriter ---


class RegexLinkRewriter:
    """In-process rewriting engine (LinkRewriterPort)."""

    def __init__(self, config: LinkTransformerConfig | None = None) -> None:
        self._config = config or DEFAULT_CONFIG
        self._token_spans = token_span_pattern(self._config.token_prefix)

    def rewrite(self, html: str, content_id: UUID | None = None) -> RewriteResult:
        counts = {"internal": 0, "affiliate": 0, "external": 0}
        issues: list[str] = []
        protected = [m.span() for m in self._token_spans.finditer(html)]

        def replace(match: re.Match[str]) -> str:
            before, url, after, text = match.groups()

            if any(start <= match.start() < end for start, end in protected):
                issues.append(f"Anchor inside an existing annotation left unchanged: {url}")
                return match.group(0)

            if url.strip().lower().startswith(UNSAFE_SCHEMES):
                issues.append(f"Malformed href skipped: {url[:60]}")
                return match.group(0)

            attributes = {
                k.lower(): v
                for k, v in ATTR_RE.findall(f"{before} {after}")
                if k.lower() != "href"
            }
            kind = classify_url(url, self._config)
            if kind == "affiliate":
                attributes.setdefault("rel", "sponsored nofollow")
            elif kind == "external":
                attributes.setdefault("rel", "nofollow")
                attributes.setdefault("target", "_blank")

            counts[kind] += 1
            return build_token(kind, url, text, attributes, self._config.token_prefix)

        transformed = ANCHOR_RE.sub(replace, html)

        remaining = len(RAW_ANCHOR_RE.findall(transformed))
        if remaining:
            issues.append(
                f"{remaining} raw links could not be transformed (check HTML syntax)"
            )

        return RewriteResult(
            content=transformed,
            transformations=LinkSummary(**counts),
            issues=issues,
        )


# --- LinkTransformerService ---


class LinkTransformerService:
    """
    Link transformer service.

    Delegates rewriting to a LinkRewriterPort and turns engine failures
    into a success=False result carrying the original content.
    """

    def __init__(
        self,
        rewriter: LinkRewriterPort | None = None,
        config: LinkTransformerConfig | None = None,
    ) -> None:
        self._config = config or DEFAULT_CONFIG
        self._rewriter = rewriter or RegexLinkRewriter(self._config)
        self._tokens = token_pattern(self._config.token_prefix)

    def transform(self, html: str, content_id: UUID | None = None) -> TransformOutput:
        """Rewrite raw anchors in html into annotation tokens."""
        try:
            result = self._rewriter.rewrite(html, content_id)
        except RewriterError as e:
            logger.warning("Link rewrite failed for %s: %s", content_id, e)
            return TransformOutput(
                success=False,
                content=html,
                transformations=LinkSummary(),
                issues=[f"Link transformation unavailable: {e}"],
            )

        logger.info(
            "Transformed links for %s: %s",
            content_id,
            result.transformations.as_dict(),
        )
        return TransformOutput(
            success=True,
            content=result.content,
            transformations=result.transformations,
            issues=list(result.issues),
        )

    def get_annotation_stats(self, content: str) -> AnnotationStats:
        """Count annotation tokens by kind and any leftover raw anchors."""
        counts = {"internal": 0, "affiliate": 0, "external": 0}
        for kind in self._tokens.findall(content):
            counts[kind] += 1
        return AnnotationStats(raw_links=self.find_raw_links(content), **counts)

    def find_raw_links(self, content: str) -> int:
        """Number of raw <a> elements in content."""
        return len(RAW_ANCHOR_RE.findall(content))


# --- Factory ---


def create_link_transformer(
    rewriter: LinkRewriterPort | None = None,
    config: LinkTransformerConfig | None = None,
) -> LinkTransformerService:
    """Create a LinkTransformerService."""
    return LinkTransformerService(rewriter=rewriter, config=config)
