"""
Links component - Raw anchor to annotation token rewriting.

Invariants:
- Running the transformer on its own output yields zero transformations
- On rewriter failure the content is returned untouched with success=False
"""

from __future__ import annotations

from pubflow.rules.models import LinkRules

from ._impl import LinkTransformerConfig, LinkTransformerService
from .models import (
    AnnotationStats,
    AnnotationStatsInput,
    TransformInput,
    TransformOutput,
)
from .ports import LinkRewriterPort


def build_config(rules: LinkRules | None) -> LinkTransformerConfig:
    """Build transformer config from the links rules section."""
    if rules is None:
        return LinkTransformerConfig()
    return LinkTransformerConfig(
        internal_domains=tuple(rules.internal_domains),
        affiliate_domains=tuple(rules.affiliate_domains),
        token_prefix=rules.token_prefix,
    )


def _create_service(
    rewriter: LinkRewriterPort | None,
    rules: LinkRules | None,
) -> LinkTransformerService:
    return LinkTransformerService(rewriter=rewriter, config=build_config(rules))


# --- Component Entry Points ---


def run_transform(
    inp: TransformInput,
    *,
    rewriter: LinkRewriterPort | None = None,
    rules: LinkRules | None = None,
) -> TransformOutput:
    """
    Rewrite raw anchors into annotation tokens.

    Args:
        inp: Input containing the HTML body and optional content id.
        rewriter: Optional rewriting engine (defaults to in-process regex).
        rules: Optional links rules section.

    Returns:
        TransformOutput with the new content and per-kind counts.
    """
    service = _create_service(rewriter, rules)
    return service.transform(inp.html, inp.content_id)


def run_annotation_stats(
    inp: AnnotationStatsInput,
    *,
    rules: LinkRules | None = None,
) -> AnnotationStats:
    """Count annotation tokens already present in a body."""
    service = _create_service(None, rules)
    return service.get_annotation_stats(inp.content)


def run(
    inp: TransformInput | AnnotationStatsInput,
    *,
    rewriter: LinkRewriterPort | None = None,
    rules: LinkRules | None = None,
) -> TransformOutput | AnnotationStats:
    """
    Main entry point for the links component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, TransformInput):
        return run_transform(inp, rewriter=rewriter, rules=rules)
    elif isinstance(inp, AnnotationStatsInput):
        return run_annotation_stats(inp, rules=rules)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
