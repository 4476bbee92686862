"""
Links component - Raw anchor to annotation token rewriting.
"""

from ._impl import (
    LinkTransformerConfig,
    LinkTransformerService,
    RegexLinkRewriter,
    build_token,
    classify_url,
    create_link_transformer,
)
from .component import build_config, run, run_annotation_stats, run_transform
from .models import (
    AnnotationStats,
    AnnotationStatsInput,
    LinkKind,
    LinkSummary,
    RewriteResult,
    RewriterError,
    TransformInput,
    TransformOutput,
)
from .ports import LinkRewriterPort

__all__ = [
    # Entry points
    "run",
    "run_annotation_stats",
    "run_transform",
    "build_config",
    # Input models
    "AnnotationStatsInput",
    "TransformInput",
    # Output models
    "AnnotationStats",
    "LinkKind",
    "LinkSummary",
    "RewriteResult",
    "TransformOutput",
    "RewriterError",
    # Ports
    "LinkRewriterPort",
    # Service
    "LinkTransformerConfig",
    "LinkTransformerService",
    "RegexLinkRewriter",
    "build_token",
    "classify_url",
    "create_link_transformer",
]
