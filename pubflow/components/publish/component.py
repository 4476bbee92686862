"""
Publish component - CMS boundary and publication confirmations.

Invariants:
- Confirmations never move an item backwards
- An unmatched confirmation changes nothing
"""

from __future__ import annotations

from ._impl import PublicationConfirmationService
from .models import ConfirmationOutput, ConfirmPublicationInput
from .ports import PublishedContentRepoPort, TimePort

# --- Component Entry Points ---


def run_confirm(
    inp: ConfirmPublicationInput,
    *,
    repo: PublishedContentRepoPort,
    time_port: TimePort | None = None,
) -> ConfirmationOutput:
    """
    Apply a publish confirmation from the CMS.

    Args:
        inp: Remote post details and optional content id.
        repo: Content repository port.
        time_port: Optional time port for timestamps.

    Returns:
        ConfirmationOutput describing the match.
    """
    service = PublicationConfirmationService(repo=repo, time_port=time_port)
    return service.confirm(inp)


def run(
    inp: ConfirmPublicationInput,
    *,
    repo: PublishedContentRepoPort,
    time_port: TimePort | None = None,
) -> ConfirmationOutput:
    """Main entry point for the publish component."""
    if isinstance(inp, ConfirmPublicationInput):
        return run_confirm(inp, repo=repo, time_port=time_port)
    raise ValueError(f"Unknown input type: {type(inp)}")
