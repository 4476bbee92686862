"""
Costs component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from pubflow.domain.entities import UsageRecord

from .models import GatewayReply, LLMRequest


class UsageLogRepoPort(Protocol):
    """Append-only usage log."""

    def append(self, record: UsageRecord) -> UsageRecord:
        """Persist one call record."""
        ...

    def list_by_content(self, content_id: UUID) -> list[UsageRecord]:
        """All records linked to an item."""
        ...


class ContentCostPort(Protocol):
    """Writes the cached cost columns of an item."""

    def update_fields(self, item_id: UUID, updates: dict[str, Any]) -> None:
        """Update non-status columns."""
        ...


class LLMGatewayPort(Protocol):
    """The multi-provider LLM invocation endpoint."""

    def invoke(self, request: LLMRequest) -> GatewayReply:
        """
        Run one completion.

        Raises LLMCallError on any provider or transport failure.
        """
        ...


class TimePort(Protocol):
    """Time port for record timestamps."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
