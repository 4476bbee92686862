"""
Validation component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from pubflow.domain.entities import ValidationLog


class ValidationLogRepoPort(Protocol):
    """Append-only store of validation runs."""

    def append(self, log: ValidationLog) -> ValidationLog:
        """Persist one run."""
        ...

    def list_by_content(self, content_id: UUID, limit: int = 50) -> list[ValidationLog]:
        """Runs for an item, newest first."""
        ...


class TimePort(Protocol):
    """Time port for log timestamps."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
