"""
Scheduler component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class TimePort(Protocol):
    """Time port for the review clock."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
