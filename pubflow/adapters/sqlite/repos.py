"""
SQLite repositories for the publishing workflow.

All status changes go through SQLiteContentRepo.transition, a single
conditional UPDATE keyed on the expected prior status and pending_since.
The store is the only source of truth; nothing here caches rows between
calls.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pubflow.domain.entities import (
    ContentItem,
    ContentStatus,
    Feedback,
    UsageRecord,
    ValidationIssue,
    ValidationLog,
)

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s) if s else None


def _encode(value: Any) -> Any:
    """Encode a python value for a SQLite column."""
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, ValidationIssue):
        return json.dumps(value.model_dump())
    if isinstance(value, list):
        return json.dumps(
            [v.model_dump() if isinstance(v, ValidationIssue) else v for v in value]
        )
    if isinstance(value, dict):
        return json.dumps(value, default=str)
    return value


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(
        self,
        db_path: str,
        connection: sqlite3.Connection | None = None,
        busy_timeout_seconds: float = 30.0,
    ):
        self.db_path = db_path
        self._external_conn = connection
        self._busy_timeout = busy_timeout_seconds

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path, timeout=self._busy_timeout)
        conn.row_factory = dict_factory
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None


# -----------------------------------------------------------------------------
# Content Items
# -----------------------------------------------------------------------------

CONTENT_COLUMNS = (
    "id",
    "title",
    "body_html",
    "meta_title",
    "meta_description",
    "target_keywords",
    "status",
    "pending_since",
    "auto_approve_at",
    "published_at",
    "validation_status",
    "validation_errors",
    "rejection_reason",
    "rewrite_instructions",
    "auto_approved",
    "auto_approved_at",
    "link_summary",
    "generation_cost",
    "verification_cost",
    "total_cost",
    "remote_post_id",
    "remote_url",
    "created_at",
    "updated_at",
)


class SQLiteContentRepo(SQLiteRepoBase):
    """Content items table, with conditional status transitions."""

    def get_by_id(self, item_id: UUID) -> ContentItem | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM content_items WHERE id = ?", (str(item_id),)
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def save(self, item: ContentItem) -> ContentItem:
        """Insert or fully overwrite an item (creation and editing only)."""
        conn = self._get_conn()
        try:
            data = item.model_dump()
            values = [_encode(data[col]) for col in CONTENT_COLUMNS]
            placeholders = ", ".join("?" for _ in CONTENT_COLUMNS)
            assignments = ", ".join(
                f"{col} = excluded.{col}" for col in CONTENT_COLUMNS if col != "id"
            )
            conn.execute(
                f"""
                INSERT INTO content_items ({", ".join(CONTENT_COLUMNS)})
                VALUES ({placeholders})
                ON CONFLICT(id) DO UPDATE SET {assignments}
                """,
                values,
            )
            if self._should_close():
                conn.commit()
            return item
        finally:
            if self._should_close():
                conn.close()

    def delete(self, item_id: UUID) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM content_items WHERE id = ?", (str(item_id),))
            if self._should_close():
                conn.commit()
        finally:
            if self._should_close():
                conn.close()

    def list_by_status(self, status: ContentStatus, limit: int = 100) -> list[ContentItem]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT * FROM content_items WHERE status = ?
                ORDER BY updated_at ASC LIMIT ?
                """,
                (status, limit),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def find_unlinked_by_title(self, title: str) -> ContentItem | None:
        """Find an item by exact title that has no remote post yet."""
        conn = self._get_conn()
        try:
            row = conn.execute(
                """
                SELECT * FROM content_items
                WHERE title = ? AND remote_post_id IS NULL
                ORDER BY created_at DESC LIMIT 1
                """,
                (title,),
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def transition(
        self,
        item_id: UUID,
        expected_status: ContentStatus,
        updates: dict[str, Any],
        feedback: Feedback | None = None,
        expected_pending_since: datetime | None = None,
    ) -> bool:
        """
        Apply updates only if the item is still in expected_status and
        still carries expected_pending_since (None outside pending_review).

        Matching pending_since as well as status stops a stale snapshot
        from winning after the item left review and came back. The feedback
        row, if given, is written in the same transaction and only when the
        update wins. Returns False when another writer got there first.
        """
        assignments, values = self._assignments(updates)
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                f"""
                UPDATE content_items SET {assignments}
                WHERE id = ? AND status = ? AND pending_since IS ?
                """,
                (*values, str(item_id), expected_status, _encode(expected_pending_since)),
            )
            won = cursor.rowcount == 1
            if won and feedback is not None:
                _insert_feedback(conn, feedback)
            if self._should_close():
                conn.commit()
            return won
        except sqlite3.Error:
            if self._should_close():
                conn.rollback()
            raise
        finally:
            if self._should_close():
                conn.close()

    def update_fields(self, item_id: UUID, updates: dict[str, Any]) -> None:
        """Update non-status columns (costs, link summary)."""
        if "status" in updates:
            raise ValueError("Status changes must use transition()")
        assignments, values = self._assignments(updates)
        conn = self._get_conn()
        try:
            conn.execute(
                f"UPDATE content_items SET {assignments} WHERE id = ?",
                (*values, str(item_id)),
            )
            if self._should_close():
                conn.commit()
        finally:
            if self._should_close():
                conn.close()

    def _assignments(self, updates: dict[str, Any]) -> tuple[str, list[Any]]:
        unknown = set(updates) - set(CONTENT_COLUMNS)
        if unknown or "id" in updates or not updates:
            raise ValueError(f"Invalid content columns: {sorted(unknown) or list(updates)}")
        cols = list(updates)
        return ", ".join(f"{c} = ?" for c in cols), [_encode(updates[c]) for c in cols]

    def _map_row(self, row: dict[str, Any]) -> ContentItem:
        return ContentItem(
            id=UUID(row["id"]),
            title=row["title"],
            body_html=row["body_html"],
            meta_title=row["meta_title"],
            meta_description=row["meta_description"],
            target_keywords=json.loads(row["target_keywords"]),
            status=row["status"],
            pending_since=parse_dt(row["pending_since"]),
            auto_approve_at=parse_dt(row["auto_approve_at"]),
            published_at=parse_dt(row["published_at"]),
            validation_status=row["validation_status"],
            validation_errors=[
                ValidationIssue(**e) for e in json.loads(row["validation_errors"])
            ],
            rejection_reason=row["rejection_reason"],
            rewrite_instructions=row["rewrite_instructions"],
            auto_approved=bool(row["auto_approved"]),
            auto_approved_at=parse_dt(row["auto_approved_at"]),
            link_summary=json.loads(row["link_summary"]),
            generation_cost=Decimal(row["generation_cost"]),
            verification_cost=Decimal(row["verification_cost"]),
            total_cost=Decimal(row["total_cost"]),
            remote_post_id=row["remote_post_id"],
            remote_url=row["remote_url"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


# -----------------------------------------------------------------------------
# Feedback
# -----------------------------------------------------------------------------


def _insert_feedback(conn: sqlite3.Connection, feedback: Feedback) -> None:
    conn.execute(
        """
        INSERT INTO feedback (id, content_id, type, payload, created_at)
        VALUES (?, ?, ?, ?, ?)
        """,
        (
            str(feedback.id),
            str(feedback.content_id),
            feedback.type,
            json.dumps(feedback.payload, default=str),
            feedback.created_at.isoformat(),
        ),
    )


class SQLiteFeedbackRepo(SQLiteRepoBase):
    """Append-only reviewer feedback."""

    def append(self, feedback: Feedback) -> Feedback:
        conn = self._get_conn()
        try:
            _insert_feedback(conn, feedback)
            if self._should_close():
                conn.commit()
            return feedback
        finally:
            if self._should_close():
                conn.close()

    def list_by_content(
        self, content_id: UUID, feedback_type: str | None = None
    ) -> list[Feedback]:
        conn = self._get_conn()
        try:
            if feedback_type is None:
                rows = conn.execute(
                    """
                    SELECT * FROM feedback WHERE content_id = ?
                    ORDER BY created_at ASC, rowid ASC
                    """,
                    (str(content_id),),
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT * FROM feedback WHERE content_id = ? AND type = ?
                    ORDER BY created_at ASC, rowid ASC
                    """,
                    (str(content_id), feedback_type),
                ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> Feedback:
        return Feedback(
            id=UUID(row["id"]),
            content_id=UUID(row["content_id"]),
            type=row["type"],
            payload=json.loads(row["payload"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


# -----------------------------------------------------------------------------
# Usage Logs
# -----------------------------------------------------------------------------


class SQLiteUsageLogRepo(SQLiteRepoBase):
    """Append-only LLM usage records."""

    def append(self, record: UsageRecord) -> UsageRecord:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO usage_logs (
                    id, content_id, provider, model, agent_name, purpose,
                    input_tokens, output_tokens, input_cost, output_cost, total_cost,
                    duration_ms, success, error_message, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(record.id),
                    str(record.content_id) if record.content_id else None,
                    record.provider,
                    record.model,
                    record.agent_name,
                    record.purpose,
                    record.input_tokens,
                    record.output_tokens,
                    str(record.input_cost),
                    str(record.output_cost),
                    str(record.total_cost),
                    record.duration_ms,
                    int(record.success),
                    record.error_message,
                    record.created_at.isoformat(),
                ),
            )
            if self._should_close():
                conn.commit()
            return record
        finally:
            if self._should_close():
                conn.close()

    def list_by_content(self, content_id: UUID) -> list[UsageRecord]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM usage_logs WHERE content_id = ? ORDER BY created_at ASC",
                (str(content_id),),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> UsageRecord:
        return UsageRecord(
            id=UUID(row["id"]),
            content_id=UUID(row["content_id"]) if row["content_id"] else None,
            provider=row["provider"],
            model=row["model"],
            agent_name=row["agent_name"],
            purpose=row["purpose"],
            input_tokens=row["input_tokens"],
            output_tokens=row["output_tokens"],
            input_cost=Decimal(row["input_cost"]),
            output_cost=Decimal(row["output_cost"]),
            total_cost=Decimal(row["total_cost"]),
            duration_ms=row["duration_ms"],
            success=bool(row["success"]),
            error_message=row["error_message"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


# -----------------------------------------------------------------------------
# Validation Logs
# -----------------------------------------------------------------------------


class SQLiteValidationLogRepo(SQLiteRepoBase):
    """Append-only validation run history."""

    def append(self, log: ValidationLog) -> ValidationLog:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO validation_logs (
                    id, content_id, passed, errors, warnings, metrics, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(log.id),
                    str(log.content_id) if log.content_id else None,
                    int(log.passed),
                    _encode(log.errors),
                    _encode(log.warnings),
                    json.dumps(log.metrics),
                    log.created_at.isoformat(),
                ),
            )
            if self._should_close():
                conn.commit()
            return log
        finally:
            if self._should_close():
                conn.close()

    def list_by_content(self, content_id: UUID, limit: int = 50) -> list[ValidationLog]:
        """Newest first."""
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT * FROM validation_logs WHERE content_id = ?
                ORDER BY created_at DESC, rowid DESC LIMIT ?
                """,
                (str(content_id), limit),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> ValidationLog:
        return ValidationLog(
            id=UUID(row["id"]),
            content_id=UUID(row["content_id"]) if row["content_id"] else None,
            passed=bool(row["passed"]),
            errors=[ValidationIssue(**e) for e in json.loads(row["errors"])],
            warnings=[ValidationIssue(**e) for e in json.loads(row["warnings"])],
            metrics=json.loads(row["metrics"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
