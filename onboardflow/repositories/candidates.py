"""Candidate record store backed by Supabase.

Every write is a merge-update scoped to one candidate id.  The two writes
that gate externally visible actions -- status transitions and reminder
claims -- are compare-and-set updates: they only match the row while it
still holds the value the caller observed, so of two overlapping ticks at
most one sees its update applied.

The event log lives in ``candidate_events`` and is insert-only.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from pydantic import ValidationError
from supabase import Client

from onboardflow.core.errors import DataIntegrityError, TransientIOError
from onboardflow.db.supabase import get_supabase
from onboardflow.models.candidate import (
    Candidate,
    CandidateCreate,
    DocumentState,
    EventLogEntry,
)
from onboardflow.models.enums import OnboardingStatus

logger = logging.getLogger(__name__)

CANDIDATES_TABLE = "candidates"
EVENTS_TABLE = "candidate_events"
CANDIDATE_SELECT = "*, candidate_events(event, created_at)"


# ---------------------------------------------------------------------------
# Row <-> model mapping
# ---------------------------------------------------------------------------


def _row_to_candidate(row: dict[str, Any]) -> Candidate:
    """Map a ``candidates`` row (with embedded events) to a ``Candidate``.

    Document keys outside ``required_documents`` are dropped so the
    subset invariant holds for everything downstream.  A row pydantic
    cannot validate, such as an unparseable timestamp, raises
    ``DataIntegrityError``.
    """
    data = dict(row)
    events = data.pop("candidate_events", None) or []
    required = list(data.get("required_documents") or [])
    raw_status = data.get("document_status") or {}

    try:
        data["required_documents"] = required
        data["document_status"] = {
            key: DocumentState(**value)
            for key, value in raw_status.items()
            if key in required and isinstance(value, dict)
        }
        data["offer_details"] = data.get("offer_details") or None

        entries = [
            EventLogEntry(event=event["event"], timestamp=event.get("created_at"))
            for event in events
            if event.get("event")
        ]
        entries.sort(key=lambda entry: entry.timestamp)
        data["event_log"] = entries

        return Candidate(**data)
    except ValidationError as exc:
        raise DataIntegrityError(row.get("id", "<unknown>"), str(exc)) from exc


def _serialize(value: Any) -> Any:
    """Convert models, enums and datetimes into JSON-safe values."""
    if isinstance(value, DocumentState):
        return value.model_dump()
    if isinstance(value, OnboardingStatus):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, dict):
        return {key: _serialize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_serialize(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class CandidateStore:
    """Durable per-candidate persistence with merge updates and an event log."""

    def __init__(self, client: Client | None = None) -> None:
        self._client = client

    @property
    def client(self) -> Client:
        return self._client or get_supabase()

    def _execute(self, query: Any, operation: str) -> Any:
        try:
            return query.execute()
        except Exception as exc:
            logger.warning(
                "candidate_store_error",
                extra={"operation": operation, "error_message": str(exc)},
            )
            raise TransientIOError(
                f"{operation} failed: {exc}", operation=operation
            ) from exc

    # -- reads --------------------------------------------------------------

    def fetch_candidate(self, candidate_id: UUID) -> Candidate | None:
        """Return the current record for *candidate_id*, or ``None``."""
        result = self._execute(
            self.client.table(CANDIDATES_TABLE)
            .select(CANDIDATE_SELECT)
            .eq("id", str(candidate_id))
            .limit(1),
            "fetch_candidate",
        )
        if not result.data:
            return None
        return _row_to_candidate(result.data[0])

    def list_candidates(self) -> list[Candidate]:
        """Return every candidate, newest first."""
        result = self._execute(
            self.client.table(CANDIDATES_TABLE)
            .select(CANDIDATE_SELECT)
            .order("created_at", desc=True),
            "list_candidates",
        )
        return [_row_to_candidate(row) for row in result.data or []]

    def list_active_candidates(self) -> list[Candidate]:
        """Return all candidates that have not reached the terminal status."""
        result = self._execute(
            self.client.table(CANDIDATES_TABLE)
            .select(CANDIDATE_SELECT)
            .neq("status", OnboardingStatus.onboarded.value),
            "list_active_candidates",
        )
        candidates: list[Candidate] = []
        for row in result.data or []:
            try:
                candidate = _row_to_candidate(row)
            except DataIntegrityError as exc:
                # One unreadable row must not stall every other candidate
                logger.error(
                    "candidate_row_invalid",
                    extra={"candidate_id": exc.candidate_id, "error_message": str(exc)},
                )
                continue
            if candidate.status != OnboardingStatus.onboarded:
                candidates.append(candidate)
        return candidates

    def find_by_email(
        self,
        email: str,
        status: OnboardingStatus | None = None,
    ) -> list[Candidate]:
        """Return candidates whose contact address is *email*."""
        query = (
            self.client.table(CANDIDATES_TABLE)
            .select(CANDIDATE_SELECT)
            .eq("email", email.strip().lower())
        )
        if status is not None:
            query = query.eq("status", status.value)
        result = self._execute(query, "find_by_email")
        return [_row_to_candidate(row) for row in result.data or []]

    # -- writes -------------------------------------------------------------

    def create_candidate(
        self,
        payload: CandidateCreate,
        config_version: str,
        required_documents: list[str],
        document_status: dict[str, DocumentState],
    ) -> Candidate:
        """Insert a new candidate in the initial status."""
        row = payload.model_dump()
        row["email"] = payload.email.strip().lower()
        row.update(
            {
                "status": OnboardingStatus.initiated.value,
                "document_folder_ref": None,
                "document_config_version": config_version,
                "required_documents": list(required_documents),
                "document_status": _serialize(document_status),
                "last_reminder_sent_at": None,
                "offer_details": None,
            }
        )
        result = self._execute(
            self.client.table(CANDIDATES_TABLE).insert(row),
            "create_candidate",
        )
        return _row_to_candidate(result.data[0])

    def commit_candidate(self, candidate_id: UUID, partial: dict[str, Any]) -> None:
        """Merge *partial* into the record; unspecified fields are unchanged."""
        update = _serialize(partial)
        update["updated_at"] = datetime.now(timezone.utc).isoformat()
        self._execute(
            self.client.table(CANDIDATES_TABLE)
            .update(update)
            .eq("id", str(candidate_id)),
            "commit_candidate",
        )

    def compare_and_set_status(
        self,
        candidate_id: UUID,
        expected: OnboardingStatus,
        new: OnboardingStatus,
        extra: dict[str, Any] | None = None,
    ) -> bool:
        """Move the status from *expected* to *new*.

        Returns ``False`` when the stored status no longer equals *expected*.
        """
        update = _serialize(dict(extra or {}))
        update["status"] = new.value
        update["updated_at"] = datetime.now(timezone.utc).isoformat()
        result = self._execute(
            self.client.table(CANDIDATES_TABLE)
            .update(update)
            .eq("id", str(candidate_id))
            .eq("status", expected.value),
            "compare_and_set_status",
        )
        return bool(result.data)

    def claim_reminder(
        self,
        candidate_id: UUID,
        expected: datetime | None,
        claimed_at: datetime,
    ) -> bool:
        """Set ``last_reminder_sent_at`` only while it still equals *expected*."""
        query = (
            self.client.table(CANDIDATES_TABLE)
            .update(
                {
                    "last_reminder_sent_at": claimed_at.isoformat(),
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                }
            )
            .eq("id", str(candidate_id))
        )
        if expected is None:
            query = query.is_("last_reminder_sent_at", "null")
        else:
            query = query.eq("last_reminder_sent_at", expected.isoformat())
        result = self._execute(query, "claim_reminder")
        return bool(result.data)

    def append_log(self, candidate_id: UUID, event: str) -> EventLogEntry:
        """Append one entry to the candidate's event log."""
        entry = EventLogEntry(event=event, timestamp=datetime.now(timezone.utc))
        self._execute(
            self.client.table(EVENTS_TABLE).insert(
                {
                    "candidate_id": str(candidate_id),
                    "event": entry.event,
                    "created_at": entry.timestamp.isoformat(),
                }
            ),
            "append_log",
        )
        return entry
