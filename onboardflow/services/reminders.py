"""Document reminder scheduling.

Policy: a reminder is due while documents are pending, the candidate is in
a status with an associated reminder, and at least the configured retry
interval has elapsed since the last reminder (or none was ever sent).

Sending follows claim-before-send: ``last_reminder_sent_at`` is moved to
``now`` with a compare-and-set against a fresh read *before* the mail
relay is called.  Whoever loses the compare-and-set abstains.  A dispatch
that fails after a successful claim still consumes the slot; the next
attempt waits for the next interval.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from onboardflow.models.candidate import Candidate
from onboardflow.models.enums import CommunicationKind, OnboardingStatus
from onboardflow.models.workflow import ReminderClaim
from onboardflow.repositories.candidates import CandidateStore
from onboardflow.services.communications import build_payload
from onboardflow.services.context import WorkflowContext

logger = logging.getLogger(__name__)

REMINDER_STATUSES: frozenset[OnboardingStatus] = frozenset(
    {OnboardingStatus.docs_pending}
)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_reminder_due(
    candidate: Candidate,
    now: datetime,
    interval: timedelta,
    pending_count: int | None = None,
) -> bool:
    """Return True if a reminder may be sent to *candidate* at *now*.

    *pending_count* should come from the current reconciliation; when
    omitted it is derived from the persisted document status.  A *now*
    earlier than the last reminder is never due.
    """
    if candidate.status not in REMINDER_STATUSES:
        return False

    pending = (
        len(candidate.pending_documents()) if pending_count is None else pending_count
    )
    if pending <= 0:
        return False

    last = candidate.last_reminder_sent_at
    if last is None:
        return True
    return _as_utc(now) - _as_utc(last) >= interval


def claim_reminder(
    store: CandidateStore,
    candidate_id: UUID,
    now: datetime,
    interval: timedelta,
    pending_count: int | None = None,
) -> ReminderClaim | None:
    """Claim the reminder slot for *candidate_id* at *now*.

    Re-reads the record, re-checks ``is_reminder_due`` and commits
    ``last_reminder_sent_at = now`` only if it still holds the value just
    read.  Returns ``None`` when not due or when another invocation got
    there first.
    """
    fresh = store.fetch_candidate(candidate_id)
    if fresh is None:
        logger.warning(
            "reminder_claim_candidate_missing",
            extra={"candidate_id": str(candidate_id)},
        )
        return None

    if not is_reminder_due(fresh, now, interval, pending_count):
        logger.debug(
            "reminder_claim_abstained",
            extra={
                "candidate_id": str(candidate_id),
                "last_reminder_sent_at": (
                    fresh.last_reminder_sent_at.isoformat()
                    if fresh.last_reminder_sent_at
                    else None
                ),
            },
        )
        return None

    previous = fresh.last_reminder_sent_at
    if not store.claim_reminder(candidate_id, previous, now):
        logger.info(
            "reminder_claim_lost",
            extra={"candidate_id": str(candidate_id)},
        )
        return None

    return ReminderClaim(
        candidate_id=candidate_id,
        claimed_at=now,
        previous_sent_at=previous,
    )


def send_reminder(
    ctx: WorkflowContext,
    candidate: Candidate,
    now: datetime,
    pending_count: int | None = None,
) -> bool:
    """Claim and dispatch a document reminder. Returns True if one went out."""
    claim = claim_reminder(
        ctx.store, candidate.id, now, ctx.reminder_interval, pending_count
    )
    if claim is None:
        return False

    candidate.last_reminder_sent_at = claim.claimed_at
    payload = build_payload(candidate, CommunicationKind.document_reminder)

    try:
        sent = ctx.dispatch(candidate.id, CommunicationKind.document_reminder, payload)
    except Exception:
        logger.exception(
            "reminder_dispatch_error",
            extra={"candidate_id": str(candidate.id)},
        )
        sent = False

    pending = len(candidate.pending_documents()) if pending_count is None else pending_count
    if sent:
        entry = ctx.store.append_log(
            candidate.id, f"Document reminder sent ({pending} pending)"
        )
        logger.info(
            "reminder_sent",
            extra={"candidate_id": str(candidate.id), "pending_count": pending},
        )
    else:
        entry = ctx.store.append_log(
            candidate.id,
            "Document reminder dispatch failed; next attempt after retry interval",
        )
        logger.error(
            "reminder_dispatch_failed",
            extra={
                "candidate_id": str(candidate.id),
                "claimed_at": claim.claimed_at.isoformat(),
            },
        )
    candidate.event_log.append(entry)
    return sent
