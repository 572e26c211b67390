"""Onboarding workflow operations.

Event- and operator-driven steps of the lifecycle: starting onboarding,
acceptance details arriving, provisioning the document folder, releasing
the final offer, finalizing, overrides, document flag updates and
resends.  The periodic reconciliation lives in ``services.tick``.

Communications tied to a transition are sent after the transition is
committed, so a redundant trigger never re-sends.  A failed send is
recorded in the candidate's event log for operators to act on.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID, uuid4

from onboardflow.core.errors import (
    CandidateNotFoundError,
    DataIntegrityError,
    TransientIOError,
)
from onboardflow.models.candidate import Candidate, CandidateCreate, DocumentState
from onboardflow.models.enums import (
    CommunicationKind,
    DocumentFlag,
    OnboardingStatus,
    TransitionTrigger,
)
from onboardflow.models.workflow import DetailsExtraction, StoredFile, TransitionResult
from onboardflow.scheduler.lock import release_candidate_lock, wait_for_candidate_lock
from onboardflow.services.classifier import (
    initial_document_status,
    resolve_document_config,
)
from onboardflow.services.communications import build_payload
from onboardflow.services.context import WorkflowContext
from onboardflow.services.state_machine import (
    STATUS_ORDER,
    apply_transition,
    manual_override,
)

logger = logging.getLogger(__name__)

FOLDER_KINDS: frozenset[CommunicationKind] = frozenset(
    {
        CommunicationKind.document_request,
        CommunicationKind.document_reminder,
        CommunicationKind.hr_document_request,
    }
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load(ctx: WorkflowContext, candidate_id: UUID) -> Candidate:
    candidate = ctx.store.fetch_candidate(candidate_id)
    if candidate is None:
        raise CandidateNotFoundError(candidate_id)
    return candidate


def _dispatch(ctx: WorkflowContext, candidate: Candidate, kind: CommunicationKind) -> bool:
    """Send *kind* to *candidate*; log a failure in the event log."""
    payload = build_payload(candidate, kind)
    try:
        sent = ctx.dispatch(candidate.id, kind, payload)
    except Exception:
        logger.exception(
            "communication_dispatch_error",
            extra={"candidate_id": str(candidate.id), "template": kind.value},
        )
        sent = False

    if not sent:
        entry = ctx.store.append_log(candidate.id, f"Failed to send {kind.value}")
        candidate.event_log.append(entry)
    return sent


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


def start_onboarding(ctx: WorkflowContext, payload: CandidateCreate) -> Candidate:
    """Create the candidate record and send the provisional offer.

    The required-document set is frozen from the configuration version
    active right now.
    """
    config = resolve_document_config(ctx.document_config_version)
    candidate = ctx.store.create_candidate(
        payload,
        ctx.document_config_version,
        list(config),
        initial_document_status(config),
    )
    entry = ctx.store.append_log(candidate.id, "Workflow initiated")
    candidate.event_log.append(entry)

    logger.info(
        "onboarding_started",
        extra={
            "candidate_id": str(candidate.id),
            "document_config_version": ctx.document_config_version,
        },
    )

    send_offer(ctx, candidate)
    return candidate


def send_offer(ctx: WorkflowContext, candidate: Candidate) -> TransitionResult:
    """Move ``Initiated -> Offer Sent`` and send the provisional offer once."""
    result = apply_transition(ctx.store, candidate, TransitionTrigger.offer_sent)
    if result.changed:
        _dispatch(ctx, candidate, CommunicationKind.provisional_offer)
    return result


def record_details_received(
    ctx: WorkflowContext,
    candidate_id: UUID,
    extraction: DetailsExtraction,
) -> Candidate:
    """Record the acceptance details and request the HR document.

    Re-delivery of the same confirmation once the candidate is at or past
    ``Details Received`` changes nothing.
    """
    candidate = _load(ctx, candidate_id)
    apply_transition(
        ctx.store,
        candidate,
        TransitionTrigger.details_received,
        extra={
            "offer_details": extraction.model_dump(),
            "date_of_joining": extraction.date_of_joining,
        },
    )
    if candidate.status == OnboardingStatus.details_received:
        request_hr_document(ctx, candidate)
    return candidate


def handle_inbound_details(
    ctx: WorkflowContext,
    from_email: str,
    extraction: DetailsExtraction,
) -> Candidate:
    """Resolve the sender to a candidate awaiting acceptance and record it.

    A repeat of the confirmation after the candidate has moved on returns
    that candidate unchanged.
    """
    matches = ctx.store.find_by_email(from_email, status=OnboardingStatus.offer_sent)
    if not matches:
        received = STATUS_ORDER.index(OnboardingStatus.details_received)
        for candidate in ctx.store.find_by_email(from_email):
            if STATUS_ORDER.index(candidate.status) >= received:
                logger.info(
                    "inbound_details_redelivered",
                    extra={
                        "candidate_id": str(candidate.id),
                        "status": candidate.status.value,
                    },
                )
                return candidate
        raise CandidateNotFoundError(from_email)
    if len(matches) > 1:
        logger.warning(
            "inbound_details_ambiguous_sender",
            extra={"from_email": from_email, "match_count": len(matches)},
        )
    return record_details_received(ctx, matches[0].id, extraction)


def request_hr_document(ctx: WorkflowContext, candidate: Candidate) -> TransitionResult:
    """Provision the folder if needed, then ``Details Received -> Awaiting HR Document``.

    An existing folder reference is always reused.
    """
    folder_ref = ctx.provision_folder(candidate)
    if candidate.document_folder_ref is None:
        ctx.store.commit_candidate(candidate.id, {"document_folder_ref": folder_ref})
        candidate.document_folder_ref = folder_ref

    result = apply_transition(ctx.store, candidate, TransitionTrigger.hr_document_requested)
    if result.changed:
        _dispatch(ctx, candidate, CommunicationKind.hr_document_request)
    return result


def request_candidate_documents(
    ctx: WorkflowContext,
    candidate: Candidate,
    document_status: dict[str, DocumentState],
) -> TransitionResult:
    """``Awaiting HR Document -> Documents Pending`` once the HR document is in."""
    result = apply_transition(
        ctx.store,
        candidate,
        TransitionTrigger.seed_document_detected,
        extra={"document_status": document_status},
    )
    if result.changed:
        _dispatch(ctx, candidate, CommunicationKind.document_request)
    return result


def release_offer(ctx: WorkflowContext, candidate_id: UUID) -> Candidate:
    """Operator releases the final offer for a candidate with all documents in."""
    candidate = _load(ctx, candidate_id)
    result = apply_transition(ctx.store, candidate, TransitionTrigger.offer_released)
    if result.changed:
        _dispatch(ctx, candidate, CommunicationKind.final_offer)
    return candidate


def finalize_onboarding(ctx: WorkflowContext, candidate_id: UUID) -> Candidate:
    """Operator marks the candidate as onboarded."""
    candidate = _load(ctx, candidate_id)
    apply_transition(ctx.store, candidate, TransitionTrigger.onboarding_finalized)
    return candidate


def override_status(
    ctx: WorkflowContext,
    candidate_id: UUID,
    status: OnboardingStatus,
    reason: str | None = None,
) -> Candidate:
    """Force *candidate_id* into *status*, recording the operator reason."""
    candidate = _load(ctx, candidate_id)
    manual_override(ctx.store, candidate, status, reason=reason)
    return candidate


# ---------------------------------------------------------------------------
# Operator tools
# ---------------------------------------------------------------------------


def update_document_flag(
    ctx: WorkflowContext,
    candidate_id: UUID,
    document_key: str,
    flag: DocumentFlag,
    value: bool,
) -> Candidate:
    """Set an operator-owned flag on one document.

    Holds the candidate lock so a tick running in this process cannot
    overwrite the update with a stale status map.
    """
    owner = uuid4()
    if not wait_for_candidate_lock(candidate_id, owner):
        raise TransientIOError(
            f"Candidate {candidate_id} is busy, retry shortly",
            operation="update_document_flag",
        )
    try:
        candidate = _load(ctx, candidate_id)
        if document_key not in candidate.required_documents:
            raise ValueError(f"Invalid document key: {document_key}")

        document_status = dict(candidate.document_status)
        document_status[document_key] = candidate.document_state(document_key).model_copy(
            update={flag.value: value}
        )
        ctx.store.commit_candidate(candidate.id, {"document_status": document_status})
        candidate.document_status = document_status

        entry = ctx.store.append_log(
            candidate.id, f"HR updated {document_key}: {flag.value} = {value}"
        )
        candidate.event_log.append(entry)
    finally:
        release_candidate_lock(candidate_id)

    logger.info(
        "document_flag_updated",
        extra={
            "candidate_id": str(candidate_id),
            "document_key": document_key,
            "flag": flag.value,
            "value": value,
        },
    )
    return candidate


def resend_communication(
    ctx: WorkflowContext,
    candidate_id: UUID,
    kind: CommunicationKind,
    now: datetime | None = None,
) -> bool:
    """Send *kind* again on operator request.

    A resent reminder counts as the latest reminder, pushing the next
    automatic one a full interval out.
    """
    candidate = _load(ctx, candidate_id)
    if not candidate.email:
        raise DataIntegrityError(candidate.id, "missing contact email")
    if kind in FOLDER_KINDS and not candidate.document_folder_ref:
        raise DataIntegrityError(candidate.id, "no document folder provisioned")

    now = now or datetime.now(timezone.utc)
    if kind == CommunicationKind.document_reminder:
        last = candidate.last_reminder_sent_at
        if last is None or now > last:
            ctx.store.commit_candidate(candidate.id, {"last_reminder_sent_at": now})
            candidate.last_reminder_sent_at = now

    sent = _dispatch(ctx, candidate, kind)
    if sent:
        entry = ctx.store.append_log(candidate.id, f"Resent {kind.value}")
        candidate.event_log.append(entry)
    return sent


def list_candidate_files(ctx: WorkflowContext, candidate_id: UUID) -> list[StoredFile]:
    """Current contents of the candidate's document folder."""
    candidate = _load(ctx, candidate_id)
    if not candidate.document_folder_ref:
        raise DataIntegrityError(candidate.id, "no document folder provisioned")
    return ctx.list_files(candidate.document_folder_ref)


def get_candidate(ctx: WorkflowContext, candidate_id: UUID) -> Candidate:
    """Fetch one candidate or raise ``CandidateNotFoundError``."""
    return _load(ctx, candidate_id)
