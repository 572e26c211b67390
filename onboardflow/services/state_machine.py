"""Onboarding state machine.

Holds the transition table and applies triggers to candidates.  Status
commits are compare-and-set against the status the caller observed, so a
trigger evaluated by two overlapping ticks is applied (and logged) once.

Redundant triggers are no-ops: a candidate already at, or for forward
triggers already past, the target status is left alone and nothing is
appended to its event log.
"""

from __future__ import annotations

import logging
from typing import Any

from onboardflow.core.errors import InvalidTransitionError
from onboardflow.models.candidate import Candidate
from onboardflow.models.enums import OnboardingStatus, TransitionTrigger
from onboardflow.models.workflow import TransitionResult
from onboardflow.repositories.candidates import CandidateStore

logger = logging.getLogger(__name__)

S = OnboardingStatus
T = TransitionTrigger

STATUS_ORDER: tuple[OnboardingStatus, ...] = tuple(OnboardingStatus)
TERMINAL_STATUS: OnboardingStatus = S.onboarded

# trigger -> (allowed sources, target)
TRANSITIONS: dict[TransitionTrigger, tuple[frozenset[OnboardingStatus], OnboardingStatus]] = {
    T.offer_sent: (frozenset({S.initiated}), S.offer_sent),
    T.details_received: (frozenset({S.offer_sent}), S.details_received),
    T.hr_document_requested: (frozenset({S.details_received}), S.awaiting_hr_document),
    T.seed_document_detected: (frozenset({S.awaiting_hr_document}), S.docs_pending),
    T.documents_complete: (frozenset({S.docs_pending}), S.all_docs_uploaded),
    T.documents_missing: (frozenset({S.all_docs_uploaded}), S.docs_pending),
    T.offer_released: (frozenset({S.all_docs_uploaded}), S.offer_released),
    T.onboarding_finalized: (frozenset({S.offer_released}), S.onboarded),
}

# Triggers that move a candidate back in the workflow
BACKWARD_TRIGGERS: frozenset[TransitionTrigger] = frozenset({T.documents_missing})

TRANSITION_EVENTS: dict[TransitionTrigger, str] = {
    T.offer_sent: "Provisional offer sent",
    T.details_received: "Acceptance details received",
    T.hr_document_requested: "Document folder ready, HR document requested",
    T.seed_document_detected: "HR document detected, candidate documents requested",
    T.documents_complete: "All required documents uploaded",
    T.documents_missing: "Required documents missing from folder",
    T.offer_released: "Final offer released",
    T.onboarding_finalized: "Onboarding finalized",
}


def _is_past(current: OnboardingStatus, target: OnboardingStatus) -> bool:
    return STATUS_ORDER.index(current) > STATUS_ORDER.index(target)


def transition_target(trigger: TransitionTrigger) -> OnboardingStatus:
    """Status a (non-override) trigger leads to."""
    return TRANSITIONS[trigger][1]


def can_apply(status: OnboardingStatus, trigger: TransitionTrigger) -> bool:
    """True if *trigger* would change a candidate currently in *status*."""
    sources, _ = TRANSITIONS[trigger]
    return status in sources


def _event_text(
    trigger: TransitionTrigger,
    previous: OnboardingStatus,
    target: OnboardingStatus,
    reason: str | None,
) -> str:
    text = f"{TRANSITION_EVENTS[trigger]} ({previous.value} -> {target.value})"
    if reason:
        text = f"{text}: {reason}"
    return text


def apply_transition(
    store: CandidateStore,
    candidate: Candidate,
    trigger: TransitionTrigger,
    *,
    reason: str | None = None,
    extra: dict[str, Any] | None = None,
) -> TransitionResult:
    """Apply *trigger* to *candidate* and append one event-log entry.

    *extra* fields are committed in the same update as the status.  On
    success ``candidate`` is updated in place.

    Raises ``InvalidTransitionError`` when the trigger is not valid from the
    candidate's status and the candidate is not already at or past the
    target.
    """
    if trigger == T.manual_override:
        raise ValueError("Use manual_override() for operator overrides")

    sources, target = TRANSITIONS[trigger]
    previous = candidate.status

    if previous == target or (
        trigger not in BACKWARD_TRIGGERS and _is_past(previous, target)
    ):
        logger.debug(
            "transition_noop",
            extra={
                "candidate_id": str(candidate.id),
                "trigger": trigger.value,
                "status": previous.value,
            },
        )
        return TransitionResult(
            candidate_id=candidate.id,
            trigger=trigger,
            previous=previous,
            current=previous,
            changed=False,
        )

    if previous not in sources:
        raise InvalidTransitionError(previous.value, trigger.value)

    if not store.compare_and_set_status(candidate.id, previous, target, extra):
        fresh = store.fetch_candidate(candidate.id)
        current = fresh.status if fresh is not None else previous
        logger.info(
            "transition_already_applied",
            extra={
                "candidate_id": str(candidate.id),
                "trigger": trigger.value,
                "expected_status": previous.value,
                "current_status": current.value,
            },
        )
        if fresh is not None:
            candidate.status = fresh.status
        return TransitionResult(
            candidate_id=candidate.id,
            trigger=trigger,
            previous=previous,
            current=current,
            changed=False,
        )

    candidate.status = target
    for field, value in (extra or {}).items():
        if field in Candidate.model_fields:
            setattr(candidate, field, value)

    entry = store.append_log(candidate.id, _event_text(trigger, previous, target, reason))
    candidate.event_log.append(entry)

    logger.info(
        "status_transition",
        extra={
            "candidate_id": str(candidate.id),
            "trigger": trigger.value,
            "from_status": previous.value,
            "to_status": target.value,
        },
    )
    return TransitionResult(
        candidate_id=candidate.id,
        trigger=trigger,
        previous=previous,
        current=target,
        changed=True,
    )


def manual_override(
    store: CandidateStore,
    candidate: Candidate,
    target: OnboardingStatus,
    *,
    reason: str | None = None,
) -> TransitionResult:
    """Set *candidate* to *target* regardless of guards. Always logged."""
    previous = candidate.status
    store.commit_candidate(candidate.id, {"status": target})
    candidate.status = target

    text = f"Manual override ({previous.value} -> {target.value})"
    if reason:
        text = f"{text}: {reason}"
    entry = store.append_log(candidate.id, text)
    candidate.event_log.append(entry)

    logger.warning(
        "status_manual_override",
        extra={
            "candidate_id": str(candidate.id),
            "from_status": previous.value,
            "to_status": target.value,
            "reason": reason,
        },
    )
    return TransitionResult(
        candidate_id=candidate.id,
        trigger=T.manual_override,
        previous=previous,
        current=target,
        changed=previous != target,
    )
