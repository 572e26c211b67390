"""Tick driver: one reconciliation/reminder cycle over all active candidates.

For each active candidate (serialized per id, bounded parallelism across
ids):

1. Integrity check (contact email, folder reference, document config)
2. Provision + request HR document for candidates stuck in Details Received
3. List the folder, classify, reconcile
4. Apply the resulting transition, or commit the document status delta
5. Claim and send a reminder when due

Failures are isolated per candidate and logged; the tick itself only
fails when the active candidate list cannot be fetched.  Overlapping ticks
are expected; status and reminder commits are compare-and-set so each
effect happens once.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from onboardflow.core.errors import (
    ConfigurationError,
    DataIntegrityError,
    TransientIOError,
)
from onboardflow.models.candidate import Candidate
from onboardflow.models.enums import OnboardingStatus, TransitionTrigger
from onboardflow.scheduler.lock import acquire_candidate_lock, release_candidate_lock
from onboardflow.services.classifier import DocumentConfig, resolve_document_config
from onboardflow.services.context import WorkflowContext, default_context
from onboardflow.services.reconciliation import reconcile
from onboardflow.services.reminders import is_reminder_due, send_reminder
from onboardflow.services.state_machine import TERMINAL_STATUS, apply_transition
from onboardflow.services.workflow import request_candidate_documents, request_hr_document

logger = logging.getLogger(__name__)

# Statuses that need a provisioned folder
FOLDER_STAGES: frozenset[OnboardingStatus] = frozenset(
    {
        OnboardingStatus.awaiting_hr_document,
        OnboardingStatus.docs_pending,
        OnboardingStatus.all_docs_uploaded,
    }
)


def check_integrity(candidate: Candidate) -> DocumentConfig:
    """Raise ``DataIntegrityError`` if *candidate* cannot be processed.

    Returns the candidate's frozen document configuration.
    """
    if not candidate.email:
        raise DataIntegrityError(candidate.id, "missing contact email")
    if not candidate.required_documents:
        raise DataIntegrityError(candidate.id, "no required documents recorded")
    if candidate.status in FOLDER_STAGES and not candidate.document_folder_ref:
        raise DataIntegrityError(candidate.id, "missing document folder reference")
    try:
        return resolve_document_config(candidate.document_config_version)
    except ConfigurationError as exc:
        raise DataIntegrityError(candidate.id, str(exc)) from exc


def process_candidate(
    ctx: WorkflowContext,
    candidate: Candidate,
    now: datetime,
) -> dict[str, Any]:
    """Run the full per-candidate pipeline once. Errors propagate to the caller."""
    outcome: dict[str, Any] = {
        "candidate_id": str(candidate.id),
        "status": "processed",
        "transitions": [],
        "reminder_sent": False,
        "pending_count": None,
    }

    if candidate.status == TERMINAL_STATUS:
        outcome["status"] = "terminal"
        return outcome

    document_config = check_integrity(candidate)

    if candidate.status == OnboardingStatus.details_received:
        result = request_hr_document(ctx, candidate)
        if result.changed:
            outcome["transitions"].append(result.trigger.value)

    if candidate.status not in FOLDER_STAGES:
        outcome["status"] = "waiting"
        return outcome

    file_names: list[str] | None
    try:
        file_names = [stored.name for stored in ctx.list_files(candidate.document_folder_ref)]
    except TransientIOError as exc:
        logger.warning(
            "folder_listing_failed",
            extra={"candidate_id": str(candidate.id), "error_message": str(exc)},
        )
        file_names = None

    result = reconcile(candidate, file_names, document_config)
    outcome["pending_count"] = result.pending_count
    if result.listing_failed:
        outcome["status"] = "listing_failed"
        return outcome

    documents_requested = False
    if candidate.status == OnboardingStatus.awaiting_hr_document:
        if not result.seed_present:
            if result.changed:
                ctx.store.commit_candidate(
                    candidate.id, {"document_status": result.document_status}
                )
                candidate.document_status = result.document_status
            outcome["status"] = "awaiting_hr_document"
            return outcome

        transition = request_candidate_documents(ctx, candidate, result.document_status)
        if transition.changed:
            outcome["transitions"].append(transition.trigger.value)
            documents_requested = True
        if candidate.status not in FOLDER_STAGES:
            return outcome
        result = reconcile(candidate, file_names, document_config)
        outcome["pending_count"] = result.pending_count

    if result.changed:
        trigger: TransitionTrigger | None = None
        if (
            candidate.status == OnboardingStatus.docs_pending
            and result.derived_status == OnboardingStatus.all_docs_uploaded
        ):
            trigger = TransitionTrigger.documents_complete
        elif (
            candidate.status == OnboardingStatus.all_docs_uploaded
            and result.derived_status == OnboardingStatus.docs_pending
        ):
            trigger = TransitionTrigger.documents_missing

        if trigger is not None:
            transition = apply_transition(
                ctx.store,
                candidate,
                trigger,
                extra={"document_status": result.document_status},
            )
            if transition.changed:
                outcome["transitions"].append(transition.trigger.value)
        else:
            ctx.store.commit_candidate(
                candidate.id, {"document_status": result.document_status}
            )
            candidate.document_status = result.document_status

    # No reminder in the same pass that sent the document request
    if not documents_requested and is_reminder_due(
        candidate, now, ctx.reminder_interval, result.pending_count
    ):
        outcome["reminder_sent"] = send_reminder(ctx, candidate, now, result.pending_count)

    return outcome


def _run_for_candidate(
    ctx: WorkflowContext,
    candidate: Candidate,
    now: datetime,
    tick_id: UUID,
) -> dict[str, Any]:
    """Lock, process and isolate failures for one candidate."""
    if not acquire_candidate_lock(candidate.id, tick_id):
        logger.info(
            "candidate_busy",
            extra={"candidate_id": str(candidate.id), "tick_id": str(tick_id)},
        )
        return {"candidate_id": str(candidate.id), "status": "busy"}

    try:
        # Operator writes may have landed since the active list was read.
        fresh = ctx.store.fetch_candidate(candidate.id)
        if fresh is None:
            logger.warning(
                "candidate_vanished",
                extra={"candidate_id": str(candidate.id), "tick_id": str(tick_id)},
            )
            return {"candidate_id": str(candidate.id), "status": "missing"}
        if fresh.status == TERMINAL_STATUS:
            return {"candidate_id": str(candidate.id), "status": "terminal"}
        return process_candidate(ctx, fresh, now)
    except DataIntegrityError as exc:
        logger.error(
            "candidate_integrity_error",
            extra={
                "candidate_id": str(candidate.id),
                "candidate_name": candidate.name,
                "tick_id": str(tick_id),
                "error_message": str(exc),
            },
        )
        return {"candidate_id": str(candidate.id), "status": "integrity_error"}
    except TransientIOError as exc:
        logger.warning(
            "candidate_transient_error",
            extra={
                "candidate_id": str(candidate.id),
                "tick_id": str(tick_id),
                "operation": exc.operation,
                "error_message": str(exc),
            },
        )
        return {"candidate_id": str(candidate.id), "status": "transient_error"}
    except Exception as exc:
        logger.exception(
            "candidate_processing_failed",
            extra={
                "candidate_id": str(candidate.id),
                "tick_id": str(tick_id),
                "error_message": str(exc),
            },
        )
        return {"candidate_id": str(candidate.id), "status": "failed"}
    finally:
        release_candidate_lock(candidate.id)


FAILED_STATUSES = frozenset({"integrity_error", "transient_error", "failed"})
SKIPPED_STATUSES = frozenset({"busy", "listing_failed", "terminal", "missing"})


def run_tick(
    ctx: WorkflowContext | None = None,
    trigger: str = "scheduler",
    now: datetime | None = None,
) -> dict[str, Any]:
    """Execute one tick over every active candidate.

    Parameters
    ----------
    ctx:
        Collaborators to run against; defaults to the production wiring.
    trigger:
        Either "scheduler" or "manual" -- logged for observability.
    now:
        Reference time for reminder decisions; defaults to the current UTC time.

    Returns
    -------
    Dict with the tick summary.
    """
    ctx = ctx or default_context()
    now = now or datetime.now(timezone.utc)
    tick_id = uuid4()
    start_time = time.time()

    logger.info(
        "tick_start",
        extra={"tick_id": str(tick_id), "trigger": trigger},
    )

    try:
        candidates = ctx.store.list_active_candidates()
    except TransientIOError as exc:
        duration = time.time() - start_time
        logger.error(
            "tick_error",
            extra={
                "tick_id": str(tick_id),
                "phase": "list_active_candidates",
                "error_message": str(exc),
            },
        )
        return {
            "tick_id": str(tick_id),
            "trigger": trigger,
            "status": "failed",
            "error": str(exc),
            "duration_seconds": round(duration, 2),
        }

    outcomes: list[dict[str, Any]] = []
    if candidates:
        workers = max(1, min(ctx.max_workers, len(candidates)))
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="onboarding-tick"
        ) as executor:
            futures = [
                executor.submit(_run_for_candidate, ctx, candidate, now, tick_id)
                for candidate in candidates
            ]
            for future in as_completed(futures):
                outcomes.append(future.result())

    failed = sum(1 for o in outcomes if o["status"] in FAILED_STATUSES)
    skipped = sum(1 for o in outcomes if o["status"] in SKIPPED_STATUSES)
    transitions = sum(len(o.get("transitions", [])) for o in outcomes)
    reminders_sent = sum(1 for o in outcomes if o.get("reminder_sent"))
    duration = time.time() - start_time
    status = "partial" if failed else "success"

    logger.info(
        "tick_complete",
        extra={
            "tick_id": str(tick_id),
            "trigger": trigger,
            "candidates": len(candidates),
            "failed": failed,
            "skipped": skipped,
            "transitions": transitions,
            "reminders_sent": reminders_sent,
            "duration_seconds": round(duration, 2),
            "status": status,
        },
    )

    return {
        "tick_id": str(tick_id),
        "trigger": trigger,
        "status": status,
        "candidates": len(candidates),
        "processed": len(outcomes) - failed - skipped,
        "skipped": skipped,
        "failed": failed,
        "transitions": transitions,
        "reminders_sent": reminders_sent,
        "duration_seconds": round(duration, 2),
    }
