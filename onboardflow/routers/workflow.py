"""Workflow event and operator action endpoints.

POST /inbound             -- acceptance reply resolved by sender address
POST /{id}/details        -- acceptance details for a known candidate
POST /{id}/release        -- release the final offer
POST /{id}/finalize       -- mark the candidate onboarded
POST /{id}/override       -- manual status override
POST /{id}/resend         -- resend a communication
POST /tick                -- run a reconciliation tick now (202)
"""

from __future__ import annotations

import logging
import threading
from typing import Any
from uuid import UUID

from fastapi import APIRouter

from onboardflow.models.candidate import Candidate
from onboardflow.models.workflow import (
    DetailsExtraction,
    InboundDetails,
    ResendRequest,
    StatusOverride,
)
from onboardflow.routers.errors import to_http_exception
from onboardflow.services.context import default_context
from onboardflow.services.tick import run_tick
from onboardflow.services.workflow import (
    finalize_onboarding,
    handle_inbound_details,
    override_status,
    record_details_received,
    release_offer,
    resend_communication,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _status_payload(candidate: Candidate) -> dict[str, Any]:
    return {
        "candidate_id": str(candidate.id),
        "status": candidate.status.value,
        "document_folder_ref": candidate.document_folder_ref,
    }


@router.post("/inbound")
async def inbound_details(body: InboundDetails) -> dict[str, Any]:
    """Acceptance reply from the inbound interpreter, matched by sender."""
    try:
        candidate = handle_inbound_details(
            default_context(), body.from_email, body.extraction
        )
    except Exception as exc:
        raise to_http_exception(exc, "inbound_details") from exc
    return _status_payload(candidate)


@router.post("/{candidate_id}/details")
async def details_received(
    candidate_id: UUID, extraction: DetailsExtraction
) -> dict[str, Any]:
    try:
        candidate = record_details_received(default_context(), candidate_id, extraction)
    except Exception as exc:
        raise to_http_exception(exc, "details_received") from exc
    return _status_payload(candidate)


@router.post("/{candidate_id}/release")
async def release(candidate_id: UUID) -> dict[str, Any]:
    try:
        candidate = release_offer(default_context(), candidate_id)
    except Exception as exc:
        raise to_http_exception(exc, "release_offer") from exc
    return _status_payload(candidate)


@router.post("/{candidate_id}/finalize")
async def finalize(candidate_id: UUID) -> dict[str, Any]:
    try:
        candidate = finalize_onboarding(default_context(), candidate_id)
    except Exception as exc:
        raise to_http_exception(exc, "finalize_onboarding") from exc
    return _status_payload(candidate)


@router.post("/{candidate_id}/override")
async def override(candidate_id: UUID, body: StatusOverride) -> dict[str, Any]:
    try:
        candidate = override_status(
            default_context(), candidate_id, body.status, body.reason
        )
    except Exception as exc:
        raise to_http_exception(exc, "override_status") from exc
    return _status_payload(candidate)


@router.post("/{candidate_id}/resend")
async def resend(candidate_id: UUID, body: ResendRequest) -> dict[str, Any]:
    try:
        sent = resend_communication(default_context(), candidate_id, body.kind)
    except Exception as exc:
        raise to_http_exception(exc, "resend_communication") from exc
    return {
        "candidate_id": str(candidate_id),
        "kind": body.kind.value,
        "sent": sent,
    }


@router.post("/tick", status_code=202)
async def trigger_tick() -> dict[str, Any]:
    """Run a tick in a background thread.

    Overlap with a scheduled tick is fine: candidates already being
    processed are skipped by the new one.
    """

    def _run() -> None:
        run_tick(trigger="manual")

    thread = threading.Thread(target=_run, daemon=True)
    thread.start()

    return {"status": "started", "message": "Onboarding tick initiated"}
