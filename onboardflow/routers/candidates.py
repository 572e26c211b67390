"""Candidate endpoints.

POST /                          -- create a candidate and send the provisional offer
GET  /                          -- list candidates, newest first
GET  /{id}                      -- fetch one candidate with its event log
POST /{id}/documents/{key}      -- operator sets ``verified`` / ``special_approval``
GET  /{id}/files                -- current contents of the document folder
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter

from onboardflow.models.candidate import Candidate, CandidateCreate
from onboardflow.models.workflow import DocumentFlagUpdate
from onboardflow.routers.errors import to_http_exception
from onboardflow.services.context import default_context
from onboardflow.services.workflow import (
    get_candidate,
    list_candidate_files,
    start_onboarding,
    update_document_flag,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", status_code=201)
async def create_candidate(payload: CandidateCreate) -> dict[str, Any]:
    """Start onboarding for a new candidate."""
    try:
        candidate = start_onboarding(default_context(), payload)
    except Exception as exc:
        raise to_http_exception(exc, "create_candidate") from exc

    return {
        "message": "Workflow started successfully",
        "candidate_id": str(candidate.id),
        "status": candidate.status.value,
    }


@router.get("")
async def list_candidates() -> list[Candidate]:
    try:
        return default_context().store.list_candidates()
    except Exception as exc:
        raise to_http_exception(exc, "list_candidates") from exc


@router.get("/{candidate_id}")
async def read_candidate(candidate_id: UUID) -> Candidate:
    try:
        return get_candidate(default_context(), candidate_id)
    except Exception as exc:
        raise to_http_exception(exc, "read_candidate") from exc


@router.post("/{candidate_id}/documents/{document_key}")
def set_document_flag(
    candidate_id: UUID,
    document_key: str,
    update: DocumentFlagUpdate,
) -> dict[str, Any]:
    """Operator review of a single document.

    ``uploaded`` is owned by storage reconciliation and cannot be set here.
    Sync so the wait for the candidate lock runs in the threadpool.
    """
    try:
        candidate = update_document_flag(
            default_context(), candidate_id, document_key, update.field, update.value
        )
    except Exception as exc:
        raise to_http_exception(exc, "set_document_flag") from exc

    return {
        "candidate_id": str(candidate.id),
        "document_status": {
            key: state.model_dump() for key, state in candidate.document_status.items()
        },
    }


@router.get("/{candidate_id}/files")
async def read_candidate_files(candidate_id: UUID) -> dict[str, Any]:
    try:
        files = list_candidate_files(default_context(), candidate_id)
    except Exception as exc:
        raise to_http_exception(exc, "read_candidate_files") from exc

    return {
        "candidate_id": str(candidate_id),
        "files": [stored.model_dump(mode="json") for stored in files],
    }
