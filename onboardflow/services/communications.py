"""Outbound communications.

Builds template payloads for each ``CommunicationKind`` and hands them to
the mail relay over HTTP.  Rendering and transport belong to the relay;
this module only needs to know whether the hand-off succeeded.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

import httpx

from onboardflow.core.config import settings
from onboardflow.core.constants import (
    DOCUMENT_STATE_APPROVED,
    DOCUMENT_STATE_MISSING,
    DOCUMENT_STATE_UPLOADED,
)
from onboardflow.models.candidate import Candidate, DocumentState
from onboardflow.models.enums import CommunicationKind

logger = logging.getLogger(__name__)

SUBJECTS: dict[CommunicationKind, str] = {
    CommunicationKind.provisional_offer: "Provisional Offer",
    CommunicationKind.document_request: "Formal Offer Letter & Document Submission",
    CommunicationKind.document_reminder: "Action Required: Onboarding Documents",
    CommunicationKind.hr_document_request: "Offer letter required for new joiner",
    CommunicationKind.final_offer: "Final Offer Letter",
}


def _document_label(state: DocumentState) -> str:
    if state.verified or state.special_approval:
        return DOCUMENT_STATE_APPROVED
    if state.uploaded:
        return DOCUMENT_STATE_UPLOADED
    return DOCUMENT_STATE_MISSING


def document_rows(candidate: Candidate) -> list[dict[str, str]]:
    """One row per required document with its display name and state label."""
    rows: list[dict[str, str]] = []
    for key in candidate.required_documents:
        state = candidate.document_state(key)
        rows.append(
            {
                "key": key,
                "document": state.display_name or key,
                "state": _document_label(state),
            }
        )
    return rows


def build_payload(candidate: Candidate, kind: CommunicationKind) -> dict[str, Any]:
    """Assemble the template variables for *kind*."""
    payload: dict[str, Any] = {
        "to": candidate.email,
        "subject": SUBJECTS[kind],
        "candidate_name": candidate.name,
    }

    if kind == CommunicationKind.provisional_offer:
        payload.update(
            {
                "role": candidate.role,
                "salary": candidate.salary,
                "experience": candidate.experience,
                "date_of_joining": candidate.date_of_joining,
                "special_incentive": (
                    {
                        "amount": candidate.special_incentive_amount,
                        "detail": candidate.special_incentive_detail,
                    }
                    if candidate.has_special_incentive
                    else None
                ),
            }
        )
    elif kind == CommunicationKind.document_request:
        payload.update(
            {
                "folder_ref": candidate.document_folder_ref,
                "documents": [row["document"] for row in document_rows(candidate)],
            }
        )
    elif kind == CommunicationKind.document_reminder:
        payload.update(
            {
                "folder_ref": candidate.document_folder_ref,
                "documents": document_rows(candidate),
            }
        )
    elif kind == CommunicationKind.hr_document_request:
        payload.update(
            {
                "to": settings.HR_OPERATOR_EMAIL,
                "candidate_email": candidate.email,
                "folder_ref": candidate.document_folder_ref,
            }
        )
    elif kind == CommunicationKind.final_offer:
        payload.update(
            {
                "role": candidate.role,
                "date_of_joining": candidate.date_of_joining,
            }
        )

    return payload


def dispatch_communication(
    candidate_id: UUID,
    kind: CommunicationKind,
    payload: dict[str, Any],
) -> bool:
    """Hand a communication to the mail relay.

    Returns ``True`` when the relay accepted it and ``False`` on any
    transport or HTTP error (logged, never raised).
    """
    if not settings.MAIL_RELAY_URL:
        logger.error(
            "dispatch_not_configured",
            extra={"candidate_id": str(candidate_id), "template": kind.value},
        )
        return False

    try:
        with httpx.Client(timeout=10.0) as client:
            response = client.post(
                settings.MAIL_RELAY_URL,
                headers={
                    "Authorization": f"Bearer {settings.MAIL_RELAY_TOKEN}",
                    "Content-Type": "application/json",
                },
                json={
                    "candidate_id": str(candidate_id),
                    "template": kind.value,
                    "payload": payload,
                },
            )
            response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error(
            "dispatch_failed",
            extra={
                "candidate_id": str(candidate_id),
                "template": kind.value,
                "error_message": str(exc),
            },
        )
        return False

    logger.info(
        "dispatch_succeeded",
        extra={"candidate_id": str(candidate_id), "template": kind.value},
    )
    return True
