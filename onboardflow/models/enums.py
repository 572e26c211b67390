"""Enum types mirroring the values persisted in the ``candidates`` table."""

from enum import Enum


class OnboardingStatus(str, Enum):
    """Lifecycle stage of a candidate, in workflow order."""
    initiated = "Initiated"
    offer_sent = "Offer Sent"
    details_received = "Details Received"
    awaiting_hr_document = "Awaiting HR Document"
    docs_pending = "Documents Pending"
    all_docs_uploaded = "All Documents Uploaded"
    offer_released = "Offer Released"
    onboarded = "Onboarded"


class TransitionTrigger(str, Enum):
    """Cause of a status transition."""
    offer_sent = "offer_sent"
    details_received = "details_received"
    hr_document_requested = "hr_document_requested"
    seed_document_detected = "seed_document_detected"
    documents_complete = "documents_complete"
    documents_missing = "documents_missing"
    offer_released = "offer_released"
    onboarding_finalized = "onboarding_finalized"
    manual_override = "manual_override"


class CommunicationKind(str, Enum):
    """Template handed to the mail relay."""
    provisional_offer = "provisional_offer"
    document_request = "document_request"
    document_reminder = "document_reminder"
    hr_document_request = "hr_document_request"
    final_offer = "final_offer"


class DocumentFlag(str, Enum):
    """Operator-owned document flags (``uploaded`` belongs to storage)."""
    verified = "verified"
    special_approval = "special_approval"
