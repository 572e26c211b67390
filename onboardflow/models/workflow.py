"""Pydantic models exchanged between the workflow services and the routers."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from onboardflow.models.candidate import DocumentState
from onboardflow.models.enums import (
    CommunicationKind,
    DocumentFlag,
    OnboardingStatus,
    TransitionTrigger,
)


class StoredFile(BaseModel):
    """A file currently present in a candidate's storage folder."""
    name: str
    path: str | None = None
    updated_at: datetime | None = None


class ReconciliationResult(BaseModel):
    """Delta computed by ``reconcile``; committing it is the caller's job."""
    document_status: dict[str, DocumentState]
    pending_count: int
    changed: bool
    derived_status: OnboardingStatus | None = None
    seed_present: bool = False
    listing_failed: bool = False


class TransitionResult(BaseModel):
    """Outcome of applying a trigger to a candidate."""
    candidate_id: UUID
    trigger: TransitionTrigger
    previous: OnboardingStatus
    current: OnboardingStatus
    changed: bool


class ReminderClaim(BaseModel):
    """Token proving this invocation owns the current reminder slot."""
    candidate_id: UUID
    claimed_at: datetime
    previous_sent_at: datetime | None = None


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class DetailsExtraction(BaseModel):
    """Structured acceptance details produced by the inbound interpreter."""
    date_of_joining: str = Field(min_length=1)
    name: str | None = None
    location: str | None = None
    address: str | None = None
    notice_period: str | None = None


class InboundDetails(BaseModel):
    """Acceptance reply resolved by the sender's address."""
    from_email: str = Field(min_length=3)
    extraction: DetailsExtraction


class DocumentFlagUpdate(BaseModel):
    """Operator update of a single document flag."""
    field: DocumentFlag
    value: bool


class StatusOverride(BaseModel):
    """Operator override to an arbitrary status."""
    status: OnboardingStatus
    reason: str | None = None


class ResendRequest(BaseModel):
    """Operator request to send a communication again."""
    kind: CommunicationKind
