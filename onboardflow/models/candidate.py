"""Pydantic models for the ``candidates`` and ``candidate_events`` tables.

``document_status`` and ``required_documents`` are JSONB columns frozen at
creation from the active document configuration version.  The event log
lives in its own insert-only table and is embedded on read.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from onboardflow.models.enums import OnboardingStatus


class DocumentState(BaseModel):
    """Per-document flags for one required document key."""
    display_name: str = ""
    uploaded: bool = False
    verified: bool = False
    special_approval: bool = False

    @property
    def satisfied(self) -> bool:
        """A document is satisfied once uploaded, verified or specially approved."""
        return self.uploaded or self.verified or self.special_approval


class EventLogEntry(BaseModel):
    """One append-only audit entry."""
    event: str
    timestamp: datetime


class CandidateCreate(BaseModel):
    """Payload for starting onboarding for a new candidate."""
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    role: str | None = None
    salary: float | None = None
    experience: str | None = None
    date_of_joining: str | None = None
    has_special_incentive: bool = False
    special_incentive_amount: float = 0
    special_incentive_detail: str = ""


class Candidate(BaseModel):
    """Full candidate record returned from the database."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str | None = None
    role: str | None = None
    salary: float | None = None
    experience: str | None = None
    date_of_joining: str | None = None
    has_special_incentive: bool = False
    special_incentive_amount: float = 0
    special_incentive_detail: str = ""
    offer_details: dict[str, Any] | None = None

    status: OnboardingStatus = OnboardingStatus.initiated
    document_folder_ref: str | None = None
    document_config_version: str
    required_documents: list[str] = Field(default_factory=list)
    document_status: dict[str, DocumentState] = Field(default_factory=dict)
    last_reminder_sent_at: datetime | None = None
    event_log: list[EventLogEntry] = Field(default_factory=list)

    created_at: datetime | None = None
    updated_at: datetime | None = None

    def document_state(self, key: str) -> DocumentState:
        """Return the state for *key*, all-false when absent."""
        return self.document_status.get(key) or DocumentState()

    def pending_documents(self) -> list[str]:
        """Required keys that are not yet satisfied, in checklist order."""
        return [
            key for key in self.required_documents
            if not self.document_state(key).satisfied
        ]
