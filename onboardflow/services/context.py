"""Collaborators the workflow services run against.

Passed explicitly to every workflow operation and tick instead of living
in module globals, so tests and overlapping ticks each carry their own.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any
from uuid import UUID

from onboardflow.core.config import settings
from onboardflow.models.candidate import Candidate
from onboardflow.models.enums import CommunicationKind
from onboardflow.models.workflow import StoredFile
from onboardflow.repositories.candidates import CandidateStore
from onboardflow.services import communications, storage

ListFiles = Callable[[str], list[StoredFile]]
ProvisionFolder = Callable[[Candidate], str]
Dispatch = Callable[[UUID, CommunicationKind, dict[str, Any]], bool]


@dataclass
class WorkflowContext:
    store: CandidateStore
    list_files: ListFiles
    provision_folder: ProvisionFolder
    dispatch: Dispatch
    reminder_interval: timedelta
    document_config_version: str
    max_workers: int = 4


def default_context() -> WorkflowContext:
    """Context wired to Supabase, Supabase Storage and the mail relay."""
    return WorkflowContext(
        store=CandidateStore(),
        list_files=storage.list_files,
        provision_folder=storage.provision_folder,
        dispatch=communications.dispatch_communication,
        reminder_interval=timedelta(hours=settings.REMINDER_RETRY_HOURS),
        document_config_version=settings.DOCUMENT_CONFIG_VERSION,
        max_workers=settings.TICK_MAX_WORKERS,
    )
