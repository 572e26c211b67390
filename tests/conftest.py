"""Shared test fixtures.

Provides an in-memory candidate store honouring the compare-and-set
contract of ``CandidateStore``, fake folder storage and mail relay, a
``WorkflowContext`` wired to them, a candidate factory, mock Supabase
clients and a FastAPI ``TestClient``.
"""

import os

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-key")
os.environ.setdefault("MAIL_RELAY_URL", "https://relay.test/send")

import threading
from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import MagicMock, patch
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from onboardflow.core.errors import TransientIOError
from onboardflow.models.candidate import (
    Candidate,
    CandidateCreate,
    DocumentState,
    EventLogEntry,
)
from onboardflow.models.enums import CommunicationKind, OnboardingStatus
from onboardflow.models.workflow import StoredFile
from onboardflow.repositories.candidates import CandidateStore
from onboardflow.services.classifier import initial_document_status, resolve_document_config
from onboardflow.services.context import WorkflowContext


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class InMemoryCandidateStore(CandidateStore):
    """Thread-safe in-memory store with the same semantics as the Supabase one."""

    def __init__(self) -> None:
        super().__init__(client=None)
        self._lock = threading.Lock()
        self._rows: dict[UUID, Candidate] = {}
        self.fail_operations: set[str] = set()
        self.commits: list[tuple[UUID, dict[str, Any]]] = []

    def _check(self, operation: str) -> None:
        if operation in self.fail_operations:
            raise TransientIOError(f"{operation} failed: injected", operation=operation)

    def add(self, candidate: Candidate) -> Candidate:
        with self._lock:
            self._rows[candidate.id] = candidate.model_copy(deep=True)
        return candidate

    def events(self, candidate_id: UUID) -> list[str]:
        with self._lock:
            return [entry.event for entry in self._rows[candidate_id].event_log]

    def fetch_candidate(self, candidate_id: UUID) -> Candidate | None:
        self._check("fetch_candidate")
        with self._lock:
            row = self._rows.get(candidate_id)
            return row.model_copy(deep=True) if row is not None else None

    def list_candidates(self) -> list[Candidate]:
        self._check("list_candidates")
        with self._lock:
            return [row.model_copy(deep=True) for row in self._rows.values()]

    def list_active_candidates(self) -> list[Candidate]:
        self._check("list_active_candidates")
        with self._lock:
            return [
                row.model_copy(deep=True)
                for row in self._rows.values()
                if row.status != OnboardingStatus.onboarded
            ]

    def find_by_email(
        self, email: str, status: OnboardingStatus | None = None
    ) -> list[Candidate]:
        self._check("find_by_email")
        with self._lock:
            return [
                row.model_copy(deep=True)
                for row in self._rows.values()
                if row.email == email.strip().lower()
                and (status is None or row.status == status)
            ]

    def create_candidate(
        self,
        payload: CandidateCreate,
        config_version: str,
        required_documents: list[str],
        document_status: dict[str, DocumentState],
    ) -> Candidate:
        self._check("create_candidate")
        data = payload.model_dump()
        data["email"] = payload.email.strip().lower()
        candidate = Candidate(
            id=uuid4(),
            document_config_version=config_version,
            required_documents=list(required_documents),
            document_status=document_status,
            created_at=datetime.now(timezone.utc),
            **data,
        )
        self.add(candidate)
        return candidate.model_copy(deep=True)

    def commit_candidate(self, candidate_id: UUID, partial: dict[str, Any]) -> None:
        self._check("commit_candidate")
        with self._lock:
            self.commits.append((candidate_id, dict(partial)))
            row = self._rows[candidate_id]
            self._rows[candidate_id] = row.model_copy(update=dict(partial), deep=True)

    def compare_and_set_status(
        self,
        candidate_id: UUID,
        expected: OnboardingStatus,
        new: OnboardingStatus,
        extra: dict[str, Any] | None = None,
    ) -> bool:
        self._check("compare_and_set_status")
        with self._lock:
            row = self._rows[candidate_id]
            if row.status != expected:
                return False
            update = dict(extra or {})
            update["status"] = new
            self._rows[candidate_id] = row.model_copy(update=update, deep=True)
            return True

    def claim_reminder(
        self,
        candidate_id: UUID,
        expected: datetime | None,
        claimed_at: datetime,
    ) -> bool:
        self._check("claim_reminder")
        with self._lock:
            row = self._rows[candidate_id]
            if row.last_reminder_sent_at != expected:
                return False
            self._rows[candidate_id] = row.model_copy(
                update={"last_reminder_sent_at": claimed_at}
            )
            return True

    def append_log(self, candidate_id: UUID, event: str) -> EventLogEntry:
        self._check("append_log")
        entry = EventLogEntry(event=event, timestamp=datetime.now(timezone.utc))
        with self._lock:
            self._rows[candidate_id].event_log.append(entry)
        return entry


class FakeStorage:
    """Folder contents keyed by folder reference."""

    def __init__(self) -> None:
        self.folders: dict[str, list[str]] = {}
        self.failing: set[str] = set()
        self.provisioned: list[UUID] = []

    def list_files(self, folder_ref: str) -> list[StoredFile]:
        if folder_ref in self.failing:
            raise TransientIOError(f"Listing {folder_ref} failed", operation="list_files")
        return [
            StoredFile(name=name, path=f"{folder_ref}/{name}")
            for name in self.folders.get(folder_ref, [])
        ]

    def provision_folder(self, candidate: Candidate) -> str:
        if candidate.document_folder_ref:
            return candidate.document_folder_ref
        self.provisioned.append(candidate.id)
        folder_ref = f"candidates/{candidate.id}"
        self.folders.setdefault(folder_ref, [])
        return folder_ref


class FakeDispatcher:
    """Records every hand-off; ``succeed`` controls the outcome."""

    def __init__(self) -> None:
        self.calls: list[tuple[UUID, CommunicationKind, dict[str, Any]]] = []
        self.succeed = True
        self._lock = threading.Lock()

    def __call__(
        self, candidate_id: UUID, kind: CommunicationKind, payload: dict[str, Any]
    ) -> bool:
        with self._lock:
            self.calls.append((candidate_id, kind, payload))
        return self.succeed

    def kinds(self, candidate_id: UUID | None = None) -> list[CommunicationKind]:
        return [
            kind for cid, kind, _ in self.calls
            if candidate_id is None or cid == candidate_id
        ]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def store() -> InMemoryCandidateStore:
    return InMemoryCandidateStore()


@pytest.fixture()
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture()
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture()
def ctx(
    store: InMemoryCandidateStore,
    fake_storage: FakeStorage,
    dispatcher: FakeDispatcher,
) -> WorkflowContext:
    return WorkflowContext(
        store=store,
        list_files=fake_storage.list_files,
        provision_folder=fake_storage.provision_folder,
        dispatch=dispatcher,
        reminder_interval=timedelta(minutes=60),
        document_config_version="v2",
        max_workers=2,
    )


@pytest.fixture()
def make_candidate(store: InMemoryCandidateStore) -> Callable[..., Candidate]:
    """Insert a candidate into the in-memory store and return a copy."""

    def _make(
        status: OnboardingStatus = OnboardingStatus.docs_pending,
        required_documents: list[str] | None = None,
        version: str = "v2",
        with_folder: bool = True,
        **overrides: Any,
    ) -> Candidate:
        config = resolve_document_config(version)
        required = required_documents or list(config)
        candidate_id = overrides.pop("id", uuid4())
        document_status = overrides.pop(
            "document_status",
            {
                key: state
                for key, state in initial_document_status(config).items()
                if key in required
            },
        )
        candidate = Candidate(
            id=candidate_id,
            name=overrides.pop("name", "John Doe"),
            email=overrides.pop("email", "john@example.com"),
            status=status,
            document_config_version=version,
            required_documents=required,
            document_status=document_status,
            document_folder_ref=(
                overrides.pop("document_folder_ref", f"candidates/{candidate_id}")
                if with_folder
                else None
            ),
            **overrides,
        )
        store.add(candidate)
        return store.fetch_candidate(candidate.id)  # type: ignore[return-value]

    return _make


@pytest.fixture()
def mock_supabase_module() -> Generator[MagicMock, None, None]:
    """Patch the Supabase client at module level in the health router."""
    mock_client = MagicMock()
    mock_table = MagicMock()
    mock_select = MagicMock()
    mock_limit = MagicMock()

    mock_client.table.return_value = mock_table
    mock_table.select.return_value = mock_select
    mock_select.limit.return_value = mock_limit
    mock_limit.execute.return_value = MagicMock()

    with patch("onboardflow.routers.health.get_supabase", return_value=mock_client):
        yield mock_client


@pytest.fixture()
def mock_supabase_disconnected() -> Generator[MagicMock, None, None]:
    """Patch ``get_supabase`` to simulate a disconnected database."""
    with patch(
        "onboardflow.routers.health.get_supabase",
        side_effect=Exception("Connection refused"),
    ):
        yield MagicMock()


@pytest.fixture()
def test_client() -> Generator[TestClient, None, None]:
    """Provide a FastAPI TestClient with the scheduler stubbed out."""
    from onboardflow.main import app

    with patch("onboardflow.main.start_scheduler"), patch(
        "onboardflow.main.shutdown_scheduler"
    ):
        with TestClient(app) as client:
            yield client
