"""Reconciliation of folder contents against persisted document status.

Storage is the source of truth for ``uploaded``; ``verified`` and
``special_approval`` are operator-owned and passed through untouched.
``reconcile`` is pure -- the tick driver decides what to commit.
"""

from __future__ import annotations

from collections.abc import Sequence

from onboardflow.core.constants import SEED_DOCUMENT_CONFIG, SEED_DOCUMENT_KEY
from onboardflow.models.candidate import Candidate, DocumentState
from onboardflow.models.enums import OnboardingStatus
from onboardflow.models.workflow import ReconciliationResult
from onboardflow.services.classifier import DocumentConfig, classify

# Statuses whose label is derived from the pending count
DOCUMENT_STAGES: frozenset[OnboardingStatus] = frozenset(
    {OnboardingStatus.docs_pending, OnboardingStatus.all_docs_uploaded}
)


def _flags(state: DocumentState) -> tuple[bool, bool, bool]:
    return (state.uploaded, state.verified, state.special_approval)


def derive_status(pending_count: int) -> OnboardingStatus:
    """Aggregate label for a candidate collecting documents."""
    if pending_count == 0:
        return OnboardingStatus.all_docs_uploaded
    return OnboardingStatus.docs_pending


def reconcile(
    candidate: Candidate,
    current_files: Sequence[str] | None,
    document_config: DocumentConfig,
) -> ReconciliationResult:
    """Compare *current_files* with the candidate's persisted document status.

    ``current_files=None`` means the folder listing failed: the prior
    status is returned as-is with ``changed=False`` so no ``uploaded`` flag
    is ever cleared on missing evidence.  An empty list is a real, empty
    folder.
    """
    prior = {
        key: candidate.document_state(key) for key in candidate.required_documents
    }

    if current_files is None:
        pending = sum(1 for state in prior.values() if not state.satisfied)
        return ReconciliationResult(
            document_status={key: state.model_copy() for key, state in prior.items()},
            pending_count=pending,
            changed=False,
            listing_failed=True,
        )

    satisfied_by_file = classify(
        candidate.required_documents, current_files, document_config
    )
    seed_present = classify(
        [SEED_DOCUMENT_KEY], current_files, SEED_DOCUMENT_CONFIG
    )[SEED_DOCUMENT_KEY]

    document_status: dict[str, DocumentState] = {}
    changed = False
    for key, state in prior.items():
        display_name = state.display_name or str(
            (document_config.get(key) or {}).get("display_name", key)
        )
        updated = state.model_copy(
            update={"uploaded": satisfied_by_file[key], "display_name": display_name}
        )
        if _flags(updated) != _flags(state):
            changed = True
        document_status[key] = updated

    pending_count = sum(1 for state in document_status.values() if not state.satisfied)

    derived: OnboardingStatus | None = None
    if candidate.status in DOCUMENT_STAGES:
        derived = derive_status(pending_count)
        if derived != candidate.status:
            changed = True

    return ReconciliationResult(
        document_status=document_status,
        pending_count=pending_count,
        changed=changed,
        derived_status=derived,
        seed_present=seed_present,
    )
