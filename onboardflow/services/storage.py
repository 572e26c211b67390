"""Candidate document folders in Supabase Storage.

Each candidate gets one folder (``candidates/<id>``) inside
``settings.STORAGE_BUCKET``.  Folders are materialised with a placeholder
object because object storage has no empty directories.

``list_files`` distinguishes an empty folder (``[]``) from a failed listing
(``TransientIOError``); reconciliation depends on that difference.
"""

from __future__ import annotations

import logging
from typing import Any

from onboardflow.core.config import settings
from onboardflow.core.constants import (
    ALLOWED_DOCUMENT_EXTENSIONS,
    FOLDER_PLACEHOLDER_NAME,
    FOLDER_PREFIX,
    LISTING_PAGE_SIZE,
)
from onboardflow.core.errors import TransientIOError
from onboardflow.db.supabase import get_supabase
from onboardflow.models.candidate import Candidate
from onboardflow.models.workflow import StoredFile

logger = logging.getLogger(__name__)


def _bucket() -> Any:
    return get_supabase().storage.from_(settings.STORAGE_BUCKET)


def folder_ref_for(candidate: Candidate) -> str:
    """Storage path of the folder owned by *candidate*."""
    return f"{FOLDER_PREFIX}/{candidate.id}"


def _is_document(entry: dict[str, Any]) -> bool:
    name = str(entry.get("name") or "")
    if not name or name == FOLDER_PLACEHOLDER_NAME:
        return False
    # Sub-folders come back without an object id
    if entry.get("id") is None:
        return False
    return name.lower().endswith(ALLOWED_DOCUMENT_EXTENSIONS)


def list_files(folder_ref: str) -> list[StoredFile]:
    """Return the documents currently stored under *folder_ref*.

    Only PDF objects are returned.  Raises ``TransientIOError`` when the
    storage API cannot be reached or rejects the request.
    """
    bucket = _bucket()
    files: list[StoredFile] = []
    offset = 0

    while True:
        try:
            page = bucket.list(
                folder_ref,
                {
                    "limit": LISTING_PAGE_SIZE,
                    "offset": offset,
                    "sortBy": {"column": "name", "order": "asc"},
                },
            )
        except Exception as exc:
            logger.warning(
                "storage_list_failed",
                extra={"folder_ref": folder_ref, "error_message": str(exc)},
            )
            raise TransientIOError(
                f"Listing {folder_ref} failed: {exc}", operation="list_files"
            ) from exc

        entries = page or []
        for entry in entries:
            if _is_document(entry):
                files.append(
                    StoredFile(
                        name=entry["name"],
                        path=f"{folder_ref}/{entry['name']}",
                        updated_at=entry.get("updated_at"),
                    )
                )

        if len(entries) < LISTING_PAGE_SIZE:
            break
        offset += LISTING_PAGE_SIZE

    logger.debug(
        "storage_listed",
        extra={"folder_ref": folder_ref, "file_count": len(files)},
    )
    return files


def provision_folder(candidate: Candidate) -> str:
    """Return the candidate's folder reference, creating the folder if absent.

    An existing ``document_folder_ref`` is always reused.
    """
    if candidate.document_folder_ref:
        return candidate.document_folder_ref

    folder_ref = folder_ref_for(candidate)
    try:
        _bucket().upload(
            f"{folder_ref}/{FOLDER_PLACEHOLDER_NAME}",
            b"",
            {"content-type": "text/plain", "upsert": "true"},
        )
    except Exception as exc:
        logger.warning(
            "storage_provision_failed",
            extra={
                "candidate_id": str(candidate.id),
                "folder_ref": folder_ref,
                "error_message": str(exc),
            },
        )
        raise TransientIOError(
            f"Provisioning {folder_ref} failed: {exc}", operation="provision_folder"
        ) from exc

    logger.info(
        "storage_folder_provisioned",
        extra={"candidate_id": str(candidate.id), "folder_ref": folder_ref},
    )
    return folder_ref
