"""Document classification via keyword matching.

Maps the file names found in a candidate folder onto required-document
keys.  A key is present when any file name contains one of its keyword
variants, compared case-insensitively and without accents.

One file may satisfy several keys (``pan_and_aadhaar.pdf`` counts for
both); no exclusivity is enforced.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Iterable, Mapping
from typing import Any

from onboardflow.core.constants import DOCUMENT_CONFIG_VERSIONS
from onboardflow.core.errors import ConfigurationError
from onboardflow.models.candidate import DocumentState

DocumentConfig = Mapping[str, Mapping[str, Any]]


def _normalize_text(text: str) -> str:
    """Lowercase and strip accents for keyword matching."""
    lowered = text.lower()
    nfkd = unicodedata.normalize("NFKD", lowered)
    return "".join(ch for ch in nfkd if not unicodedata.combining(ch))


def resolve_document_config(version: str) -> DocumentConfig:
    """Return the required-document configuration for *version*.

    Raises ``ConfigurationError`` for unknown or empty versions.
    """
    config = DOCUMENT_CONFIG_VERSIONS.get(version)
    if config is None:
        raise ConfigurationError(f"Unknown document configuration version: {version}")
    if not config:
        raise ConfigurationError(
            f"Document configuration version {version} has no required documents"
        )
    return config


def initial_document_status(config: DocumentConfig) -> dict[str, DocumentState]:
    """Build the all-false status map for a fresh candidate."""
    return {
        key: DocumentState(display_name=str(entry.get("display_name", key)))
        for key, entry in config.items()
    }


def classify(
    required_documents: Iterable[str],
    file_names: Iterable[str],
    keyword_config: DocumentConfig,
) -> dict[str, bool]:
    """Return ``{document_key: satisfied_by_file}`` for every required key.

    Keys without configured keywords can never be satisfied by a file.
    An empty file list yields all ``False``.
    """
    normalized_names = [_normalize_text(name) for name in file_names]
    result: dict[str, bool] = {}

    for key in required_documents:
        entry = keyword_config.get(key) or {}
        keywords = [
            _normalize_text(str(keyword))
            for keyword in entry.get("keywords", [])
            if str(keyword).strip()
        ]
        result[key] = any(
            keyword in name
            for name in normalized_names
            for keyword in keywords
        )

    return result
