"""Mapping of onboarding errors onto HTTP responses."""

from __future__ import annotations

import logging

from fastapi import HTTPException

from onboardflow.core.errors import (
    CandidateNotFoundError,
    ConfigurationError,
    DataIntegrityError,
    InvalidTransitionError,
    TransientIOError,
)

logger = logging.getLogger(__name__)


def to_http_exception(exc: Exception, operation: str) -> HTTPException:
    """Translate *exc* raised by *operation* into an ``HTTPException``."""
    if isinstance(exc, CandidateNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidTransitionError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, (DataIntegrityError, ValueError)):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, TransientIOError):
        logger.warning(
            f"{operation}_unavailable",
            extra={"operation": exc.operation, "error_message": str(exc)},
        )
        return HTTPException(status_code=503, detail=str(exc))
    if isinstance(exc, ConfigurationError):
        logger.error(f"{operation}_misconfigured", extra={"error_message": str(exc)})
        return HTTPException(status_code=500, detail=str(exc))

    logger.error(f"{operation}_failed", extra={"error_message": str(exc)})
    return HTTPException(status_code=500, detail=f"{operation} failed: {exc}")
