"""Onboarding error taxonomy.

The tick driver catches every per-candidate error; only
``ConfigurationError`` is allowed to halt the process, and only at startup.
"""

from uuid import UUID

__all__ = [
    "OnboardingError",
    "TransientIOError",
    "DataIntegrityError",
    "ConfigurationError",
    "CandidateNotFoundError",
    "InvalidTransitionError",
]


class OnboardingError(Exception):
    """Base class for all onboarding errors."""

    pass


class TransientIOError(OnboardingError):
    """Storage listing, record store or dispatch transport failed.

    The candidate is skipped for the current tick and picked up again on
    the next one.
    """

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class DataIntegrityError(OnboardingError):
    """A candidate record is missing or carries an unusable mandatory field.

    The candidate stays excluded from processing until an operator fixes
    the record.
    """

    def __init__(self, candidate_id: UUID | str, message: str):
        super().__init__(f"Candidate {candidate_id}: {message}")
        self.candidate_id = str(candidate_id)


class ConfigurationError(OnboardingError):
    """Load-time configuration is invalid. Fatal at startup."""

    pass


class CandidateNotFoundError(OnboardingError):
    """No candidate record exists for the requested id."""

    def __init__(self, candidate_id: UUID | str):
        super().__init__(f"Candidate not found: {candidate_id}")
        self.candidate_id = str(candidate_id)


class InvalidTransitionError(OnboardingError):
    """The requested trigger is not valid from the candidate's status."""

    def __init__(self, current: str, trigger: str):
        super().__init__(f"Cannot apply '{trigger}' from status '{current}'")
        self.current = current
        self.trigger = trigger
