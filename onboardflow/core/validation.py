"""Startup configuration checks.

Run once from the application lifespan before the scheduler starts; any
``ConfigurationError`` raised here stops the process.
"""

import logging

from onboardflow.core.config import Settings
from onboardflow.core.constants import SEED_DOCUMENT_CONFIG, SEED_DOCUMENT_KEY
from onboardflow.core.errors import ConfigurationError
from onboardflow.services.classifier import resolve_document_config

logger = logging.getLogger(__name__)


def validate_configuration(config: Settings) -> None:
    """Raise ``ConfigurationError`` if *config* cannot drive the workflow."""
    documents = resolve_document_config(config.DOCUMENT_CONFIG_VERSION)

    for key, entry in documents.items():
        if not entry.get("keywords"):
            raise ConfigurationError(f"Document '{key}' has no keywords configured")

    if SEED_DOCUMENT_KEY in documents:
        raise ConfigurationError(
            f"Seed document key '{SEED_DOCUMENT_KEY}' must not be a required document"
        )
    if not SEED_DOCUMENT_CONFIG[SEED_DOCUMENT_KEY].get("keywords"):
        raise ConfigurationError("Seed document has no keywords configured")

    if config.TICK_INTERVAL_MINUTES <= 0:
        raise ConfigurationError("TICK_INTERVAL_MINUTES must be positive")
    if config.TICK_MAX_WORKERS <= 0:
        raise ConfigurationError("TICK_MAX_WORKERS must be positive")
    if config.REMINDER_RETRY_HOURS <= 0:
        raise ConfigurationError("REMINDER_RETRY_HOURS must be positive")

    logger.info(
        "configuration_validated",
        extra={
            "document_config_version": config.DOCUMENT_CONFIG_VERSION,
            "required_documents": list(documents),
            "tick_interval_minutes": config.TICK_INTERVAL_MINUTES,
            "reminder_retry_hours": config.REMINDER_RETRY_HOURS,
        },
    )
