"""Cloud Function Entry Point.

This module provides the entry point for Google Cloud Functions.
It's a thin wrapper that loads configuration and invokes the orchestrator.
"""

import logging
import os
from typing import Any

import functions_framework
from flask import Request

from quake_notify.core.config import Config, validate_config
from quake_notify.orchestrator import Orchestrator
from quake_notify.shell.config_loader import load_config, load_config_from_env


# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _get_config() -> Config:
    """Load configuration from file or environment."""
    config_path = os.environ.get("CONFIG_PATH")

    if config_path:
        return load_config(config_path)
    elif os.environ.get("FEED_SOURCES"):
        # Simple env-based config
        return load_config_from_env()
    else:
        # Try default config path
        return load_config()


def _load_valid_config() -> Config | None:
    """Load configuration and log validation problems.

    Returns:
        Config, or None if it has critical errors
    """
    config = _get_config()
    validation = validate_config(config)

    for warning in validation.warnings:
        logger.warning("Config %s: %s", warning.field, warning.message)
    for error in validation.critical_errors:
        logger.error("Config %s: %s", error.field, error.message)

    return config if validation.valid else None


@functions_framework.http
def quake_notify_http(request: Request) -> tuple[dict[str, Any], int]:
    """HTTP Cloud Function entry point.

    Triggered by Cloud Scheduler or direct HTTP requests. Runs one
    ingestion cycle for every enabled source.

    Args:
        request: Flask request object (not used, but required by framework)

    Returns:
        Tuple of (response dict, HTTP status code)
    """
    logger.info("Starting quake notification cycle")

    try:
        config = _load_valid_config()
        if config is None:
            return {
                "status": "error",
                "message": "Invalid configuration",
            }, 400

        result = Orchestrator(config).process()

        response: dict[str, Any] = {
            "status": "success" if result.success else "partial_failure",
            "summary": result.summary,
            "sources": [
                {
                    "source": run.source,
                    "events_fetched": run.events_fetched,
                    "events_new": run.events_new,
                    "recipients": run.recipients,
                    "notifications_sent": run.notifications_sent,
                    "notifications_failed": run.notifications_failed,
                    "credentials_removed": run.credentials_removed,
                    "watermark": run.watermark_after,
                }
                for run in result.runs
            ],
        }

        if result.errors:
            response["errors"] = result.errors

        status_code = 200 if result.success else 207  # 207 = Multi-Status
        return response, status_code

    except Exception as e:
        logger.exception("Unexpected error in quake notification cycle")
        return {
            "status": "error",
            "message": str(e),
        }, 500


@functions_framework.cloud_event
def quake_notify_pubsub(cloud_event: Any) -> None:
    """Pub/Sub Cloud Function entry point.

    Alternative trigger for Cloud Scheduler via Pub/Sub. Failures are
    logged, never raised, so the scheduler does not retry a partial run.

    Args:
        cloud_event: CloudEvent from Pub/Sub
    """
    logger.info("Starting quake notification cycle (Pub/Sub trigger)")

    try:
        config = _load_valid_config()
        if config is None:
            return

        result = Orchestrator(config).process()

        for error in result.errors:
            logger.error("Error: %s", error)

    except Exception:
        logger.exception("Unexpected error in quake notification cycle")
