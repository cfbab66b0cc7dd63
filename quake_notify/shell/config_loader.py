"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

Models (Config, SourceConfig) are defined in quake_notify/core/config.py
to avoid information leakage between layers.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from quake_notify.core.config import Config, GeocoderConfig, SourceConfig
from quake_notify.core.delivery import MAX_BATCH_SIZE
from quake_notify.shell.secret_manager_client import SecretManagerClient, SecretManagerConfig


logger = logging.getLogger(__name__)


def _get_secret_manager_client() -> Optional[SecretManagerClient]:
    """Create a Secret Manager client when a project is known.

    Returns None if GCP_PROJECT is not set (e.g., local development).
    """
    project_id = os.environ.get("GCP_PROJECT") or os.environ.get("GOOGLE_CLOUD_PROJECT")
    if project_id:
        return SecretManagerClient(SecretManagerConfig(project_id=project_id))
    return None


def _resolve_value(value: Any, secret_client: Optional[SecretManagerClient] = None) -> Any:
    """Resolve a value that may contain secret or env var placeholders.

    Args:
        value: Value to resolve (may contain ${...} placeholders)
        secret_client: Client for resolving secrets

    Returns:
        Resolved value
    """
    if not isinstance(value, str):
        return value

    if secret_client:
        return secret_client.resolve(value)

    # No secret client - only handle env vars
    if value.startswith("${") and value.endswith("}"):
        var_spec = value[2:-1]
        if not var_spec.startswith("secret:"):
            env_value = os.environ.get(var_spec)
            if env_value:
                return env_value
            logger.warning("Environment variable %s not set", var_spec)

    return value


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _parse_source(data: Any) -> SourceConfig:
    """Parse a source entry: a bare name or a mapping."""
    if isinstance(data, str):
        return SourceConfig(name=data.upper())

    return SourceConfig(
        name=str(data["name"]).upper(),
        url=data.get("url"),
        enabled=_as_bool(data.get("enabled"), default=True),
        timeout_seconds=int(data.get("timeout_seconds", 30)),
    )


def _parse_geocoder(
    data: dict[str, Any],
    secret_client: Optional[SecretManagerClient] = None,
) -> GeocoderConfig:
    """Parse reverse geocoding settings."""
    defaults = GeocoderConfig()
    api_key = data.get("api_key")

    return GeocoderConfig(
        enabled=_as_bool(data.get("enabled"), default=defaults.enabled),
        base_url=data.get("base_url", defaults.base_url),
        user_agent=data.get("user_agent", defaults.user_agent),
        api_key=_resolve_value(api_key, secret_client) if api_key else None,
        timeout_seconds=int(data.get("timeout_seconds", defaults.timeout_seconds)),
    )


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load configuration from a dictionary.

    This is a pure-ish function (only placeholder expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed Config object
    """
    secret_client = _get_secret_manager_client()
    defaults = Config()

    sources = defaults.sources
    if "sources" in data:
        sources = [_parse_source(s) for s in data.get("sources") or []]

    firestore = data.get("firestore") or {}

    return Config(
        sources=sources,
        push_batch_size=int(data.get("push_batch_size", MAX_BATCH_SIZE)),
        cleanup_workers=int(data.get("cleanup_workers", defaults.cleanup_workers)),
        firebase_project_id=_resolve_value(data.get("firebase_project_id"), secret_client),
        firestore_database=firestore.get("database"),
        users_collection=firestore.get("users_collection", defaults.users_collection),
        watermark_collection=firestore.get(
            "watermark_collection", defaults.watermark_collection
        ),
        credential_field=firestore.get("credential_field", defaults.credential_field),
        default_timezone=data.get("default_timezone", defaults.default_timezone),
        geocoder=_parse_geocoder(data.get("geocoder") or {}, secret_client),
    )


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config/config.yaml")

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return Config()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return Config()

    config = load_config_from_dict(data)

    logger.info(
        "Loaded config: %d sources (%d enabled), batch size %d",
        len(config.sources),
        len(config.enabled_sources),
        config.push_batch_size,
    )

    return config


def load_config_from_env() -> Config:
    """Load configuration from environment variables.

    Useful for simple deployments without a YAML file.

    Environment variables:
        FEED_SOURCES: Comma-separated source names (default: USGS)
        PUSH_BATCH_SIZE: Messages per push call (default: 500)
        FIRESTORE_DATABASE: Firestore database name
        FIREBASE_PROJECT_ID: Firebase project ID
        DEFAULT_TIMEZONE: Quiet hours timezone for profiles without one
        REVERSE_GEOCODING: Enable reverse geocoding enrichment

    Returns:
        Config object from environment
    """
    names = os.environ.get("FEED_SOURCES", "USGS")
    sources = [
        SourceConfig(name=name.strip().upper())
        for name in names.split(",")
        if name.strip()
    ]

    return Config(
        sources=sources,
        push_batch_size=int(os.environ.get("PUSH_BATCH_SIZE", str(MAX_BATCH_SIZE))),
        firebase_project_id=os.environ.get("FIREBASE_PROJECT_ID"),
        firestore_database=os.environ.get("FIRESTORE_DATABASE"),
        default_timezone=os.environ.get("DEFAULT_TIMEZONE", "UTC"),
        geocoder=GeocoderConfig(
            enabled=_as_bool(os.environ.get("REVERSE_GEOCODING")),
        ),
    )
