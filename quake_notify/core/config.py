"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from quake_notify.core.delivery import MAX_BATCH_SIZE
from quake_notify.core.sources import SOURCE_ADAPTERS


@dataclass
class SourceConfig:
    """A seismic feed to poll.

    Attributes:
        name: Registered adapter name (e.g. 'USGS')
        url: Feed URL override (None uses the adapter default)
        enabled: Whether the source is polled
        timeout_seconds: HTTP timeout for fetching the feed
    """
    name: str
    url: str | None = None
    enabled: bool = True
    timeout_seconds: int = 30


@dataclass
class GeocoderConfig:
    """Reverse geocoding enrichment settings.

    Attributes:
        enabled: Replace feed place names with geocoded ones
        base_url: Nominatim-compatible reverse endpoint
        user_agent: User-Agent sent with requests (required by Nominatim)
        api_key: Optional API key for hosted providers
        timeout_seconds: HTTP timeout
    """
    enabled: bool = False
    base_url: str = "https://nominatim.openstreetmap.org/reverse"
    user_agent: str = "quake-notify/1.0"
    api_key: str | None = None
    timeout_seconds: int = 5


@dataclass
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        sources: Feeds to poll
        push_batch_size: Maximum messages per push transport call
        cleanup_workers: Parallel credential removals per batch
        firebase_project_id: Firebase/GCP project (None for default)
        firestore_database: Firestore database name (None for default)
        users_collection: Collection holding user documents
        watermark_collection: Collection holding per-source watermarks
        credential_field: User document field holding the push token
        default_timezone: Zone for quiet hours of profiles without one
        geocoder: Reverse geocoding settings
    """
    sources: list[SourceConfig] = field(
        default_factory=lambda: [SourceConfig(name="USGS")]
    )
    push_batch_size: int = MAX_BATCH_SIZE
    cleanup_workers: int = 8
    firebase_project_id: str | None = None
    firestore_database: str | None = None
    users_collection: str = "users"
    watermark_collection: str = "metadata"
    credential_field: str = "fcm_token"
    default_timezone: str = "UTC"
    geocoder: GeocoderConfig = field(default_factory=GeocoderConfig)

    @property
    def enabled_sources(self) -> list[SourceConfig]:
        return [s for s in self.sources if s.enabled]


@dataclass
class ValidationError:
    """A configuration validation error.

    Attributes:
        field: The field that has an error
        message: Human-readable error description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ValidationError]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ValidationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


def validate_timezone(name: str, field_name: str) -> list[ValidationError]:
    """Validate an IANA timezone name.

    Pure function (reads the bundled tz database).
    """
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return [ValidationError(
            field=field_name,
            message=f"Unknown timezone '{name}'",
        )]
    return []


def validate_config(config: Config) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []

    seen: set[str] = set()
    for i, source in enumerate(config.sources):
        name = source.name.upper()
        if name not in SOURCE_ADAPTERS:
            errors.append(ValidationError(
                field=f"sources[{i}].name",
                message=(
                    f"Unknown source '{source.name}'. "
                    f"Known sources: {', '.join(sorted(SOURCE_ADAPTERS))}"
                ),
            ))
        if name in seen:
            errors.append(ValidationError(
                field=f"sources[{i}].name",
                message=f"Source '{source.name}' configured more than once",
            ))
        seen.add(name)

        if source.timeout_seconds <= 0:
            errors.append(ValidationError(
                field=f"sources[{i}].timeout_seconds",
                message=f"Timeout must be positive, got {source.timeout_seconds}",
            ))

    if not 1 <= config.push_batch_size <= MAX_BATCH_SIZE:
        errors.append(ValidationError(
            field="push_batch_size",
            message=f"Batch size must be between 1 and {MAX_BATCH_SIZE}, got {config.push_batch_size}",
        ))

    if config.cleanup_workers < 1:
        errors.append(ValidationError(
            field="cleanup_workers",
            message=f"cleanup_workers must be at least 1, got {config.cleanup_workers}",
        ))

    errors.extend(validate_timezone(config.default_timezone, "default_timezone"))

    if config.geocoder.enabled and config.geocoder.api_key and config.geocoder.api_key.startswith("${"):
        errors.append(ValidationError(
            field="geocoder.api_key",
            message="API key not resolved (still contains placeholder)",
            severity="warning",
        ))

    if not config.enabled_sources:
        errors.append(ValidationError(
            field="sources",
            message="No enabled sources configured",
            severity="warning",
        ))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )
