"""Earthquake event model - Pure data structures.

Events arrive already normalized by a per-source adapter (see
core.sources). All functions here are pure with no side effects.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class Event:
    """Immutable, normalized seismic event.

    Attributes:
        id: Event ID, unique within its source
        magnitude: Event magnitude
        place: Human-readable location description
        time: Origin time in milliseconds since the epoch (UTC)
        latitude: Epicenter latitude
        longitude: Epicenter longitude
        depth_km: Depth in kilometers
        source: Name of the feed the event came from (e.g. 'USGS')
    """
    id: str
    magnitude: float
    place: str
    time: int
    latitude: float
    longitude: float
    depth_km: float
    source: str

    @property
    def key(self) -> tuple[str, str]:
        """Identity of the event across sources."""
        return (self.source, self.id)

    @property
    def coordinates(self) -> tuple[float, float]:
        """Return (latitude, longitude) tuple."""
        return (self.latitude, self.longitude)

    @property
    def occurred_at(self) -> datetime:
        """Origin time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.time / 1000, tz=timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        return asdict(self)


def to_epoch_millis(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds (naive values are UTC).

    Pure function.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)

