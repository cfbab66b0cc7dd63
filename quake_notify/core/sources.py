"""Feed source adapters - Pure functions.

Every supported feed is described by one SourceAdapter: where to fetch
it and how to turn its raw payload into Events. Adding a feed means
adding a normalizer and a registry entry, not a new pipeline.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from quake_notify.core.earthquake import Event
from quake_notify.core.errors import FetchError


USGS_FEED_URL = (
    "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary/all_hour.geojson"
)

EMSC_FEED_URL = (
    "https://www.seismicportal.eu/fdsnws/event/1/query?format=json&limit=10"
)

_FRACTION_RE = re.compile(r"\.(\d+)")


Normalizer = Callable[[dict[str, Any]], list[Event]]


@dataclass(frozen=True)
class SourceAdapter:
    """How to fetch and normalize one seismic feed.

    Attributes:
        name: Source identifier, also the watermark key (e.g. 'USGS')
        default_url: Feed URL used when config does not override it
        normalizer: Converts the raw payload into Events
    """
    name: str
    default_url: str
    normalizer: Normalizer

    def normalize(self, payload: dict[str, Any]) -> list[Event]:
        """Normalize a raw payload into Events for this source."""
        return self.normalizer(payload)


def _get_features(payload: Any) -> list[Any]:
    """Return the feature list of a GeoJSON-like payload.

    Raises:
        FetchError: If the payload is not a FeatureCollection shape
    """
    if not isinstance(payload, dict):
        raise FetchError(f"Expected JSON object, got {type(payload).__name__}")

    features = payload.get("features")
    if not isinstance(features, list):
        raise FetchError("Payload has no 'features' list")

    return features


def parse_iso_millis(value: str) -> int:
    """Parse an ISO-8601 timestamp into epoch milliseconds.

    Pure function. Accepts a trailing 'Z' and any number of fractional
    second digits; naive values are treated as UTC.

    Raises:
        ValueError: If the value cannot be parsed
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(
        lambda m: "." + m.group(1)[:6].ljust(6, "0"),
        text,
        count=1,
    )
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def parse_usgs_feature(feature: dict[str, Any]) -> Event | None:
    """Parse a single USGS GeoJSON feature into an Event.

    Pure function: takes raw dict, returns Event or None if invalid.
    """
    try:
        props = feature.get("properties") or {}
        coords = (feature.get("geometry") or {}).get("coordinates") or []

        if len(coords) < 2:
            return None

        # USGS uses milliseconds since epoch
        time_ms = props.get("time")
        magnitude = props.get("mag")
        if time_ms is None or magnitude is None:
            return None

        return Event(
            id=str(feature.get("id", "")),
            magnitude=float(magnitude),
            place=props.get("place") or "Unknown location",
            time=int(time_ms),
            longitude=float(coords[0]),
            latitude=float(coords[1]),
            depth_km=float(coords[2]) if len(coords) > 2 and coords[2] is not None else 0.0,
            source="USGS",
        )
    except (AttributeError, KeyError, TypeError, ValueError):
        return None


def parse_emsc_feature(feature: dict[str, Any]) -> Event | None:
    """Parse a single EMSC seismicportal feature into an Event.

    Pure function. EMSC publishes ISO-8601 times and region names in
    'flynn_region'; coordinates are repeated in properties.
    """
    try:
        props = feature.get("properties") or {}
        coords = (feature.get("geometry") or {}).get("coordinates") or []

        time_value = props.get("time")
        magnitude = props.get("mag")
        if time_value is None or magnitude is None:
            return None

        latitude = props.get("lat")
        longitude = props.get("lon")
        if latitude is None or longitude is None:
            if len(coords) < 2:
                return None
            longitude, latitude = coords[0], coords[1]

        depth = props.get("depth")
        if depth is None:
            # geometry depth is negative (elevation)
            depth = -float(coords[2]) if len(coords) > 2 else 0.0

        if isinstance(time_value, (int, float)):
            time_ms = int(time_value)
        else:
            time_ms = parse_iso_millis(str(time_value))

        event_id = feature.get("id") or props.get("unid") or props.get("source_id")
        if not event_id:
            return None

        return Event(
            id=str(event_id),
            magnitude=float(magnitude),
            place=props.get("flynn_region") or props.get("place") or "Unknown location",
            time=time_ms,
            latitude=float(latitude),
            longitude=float(longitude),
            depth_km=float(depth),
            source="EMSC",
        )
    except (AttributeError, KeyError, TypeError, ValueError):
        return None


def normalize_usgs(payload: dict[str, Any]) -> list[Event]:
    """Normalize a USGS GeoJSON FeatureCollection.

    Pure function. Invalid features are skipped, feed order is kept.

    Raises:
        FetchError: If the payload is not a FeatureCollection
    """
    events = []
    for feature in _get_features(payload):
        if not isinstance(feature, dict):
            continue
        event = parse_usgs_feature(feature)
        if event is not None:
            events.append(event)
    return events


def normalize_emsc(payload: dict[str, Any]) -> list[Event]:
    """Normalize an EMSC seismicportal FeatureCollection.

    Pure function. Invalid features are skipped, feed order is kept.

    Raises:
        FetchError: If the payload is not a FeatureCollection
    """
    events = []
    for feature in _get_features(payload):
        if not isinstance(feature, dict):
            continue
        event = parse_emsc_feature(feature)
        if event is not None:
            events.append(event)
    return events


SOURCE_ADAPTERS: dict[str, SourceAdapter] = {
    "USGS": SourceAdapter(
        name="USGS",
        default_url=USGS_FEED_URL,
        normalizer=normalize_usgs,
    ),
    "EMSC": SourceAdapter(
        name="EMSC",
        default_url=EMSC_FEED_URL,
        normalizer=normalize_emsc,
    ),
}


def get_adapter(name: str) -> SourceAdapter:
    """Look up a source adapter by name (case-insensitive).

    Raises:
        KeyError: If no adapter is registered under that name
    """
    return SOURCE_ADAPTERS[name.upper()]
