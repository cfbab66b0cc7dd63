"""Reverse Geocoder Client - Imperative Shell.

This module turns epicenter coordinates into a place name using a
Nominatim-compatible reverse geocoding endpoint. Enrichment is
optional: every failure returns None and the feed's place is kept.
"""

import logging
from typing import Any

import requests

from quake_notify.core.config import GeocoderConfig


logger = logging.getLogger(__name__)


def format_place(data: dict[str, Any]) -> str | None:
    """Build a short place name from a Nominatim response.

    Uses "<locality>, <state>, <country>" when address parts are present,
    falling back to display_name.
    """
    address = data.get("address") or {}
    locality = (
        address.get("city")
        or address.get("town")
        or address.get("village")
        or address.get("county")
    )
    parts = [p for p in (locality, address.get("state"), address.get("country")) if p]
    if parts:
        return ", ".join(parts)
    return data.get("display_name") or None


class GeocoderClient:
    """Client for reverse geocoding coordinates.

    This is part of the imperative shell - it handles HTTP I/O.
    """

    def __init__(self, config: GeocoderConfig | None = None) -> None:
        """Initialize geocoder client.

        Args:
            config: Geocoder configuration
        """
        self.config = config or GeocoderConfig()

    def lookup(self, latitude: float, longitude: float) -> str | None:
        """Look up a place name for coordinates.

        This method performs HTTP I/O.

        Returns:
            Place name, or None if the lookup failed or found nothing
        """
        params: dict[str, str] = {
            "lat": str(latitude),
            "lon": str(longitude),
            "format": "jsonv2",
            "zoom": "10",
        }
        if self.config.api_key:
            params["key"] = self.config.api_key

        try:
            response = requests.get(
                self.config.base_url,
                params=params,
                timeout=self.config.timeout_seconds,
                headers={"User-Agent": self.config.user_agent},
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(
                "Reverse geocoding failed for (%.4f, %.4f): %s",
                latitude,
                longitude,
                str(e),
            )
            return None

        if not isinstance(data, dict) or "error" in data:
            logger.info("No place found for (%.4f, %.4f)", latitude, longitude)
            return None

        return format_place(data)
