"""Seismic Feed Client - Imperative Shell.

This module handles HTTP communication with the seismic feeds
(USGS, EMSC). All I/O is contained here; normalization is in the
core module.
"""

import logging
from typing import Any

import requests

from quake_notify.core.config import SourceConfig
from quake_notify.core.errors import FetchError
from quake_notify.core.sources import get_adapter


logger = logging.getLogger(__name__)


# Default timeout for feed requests (seconds)
DEFAULT_TIMEOUT = 30


class FeedClient:
    """Client for fetching raw feed payloads.

    This is part of the imperative shell - it handles HTTP I/O.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize feed client.

        Args:
            session: HTTP session to reuse (a plain requests call if None)
            timeout: Default request timeout in seconds
        """
        self.session = session
        self.timeout = timeout

    def resolve_url(self, source: SourceConfig) -> str:
        """Return the configured URL, or the adapter default."""
        return source.url or get_adapter(source.name).default_url

    def fetch(self, source: SourceConfig) -> dict[str, Any]:
        """Fetch the raw payload of a feed.

        This method performs HTTP I/O.

        Args:
            source: Source configuration

        Returns:
            Decoded JSON payload

        Raises:
            FetchError: On network errors, non-2xx responses or invalid JSON
        """
        url = self.resolve_url(source)
        timeout = source.timeout_seconds or self.timeout

        logger.info("Fetching %s feed from %s", source.name, url)

        get = self.session.get if self.session is not None else requests.get
        try:
            response = get(url, timeout=timeout)
            response.raise_for_status()
            data = response.json()
        except requests.Timeout as e:
            raise FetchError(f"{source.name} feed timed out after {timeout}s") from e
        except requests.RequestException as e:
            raise FetchError(f"{source.name} feed request failed: {e}") from e
        except ValueError as e:
            raise FetchError(f"{source.name} feed returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise FetchError(
                f"{source.name} feed returned {type(data).__name__}, expected object"
            )

        logger.info(
            "Fetched %d features from %s",
            len(data.get("features") or []),
            source.name,
        )

        return data
