"""Firestore Clients - Imperative Shell.

This module handles persistence of per-source watermarks and access to
the user directory. Uses Google Cloud Firestore.

All I/O is contained here; deduplication and eligibility logic is in
the core module.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from quake_notify.core.earthquake import to_epoch_millis
from quake_notify.core.errors import CleanupError, StoreError
from quake_notify.core.preferences import (
    CREDENTIAL_FIELDS,
    ENABLED_FIELDS,
    User,
    is_user_enabled,
    parse_user,
)


logger = logging.getLogger(__name__)


DEFAULT_USERS_COLLECTION = "users"

DEFAULT_WATERMARK_COLLECTION = "metadata"


@dataclass
class FirestoreConfig:
    """Configuration for Firestore clients.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
        users_collection: Collection of user documents
        watermark_collection: Collection of per-source watermark documents
        credential_field: User field holding the push token
        enabled_field: User field holding the master switch; users
            whose switch is false are not listed
    """
    project_id: str | None = None
    database: str | None = None
    users_collection: str = DEFAULT_USERS_COLLECTION
    watermark_collection: str = DEFAULT_WATERMARK_COLLECTION
    credential_field: str = "fcm_token"
    enabled_field: str = "notifications_enabled"


class _FirestoreBase:
    """Shared lazy Firestore client construction."""

    def __init__(
        self,
        config: FirestoreConfig | None = None,
        client: firestore.Client | None = None,
    ) -> None:
        """Initialize Firestore access.

        Args:
            config: Firestore configuration
            client: Existing Firestore client to share
        """
        self.config = config or FirestoreConfig()
        self._client = client

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs = {}
            if self.config.project_id:
                kwargs['project'] = self.config.project_id
            if self.config.database:
                kwargs['database'] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client


def _timestamp_to_millis(value: Any) -> int:
    """Read a stored watermark that may be millis or a Firestore timestamp."""
    if isinstance(value, datetime):
        return to_epoch_millis(value)
    return int(value)


class FirestoreWatermarkStore(_FirestoreBase):
    """Per-source watermark persisted in Firestore.

    Document structure (one per source, keyed by source name):
    {
        "timestamp": <epoch millis of newest processed event>,
        "updated_at": <timestamp>
    }
    """

    def _get_doc_ref(self, source: str) -> Any:
        return (
            self.client
            .collection(self.config.watermark_collection)
            .document(source)
        )

    def get(self, source: str) -> int:
        """Read the watermark for a source.

        This method performs database I/O.

        Returns:
            Watermark in epoch millis (0 if never written)

        Raises:
            StoreError: If the document cannot be read or is corrupt
        """
        try:
            doc = self._get_doc_ref(source).get()
        except Exception as e:
            raise StoreError(f"Failed to read watermark for {source}: {e}") from e

        if not doc.exists:
            logger.info("No watermark stored for %s, starting from 0", source)
            return 0

        data = doc.to_dict() or {}
        value = data.get("timestamp", 0)
        try:
            timestamp = _timestamp_to_millis(value or 0)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Corrupt watermark for {source}: {value!r}") from e

        logger.info("Watermark for %s is %d", source, timestamp)
        return timestamp

    def set(self, source: str, timestamp: int) -> None:
        """Write the watermark for a source (single-document upsert).

        This method performs database I/O.

        Raises:
            StoreError: If the write fails
        """
        logger.info("Advancing watermark for %s to %d", source, timestamp)

        try:
            self._get_doc_ref(source).set({
                "timestamp": int(timestamp),
                "updated_at": datetime.now(timezone.utc),
            })
        except Exception as e:
            raise StoreError(f"Failed to write watermark for {source}: {e}") from e


class FirestoreUserDirectory(_FirestoreBase):
    """Read access to user documents, plus credential cleanup.

    Document structure (collection of users):
    {
        "fcm_token": "<registration token>",
        "notifications_enabled": true,
        "profiles": [{"name": "Home", "minMagnitude": 3.0, ...}, ...]
    }
    Legacy documents carry a single "preferences" map (or top-level
    preference fields) instead of "profiles".
    """

    def _users(self) -> Any:
        return self.client.collection(self.config.users_collection)

    @property
    def credential_fields(self) -> tuple[str, ...]:
        """Every field name a push token may be stored under."""
        return tuple(dict.fromkeys((self.config.credential_field, *CREDENTIAL_FIELDS)))

    @property
    def enabled_fields(self) -> tuple[str, ...]:
        """Every field name the user-level master switch may use."""
        return tuple(dict.fromkeys((self.config.enabled_field, *ENABLED_FIELDS)))

    def list_users(self) -> Iterator[User]:
        """Stream users whose master switch is not off.

        This method performs database I/O. Documents are parsed lazily.
        The switch may be spelled either way, or be missing (profiles-only
        documents), so it is checked here rather than in a query filter.

        Raises:
            StoreError: If the query fails
        """
        try:
            for doc in self._users().stream():
                data = doc.to_dict() or {}
                if not is_user_enabled(data, self.enabled_fields):
                    continue
                yield parse_user(doc.id, data, self.credential_fields)
        except gcp_exceptions.GoogleAPIError as e:
            raise StoreError(f"Failed to list users: {e}") from e

    def remove_credential(self, user_id: str) -> bool:
        """Delete the stored push credential of a user.

        Clears the token under every field name it may be stored under.
        Idempotent: a missing user or field is treated as already removed.

        Returns:
            True if the credential is gone

        Raises:
            CleanupError: If the update fails
        """
        logger.info("Removing push credential for user %s", user_id)

        try:
            self._users().document(user_id).update({
                name: firestore.DELETE_FIELD for name in self.credential_fields
            })
        except gcp_exceptions.NotFound:
            logger.info("User %s no longer exists, nothing to remove", user_id)
        except Exception as e:
            raise CleanupError(f"Failed to remove credential for {user_id}: {e}") from e

        return True
