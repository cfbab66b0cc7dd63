"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- Seismic feed client (HTTP)
- Firestore watermark store and user directory (database)
- FCM push client (network)
- Reverse geocoder client (HTTP)
- Configuration loading (environment/files)

Keep this layer thin and simple. All business logic should be in core.
"""

from quake_notify.shell.feed_client import FeedClient
from quake_notify.shell.firestore_client import FirestoreUserDirectory, FirestoreWatermarkStore
from quake_notify.shell.push_client import PushClient
from quake_notify.shell.geocoder_client import GeocoderClient
from quake_notify.shell.config_loader import load_config, load_config_from_env

__all__ = [
    "FeedClient",
    "FirestoreUserDirectory",
    "FirestoreWatermarkStore",
    "PushClient",
    "GeocoderClient",
    "load_config",
    "load_config_from_env",
]
