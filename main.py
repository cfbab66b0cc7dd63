"""Cloud Function Entry Point - Root Module.

This is the root-level entry point for Google Cloud Functions.
It imports from the quake_notify package.
"""

from quake_notify.main import (
    quake_notify_http,
    quake_notify_pubsub,
)

__all__ = [
    "quake_notify_http",
    "quake_notify_pubsub",
]
