"""quake-notify: per-user push notifications for new seismic events."""

__version__ = "1.0.0"
