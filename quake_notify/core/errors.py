"""Error taxonomy - Pure definitions.

Shell clients translate library exceptions into these so the
orchestrator can decide what aborts a run and what is only logged.
"""

from enum import Enum


class QuakeNotifyError(Exception):
    """Base class for all errors raised by quake-notify."""


class FetchError(QuakeNotifyError):
    """A feed could not be fetched or its payload has the wrong shape."""


class StoreError(QuakeNotifyError):
    """The watermark store could not be read or written."""


class CleanupError(QuakeNotifyError):
    """A stored push credential could not be removed."""


class PushErrorKind(str, Enum):
    """Classification of a per-recipient push failure."""
    INVALID_CREDENTIAL = "invalid_credential"
    TRANSIENT = "transient"
