"""Watermark deduplication logic - Pure functions.

Each feed has a single cursor: the origin time of the newest event it
has already processed. Events at or before the cursor are considered
seen. The persistence of the cursor lives in the imperative shell
(Firestore client); this module only contains the pure logic.
"""

from quake_notify.core.earthquake import Event


def filter_unprocessed(events: list[Event], last_timestamp: int) -> list[Event]:
    """Keep only events newer than the watermark.

    Pure function. Source order is preserved.

    Args:
        events: Normalized events from one fetch
        last_timestamp: Current watermark (epoch millis)

    Returns:
        Events with time strictly greater than the watermark
    """
    return [e for e in events if e.time > last_timestamp]


def max_event_time(events: list[Event], default: int = 0) -> int:
    """Return the newest origin time among events.

    Pure function.
    """
    return max((e.time for e in events), default=default)


def next_watermark(last_timestamp: int, processed: list[Event]) -> int:
    """Compute the watermark after a run.

    Pure function. Never moves backwards.

    Args:
        last_timestamp: Watermark read at the start of the run
        processed: Every event that reached the notification stage

    Returns:
        max(last_timestamp, newest processed event time)
    """
    return max(last_timestamp, max_event_time(processed, default=last_timestamp))


def should_advance(last_timestamp: int, new_timestamp: int) -> bool:
    """Whether a watermark write is needed.

    Pure function.
    """
    return new_timestamp > last_timestamp
