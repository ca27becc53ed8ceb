# src/logship/contracts/enums.py
"""Event kinds, shipper states, and cycle outcomes.

EventKind values are the wire names written to the remote log. They must
stay stable: changing one changes the text of every future log line.
"""

from enum import StrEnum


class EventKind(StrEnum):
    """Category of a user-interaction event."""

    APP_ENTERED = "app_entered"
    TOPIC_SUMMARY_VIEWED = "topic_summary_viewed"
    SUBTOPIC_SUMMARY_VIEWED = "subtopic_summary_viewed"
    REDDIT_SUMMARY_VIEWED = "reddit_summary_viewed"
    PODCAST_PLAYED = "podcast_played"
    PODCAST_PAUSED = "podcast_paused"
    PODCAST_SEEKED = "podcast_seeked"
    SETTINGS_OPENED = "settings_opened"
    PREFERENCES_OPENED = "preferences_opened"
    REFRESH_TRIGGERED = "refresh_triggered"


class ShipperState(StrEnum):
    """State of the shipper. There is no persistent failure state."""

    IDLE = "idle"
    SHIPPING = "shipping"


class ShipOutcome(StrEnum):
    """Result of a single ship cycle."""

    SHIPPED = "shipped"
    FAILED = "failed"
    SKIPPED_EMPTY = "skipped_empty"
    SKIPPED_IN_FLIGHT = "skipped_in_flight"
    SKIPPED_NO_IDENTITY = "skipped_no_identity"
    SKIPPED_BACKOFF = "skipped_backoff"
