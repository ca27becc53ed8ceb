"""
logship: on-device event buffering and log shipping.

Captures user-interaction events, buffers them under concurrent producers,
and ships them to a per-actor append-only remote log on a schedule.
"""

__version__ = "0.1.0"
