"""taskdeck: task board client core (buckets, optimistic moves, realtime notifications)."""

__version__ = "0.1.0"
