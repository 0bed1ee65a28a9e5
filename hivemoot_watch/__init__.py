"""Watch GitHub notifications for @mentions and emit acknowledgeable events."""

__version__ = "0.1.0"
