"""TokenWatch - on-chain token health scanner with at-most-once alerting."""

__version__ = "1.0.0"
