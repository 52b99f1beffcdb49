"""Core primitives shared across TokenWatch."""
