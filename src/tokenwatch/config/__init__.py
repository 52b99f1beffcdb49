"""Configuration module for TokenWatch.

Usage:
    from tokenwatch.config import get_settings

    settings = get_settings()  # Cached singleton
    print(settings.min_marketcap)

Note:
    There is no module-level `settings` instance; use `get_settings()`
    so tests can clear the cache and reload from a patched environment.
"""

from tokenwatch.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
