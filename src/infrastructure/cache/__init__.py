"""Caches in front of slow platform lookups."""

from src.infrastructure.cache.roster_cache import CachedRoster, RosterCache

__all__: list[str] = ["CachedRoster", "RosterCache"]
