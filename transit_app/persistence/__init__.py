"""
Cache persistence for transit months and ephemeris batches.

Caches are explicit objects built around an injected backend and policy;
nothing here is a module-level singleton.
"""

from .backends import CacheBackend, CacheEntry, MemoryCacheBackend, SqliteCacheBackend
from .caches import (
    CachePolicy,
    EphemerisCache,
    MonthCache,
    cleanup_expired_caches,
    clear_all_caches,
)

__all__ = [
    "CacheBackend",
    "CacheEntry",
    "MemoryCacheBackend",
    "SqliteCacheBackend",
    "CachePolicy",
    "MonthCache",
    "EphemerisCache",
    "cleanup_expired_caches",
    "clear_all_caches",
]
