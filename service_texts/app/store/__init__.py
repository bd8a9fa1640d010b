"""
Key-value store package for Texts Service.

Provides a thin async wrapper around Redis that bounds every call with a
timeout and reports transport failures as ``StoreUnavailableError``.
"""

from .redis_store import KeyValueStore, RedisKeyValueStore

__all__ = ["KeyValueStore", "RedisKeyValueStore"]
