"""
Caching package for Texts Service.

Provides the fingerprint-guarded cache of derived text metrics and the
per-user text listing cache, both on top of the shared key-value store.
"""

from .fingerprint import content_fingerprint
from .derived_cache import DerivedCache
from .list_cache import TextListCache

__all__ = ["content_fingerprint", "DerivedCache", "TextListCache"]
