# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/cache/verified_bridge_cache.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Verified Bridge Cache.
This module implements a small in-memory memo of bridge ids known to exist in
storage. The bridge event logger consults it before writing a log row so that
repeated events for the same bridge skip the existence query. Features:
- Maximum size limit with LRU eviction
- Optional TTL so deleted bridges are eventually re-checked
- Explicit reset for tests

Losing entries only costs an extra existence query.

Examples:
    >>> from mcpbridge.cache.verified_bridge_cache import VerifiedBridgeCache
    >>> cache = VerifiedBridgeCache(max_size=2)
    >>> cache.add('a')
    >>> cache.add('b')
    >>> cache.contains('a')
    True
    >>> cache.add('c')  # evicts 'b', the least recently used
    >>> sorted(cache._entries.keys())
    ['a', 'c']
    >>> cache.reset()
    >>> len(cache)
    0
"""

# Standard
from collections import OrderedDict
import time
from typing import Optional


class VerifiedBridgeCache:
    """
    Bounded memo of verified bridge ids.

    Attributes:
        max_size: Maximum number of entries
        ttl: Time-to-live in seconds, or None for no expiry
        _entries: Cache storage

    Examples:
        >>> cache = VerifiedBridgeCache(max_size=10, ttl=None)
        >>> cache.contains('missing')
        False
        >>> cache.add('bridge-1')
        >>> 'bridge-1' in cache
        True
        >>> cache.discard('bridge-1')
        >>> cache.contains('bridge-1')
        False
    """

    def __init__(self, max_size: int = 1000, ttl: Optional[float] = 3600):
        """Initialize cache.

        Args:
            max_size: Maximum number of entries
            ttl: Time-to-live in seconds, or None for no expiry
        """
        self.max_size = max_size
        self.ttl = ttl
        self._entries: "OrderedDict[str, Optional[float]]" = OrderedDict()

    def contains(self, bridge_id: str) -> bool:
        """
        Check whether a bridge id is known to exist.

        Args:
            bridge_id: Bridge primary key

        Returns:
            bool: True when the id was verified and has not expired

        Examples:
            >>> cache = VerifiedBridgeCache(ttl=0.1)
            >>> cache.add('b')
            >>> cache.contains('b')
            True
            >>> import time
            >>> time.sleep(0.2)
            >>> cache.contains('b')
            False
        """
        if bridge_id not in self._entries:
            return False

        expires_at = self._entries[bridge_id]
        if expires_at is not None and time.time() > expires_at:
            del self._entries[bridge_id]
            return False

        self._entries.move_to_end(bridge_id)
        return True

    def add(self, bridge_id: str) -> None:
        """
        Remember a bridge id as existing.

        Args:
            bridge_id: Bridge primary key
        """
        if self.max_size <= 0:
            return

        if bridge_id not in self._entries and len(self._entries) >= self.max_size:
            # Remove least recently used
            self._entries.popitem(last=False)

        self._entries[bridge_id] = time.time() + self.ttl if self.ttl is not None else None
        self._entries.move_to_end(bridge_id)

    def discard(self, bridge_id: str) -> None:
        """
        Forget a bridge id, e.g. after the bridge was deleted.

        Args:
            bridge_id: Bridge primary key
        """
        self._entries.pop(bridge_id, None)

    def reset(self) -> None:
        """Clear all entries."""
        self._entries.clear()

    def __contains__(self, bridge_id: object) -> bool:
        """Support ``in`` checks.

        Args:
            bridge_id: Bridge primary key

        Returns:
            bool: Same as :meth:`contains`
        """
        return isinstance(bridge_id, str) and self.contains(bridge_id)

    def __len__(self) -> int:
        """Number of cached ids.

        Returns:
            int: Entry count
        """
        return len(self._entries)
