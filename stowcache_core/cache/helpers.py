"""StowCache Helpers - Convenience Entry Point.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from typing import Any, Optional

from stowcache_core.cache.manager import CacheManager


def cache(
    manager: CacheManager,
    key: Optional[str] = None,
    value: Any = None,
    ttl: Optional[int] = None,
) -> Any:
    """Read, write or reach the manager in one call.

    - ``cache(manager, "key", value)`` stores value and returns the result
    - ``cache(manager, "key")`` returns the cached value or None
    - ``cache(manager)`` returns the manager itself

    Keys may carry a driver name, as in ``cache(manager, "redis:token")``.
    """
    if key is None:
        return manager
    if value is not None:
        return manager.set(key, value, ttl)
    return manager.get(key)


__all__ = ["cache"]
