"""
Exception Module

Structured exception hierarchy for the guidance cache service.

Module Structure:
-----------------
- **base.py**: GuidanceCacheError base class
- **cache.py**: Cache store exceptions
- **backend.py**: Backend REST client exceptions

Usage:
------
```python
from guidance_cache.core.exceptions import BackendAPIError, CacheKeyError
```
"""

from guidance_cache.core.exceptions.backend import BackendAPIError, BackendAuthenticationError
from guidance_cache.core.exceptions.base import GuidanceCacheError
from guidance_cache.core.exceptions.cache import (
    CacheError,
    CacheKeyError,
    CacheLifecycleError,
)

__all__ = [
    # Base
    "GuidanceCacheError",
    # Cache
    "CacheError",
    "CacheKeyError",
    "CacheLifecycleError",
    # Backend
    "BackendAPIError",
    "BackendAuthenticationError",
]
