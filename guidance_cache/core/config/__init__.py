"""
Configuration Module

Centralized, type-safe configuration for the guidance cache service.

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: Operation enums, per-domain TTLs and key pattern builders

Usage:
------
```python
from guidance_cache.core.config import get_settings
from guidance_cache.core.config.constants import CacheTTL, CachePatterns
```
"""

from .constants import CacheLogType, CachePatterns, CacheTTL
from .settings import Settings, get_settings, reload_settings

__all__ = [
    "CacheLogType",
    "CachePatterns",
    "CacheTTL",
    "Settings",
    "get_settings",
    "reload_settings",
]
