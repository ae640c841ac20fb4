"""
Key Normalization and Wildcard Patterns

Semantics:
    - Keys are normalized by stripping surrounding whitespace and
      case-folding. The same normalization applies to reads, writes and
      invalidation patterns.
    - ``*`` is the only special character. It matches zero or more of any
      character, colons included.
    - Every other character, regex metacharacters included, matches itself.
    - A pattern must match the whole key: ``user:42:*`` matches
      ``user:42:profile`` but not ``admin:user:42:profile``.
    - A pattern with no ``*`` is an exact key match.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from guidance_cache.core.config.constants import WILDCARD
from guidance_cache.core.exceptions import CacheKeyError


def normalize_key(key: Any) -> str:
    """
    Normalize a cache key.

    Non-string keys are coerced with ``str()``; ``None`` and keys that are
    empty after stripping are rejected.

    Raises:
        CacheKeyError: If the key cannot be used
    """
    if key is None:
        raise CacheKeyError("Cache key is None")
    if not isinstance(key, str):
        key = str(key)
    normalized = key.strip().casefold()
    if not normalized:
        raise CacheKeyError("Cache key is empty", details={"key": key})
    return normalized


def glob_to_regex(pattern: str) -> str:
    """
    Translate a glob pattern into an anchored regular expression source.

    >>> glob_to_regex("user:42:*")
    '^user:42:.*$'
    >>> glob_to_regex("a.b*")
    '^a\\\\.b.*$'
    """
    parts = pattern.split(WILDCARD)
    return "^" + ".*".join(re.escape(part) for part in parts) + "$"


@lru_cache(maxsize=256)
def _compile(normalized_pattern: str) -> re.Pattern[str]:
    return re.compile(glob_to_regex(normalized_pattern), re.DOTALL)


@dataclass(frozen=True)
class KeyPattern:
    """A normalized invalidation pattern."""

    source: str
    normalized: str

    @classmethod
    def parse(cls, pattern: Any) -> "KeyPattern":
        """
        Raises:
            CacheKeyError: If the pattern is not usable as a key
        """
        return cls(source=str(pattern), normalized=normalize_key(pattern))

    @property
    def is_wildcard(self) -> bool:
        return WILDCARD in self.normalized

    def matches(self, normalized_key: str) -> bool:
        if not self.is_wildcard:
            return normalized_key == self.normalized
        return _compile(self.normalized).match(normalized_key) is not None
