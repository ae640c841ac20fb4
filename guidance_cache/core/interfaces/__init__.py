from .cache import CacheEventListener, Clock, FetchFunction, TokenProvider

__all__ = [
    "CacheEventListener",
    "Clock",
    "FetchFunction",
    "TokenProvider",
]
