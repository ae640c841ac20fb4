"""
Guidance Cache Service

In-process, time-bounded, versioned cache for backend API responses, with
wildcard invalidation, warming, and an instrumentation log feeding metrics
and a live event stream.
"""

__version__ = "1.0.0"
