"""
Infrastructure Module

Cache store, backend HTTP client and monitoring listeners.
"""
