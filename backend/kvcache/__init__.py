"""
KV Cache

TTL-aware key-value cache service fronting Redis.
"""

__version__ = "0.1.0"
