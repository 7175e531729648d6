"""
Infrastructure Module

Backing store implementations for the cache.
"""
