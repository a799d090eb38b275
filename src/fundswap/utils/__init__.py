"""Utility modules for fundswap."""

from fundswap.utils.cache import CacheEntry, TTLCache
from fundswap.utils.http import JsonApi, RateLimiter

__all__ = ["CacheEntry", "JsonApi", "RateLimiter", "TTLCache"]
