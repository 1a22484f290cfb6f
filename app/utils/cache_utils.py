"""
Cache utilities for Spread Pick'em
Provides a route caching decorator and leaderboard invalidation
"""

import functools

from flask import current_app, request

from app import cache

LEADERBOARD_PREFIX = "leaderboard"


def make_cache_key(*args, **kwargs):
    """Generate a cache key from request path, query string and arguments"""
    path = request.path
    query = request.query_string.decode("utf-8")
    args_str = "_".join(str(arg) for arg in args)
    kwargs_str = "_".join(f"{k}_{v}" for k, v in sorted(kwargs.items()))
    return f"{path}_{query}_{args_str}_{kwargs_str}".replace("/", "_")


def cached_route(timeout=300, key_prefix="view"):
    """
    Decorator for caching route responses

    Args:
        timeout: Cache timeout in seconds (default 5 minutes)
        key_prefix: Prefix for cache key
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            cache_key = f"{key_prefix}_{make_cache_key(*args, **kwargs)}"

            result = cache.get(cache_key)
            if result is not None:
                current_app.logger.debug(f"Cache hit for key: {cache_key}")
                return result

            result = f(*args, **kwargs)
            cache.set(cache_key, result, timeout=timeout)
            current_app.logger.debug(f"Cache set for key: {cache_key}")

            return result

        return wrapped

    return decorator


def invalidate_leaderboard_cache():
    """
    Drop cached leaderboards after grading or pick changes.

    Flask-Caching has no portable pattern delete, so the whole cache is
    cleared; leaderboards are the only cached responses.
    """
    try:
        cache.clear()
        current_app.logger.info("Leaderboard cache cleared")
    except Exception as e:
        current_app.logger.error(f"Failed to clear cache: {e}")
