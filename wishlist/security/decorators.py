from __future__ import annotations

from collections.abc import Callable

from wishlist.security.scope import AdminLevel


def require_admin_level(level: AdminLevel | str) -> Callable:
    """
    Decorator-style API.

    Implementation detail:
    - This decorator does NOT perform auth itself.
    - It attaches metadata that the global security dependency reads
      *after* routing (during dependency resolution).
    """

    required = AdminLevel(level)

    def decorator(fn: Callable) -> Callable:
        existing = getattr(fn, "__security_min_admin_level__", AdminLevel.USER)
        setattr(fn, "__security_min_admin_level__", required if required.at_least(existing) else existing)
        return fn

    return decorator


def filter_hidden_content() -> Callable:
    """
    Decorator-style API.

    Enables transparent filtering of hidden kudos posts for this endpoint.
    """

    def decorator(fn: Callable) -> Callable:
        setattr(fn, "__security_filter_hidden_content__", True)
        return fn

    return decorator
