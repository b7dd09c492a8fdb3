"""
Guards for feature-gated code paths.

    @feature_required(resolver, FlagKey.PASSWORD_RESET_V2)
    async def request_password_reset(email: str) -> None:
        ...

Raises `FeatureDisabledError` instead of calling through while the flag
resolves False. The resolver is only read, never refreshed, so guards stay
store-free.
"""

from __future__ import annotations

import functools
import inspect
from typing import Any, Callable, TypeVar

from sesimiz_flags.domain.models import key_name
from sesimiz_flags.resolver import FeatureFlagResolver, KeyLike

F = TypeVar("F", bound=Callable[..., Any])


class FeatureDisabledError(PermissionError):
    """The requested feature is switched off."""

    code = "FORBIDDEN"

    def __init__(self, key: str) -> None:
        super().__init__("This feature is currently disabled")
        self.key = key


def ensure_feature_enabled(resolver: FeatureFlagResolver, key: KeyLike) -> None:
    if not resolver.is_enabled(key):
        raise FeatureDisabledError(key_name(key))


def feature_required(resolver: FeatureFlagResolver, key: KeyLike) -> Callable[[F], F]:
    """Decorate a sync or async callable so it only runs while `key` is enabled."""

    def decorator(func: F) -> F:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                ensure_feature_enabled(resolver, key)
                return await func(*args, **kwargs)

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            ensure_feature_enabled(resolver, key)
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


__all__ = ["FeatureDisabledError", "ensure_feature_enabled", "feature_required"]
