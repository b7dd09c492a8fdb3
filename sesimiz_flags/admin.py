"""
Administrative workflow on top of the resolver.

This is the layer an HTTP handler or the CLI calls: it validates incoming
payloads, refuses keys that are neither defined nor persisted, applies the
update through the resolver, and dispatches the resulting audit and
notification effects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from sesimiz_flags.domain.models import FlagKey, FlagRecord, FlagUpdate, FlagView, key_name
from sesimiz_flags.effects import AdminNotifier, Effect, dispatch_effects, plan_flag_update_effects
from sesimiz_flags.resolver import FeatureFlagResolver, KeyLike
from sesimiz_flags.utils.logging import get_logger

log = get_logger(__name__)


class FlagNotFoundError(LookupError):
    """No record and no definition exist for the requested key."""

    code = "FLAG_NOT_FOUND"

    def __init__(self, key: str) -> None:
        super().__init__(f"Feature flag '{key}' is not defined")
        self.key = key


class FlagValidationError(ValueError):
    """The update payload failed validation."""

    code = "VALIDATION_ERROR"

    def __init__(self, errors: List[Dict[str, Any]]) -> None:
        super().__init__("Invalid feature flag payload")
        self.errors = errors


@dataclass(frozen=True)
class FlagChange:
    record: FlagRecord
    effects: List[Effect] = field(default_factory=list)


class FlagAdminService:
    def __init__(
        self,
        resolver: FeatureFlagResolver,
        notifier: Optional[AdminNotifier] = None,
        security_channel: Optional[str] = None,
    ) -> None:
        self.resolver = resolver
        self.notifier = notifier
        self.security_channel = security_channel

    def defaults(self) -> Dict[str, bool]:
        return {key: d.default_value for key, d in sorted(self.resolver.definitions.items())}

    async def list_flags(self) -> Dict[str, Any]:
        views = await self.resolver.list_all()
        return {"flags": views, "defaults": self.defaults()}

    async def get_flag(self, key: KeyLike) -> FlagView:
        view = await self.resolver.get_one(key)
        if view is None:
            raise FlagNotFoundError(key_name(key))
        return view

    async def _is_known(self, key: str) -> bool:
        if FlagKey.parse(key) is not FlagKey.UNREGISTERED and key in self.resolver.definitions:
            return True
        return await self.resolver.get_one(key) is not None

    async def update_flag(
        self,
        key: KeyLike,
        payload: Mapping[str, Any],
        actor_id: Optional[int] = None,
        ip: Optional[str] = None,
        allow_adhoc: bool = False,
    ) -> FlagChange:
        """
        Validate and apply an update, then dispatch its effects.

        Parameters
        ----------
        key : str | FlagKey
            Target flag.
        payload : mapping
            Any of `enabled`, `rollout_status`, `description`, `metadata`.
        actor_id : int | None
            Acting user; None for system-initiated changes.
        ip : str | None
            Remote address recorded in the audit event.
        allow_adhoc : bool
            Permit keys that have neither a definition nor a record.

        Raises
        ------
        FlagValidationError
            If the payload is malformed.
        FlagNotFoundError
            If the key is unknown and `allow_adhoc` is False.
        """
        try:
            change = FlagUpdate(key=key_name(key), actor_id=actor_id, **dict(payload))
        except (ValidationError, TypeError) as exc:
            errors = exc.errors() if isinstance(exc, ValidationError) else [{"msg": str(exc)}]
            raise FlagValidationError(errors) from exc

        if not allow_adhoc and not await self._is_known(change.key):
            log.warning(
                "Rejected update for unknown flag", extra={"flag": change.key, "actor_id": actor_id}
            )
            raise FlagNotFoundError(change.key)

        record = await self.resolver.update(change)
        effects = plan_flag_update_effects(record, actor_id=actor_id, ip=ip)
        await dispatch_effects(effects, notifier=self.notifier, channel=self.security_channel)
        return FlagChange(record=record, effects=effects)


__all__ = ["FlagAdminService", "FlagChange", "FlagNotFoundError", "FlagValidationError"]
