"""
Feature flag resolver: a process-local cache of boolean flags over a store.

Resolution order for `is_enabled`:

1. in-process override (`set_override`), never expires
2. cached value from the last successful refresh
3. the static definition default (or False for unknown keys), memoised

Freshness is driven by `refresh`, which reloads the whole flag table at most
once per `refresh_interval_ms` unless forced, seeds rows for definitions the
store does not have yet, and swaps both cache maps in one step.

Usage:
    resolver = FeatureFlagResolver.from_settings(store)
    await resolver.refresh()
    if resolver.is_enabled(FlagKey.MESSAGING):
        ...
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from sesimiz_flags.config import Settings, get_settings
from sesimiz_flags.domain.definitions import build_definitions
from sesimiz_flags.domain.models import FlagDefinition, FlagKey, FlagRecord, FlagUpdate, FlagView, key_name
from sesimiz_flags.store.abstract import DuplicateFlagError, FlagStore
from sesimiz_flags.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_REFRESH_INTERVAL_MS = 300_000

KeyLike = Union[str, FlagKey]


class FeatureFlagResolver:
    """
    Three-tier flag resolver over a `FlagStore`.

    Parameters
    ----------
    store : FlagStore
        Persistence backend.
    definitions : mapping[str, FlagDefinition]
        Static definitions keyed by flag key.
    refresh_interval_ms : int
        Staleness bound for non-forced refreshes.
    clock : callable
        Monotonic seconds, used for staleness.
    now : callable
        Wall clock, used for audit stamps.
    """

    def __init__(
        self,
        store: FlagStore,
        definitions: Mapping[str, FlagDefinition],
        refresh_interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS,
        clock: Callable[[], float] = time.monotonic,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if refresh_interval_ms < 0:
            raise ValueError("refresh_interval_ms must be >= 0")
        self._store = store
        self._definitions: Dict[str, FlagDefinition] = dict(definitions)
        self._refresh_interval_ms = refresh_interval_ms
        self._clock = clock
        self._now = now or (lambda: datetime.now(UTC))

        self._enabled: Dict[str, bool] = {}
        self._records: Dict[str, FlagRecord] = {}
        self._overrides: Dict[str, bool] = {}
        self._last_refreshed_at: Optional[float] = None

    @classmethod
    def from_settings(
        cls, store: FlagStore, settings: Optional[Settings] = None
    ) -> "FeatureFlagResolver":
        settings = settings or get_settings()
        return cls(
            store,
            build_definitions(settings),
            refresh_interval_ms=settings.feature_flag_refresh_interval_ms,
        )

    @property
    def definitions(self) -> Dict[str, FlagDefinition]:
        return dict(self._definitions)

    @property
    def refresh_interval_ms(self) -> int:
        return self._refresh_interval_ms

    @property
    def last_refreshed_at(self) -> Optional[float]:
        """Clock reading of the last successful full reload, if any."""
        return self._last_refreshed_at

    def cached(self) -> Dict[str, bool]:
        return dict(self._enabled)

    def overrides(self) -> Dict[str, bool]:
        return dict(self._overrides)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def is_enabled(self, key: KeyLike) -> bool:
        """Resolve a flag without touching the store. Unknown keys are False."""
        name = key_name(key)
        if name in self._overrides:
            return self._overrides[name]
        if name in self._enabled:
            return self._enabled[name]
        value = self._default_for(name)
        self._enabled[name] = value
        return value

    def set_override(self, key: KeyLike, value: bool) -> None:
        self._overrides[key_name(key)] = bool(value)

    def clear_override(self, key: KeyLike) -> None:
        self._overrides.pop(key_name(key), None)

    def _default_for(self, name: str) -> bool:
        definition = self._definitions.get(name)
        return definition.default_value if definition is not None else False

    def _is_fresh(self) -> bool:
        if self._last_refreshed_at is None or not self._enabled:
            return False
        elapsed_ms = (self._clock() - self._last_refreshed_at) * 1000
        return elapsed_ms < self._refresh_interval_ms

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self, force: bool = False) -> Dict[str, bool]:
        """
        Reload the cache from the store when stale (or when forced).

        Store failures propagate and leave the current cache untouched.

        Returns
        -------
        dict[str, bool]
            The cached enabled map after the call.
        """
        if not force and self._is_fresh():
            return dict(self._enabled)

        records = await self._load_reconciled()

        enabled = {key: record.enabled for key, record in records.items()}
        for key, definition in self._definitions.items():
            if key not in enabled:
                log.warning("Flag missing after reconcile, using default", extra={"flag": key})
                enabled[key] = definition.default_value

        self._enabled, self._records = enabled, records
        self._last_refreshed_at = self._clock()
        log.debug("Feature flags refreshed", extra={"flags": len(enabled), "forced": force})
        return dict(self._enabled)

    async def _load_reconciled(self) -> Dict[str, FlagRecord]:
        records = {record.key: record for record in await self._store.find_many()}
        missing = [d for key, d in self._definitions.items() if key not in records]
        raced = False
        for definition in missing:
            try:
                records[definition.key] = await self._store.create(self._seed_data(definition))
                log.info(
                    "Seeded feature flag",
                    extra={"flag": definition.key, "enabled": definition.default_value},
                )
            except DuplicateFlagError:
                log.warning("Feature flag seeded concurrently", extra={"flag": definition.key})
                raced = True
        if raced:
            reread = {record.key: record for record in await self._store.find_many()}
            records = {**records, **reread}
        return records

    @staticmethod
    def _seed_data(definition: FlagDefinition) -> Dict[str, Any]:
        return {
            "key": definition.key,
            "enabled": definition.default_value,
            "description": definition.description or None,
        }

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def _view(self, key: str) -> Optional[FlagView]:
        record = self._records.get(key)
        definition = self._definitions.get(key)
        if record is None and definition is None:
            return None
        override = self._overrides.get(key)
        if record is None:
            return FlagView(
                key=key,
                display_name=definition.display_name,
                description=definition.description or None,
                enabled=self._enabled.get(key, definition.default_value),
                default_value=definition.default_value,
                defined=True,
                persisted=False,
                override=override,
            )
        return FlagView(
            key=key,
            display_name=definition.display_name if definition else key,
            description=record.description or (definition.description if definition else None),
            enabled=record.enabled,
            default_value=definition.default_value if definition else None,
            rollout_status=record.rollout_status,
            metadata=record.metadata,
            last_changed_at=record.last_changed_at,
            last_changed_by=record.last_changed_by,
            created_at=record.created_at,
            updated_at=record.updated_at,
            defined=definition is not None,
            persisted=True,
            override=override,
        )

    async def list_all(self) -> List[FlagView]:
        """Merged record/definition views sorted by key."""
        await self.refresh()
        keys = sorted(set(self._records) | set(self._definitions))
        return [view for view in map(self._view, keys) if view is not None]

    async def get_one(self, key: KeyLike) -> Optional[FlagView]:
        """Merged view for one key, or None when neither record nor definition exists."""
        await self.refresh()
        return self._view(key_name(key))

    # ------------------------------------------------------------------
    # Administrative update
    # ------------------------------------------------------------------

    async def update(self, change: FlagUpdate) -> FlagRecord:
        """
        Apply a partial update and reload the cache.

        Creates the row when none exists, seeding omitted fields from the
        definition. Store write failures propagate without touching the cache.
        """
        await self.refresh()
        stamp = {"last_changed_at": self._now(), "last_changed_by": change.actor_id}
        fields = change.changed_fields()

        if change.key in self._records:
            record = await self._store.update(change.key, {**fields, **stamp})
        else:
            record, created = await self._create_or_update(change.key, fields, stamp)
            if created:
                log.info("Created feature flag record", extra={"flag": change.key})

        self._overrides.pop(change.key, None)
        log.info(
            "Feature flag updated",
            extra={"flag": record.key, "enabled": record.enabled, "actor_id": change.actor_id},
        )
        await self.refresh(force=True)
        return record

    async def _create_or_update(
        self, key: str, fields: Dict[str, Any], stamp: Dict[str, Any]
    ) -> Tuple[FlagRecord, bool]:
        definition = self._definitions.get(key)
        data: Dict[str, Any] = {
            "key": key,
            "enabled": definition.default_value if definition else False,
            "rollout_status": None,
            "description": (definition.description or None) if definition else None,
            "metadata": None,
        }
        data.update(fields)
        data.update(stamp)
        try:
            return await self._store.create(data), True
        except DuplicateFlagError:
            # Row appeared after our last read; write only what the caller set.
            log.warning("Feature flag created concurrently, updating instead", extra={"flag": key})
            return await self._store.update(key, {**fields, **stamp}), False


__all__ = ["DEFAULT_REFRESH_INTERVAL_MS", "FeatureFlagResolver"]
