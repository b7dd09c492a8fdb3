from __future__ import annotations

import pytest

from sesimiz_flags.domain.models import FlagKey, FlagRecord
from sesimiz_flags.resolver import FeatureFlagResolver
from sesimiz_flags.store.abstract import FlagStoreError


def test_is_enabled_falls_back_to_definition_default_without_store_access(resolver, store) -> None:
    assert resolver.is_enabled("messaging") is True
    assert resolver.is_enabled("adminPanel") is False
    assert store.find_many_calls == 0


def test_is_enabled_memoises_computed_default(resolver) -> None:
    assert resolver.cached() == {}

    resolver.is_enabled("messaging")

    assert resolver.cached() == {"messaging": True}


def test_unknown_key_is_disabled_and_never_raises(resolver, store) -> None:
    assert resolver.is_enabled("doesNotExist") is False
    assert resolver.is_enabled(FlagKey.UNREGISTERED) is False
    assert store.find_many_calls == 0


def test_is_enabled_accepts_flag_key_members(resolver) -> None:
    assert resolver.is_enabled(FlagKey.MESSAGING) is True
    assert resolver.is_enabled(FlagKey.ADMIN_PANEL) is False


def test_flag_key_parse_maps_unknown_strings_to_sentinel() -> None:
    assert FlagKey.parse("adminPanel") is FlagKey.ADMIN_PANEL
    assert FlagKey.parse(FlagKey.MESSAGING) is FlagKey.MESSAGING
    assert FlagKey.parse("nope") is FlagKey.UNREGISTERED


@pytest.mark.asyncio
async def test_cached_value_wins_over_definition_default(resolver, store) -> None:
    store._rows["messaging"] = FlagRecord(key="messaging", enabled=False)

    await resolver.refresh()

    assert resolver.is_enabled("messaging") is False


@pytest.mark.asyncio
async def test_override_wins_regardless_of_cache_and_store(resolver, store) -> None:
    store._rows["adminPanel"] = FlagRecord(key="adminPanel", enabled=False)
    await resolver.refresh()

    resolver.set_override("adminPanel", True)
    await resolver.refresh(force=True)

    assert resolver.is_enabled("adminPanel") is True
    assert resolver.overrides() == {"adminPanel": True}


def test_override_then_clear_restores_default(resolver) -> None:
    resolver.set_override("messaging", False)
    assert resolver.is_enabled("messaging") is False

    resolver.clear_override("messaging")

    assert resolver.is_enabled("messaging") is True


def test_clear_override_for_unknown_key_is_a_noop(resolver) -> None:
    resolver.clear_override("never-set")
    assert resolver.overrides() == {}


def test_override_applies_to_unregistered_keys(resolver) -> None:
    resolver.set_override("experimental", True)
    assert resolver.is_enabled("experimental") is True


@pytest.mark.asyncio
async def test_is_enabled_serves_last_good_cache_during_outage(resolver, store) -> None:
    await resolver.refresh()
    store.fail_next["find_many"] = FlagStoreError("connection refused")

    with pytest.raises(FlagStoreError):
        await resolver.refresh(force=True)

    assert resolver.is_enabled("adminPanel") is False
    assert resolver.is_enabled("messaging") is True


def test_negative_refresh_interval_is_rejected(store, definitions) -> None:
    with pytest.raises(ValueError):
        FeatureFlagResolver(store, definitions, refresh_interval_ms=-1)


def test_from_settings_uses_configured_interval_and_env_defaults(store, test_settings) -> None:
    settings = test_settings.model_copy(
        update={"feature_flag_refresh_interval_ms": 1_234, "feature_messaging_enabled": "on"}
    )

    resolver = FeatureFlagResolver.from_settings(store, settings)

    assert resolver.refresh_interval_ms == 1_234
    assert resolver.is_enabled(FlagKey.MESSAGING) is True
    assert resolver.is_enabled(FlagKey.MIGRATION_MODE) is False
    assert set(resolver.definitions) == {
        "messaging",
        "adminPanel",
        "emailNotifications",
        "migrationMode",
        "passwordResetV2",
    }
