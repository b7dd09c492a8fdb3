from __future__ import annotations

import pytest

from sesimiz_flags.domain.models import FlagRecord, FlagUpdate
from sesimiz_flags.store.abstract import FlagStoreError

ACTOR_ID = 42


@pytest.mark.asyncio
async def test_list_all_seeds_empty_store_and_sorts_by_key(resolver, store) -> None:
    views = await resolver.list_all()

    assert [v.key for v in views] == ["adminPanel", "messaging"]
    assert [v.enabled for v in views] == [False, True]
    assert all(v.persisted and v.defined for v in views)
    assert set(store.rows) == {"adminPanel", "messaging"}


@pytest.mark.asyncio
async def test_list_all_includes_adhoc_rows_without_duplicates(resolver, store) -> None:
    store._rows["aaaExperiment"] = FlagRecord(key="aaaExperiment", enabled=True)

    views = await resolver.list_all()

    keys = [v.key for v in views]
    assert keys == sorted(keys)
    assert len(keys) == len(set(keys))
    adhoc = views[0]
    assert adhoc.key == "aaaExperiment"
    assert adhoc.defined is False
    assert adhoc.display_name == "aaaExperiment"
    assert adhoc.default_value is None


@pytest.mark.asyncio
async def test_get_one_distinguishes_not_found_from_disabled(resolver) -> None:
    view = await resolver.get_one("adminPanel")

    assert view is not None
    assert view.enabled is False
    assert await resolver.get_one("nope") is None


@pytest.mark.asyncio
async def test_record_description_overrides_static_one(resolver, store) -> None:
    await resolver.refresh()
    await resolver.update(FlagUpdate(key="messaging", description="Inbox rollout"))

    view = await resolver.get_one("messaging")

    assert view.description == "Inbox rollout"
    assert view.display_name == "Messaging"


@pytest.mark.asyncio
async def test_update_enables_flag_and_stamps_actor(resolver, fixed_now) -> None:
    await resolver.list_all()

    record = await resolver.update(FlagUpdate(key="adminPanel", enabled=True, actor_id=ACTOR_ID))

    assert record.enabled is True
    assert record.last_changed_by == ACTOR_ID
    assert record.last_changed_at == fixed_now
    assert resolver.is_enabled("adminPanel") is True


@pytest.mark.asyncio
async def test_update_clears_prior_override(resolver) -> None:
    resolver.set_override("adminPanel", False)

    await resolver.update(FlagUpdate(key="adminPanel", enabled=True, actor_id=ACTOR_ID))

    assert "adminPanel" not in resolver.overrides()
    assert resolver.is_enabled("adminPanel") is True


@pytest.mark.asyncio
async def test_rollout_only_update_keeps_enabled(resolver, store) -> None:
    await resolver.update(FlagUpdate(key="messaging", enabled=False, actor_id=ACTOR_ID))

    record = await resolver.update(FlagUpdate(key="messaging", rollout_status="canary"))

    assert record.enabled is False
    assert record.rollout_status == "canary"
    assert store.rows["messaging"].enabled is False
    assert record.last_changed_by is None


@pytest.mark.asyncio
async def test_update_on_empty_store_seeds_then_updates(resolver, store) -> None:
    record = await resolver.update(FlagUpdate(key="adminPanel", enabled=True, actor_id=ACTOR_ID))

    assert record.enabled is True
    assert set(store.rows) == {"adminPanel", "messaging"}
    assert store.create_calls == 2
    assert store.update_calls == 1
    assert store.rows["messaging"].last_changed_by is None


@pytest.mark.asyncio
async def test_update_on_adhoc_key_creates_record_with_nulls(resolver, store) -> None:
    record = await resolver.update(
        FlagUpdate(key="storyReactions", metadata={"owner": "growth"}, actor_id=ACTOR_ID)
    )

    assert record.enabled is False
    assert record.description is None
    assert record.metadata == {"owner": "growth"}
    assert store.rows["storyReactions"].last_changed_by == ACTOR_ID
    assert resolver.is_enabled("storyReactions") is False
    assert [v.key for v in await resolver.list_all()] == [
        "adminPanel",
        "messaging",
        "storyReactions",
    ]


@pytest.mark.asyncio
async def test_update_falls_back_to_store_update_when_create_races(resolver, store) -> None:
    await resolver.refresh()
    # Row written by another process after our last read.
    await store.create({"key": "lateFlag", "enabled": True})

    record = await resolver.update(FlagUpdate(key="lateFlag", rollout_status="canary"))

    assert record.enabled is True
    assert record.rollout_status == "canary"
    assert store.update_calls == 1


@pytest.mark.asyncio
async def test_failed_write_propagates_without_cache_mutation(resolver, store) -> None:
    await resolver.refresh()
    resolver.set_override("adminPanel", False)
    reads_before = store.find_many_calls
    store.fail_next["update"] = FlagStoreError("read-only replica")

    with pytest.raises(FlagStoreError):
        await resolver.update(FlagUpdate(key="adminPanel", enabled=True))

    assert resolver.cached() == {"adminPanel": False, "messaging": True}
    assert resolver.overrides() == {"adminPanel": False}
    assert store.find_many_calls == reads_before
    assert store.rows["adminPanel"].enabled is False


@pytest.mark.asyncio
async def test_update_forces_refresh(resolver, store) -> None:
    await resolver.refresh()
    reads_before = store.find_many_calls

    await resolver.update(FlagUpdate(key="messaging", enabled=False))

    assert store.find_many_calls == reads_before + 1
    assert resolver.is_enabled("messaging") is False


@pytest.mark.asyncio
async def test_explicit_null_description_clears_it(resolver, store) -> None:
    await resolver.refresh()

    record = await resolver.update(FlagUpdate(key="messaging", description=None))

    assert record.description is None
    view = await resolver.get_one("messaging")
    assert view.description == "Private messages."
