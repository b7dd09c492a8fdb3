from __future__ import annotations

import logging

import pytest

from sesimiz_flags.domain.models import FlagKey, FlagRecord
from sesimiz_flags.effects import (
    AdminNotification,
    AuditEvent,
    LoggingAdminNotifier,
    dispatch_effects,
    plan_flag_update_effects,
)
from sesimiz_flags.gate import FeatureDisabledError, ensure_feature_enabled, feature_required


def test_plan_effects_describes_the_change() -> None:
    record = FlagRecord(key="messaging", enabled=False, rollout_status="canary")

    notification, audit = plan_flag_update_effects(record, actor_id=7, ip="127.0.0.1")

    assert isinstance(notification, AdminNotification)
    assert notification.title == "Feature flag updated: messaging"
    assert "disabled" in notification.message
    assert isinstance(audit, AuditEvent)
    assert audit.meta == {"key": "messaging", "enabled": False, "rollout_status": "canary"}


@pytest.mark.asyncio
async def test_dispatch_continues_after_a_failing_effect(caplog) -> None:
    effects = [object(), AuditEvent(event="FEATURE_FLAG_UPDATED", user_id=None)]

    with caplog.at_level(logging.INFO):
        done = await dispatch_effects(effects, channel="audit-test")  # type: ignore[arg-type]

    assert done == 1
    assert any(r.name == "audit-test" for r in caplog.records)
    assert any(r.levelno == logging.ERROR for r in caplog.records)


@pytest.mark.asyncio
async def test_logging_notifier_reports_zero_recipients() -> None:
    sent = await LoggingAdminNotifier().notify(AdminNotification(title="t", message="m"))
    assert sent == 0


def test_ensure_feature_enabled_raises_when_disabled(resolver) -> None:
    with pytest.raises(FeatureDisabledError) as excinfo:
        ensure_feature_enabled(resolver, FlagKey.ADMIN_PANEL)

    assert excinfo.value.key == "adminPanel"
    ensure_feature_enabled(resolver, "messaging")


def test_feature_required_guards_sync_callables(resolver) -> None:
    @feature_required(resolver, "adminPanel")
    def dashboard() -> str:
        return "ok"

    with pytest.raises(FeatureDisabledError):
        dashboard()

    resolver.set_override("adminPanel", True)
    assert dashboard() == "ok"
    assert dashboard.__name__ == "dashboard"


@pytest.mark.asyncio
async def test_feature_required_guards_async_callables(resolver) -> None:
    @feature_required(resolver, FlagKey.PASSWORD_RESET_V2)
    async def request_reset(email: str) -> str:
        return email

    with pytest.raises(FeatureDisabledError):
        await request_reset("a@b.c")

    resolver.set_override(FlagKey.PASSWORD_RESET_V2, True)
    assert await request_reset("a@b.c") == "a@b.c"
