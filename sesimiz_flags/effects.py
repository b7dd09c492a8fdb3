"""
Side effects produced by administrative flag changes.

The resolver never performs these itself. `plan_flag_update_effects` turns a
confirmed change into plain values and `dispatch_effects` performs them
fire-and-forget: a failing effect is logged and skipped, it never undoes the
flag update that produced it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union, runtime_checkable

from sesimiz_flags.config import get_settings
from sesimiz_flags.domain.models import FlagRecord
from sesimiz_flags.utils.logging import get_logger

log = get_logger(__name__)

FEATURE_FLAG_UPDATED = "FEATURE_FLAG_UPDATED"


@dataclass(frozen=True)
class AuditEvent:
    """Structured security event, written to the security log channel."""

    event: str
    user_id: Optional[int] = None
    ip: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)
    message: Optional[str] = None


@dataclass(frozen=True)
class AdminNotification:
    """In-app notification fanned out to every active admin."""

    title: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)


Effect = Union[AuditEvent, AdminNotification]


@runtime_checkable
class AdminNotifier(Protocol):
    async def notify(self, notification: AdminNotification) -> int:
        """Deliver the notification and return the number of recipients."""
        ...


class LoggingAdminNotifier:
    """Notifier that only logs; used when no notification table is reachable."""

    async def notify(self, notification: AdminNotification) -> int:
        log.info(notification.title, extra={"notification": notification.data})
        return 0


def log_security_event(event: AuditEvent, channel: Optional[str] = None) -> None:
    """
    Log a structured security event on the security channel.

    The channel defaults to `SECURITY_EVENT_LOG_CHANNEL`.
    """
    security_log = get_logger(channel or get_settings().security_event_log_channel)
    security_log.info(
        event.message or event.event,
        extra={
            "event": event.event,
            "user_id": event.user_id,
            "ip": event.ip,
            "meta": event.meta,
        },
    )


def plan_flag_update_effects(
    record: FlagRecord,
    actor_id: Optional[int],
    ip: Optional[str] = None,
) -> List[Effect]:
    """Build the audit entry and admin notification for a confirmed flag update."""
    state = "enabled" if record.enabled else "disabled"
    return [
        AdminNotification(
            title=f"Feature flag updated: {record.key}",
            message=f'"{record.key}" is now {state}.',
            data={"key": record.key, "enabled": record.enabled, "actor_id": actor_id},
        ),
        AuditEvent(
            event=FEATURE_FLAG_UPDATED,
            user_id=actor_id,
            ip=ip,
            meta={
                "key": record.key,
                "enabled": record.enabled,
                "rollout_status": record.rollout_status,
            },
        ),
    ]


async def dispatch_effects(
    effects: Sequence[Effect],
    notifier: Optional[AdminNotifier] = None,
    channel: Optional[str] = None,
) -> int:
    """
    Perform effects in order, isolating failures.

    Returns
    -------
    int
        Number of effects that completed.
    """
    notifier = notifier or LoggingAdminNotifier()
    done = 0
    for effect in effects:
        try:
            if isinstance(effect, AuditEvent):
                log_security_event(effect, channel=channel)
            elif isinstance(effect, AdminNotification):
                await notifier.notify(effect)
            else:
                raise TypeError(f"Unsupported effect: {type(effect).__name__}")
            done += 1
        except Exception:  # noqa: BLE001 - effects must not undo the flag change
            log.exception("Effect dispatch failed", extra={"effect": type(effect).__name__})
    return done


__all__ = [
    "FEATURE_FLAG_UPDATED",
    "AuditEvent",
    "AdminNotification",
    "AdminNotifier",
    "Effect",
    "LoggingAdminNotifier",
    "dispatch_effects",
    "log_security_event",
    "plan_flag_update_effects",
]
