"""
Static flag definitions for the Sesimiz Ol platform.

Each definition's default value is resolved once, when the definitions are
built, from its environment variable (read through `Settings`) or from the
hardcoded fallback below.
"""
from __future__ import annotations

from typing import Any, Dict, List, NamedTuple, Optional

from sesimiz_flags.config import Settings, get_settings
from sesimiz_flags.domain.models import FlagDefinition, FlagKey

TRUTHY_STRINGS = frozenset({"true", "1", "yes", "on"})


def coerce_boolean(value: Any, fallback: bool = False) -> bool:
    """
    Interpret an environment value as a flag default.

    Booleans pass through; strings are truthy when they match one of
    `TRUTHY_STRINGS` case-insensitively. Unset values yield `fallback`.
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return fallback
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    return False


class _FlagSource(NamedTuple):
    key: FlagKey
    display_name: str
    description: str
    setting: str
    env_var: str
    fallback: bool


_SOURCES: List[_FlagSource] = [
    _FlagSource(
        FlagKey.MESSAGING,
        "Messaging",
        "Private messages between storytellers and readers.",
        "feature_messaging_enabled",
        "FEATURE_MESSAGING_ENABLED",
        False,
    ),
    _FlagSource(
        FlagKey.ADMIN_PANEL,
        "Admin panel",
        "Administrative dashboard for moderators and admins.",
        "feature_admin_panel_enabled",
        "FEATURE_ADMIN_PANEL_ENABLED",
        False,
    ),
    _FlagSource(
        FlagKey.EMAIL_NOTIFICATIONS,
        "Email notifications",
        "Send notification digests by email in addition to in-app delivery.",
        "feature_email_notifications",
        "FEATURE_EMAIL_NOTIFICATIONS",
        False,
    ),
    _FlagSource(
        FlagKey.MIGRATION_MODE,
        "Migration mode",
        "Read-only mode used while user data is being migrated.",
        "feature_migration_mode",
        "FEATURE_MIGRATION_MODE",
        False,
    ),
    _FlagSource(
        FlagKey.PASSWORD_RESET_V2,
        "Password reset v2",
        "Token-based password reset flow.",
        "feature_password_reset_v2",
        "FEATURE_PASSWORD_RESET_V2",
        False,
    ),
]


def build_definitions(settings: Optional[Settings] = None) -> Dict[str, FlagDefinition]:
    """
    Build the key -> definition mapping for this build.

    Parameters
    ----------
    settings : Settings | None
        Source of the raw environment values. Defaults to `get_settings()`.
    """
    settings = settings or get_settings()
    definitions: Dict[str, FlagDefinition] = {}
    for source in _SOURCES:
        raw = getattr(settings, source.setting)
        definitions[source.key.value] = FlagDefinition(
            key=source.key.value,
            display_name=source.display_name,
            description=source.description,
            default_value=coerce_boolean(raw, fallback=source.fallback),
            env_var=source.env_var,
        )
    return definitions


__all__ = ["TRUTHY_STRINGS", "coerce_boolean", "build_definitions"]
