"""
Domain models for the feature flag service.

Defines the compiled-in flag keys, the static flag definitions, the persisted
flag record (aligned with the `feature_flags` table), the merged view served to
listing/detail callers, and the partial-update payload accepted by the
resolver.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field


class FlagKey(str, Enum):
    """
    Flag keys known to this build.

    Runtime strings (HTTP paths, CLI arguments) are mapped with `parse`;
    anything unknown becomes `UNREGISTERED`.
    """

    MESSAGING = "messaging"
    ADMIN_PANEL = "adminPanel"
    EMAIL_NOTIFICATIONS = "emailNotifications"
    MIGRATION_MODE = "migrationMode"
    PASSWORD_RESET_V2 = "passwordResetV2"
    UNREGISTERED = "__unregistered__"

    @classmethod
    def parse(cls, raw: Union[str, "FlagKey"]) -> "FlagKey":
        if isinstance(raw, FlagKey):
            return raw
        try:
            return cls(raw)
        except ValueError:
            return cls.UNREGISTERED


def key_name(key: Union[str, FlagKey]) -> str:
    """Normalize a key argument to the plain string stored in caches and rows."""
    return key.value if isinstance(key, FlagKey) else str(key)


class FlagDefinition(BaseModel):
    """
    Static flag definition compiled into the process.
    """

    key: str = Field(..., description="Stable short identifier.")
    display_name: str = Field(..., description="Human label.")
    description: str = Field("", description="Human text shown in admin listings.")
    default_value: bool = Field(False, description="Value used before any record exists.")
    env_var: Optional[str] = Field(None, description="Environment variable the default came from.")

    model_config = {
        "frozen": True,
    }


class FlagRecord(BaseModel):
    """
    Representation of a single row in the `feature_flags` table.
    """

    key: str = Field(..., description="Unique flag key.")
    enabled: bool = Field(False, description="Current persisted state.")
    rollout_status: Optional[str] = Field(None, description="Free-text annotation, e.g. canary.")
    description: Optional[str] = Field(None, description="Overrides the static description.")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Opaque JSON annotations.")
    last_changed_at: Optional[datetime] = Field(None, description="Last administrative change.")
    last_changed_by: Optional[int] = Field(None, description="Actor of the last change.")
    created_at: Optional[datetime] = Field(None, description="Row creation timestamp.")
    updated_at: Optional[datetime] = Field(None, description="Row update timestamp.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }


class FlagView(BaseModel):
    """
    Merged record/definition projection returned by listing and detail calls.
    """

    key: str
    display_name: str
    description: Optional[str] = None
    enabled: bool = False
    default_value: Optional[bool] = None
    rollout_status: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    last_changed_at: Optional[datetime] = None
    last_changed_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    defined: bool = False
    persisted: bool = False
    override: Optional[bool] = None

    model_config = {
        "frozen": True,
    }


class FlagUpdate(BaseModel):
    """
    Partial update of one flag.

    Only the fields explicitly set on construction are written; see
    `changed_fields`.
    """

    key: str = Field(..., min_length=1)
    enabled: Optional[bool] = None
    rollout_status: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = Field(None, max_length=500)
    metadata: Optional[Dict[str, Any]] = None
    actor_id: Optional[int] = None

    model_config = {
        "frozen": True,
        "str_strip_whitespace": True,
        "extra": "forbid",
    }

    def changed_fields(self) -> Dict[str, Any]:
        """Return the writable fields the caller actually provided."""
        provided = self.model_fields_set - {"key", "actor_id"}
        data = {name: getattr(self, name) for name in sorted(provided)}
        # `enabled` is a non-null column; an explicit null means "leave it alone".
        if data.get("enabled", False) is None:
            del data["enabled"]
        return data


__all__ = [
    "FlagKey",
    "FlagDefinition",
    "FlagRecord",
    "FlagView",
    "FlagUpdate",
    "key_name",
]
