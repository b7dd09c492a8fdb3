"""
Domain package for the feature flag service.

Exports the flag models and the static definitions. Keep this package focused
on data definitions and validation concerns.
"""

from sesimiz_flags.domain.definitions import build_definitions, coerce_boolean
from sesimiz_flags.domain.models import (
    FlagDefinition,
    FlagKey,
    FlagRecord,
    FlagUpdate,
    FlagView,
    key_name,
)

__all__ = [
    "FlagDefinition",
    "FlagKey",
    "FlagRecord",
    "FlagUpdate",
    "FlagView",
    "build_definitions",
    "coerce_boolean",
    "key_name",
]
