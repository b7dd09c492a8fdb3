"""
Sesimiz Ol feature flags - cached flag resolution for the storytelling platform.

This package resolves boolean feature flags with three tiers (in-process
override, cached store value, static default) and provides:

- The `FeatureFlagResolver` cache over a pluggable store
- In-memory and Postgres stores
- An administrative workflow with audit and admin-notification effects
- Guards for feature-gated code paths
- A command-line interface for operators
"""

from __future__ import annotations

__version__ = "0.1.0"

# Public API exports
from sesimiz_flags.admin import FlagAdminService, FlagChange, FlagNotFoundError, FlagValidationError
from sesimiz_flags.config import Settings, get_settings
from sesimiz_flags.domain.definitions import build_definitions, coerce_boolean
from sesimiz_flags.domain.models import FlagDefinition, FlagKey, FlagRecord, FlagUpdate, FlagView
from sesimiz_flags.gate import FeatureDisabledError, ensure_feature_enabled, feature_required
from sesimiz_flags.resolver import FeatureFlagResolver
from sesimiz_flags.store.abstract import DuplicateFlagError, FlagStore, FlagStoreError
from sesimiz_flags.store.memory import InMemoryFlagStore
from sesimiz_flags.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "FlagDefinition",
    "FlagKey",
    "FlagRecord",
    "FlagUpdate",
    "FlagView",
    "build_definitions",
    "coerce_boolean",
    # Resolution
    "FeatureFlagResolver",
    "FeatureDisabledError",
    "ensure_feature_enabled",
    "feature_required",
    # Administration
    "FlagAdminService",
    "FlagChange",
    "FlagNotFoundError",
    "FlagValidationError",
    # Stores
    "FlagStore",
    "FlagStoreError",
    "DuplicateFlagError",
    "InMemoryFlagStore",
    # Logging
    "configure_logging",
    "get_logger",
]
