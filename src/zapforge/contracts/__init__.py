"""Shared contracts: enums and errors used across zapforge subsystems."""

from zapforge.contracts.enums import Command, Environment, LifecycleState, PackageType
from zapforge.contracts.errors import (
    ContextFieldError,
    GenerationError,
    LifecycleTransitionError,
    MetadataLoadError,
    SchemaLoadError,
    SchemaVersionError,
    ServerStartError,
    StoreOpenError,
    TemplateLoadError,
    ZapForgeError,
)

__all__ = [
    "Command",
    "ContextFieldError",
    "Environment",
    "GenerationError",
    "LifecycleState",
    "LifecycleTransitionError",
    "MetadataLoadError",
    "PackageType",
    "SchemaLoadError",
    "SchemaVersionError",
    "ServerStartError",
    "StoreOpenError",
    "TemplateLoadError",
    "ZapForgeError",
]
