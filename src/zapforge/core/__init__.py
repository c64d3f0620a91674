# src/zapforge/core/__init__.py
"""Core infrastructure: Configuration, Logging, Metadata store, Domain metadata."""

from zapforge.core.config import (
    Arguments,
    ForgeSettings,
    LoggingSettings,
    MetadataSettings,
    ServerSettings,
    StoreSettings,
    TemplateSettings,
    load_settings,
)
from zapforge.core.logging import (
    configure_logging,
    get_logger,
)

__all__ = [
    "Arguments",
    "ForgeSettings",
    "LoggingSettings",
    "MetadataSettings",
    "ServerSettings",
    "StoreSettings",
    "TemplateSettings",
    "configure_logging",
    "get_logger",
    "load_settings",
]
