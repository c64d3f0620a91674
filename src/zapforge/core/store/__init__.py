"""Metadata store: connection management, schema loading, and handle lifecycle."""

from zapforge.core.store.database import MetadataStore
from zapforge.core.store.lifecycle import BACKUP_SUFFIX, StoreLifecycle, backup_path, maybe_rotate
from zapforge.core.store.schema_loader import load_schema

__all__ = [
    "BACKUP_SUFFIX",
    "MetadataStore",
    "StoreLifecycle",
    "backup_path",
    "load_schema",
    "maybe_rotate",
]
