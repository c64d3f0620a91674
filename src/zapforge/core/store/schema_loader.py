# src/zapforge/core/store/schema_loader.py
"""Load the schema script into a metadata store and pin its version."""

import sqlite3
from pathlib import Path

import structlog
from sqlalchemy.exc import SQLAlchemyError

from zapforge.contracts.errors import SchemaLoadError, SchemaVersionError
from zapforge.core.store.database import MetadataStore

logger = structlog.get_logger(__name__)


def load_schema(store: MetadataStore, schema_file: Path, expected_version: str) -> str:
    """Execute the schema script against the store and record its version.

    The version check runs BEFORE the script so a store created by another
    version is never modified.

    Args:
        store: Open metadata store
        schema_file: SQL script of idempotent DDL statements
        expected_version: Version this build requires

    Returns:
        The recorded schema version (always expected_version)

    Raises:
        SchemaVersionError: If the store records a different version
        SchemaLoadError: If the file is missing, a statement fails, or the
            resulting tables don't match what the code queries
    """
    if not schema_file.is_file():
        raise SchemaLoadError(f"Schema file not found: {schema_file}")

    found = store.recorded_schema_version()
    if found is not None and found != expected_version:
        raise SchemaVersionError(expected=expected_version, found=found)

    script = schema_file.read_text(encoding="utf-8")
    try:
        store.execute_script(script)
    except (sqlite3.Error, SQLAlchemyError) as e:
        raise SchemaLoadError(f"Malformed schema file {schema_file}: {e}") from e

    store.validate_tables()
    store.record_schema_version(expected_version)
    logger.debug("Schema loaded", schema_file=str(schema_file), version=expected_version)
    return expected_version
