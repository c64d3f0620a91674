# src/zapforge/core/store/schema.py
"""SQLAlchemy table definitions for the metadata store.

Uses SQLAlchemy Core (not ORM). The DDL that creates these tables lives in
the schema SQL file loaded at startup; these definitions are what the code
queries against, and load_schema() verifies the two agree.
"""

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

# Shared metadata for all tables
metadata = MetaData()

SCHEMA_VERSION_KEY = "version"

schema_info_table = Table(
    "schema_info",
    metadata,
    Column("key", String(64), primary_key=True),
    Column("value", Text, nullable=False),
)

# === Packages (metadata sets and template sets) ===

packages_table = Table(
    "packages",
    metadata,
    Column("package_id", Integer, primary_key=True, autoincrement=True),
    Column("path", Text, nullable=False),
    Column("type", String(32), nullable=False),  # PackageType value
    Column("crc", String(64), nullable=False),  # sha256 of file content
    Column("name", Text),
    Column("version", Text),
    Column("description", Text),
)

package_options_table = Table(
    "package_options",
    metadata,
    Column("package_option_id", Integer, primary_key=True, autoincrement=True),
    Column("package_id", Integer, ForeignKey("packages.package_id"), nullable=False),
    Column("option_key", Text, nullable=False),
    Column("option_value", Text, nullable=False),
)

# === Domain metadata ===

clusters_table = Table(
    "clusters",
    metadata,
    Column("cluster_id", Integer, primary_key=True, autoincrement=True),
    Column("package_id", Integer, ForeignKey("packages.package_id"), nullable=False),
    Column("code", Integer, nullable=False),
    Column("name", Text, nullable=False),
    Column("define", Text, nullable=False),
    Column("description", Text),
)

attributes_table = Table(
    "attributes",
    metadata,
    Column("attribute_id", Integer, primary_key=True, autoincrement=True),
    Column("cluster_id", Integer, ForeignKey("clusters.cluster_id"), nullable=False),
    Column("code", Integer, nullable=False),
    Column("name", Text, nullable=False),
    Column("type", Text, nullable=False),
    Column("side", String(16), nullable=False),  # client | server
    Column("writable", Integer, nullable=False),
)

# === Generation templates ===

templates_table = Table(
    "templates",
    metadata,
    Column("template_id", Integer, primary_key=True, autoincrement=True),
    Column("package_id", Integer, ForeignKey("packages.package_id"), nullable=False),
    Column("name", Text, nullable=False),
    Column("path", Text, nullable=False),
    Column("output", Text, nullable=False),
)
