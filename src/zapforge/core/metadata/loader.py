# src/zapforge/core/metadata/loader.py
"""Load a cluster library description into the metadata store.

A properties file names the library and lists YAML cluster files:

    name=General
    version=1.0
    description=general.yaml, lighting.yaml

Each YAML file holds ``clusters:`` entries with their attributes. Paths are
resolved relative to the properties file.

Loading is idempotent per library content: if a package with the same path and
sha256 over the properties file and all its cluster files is already in the
store, its id is returned without re-inserting.
"""

import hashlib
from pathlib import Path
from typing import Literal

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError

from zapforge.contracts.enums import PackageType
from zapforge.contracts.errors import MetadataLoadError
from zapforge.core.metadata.properties import parse_properties
from zapforge.core.store.database import MetadataStore
from zapforge.core.store.queries import find_package
from zapforge.core.store.schema import (
    attributes_table,
    clusters_table,
    package_options_table,
    packages_table,
)

logger = structlog.get_logger(__name__)


class AttributeDefinition(BaseModel):
    """One attribute of a cluster."""

    model_config = {"frozen": True, "extra": "forbid"}

    code: int = Field(ge=0, le=0xFFFF)
    name: str
    type: str
    side: Literal["client", "server"] = "server"
    writable: bool = False


class ClusterDefinition(BaseModel):
    """One cluster and its attributes."""

    model_config = {"frozen": True, "extra": "forbid"}

    code: int = Field(ge=0, le=0xFFFF)
    name: str
    define: str = Field(pattern=r"^[A-Z][A-Z0-9_]*$")
    description: str | None = None
    attributes: list[AttributeDefinition] = Field(default_factory=list)


class ClusterFile(BaseModel):
    """Top-level shape of a cluster YAML file."""

    model_config = {"frozen": True, "extra": "forbid"}

    clusters: list[ClusterDefinition] = Field(default_factory=list)


def _description_files(properties_file: Path, properties: dict[str, str]) -> list[Path]:
    entries = [entry.strip() for entry in properties.get("description", "").split(",")]
    return [properties_file.parent / entry for entry in entries if entry]


def _read_bytes(path: Path, what: str) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise MetadataLoadError(f"Cannot read {what} {path}: {e}") from e


def _decode(content: bytes, path: Path) -> str:
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MetadataLoadError(f"File {path} is not valid UTF-8: {e}") from e


def _parse_cluster_file(path: Path, content: bytes) -> list[ClusterDefinition]:
    try:
        raw = yaml.safe_load(_decode(content, path))
    except yaml.YAMLError as e:
        raise MetadataLoadError(f"Malformed cluster file {path}: {e}") from e
    try:
        return ClusterFile.model_validate(raw or {}).clusters
    except ValidationError as e:
        raise MetadataLoadError(f"Invalid cluster file {path}:\n{e}") from e


def _library_crc(properties_content: bytes, descriptions: list[tuple[Path, bytes]]) -> str:
    """sha256 over the properties file and every cluster file it lists, in order."""
    digest = hashlib.sha256(properties_content)
    for path, content in descriptions:
        digest.update(b"\0" + path.name.encode("utf-8") + b"\0")
        digest.update(hashlib.sha256(content).digest())
    return digest.hexdigest()


def load_metadata(store: MetadataStore, properties_file: Path) -> int:
    """Load the cluster library described by properties_file.

    Args:
        store: Metadata store with the schema loaded
        properties_file: Properties file naming the cluster YAML files

    Returns:
        package_id of the (new or already present) metadata package

    Raises:
        MetadataLoadError: If any file is missing, unreadable or malformed,
            or two clusters share a code
    """
    if not properties_file.is_file():
        raise MetadataLoadError(f"Properties file not found: {properties_file}")

    content = _read_bytes(properties_file, "properties file")
    properties = parse_properties(_decode(content, properties_file))
    descriptions = [(path, _read_bytes(path, "cluster file")) for path in _description_files(properties_file, properties)]
    crc = _library_crc(content, descriptions)
    path = str(properties_file.resolve())

    existing = find_package(store, path=path, crc=crc, package_type=PackageType.ZCL_PROPERTIES)
    if existing is not None:
        logger.debug("Metadata package already loaded", path=path, package_id=existing)
        return existing

    clusters: list[ClusterDefinition] = []
    for description, description_content in descriptions:
        clusters.extend(_parse_cluster_file(description, description_content))

    codes = [cluster.code for cluster in clusters]
    duplicates = sorted({code for code in codes if codes.count(code) > 1})
    if duplicates:
        raise MetadataLoadError(f"Duplicate cluster code(s) in {properties_file}: {', '.join(hex(c) for c in duplicates)}")

    with store.connection() as conn:
        package_id = conn.execute(
            packages_table.insert().values(
                path=path,
                type=PackageType.ZCL_PROPERTIES.value,
                crc=crc,
                name=properties.get("name"),
                version=properties.get("version"),
                description=properties.get("description"),
            )
        ).inserted_primary_key[0]
        if properties:
            conn.execute(
                package_options_table.insert(),
                [{"package_id": package_id, "option_key": k, "option_value": v} for k, v in properties.items()],
            )
        for cluster in clusters:
            cluster_id = conn.execute(
                clusters_table.insert().values(
                    package_id=package_id,
                    code=cluster.code,
                    name=cluster.name,
                    define=cluster.define,
                    description=cluster.description,
                )
            ).inserted_primary_key[0]
            if cluster.attributes:
                conn.execute(
                    attributes_table.insert(),
                    [
                        {
                            "cluster_id": cluster_id,
                            "code": attribute.code,
                            "name": attribute.name,
                            "type": attribute.type,
                            "side": attribute.side,
                            "writable": int(attribute.writable),
                        }
                        for attribute in cluster.attributes
                    ],
                )

    logger.info("Metadata loaded", path=path, package_id=package_id, clusters=len(clusters))
    return int(package_id)
