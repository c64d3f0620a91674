# src/zapforge/generator/templates.py
"""Template manifest reading and loading into the metadata store.

A manifest is a JSON file next to its templates:

    {
      "name": "Default generation templates",
      "version": "1",
      "templates": [
        {"path": "cluster-id.h.jinja", "name": "Cluster IDs", "output": "cluster-id.h"}
      ]
    }

Template paths are relative to the manifest's directory.
"""

import hashlib
import json
from pathlib import Path

import structlog
from pydantic import BaseModel, Field, ValidationError

from zapforge.contracts.enums import PackageType
from zapforge.contracts.errors import TemplateLoadError
from zapforge.core.store.database import MetadataStore
from zapforge.core.store.queries import find_package
from zapforge.core.store.schema import packages_table, templates_table

logger = structlog.get_logger(__name__)

# File name looked up inside a template directory override
MANIFEST_NAME = "gen-templates.json"


class TemplateEntry(BaseModel):
    """One template listed in a manifest."""

    model_config = {"frozen": True, "extra": "forbid"}

    path: str = Field(min_length=1, description="Template file relative to the manifest")
    name: str = Field(min_length=1)
    output: str = Field(min_length=1, description="Output file name, may itself be a template")


class TemplateManifest(BaseModel):
    """Parsed gen-templates.json."""

    model_config = {"frozen": True, "extra": "forbid"}

    name: str
    version: str
    templates: list[TemplateEntry] = Field(min_length=1)


def read_manifest(manifest_file: Path) -> TemplateManifest:
    """Parse and validate a manifest, checking every listed template exists.

    Raises:
        TemplateLoadError: If the manifest or a template file is missing or malformed
    """
    if not manifest_file.is_file():
        raise TemplateLoadError(f"Template manifest not found: {manifest_file}")
    try:
        manifest = TemplateManifest.model_validate(json.loads(manifest_file.read_text(encoding="utf-8")))
    except UnicodeDecodeError as e:
        raise TemplateLoadError(f"Template manifest {manifest_file} is not valid UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise TemplateLoadError(f"Malformed template manifest {manifest_file}: {e}") from e
    except ValidationError as e:
        raise TemplateLoadError(f"Invalid template manifest {manifest_file}:\n{e}") from e

    missing = [entry.path for entry in manifest.templates if not (manifest_file.parent / entry.path).is_file()]
    if missing:
        raise TemplateLoadError(f"Template manifest {manifest_file} lists missing file(s): {', '.join(missing)}")
    return manifest


def load_templates(store: MetadataStore, manifest_file: Path) -> int:
    """Record a template manifest and its templates in the store.

    Idempotent per manifest content, like metadata loading.

    Returns:
        package_id of the template package
    """
    manifest = read_manifest(manifest_file)
    crc = hashlib.sha256(manifest_file.read_bytes()).hexdigest()
    path = str(manifest_file.resolve())

    existing = find_package(store, path=path, crc=crc, package_type=PackageType.GEN_TEMPLATES)
    if existing is not None:
        logger.debug("Template package already loaded", path=path, package_id=existing)
        return existing

    with store.connection() as conn:
        package_id = conn.execute(
            packages_table.insert().values(
                path=path,
                type=PackageType.GEN_TEMPLATES.value,
                crc=crc,
                name=manifest.name,
                version=manifest.version,
            )
        ).inserted_primary_key[0]
        conn.execute(
            templates_table.insert(),
            [
                {
                    "package_id": package_id,
                    "name": entry.name,
                    "path": str((manifest_file.parent / entry.path).resolve()),
                    "output": entry.output,
                }
                for entry in manifest.templates
            ],
        )

    logger.info("Templates loaded", path=path, package_id=package_id, templates=len(manifest.templates))
    return int(package_id)
