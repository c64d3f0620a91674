# src/zapforge/generator/engine.py
"""Code generation: render manifest templates against the loaded metadata.

Templates are plain Jinja2 with StrictUndefined, so a typo in a template
fails generation instead of silently emitting an empty string. Each template
receives:

- ``package``: the metadata package row
- ``clusters``: clusters ordered by code, each with ``attributes``
- ``generator``: ``{"version": ...}``
"""

from pathlib import Path
from typing import Any

import structlog
from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from zapforge import __version__
from zapforge.contracts.enums import PackageType
from zapforge.contracts.errors import GenerationError
from zapforge.core.store.database import MetadataStore
from zapforge.core.store.queries import get_package, latest_package_id, list_clusters
from zapforge.generator.templates import MANIFEST_NAME, TemplateManifest, read_manifest

logger = structlog.get_logger(__name__)


def create_environment(template_dir: Path) -> Environment:
    """Jinja2 environment loading templates from template_dir."""
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )


def resolve_manifest(template_dir: Path | None, default_manifest: Path) -> Path:
    """Manifest inside a template directory override, else the default manifest."""
    if template_dir is None:
        return default_manifest
    return template_dir / MANIFEST_NAME


def metadata_context(store: MetadataStore, package_id: int | None) -> dict[str, Any]:
    """Template variables shared by code and SDK generation.

    Raises:
        GenerationError: If no metadata package is loaded.
    """
    if package_id is None:
        package_id = latest_package_id(store, PackageType.ZCL_PROPERTIES)
    if package_id is None:
        raise GenerationError("No metadata package loaded; nothing to generate from")
    return {
        "package": get_package(store, package_id),
        "clusters": list_clusters(store, package_id),
        "generator": {"version": __version__},
    }


def write_output(output_dir: Path, name: str, content: str) -> Path:
    target = output_dir / name
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    except OSError as e:
        raise GenerationError(f"Cannot write {target}: {e}") from e
    return target


class GenerationEngine:
    """Renders every template of a manifest once into an output directory.

    Usage:
        engine = GenerationEngine(store, default_manifest=manifest, package_id=ctx.package_id)
        engine.set_template_dir(Path("./my-templates"))  # optional override
        written = await engine.generate(Path("./out"))
    """

    def __init__(self, store: MetadataStore, *, default_manifest: Path, package_id: int | None = None) -> None:
        self._store = store
        self._default_manifest = default_manifest
        self._package_id = package_id
        self._template_dir: Path | None = None

    @property
    def template_dir(self) -> Path | None:
        return self._template_dir

    def set_template_dir(self, template_dir: Path) -> Path:
        """Use the manifest in template_dir instead of the default one.

        Raises:
            GenerationError: If template_dir is not a directory.
        """
        if not template_dir.is_dir():
            raise GenerationError(f"Template directory not found: {template_dir}")
        self._template_dir = template_dir
        logger.info("Template directory set", template_dir=str(template_dir))
        return template_dir

    def _manifest(self) -> tuple[Path, TemplateManifest]:
        manifest_file = resolve_manifest(self._template_dir, self._default_manifest)
        return manifest_file, read_manifest(manifest_file)

    async def generate(self, output_dir: Path | None) -> list[Path]:
        """Render all templates into output_dir.

        Returns:
            Written files in manifest order

        Raises:
            GenerationError: If output_dir is missing, rendering fails, or a
                file cannot be written
            TemplateLoadError: If the manifest is missing or malformed
        """
        if output_dir is None:
            raise GenerationError("No output directory given (use --output)")
        manifest_file, manifest = self._manifest()
        context = metadata_context(self._store, self._package_id)
        env = create_environment(manifest_file.parent)

        written: list[Path] = []
        for entry in manifest.templates:
            try:
                content = env.get_template(entry.path).render(**context)
            except TemplateError as e:
                raise GenerationError(f"Template {entry.path} failed: {e}") from e
            written.append(write_output(output_dir, entry.output, content))

        logger.info("Generation done", output_dir=str(output_dir), files=len(written))
        return written
