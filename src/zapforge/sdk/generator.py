# src/zapforge/sdk/generator.py
"""SDK-shaped generation: one output directory per cluster.

Every manifest template is rendered once per cluster into
``<generation_dir>/<cluster define in lower case>/``. The template's output
name is itself rendered, so ``{{ cluster.name | lower }}.h`` yields one header
per cluster. Templates see the same variables as code generation, with
``clusters`` narrowed to the single ``cluster`` being rendered.

A ``sdk-manifest.json`` listing every generated file (relative paths) is
written at the root of the generation directory.
"""

import json
from dataclasses import dataclass
from pathlib import Path

import structlog
from jinja2 import TemplateError

from zapforge.contracts.errors import GenerationError
from zapforge.core.store.database import MetadataStore
from zapforge.generator.engine import create_environment, metadata_context, resolve_manifest, write_output
from zapforge.generator.templates import read_manifest

logger = structlog.get_logger(__name__)

SDK_MANIFEST_NAME = "sdk-manifest.json"


@dataclass(frozen=True, slots=True)
class SdkGenerationConfig:
    """Everything one SDK generation run needs.

    Attributes:
        store: Open metadata store with metadata loaded
        generation_dir: Root output directory
        template_dir: Directory holding gen-templates.json, None for the default manifest
        default_manifest: Manifest used when template_dir is None
        package_id: Metadata package to generate from, None for the latest loaded
    """

    store: MetadataStore
    generation_dir: Path | None
    template_dir: Path | None
    default_manifest: Path
    package_id: int | None = None


async def run_sdk_generation(config: SdkGenerationConfig) -> list[Path]:
    """Render the SDK tree.

    Returns:
        Generated files, sdk-manifest.json last

    Raises:
        GenerationError: If the output directory is missing or rendering fails
        TemplateLoadError: If the manifest is missing or malformed
    """
    if config.generation_dir is None:
        raise GenerationError("No output directory given (use --output)")
    if config.template_dir is not None and not config.template_dir.is_dir():
        raise GenerationError(f"Template directory not found: {config.template_dir}")

    manifest_file = resolve_manifest(config.template_dir, config.default_manifest)
    manifest = read_manifest(manifest_file)
    context = metadata_context(config.store, config.package_id)
    env = create_environment(manifest_file.parent)

    written: list[Path] = []
    for cluster in context["clusters"]:
        cluster_dir = config.generation_dir / cluster["define"].lower()
        cluster_context = {**context, "cluster": cluster, "clusters": [cluster]}
        for entry in manifest.templates:
            try:
                name = env.from_string(entry.output).render(**cluster_context)
                content = env.get_template(entry.path).render(**cluster_context)
            except TemplateError as e:
                raise GenerationError(f"Template {entry.path} failed for cluster {cluster['define']}: {e}") from e
            written.append(write_output(cluster_dir, name, content))

    sdk_manifest = {
        "package": context["package"]["name"],
        "templates": manifest.name,
        "files": [path.relative_to(config.generation_dir).as_posix() for path in written],
    }
    written.append(write_output(config.generation_dir, SDK_MANIFEST_NAME, json.dumps(sdk_manifest, indent=2) + "\n"))

    logger.info("SDK generation done", generation_dir=str(config.generation_dir), files=len(written))
    return written
