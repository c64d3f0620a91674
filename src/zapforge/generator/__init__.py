"""Template loading and code generation."""

from zapforge.generator.engine import GenerationEngine, create_environment, metadata_context
from zapforge.generator.templates import MANIFEST_NAME, TemplateManifest, load_templates, read_manifest

__all__ = [
    "MANIFEST_NAME",
    "GenerationEngine",
    "TemplateManifest",
    "create_environment",
    "load_templates",
    "metadata_context",
    "read_manifest",
]
