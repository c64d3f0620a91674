# tests/unit/generator/test_engine.py
"""Tests for one-shot code generation."""

import json
from pathlib import Path

import pytest

from zapforge.contracts.errors import GenerationError, TemplateLoadError
from zapforge.core.config import TemplateSettings
from zapforge.core.store.database import MetadataStore
from zapforge.generator.engine import GenerationEngine, metadata_context, resolve_manifest
from zapforge.generator.templates import MANIFEST_NAME

DEFAULT_MANIFEST = TemplateSettings().manifest_file


def _template_dir(directory: Path, template: str, output: str = "out.txt") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "t.jinja").write_text(template)
    (directory / MANIFEST_NAME).write_text(
        json.dumps({"name": "Custom", "version": "1", "templates": [{"path": "t.jinja", "name": "T", "output": output}]})
    )
    return directory


class TestResolveManifest:
    def test_default(self, tmp_path: Path) -> None:
        assert resolve_manifest(None, tmp_path / "default.json") == tmp_path / "default.json"

    def test_override_directory(self, tmp_path: Path) -> None:
        assert resolve_manifest(tmp_path, tmp_path / "default.json") == tmp_path / MANIFEST_NAME


class TestMetadataContext:
    def test_falls_back_to_latest_package(self, loaded_store) -> None:
        context = metadata_context(loaded_store.store, None)

        assert context["package"]["package_id"] == loaded_store.package_id
        assert len(context["clusters"]) == 5
        assert "version" in context["generator"]

    def test_no_metadata_loaded(self, schema_store: MetadataStore) -> None:
        with pytest.raises(GenerationError, match="No metadata package"):
            metadata_context(schema_store, None)


class TestGenerationEngine:
    @pytest.mark.asyncio
    async def test_default_templates(self, loaded_store, tmp_path: Path) -> None:
        engine = GenerationEngine(loaded_store.store, default_manifest=DEFAULT_MANIFEST, package_id=loaded_store.package_id)

        written = await engine.generate(tmp_path / "out")

        assert [path.name for path in written] == ["cluster-id.h", "attribute-id.h"]
        cluster_header = (tmp_path / "out" / "cluster-id.h").read_text()
        assert "#define ZCL_ON_OFF_CLUSTER_ID 0x0006  // On/off" in cluster_header
        assert "#define ZCL_COLOR_CONTROL_CLUSTER_ID 0x0300" in cluster_header
        attribute_header = (tmp_path / "out" / "attribute-id.h").read_text()
        assert "#define ZCL_IDENTIFY_TIME_ATTRIBUTE_ID 0x0000  // writable" in attribute_header

    @pytest.mark.asyncio
    async def test_template_dir_override(self, loaded_store, tmp_path: Path) -> None:
        template_dir = _template_dir(tmp_path / "tpl", "{{ clusters | length }} clusters from {{ package.name }}\n")
        engine = GenerationEngine(loaded_store.store, default_manifest=DEFAULT_MANIFEST)

        assert engine.set_template_dir(template_dir) == template_dir
        await engine.generate(tmp_path / "out")

        assert (tmp_path / "out" / "out.txt").read_text() == "5 clusters from General clusters\n"

    def test_template_dir_must_exist(self, loaded_store, tmp_path: Path) -> None:
        engine = GenerationEngine(loaded_store.store, default_manifest=DEFAULT_MANIFEST)

        with pytest.raises(GenerationError, match="not found"):
            engine.set_template_dir(tmp_path / "missing")
        assert engine.template_dir is None

    @pytest.mark.asyncio
    async def test_output_dir_required(self, loaded_store) -> None:
        engine = GenerationEngine(loaded_store.store, default_manifest=DEFAULT_MANIFEST)

        with pytest.raises(GenerationError, match="--output"):
            await engine.generate(None)

    @pytest.mark.asyncio
    async def test_undefined_variable_fails(self, loaded_store, tmp_path: Path) -> None:
        engine = GenerationEngine(loaded_store.store, default_manifest=DEFAULT_MANIFEST)
        engine.set_template_dir(_template_dir(tmp_path / "tpl", "{{ no_such_thing }}\n"))

        with pytest.raises(GenerationError, match="t.jinja"):
            await engine.generate(tmp_path / "out")

    @pytest.mark.asyncio
    async def test_directory_without_manifest(self, loaded_store, tmp_path: Path) -> None:
        engine = GenerationEngine(loaded_store.store, default_manifest=DEFAULT_MANIFEST)
        engine.set_template_dir(tmp_path)

        with pytest.raises(TemplateLoadError):
            await engine.generate(tmp_path / "out")
