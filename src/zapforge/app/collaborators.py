# src/zapforge/app/collaborators.py
"""Interfaces the orchestrator drives, and their default implementations.

The pipeline, dispatcher and lifecycle only talk to these protocols, so tests
can substitute recording fakes for the store, loaders, engines, server and
window manager.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from zapforge.core.metadata.loader import load_metadata
from zapforge.core.store.lifecycle import StoreLifecycle
from zapforge.core.store.schema_loader import load_schema
from zapforge.generator.engine import GenerationEngine
from zapforge.generator.templates import load_templates
from zapforge.sdk.generator import SdkGenerationConfig, run_sdk_generation
from zapforge.server.http import MetadataServer
from zapforge.ui.window import BrowserWindowManager

if TYPE_CHECKING:
    from zapforge.app.context import ExecutionContext
    from zapforge.core.config import ForgeSettings
    from zapforge.core.store.database import MetadataStore


class StoreLifecycleProtocol(Protocol):
    """Opens stores and owns the current handle."""

    @property
    def current(self) -> MetadataStore | None: ...

    async def open(self, path: Path) -> MetadataStore: ...

    def set_current(self, store: MetadataStore) -> None: ...

    async def close_current(self) -> bool: ...


class GenerationEngineProtocol(Protocol):
    """One-shot code generation."""

    def set_template_dir(self, template_dir: Path) -> Path: ...

    async def generate(self, output_dir: Path | None) -> list[Path]: ...


class ServerProtocol(Protocol):
    """Long-lived HTTP server."""

    @property
    def is_running(self) -> bool: ...

    async def start(
        self,
        store: MetadataStore,
        port: int,
        *,
        package_id: int | None = None,
        template_package_id: int | None = None,
    ) -> int: ...

    async def stop(self) -> None: ...


class WindowManagerProtocol(Protocol):
    """UI window front end."""

    @property
    def has_window(self) -> bool: ...

    def open(self, port: int, *, ui_mode: str | None = None) -> None: ...

    def create_if_not_there(self, port: int) -> bool: ...

    def closed(self) -> None: ...

    def hide_dock(self) -> None: ...


SchemaLoader = Callable[["MetadataStore", Path, str], Awaitable[str]]
MetadataLoader = Callable[["MetadataStore", Path], Awaitable[int]]
TemplateLoader = Callable[["MetadataStore", Path], Awaitable[int]]
GenerationEngineFactory = Callable[["ExecutionContext"], GenerationEngineProtocol]
SdkGenerator = Callable[[SdkGenerationConfig], Awaitable[list[Path]]]


@dataclass(slots=True)
class Collaborators:
    """Everything the orchestrator calls out to."""

    store: StoreLifecycleProtocol
    schema_loader: SchemaLoader
    metadata_loader: MetadataLoader
    template_loader: TemplateLoader
    generation_engine: GenerationEngineFactory
    sdk_generator: SdkGenerator
    server: ServerProtocol
    window_manager: WindowManagerProtocol


async def _load_schema(store: MetadataStore, schema_file: Path, expected_version: str) -> str:
    return load_schema(store, schema_file, expected_version)


async def _load_metadata(store: MetadataStore, properties_file: Path) -> int:
    return load_metadata(store, properties_file)


async def _load_templates(store: MetadataStore, manifest_file: Path) -> int:
    return load_templates(store, manifest_file)


def default_collaborators(settings: ForgeSettings) -> Collaborators:
    """Wire the real store, loaders, engines, server and browser window."""

    def engine_for(context: ExecutionContext) -> GenerationEngine:
        return GenerationEngine(
            context.require_store(),
            default_manifest=settings.templates.manifest_file,
            package_id=context.package_id,
        )

    return Collaborators(
        store=StoreLifecycle(),
        schema_loader=_load_schema,
        metadata_loader=_load_metadata,
        template_loader=_load_templates,
        generation_engine=engine_for,
        sdk_generator=run_sdk_generation,
        server=MetadataServer(host=settings.server.host),
        window_manager=BrowserWindowManager(),
    )
