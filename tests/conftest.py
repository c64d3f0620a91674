# tests/conftest.py
"""Shared test fixtures and helpers.

Recording Fakes:
- Recorder: ordered log of every collaborator call, with injectable failures
- FakeStoreLifecycle, FakeServer, FakeWindowManager, FakeGenerationEngine:
  protocol-compliant stand-ins for the real store, server and UI
- fakes fixture: a Collaborators bundle wired to one Recorder

Tests drive the orchestrator (pipeline, dispatcher, lifecycle, application)
through these fakes so that call order and call counts can be asserted
without touching the filesystem, the network or a browser. The real
implementations are exercised by the store, loader, generator and server
tests, which use the resources shipped in the package.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/
"""

import os
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from hypothesis import Phase, Verbosity, settings

from zapforge.app.collaborators import Collaborators
from zapforge.app.context import ExecutionContext
from zapforge.core.config import ForgeSettings, LoggingSettings, StoreSettings
from zapforge.core.metadata.loader import load_metadata
from zapforge.core.store.database import MetadataStore
from zapforge.core.store.schema_loader import load_schema
from zapforge.generator.templates import load_templates
from zapforge.sdk.generator import SdkGenerationConfig

# =============================================================================
# Recording Fakes
# =============================================================================

FAKE_METADATA_PACKAGE_ID = 1
FAKE_TEMPLATE_PACKAGE_ID = 2
FAKE_EPHEMERAL_PORT = 8123


class Recorder:
    """Ordered record of collaborator calls.

    Setting ``failures[name]`` makes the next and every later call named
    ``name`` raise that exception after being recorded.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.failures: dict[str, Exception] = {}

    def hit(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    def count(self, name: str) -> int:
        return self.calls.count(name)


class FakeStoreLifecycle:
    """Opens in-memory stores and tracks the current handle."""

    def __init__(self, recorder: Recorder) -> None:
        self._recorder = recorder
        self.current: MetadataStore | None = None
        self.opened: list[MetadataStore] = []
        self.closed = 0

    async def open(self, path: Path) -> MetadataStore:
        self._recorder.hit("open_store")
        store = MetadataStore.in_memory()
        self.opened.append(store)
        return store

    def set_current(self, store: MetadataStore) -> None:
        self._recorder.hit("attach_store")
        self.current = store

    async def close_current(self) -> bool:
        self._recorder.hit("close_store")
        store = self.current
        if store is None:
            return False
        self.current = None
        store.close()
        self.closed += 1
        return True


class FakeServer:
    """Server that "binds" instantly; port 0 resolves to ephemeral_port."""

    ephemeral_port = FAKE_EPHEMERAL_PORT

    def __init__(self, recorder: Recorder) -> None:
        self._recorder = recorder
        self.is_running = False
        self.started_with: list[tuple[int, int | None, int | None]] = []

    async def start(
        self,
        store: MetadataStore,
        port: int,
        *,
        package_id: int | None = None,
        template_package_id: int | None = None,
    ) -> int:
        self._recorder.hit("server_start")
        self.started_with.append((port, package_id, template_package_id))
        self.is_running = True
        return port or self.ephemeral_port

    async def stop(self) -> None:
        self.is_running = False
        self._recorder.hit("server_stop")


class FakeWindowManager:
    """Window manager recording opens, closes and dock hiding."""

    def __init__(self, recorder: Recorder) -> None:
        self._recorder = recorder
        self.has_window = False
        self.opened: list[tuple[int, str | None]] = []
        self.dock_hidden = False

    def open(self, port: int, *, ui_mode: str | None = None) -> None:
        self._recorder.hit("window_open")
        self.opened.append((port, ui_mode))
        self.has_window = True

    def create_if_not_there(self, port: int) -> bool:
        self._recorder.hit("window_create_if_not_there")
        if self.has_window:
            return False
        self.open(port)
        return True

    def closed(self) -> None:
        self._recorder.hit("window_closed")
        self.has_window = False

    def hide_dock(self) -> None:
        self._recorder.hit("hide_dock")
        self.dock_hidden = True


class FakeGenerationEngine:
    """Generation engine recording the template dir and output dirs it was given."""

    def __init__(self, recorder: Recorder, context: ExecutionContext) -> None:
        self._recorder = recorder
        self.context = context
        self.template_dir: Path | None = None
        self.outputs: list[Path | None] = []

    def set_template_dir(self, template_dir: Path) -> Path:
        self._recorder.hit("set_template_dir")
        self.template_dir = template_dir
        return template_dir

    async def generate(self, output_dir: Path | None) -> list[Path]:
        self._recorder.hit("generate")
        self.outputs.append(output_dir)
        return []


@dataclass
class FakeCollaborators:
    """A Collaborators bundle plus handles on every fake in it."""

    recorder: Recorder
    store: FakeStoreLifecycle
    server: FakeServer
    window_manager: FakeWindowManager
    collaborators: Collaborators
    engines: list[FakeGenerationEngine] = field(default_factory=list)
    sdk_configs: list[SdkGenerationConfig] = field(default_factory=list)


def make_fake_collaborators() -> FakeCollaborators:
    recorder = Recorder()
    store = FakeStoreLifecycle(recorder)
    server = FakeServer(recorder)
    window_manager = FakeWindowManager(recorder)
    engines: list[FakeGenerationEngine] = []
    sdk_configs: list[SdkGenerationConfig] = []

    async def schema_loader(store: MetadataStore, schema_file: Path, expected_version: str) -> str:
        recorder.hit("load_schema")
        return expected_version

    async def metadata_loader(store: MetadataStore, properties_file: Path) -> int:
        recorder.hit("load_metadata")
        return FAKE_METADATA_PACKAGE_ID

    async def template_loader(store: MetadataStore, manifest_file: Path) -> int:
        recorder.hit("load_templates")
        return FAKE_TEMPLATE_PACKAGE_ID

    def engine_factory(context: ExecutionContext) -> FakeGenerationEngine:
        engine = FakeGenerationEngine(recorder, context)
        engines.append(engine)
        return engine

    async def sdk_generator(config: SdkGenerationConfig) -> list[Path]:
        recorder.hit("sdk_generate")
        sdk_configs.append(config)
        return []

    collaborators = Collaborators(
        store=store,
        schema_loader=schema_loader,
        metadata_loader=metadata_loader,
        template_loader=template_loader,
        generation_engine=engine_factory,
        sdk_generator=sdk_generator,
        server=server,
        window_manager=window_manager,
    )
    return FakeCollaborators(
        recorder=recorder,
        store=store,
        server=server,
        window_manager=window_manager,
        collaborators=collaborators,
        engines=engines,
        sdk_configs=sdk_configs,
    )


@pytest.fixture
def fakes() -> FakeCollaborators:
    """Fresh recording fakes for one test."""
    return make_fake_collaborators()


# =============================================================================
# Settings and Real Stores
# =============================================================================


@pytest.fixture
def forge_settings(tmp_path: Path) -> ForgeSettings:
    """Default settings with the store under tmp_path and no log file."""
    return ForgeSettings(
        store=StoreSettings(path=tmp_path / "store" / "zap.sqlite"),
        logging=LoggingSettings(file=None),
    )


@pytest.fixture
def schema_store() -> Iterator[MetadataStore]:
    """In-memory store with the packaged schema loaded."""
    defaults = StoreSettings()
    store = MetadataStore.in_memory()
    load_schema(store, defaults.schema_file, defaults.schema_version)
    yield store
    store.close()


@dataclass(frozen=True)
class LoadedStore:
    store: MetadataStore
    package_id: int
    template_package_id: int


@pytest.fixture
def loaded_store(schema_store: MetadataStore) -> LoadedStore:
    """Schema store with the packaged cluster library and templates loaded."""
    defaults = ForgeSettings()
    return LoadedStore(
        store=schema_store,
        package_id=load_metadata(schema_store, defaults.metadata.properties_file),
        template_package_id=load_templates(schema_store, defaults.templates.manifest_file),
    )


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


__all__ = [
    "FAKE_EPHEMERAL_PORT",
    "FAKE_METADATA_PACKAGE_ID",
    "FAKE_TEMPLATE_PACKAGE_ID",
    "FakeCollaborators",
    "LoadedStore",
    "Recorder",
    "fakes",
    "forge_settings",
    "loaded_store",
    "make_fake_collaborators",
    "schema_store",
]
