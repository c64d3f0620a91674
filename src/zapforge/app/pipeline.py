# src/zapforge/app/pipeline.py
"""Staged startup pipeline.

Stages run strictly in order; each is awaited before the next begins. The
first stage to raise aborts the run and its exception propagates unchanged:
there is no retry, no recovery, and no rollback of stages that already
completed.

Stage order:
    1. open_store      - open or create the store file
    2. attach_store    - register the handle as the current store
    3. load_schema     - run the schema script, pin the version
    4. load_metadata   - cluster library from the properties file
    5. load_templates  - generation template manifest

The sequencer knows nothing about modes. Callers pick a stage list:
full_stages() for every stage, generation_stages() for stages 1-4 (the
generation engines read templates from their own directory).
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from zapforge.app.context import ExecutionContext

if TYPE_CHECKING:
    from zapforge.app.collaborators import Collaborators
    from zapforge.core.config import Arguments, ForgeSettings

logger = structlog.get_logger(__name__)

StageFn = Callable[[ExecutionContext], Awaitable[ExecutionContext]]


@dataclass(frozen=True, slots=True)
class Stage:
    """A named pipeline unit: context in, extended context out."""

    name: str
    run: StageFn


class PipelineSequencer:
    """Runs stages in order, stopping at the first failure."""

    def __init__(self, stages: Sequence[Stage]) -> None:
        if not stages:
            raise ValueError("A pipeline needs at least one stage")
        self._stages = tuple(stages)

    @property
    def stage_names(self) -> tuple[str, ...]:
        return tuple(stage.name for stage in self._stages)

    async def run(self, context: ExecutionContext | None = None) -> ExecutionContext:
        """Run every stage.

        Args:
            context: Starting context, an empty one when None

        Returns:
            The context produced by the last stage

        Raises:
            Exception: Whatever the failing stage raised, unchanged
        """
        ctx = context if context is not None else ExecutionContext()
        for stage in self._stages:
            logger.debug("Stage started", stage=stage.name)
            ctx = await stage.run(ctx)
            logger.debug("Stage completed", stage=stage.name)
        return ctx


def open_store_stage(collaborators: Collaborators, path: Path) -> Stage:
    async def run(ctx: ExecutionContext) -> ExecutionContext:
        store = await collaborators.store.open(path)
        return ctx.extend(store=store)

    return Stage("open_store", run)


def attach_store_stage(collaborators: Collaborators) -> Stage:
    async def run(ctx: ExecutionContext) -> ExecutionContext:
        collaborators.store.set_current(ctx.require_store())
        return ctx.extend(attached=True)

    return Stage("attach_store", run)


def load_schema_stage(collaborators: Collaborators, schema_file: Path, expected_version: str) -> Stage:
    async def run(ctx: ExecutionContext) -> ExecutionContext:
        version = await collaborators.schema_loader(ctx.require_store(), schema_file, expected_version)
        return ctx.extend(schema_version=version)

    return Stage("load_schema", run)


def load_metadata_stage(collaborators: Collaborators, properties_file: Path) -> Stage:
    async def run(ctx: ExecutionContext) -> ExecutionContext:
        package_id = await collaborators.metadata_loader(ctx.require_store(), properties_file)
        return ctx.extend(package_id=package_id)

    return Stage("load_metadata", run)


def load_templates_stage(collaborators: Collaborators, manifest_file: Path) -> Stage:
    async def run(ctx: ExecutionContext) -> ExecutionContext:
        template_package_id = await collaborators.template_loader(ctx.require_store(), manifest_file)
        return ctx.extend(template_package_id=template_package_id)

    return Stage("load_templates", run)


def generation_stages(collaborators: Collaborators, settings: ForgeSettings, arguments: Arguments) -> list[Stage]:
    """Stages 1-4: store, schema and domain metadata."""
    return [
        open_store_stage(collaborators, settings.store.path),
        attach_store_stage(collaborators),
        load_schema_stage(collaborators, settings.store.schema_file, settings.store.schema_version),
        load_metadata_stage(collaborators, arguments.properties_file(settings)),
    ]


def full_stages(collaborators: Collaborators, settings: ForgeSettings, arguments: Arguments) -> list[Stage]:
    """All five stages."""
    return [
        *generation_stages(collaborators, settings, arguments),
        load_templates_stage(collaborators, settings.templates.manifest_file),
    ]
