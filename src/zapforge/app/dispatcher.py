# src/zapforge/app/dispatcher.py
"""Mode dispatch: run the pipeline, then exactly one terminal workflow.

Failure handling is the same in every mode: a failure is logged once at
error level and re-raised. What differs is the quit request:

- self-check requests quit only on success; a failure propagates and the
  process ends on the unhandled error.
- generate and sdkGen request quit once generation settles, success or
  failure. A pipeline failure happens before generation, so it does not.
- normal never requests quit; the lifecycle controller owns shutdown.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING

import structlog

from zapforge.app.context import ExecutionContext
from zapforge.app.pipeline import PipelineSequencer, Stage, full_stages, generation_stages
from zapforge.contracts.enums import Command
from zapforge.sdk.generator import SdkGenerationConfig

if TYPE_CHECKING:
    from zapforge.app.collaborators import Collaborators
    from zapforge.app.lifecycle import ApplicationLifecycle
    from zapforge.core.config import Arguments, ForgeSettings

logger = structlog.get_logger(__name__)

SELF_CHECK_DONE = "Self-check done!"


def url_line(port: int) -> str:
    """Line announcing the server to a supervising process. Its format is parsed; do not change it."""
    return f"url: http://localhost:{port}/index.html"


class ModeDispatcher:
    """Drives the workflow selected by the command classification."""

    def __init__(
        self,
        *,
        collaborators: Collaborators,
        settings: ForgeSettings,
        arguments: Arguments,
        lifecycle: ApplicationLifecycle,
        request_quit: Callable[[], None],
        emit: Callable[[str], None],
    ) -> None:
        self._collaborators = collaborators
        self._settings = settings
        self._arguments = arguments
        self._lifecycle = lifecycle
        self._request_quit = request_quit
        self._emit = emit

    async def dispatch(self, command: Command) -> ExecutionContext:
        """Run the workflow for command and return the final pipeline context."""
        handlers: dict[Command, Callable[[], Awaitable[ExecutionContext]]] = {
            Command.SELF_CHECK: self.self_check,
            Command.GENERATE: self.generate,
            Command.SDK_GEN: self.sdk_generate,
            Command.NORMAL: self.normal,
        }
        return await handlers[command]()

    async def _run_pipeline(self, stages: Sequence[Stage]) -> ExecutionContext:
        try:
            return await PipelineSequencer(stages).run()
        except Exception as e:
            logger.error("Startup pipeline failed", error=str(e), error_type=type(e).__name__)
            raise

    async def self_check(self) -> ExecutionContext:
        logger.info("Starting self-check")
        ctx = await self._run_pipeline(full_stages(self._collaborators, self._settings, self._arguments))
        logger.info(SELF_CHECK_DONE)
        self._request_quit()
        return ctx

    async def generate(self) -> ExecutionContext:
        logger.info("Start Generation...")
        ctx = await self._run_pipeline(generation_stages(self._collaborators, self._settings, self._arguments))
        try:
            engine = self._collaborators.generation_engine(ctx)
            if self._arguments.template is not None:
                engine.set_template_dir(self._arguments.template)
            await engine.generate(self._arguments.output)
        except Exception as e:
            logger.error("Generation failed", error=str(e), error_type=type(e).__name__)
            raise
        finally:
            self._request_quit()
        return ctx

    async def sdk_generate(self) -> ExecutionContext:
        logger.info("Start SDK generation...")
        ctx = await self._run_pipeline(generation_stages(self._collaborators, self._settings, self._arguments))
        try:
            await self._collaborators.sdk_generator(
                SdkGenerationConfig(
                    store=ctx.require_store(),
                    generation_dir=self._arguments.output,
                    template_dir=self._arguments.template,
                    default_manifest=self._settings.templates.manifest_file,
                    package_id=ctx.package_id,
                )
            )
        except Exception as e:
            logger.error("SDK generation failed", error=str(e), error_type=type(e).__name__)
            raise
        finally:
            self._request_quit()
        return ctx

    async def normal(self) -> ExecutionContext:
        ctx = await self._run_pipeline(full_stages(self._collaborators, self._settings, self._arguments))
        try:
            port = await self._collaborators.server.start(
                ctx.require_store(),
                self._arguments.port(self._settings),
                package_id=ctx.package_id,
                template_package_id=ctx.template_package_id,
            )
        except Exception as e:
            logger.error("Server start failed", error=str(e), error_type=type(e).__name__)
            raise
        self._lifecycle.started(port)

        window_manager = self._collaborators.window_manager
        if self._arguments.ui_enabled:
            window_manager.open(port, ui_mode=self._arguments.ui_mode)
        else:
            window_manager.hide_dock()
            if self._arguments.show_url:
                self._emit(url_line(port))
        return ctx
