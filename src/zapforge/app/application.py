# src/zapforge/app/application.py
"""Composition root: one Application per process start.

Owns the collaborators (including the store lifecycle that holds the
current handle), the lifecycle state machine and the dispatcher, and runs
them in order:

    rotate store (if --clear-db) -> dispatch command -> [wait for quit] -> quit

Quit always runs on the way out, whether the command succeeded or raised, so
the store handle is closed exactly once by the lifecycle controller.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys
from collections.abc import Callable

import structlog
import typer

from zapforge.app.collaborators import Collaborators, default_collaborators
from zapforge.app.context import ExecutionContext
from zapforge.app.dispatcher import ModeDispatcher
from zapforge.app.lifecycle import ApplicationLifecycle
from zapforge.app.modes import classify_command
from zapforge.contracts.enums import Command
from zapforge.core.config import Arguments, ForgeSettings
from zapforge.core.store.lifecycle import maybe_rotate

logger = structlog.get_logger(__name__)

_QUIT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class Application:
    """Startup orchestrator for one process invocation."""

    def __init__(
        self,
        settings: ForgeSettings,
        arguments: Arguments,
        *,
        collaborators: Collaborators | None = None,
        emit: Callable[[str], None] = typer.echo,
        platform: str = sys.platform,
        handle_signals: bool = False,
    ) -> None:
        self.settings = settings
        self.arguments = arguments
        self.command = classify_command(arguments.commands)
        self.collaborators = collaborators if collaborators is not None else default_collaborators(settings)
        self._handle_signals = handle_signals
        self._quit_event: asyncio.Event | None = None
        self._quit_requests = 0

        self.lifecycle = ApplicationLifecycle(
            store=self.collaborators.store,
            server=self.collaborators.server,
            window_manager=self.collaborators.window_manager,
            request_quit=self.request_quit,
            platform=platform,
        )
        self.dispatcher = ModeDispatcher(
            collaborators=self.collaborators,
            settings=settings,
            arguments=arguments,
            lifecycle=self.lifecycle,
            request_quit=self.request_quit,
            emit=emit,
        )

    @property
    def quit_requests(self) -> int:
        """How many times quit was requested."""
        return self._quit_requests

    def request_quit(self) -> None:
        self._quit_requests += 1
        if self._quit_event is not None:
            self._quit_event.set()

    def window_all_closed(self) -> bool:
        return self.lifecycle.window_all_closed()

    def reactivate(self) -> bool:
        return self.lifecycle.reactivate()

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in _QUIT_SIGNALS:
            # Not available on Windows event loops or outside the main thread
            with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
                loop.add_signal_handler(sig, self.request_quit)

    def _remove_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in _QUIT_SIGNALS:
            with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
                loop.remove_signal_handler(sig)

    async def run(self) -> ExecutionContext:
        """Run the selected command to completion.

        In normal mode this returns only after quit is requested (signal,
        window-all-closed, or request_quit()).

        Raises:
            OSError: Store rotation failed; nothing else has run.
            Exception: Whatever the pipeline or workflow raised.
        """
        logger.info("Starting", command=self.command.value, arguments=self.arguments.model_dump(mode="json"))
        self._quit_event = asyncio.Event()
        if self._quit_requests:
            self._quit_event.set()
        loop = asyncio.get_running_loop()
        if self._handle_signals:
            self._install_signal_handlers(loop)
        try:
            try:
                maybe_rotate(self.settings.store.path, self.arguments.clear_db)
            except OSError as e:
                logger.error("Store rotation failed", error=str(e), error_type=type(e).__name__)
                raise
            ctx = await self.dispatcher.dispatch(self.command)
            if self.command == Command.NORMAL:
                await self._quit_event.wait()
            return ctx
        finally:
            await self.lifecycle.quit()
            if self._handle_signals:
                self._remove_signal_handlers(loop)
