# src/zapforge/app/lifecycle.py
"""Application lifecycle state machine.

Transitions:

    NOT_STARTED --started--> RUNNING
    RUNNING --window_all_closed--> RUNNING (quit requested unless on macOS)
    RUNNING --reactivate--> RUNNING (window re-shown on the running server)
    any --quit--> SHUTTING_DOWN --> STOPPED

The windowing toolkit (or OS signal handlers) is only a signal source; all
decisions live here so they can be tested without one.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from zapforge.contracts.enums import LifecycleState
from zapforge.contracts.errors import LifecycleTransitionError

if TYPE_CHECKING:
    from zapforge.app.collaborators import ServerProtocol, StoreLifecycleProtocol, WindowManagerProtocol

logger = structlog.get_logger(__name__)

# Platforms where apps conventionally stay alive with no window open
_BACKGROUND_APP_PLATFORMS = frozenset({"darwin"})


class ApplicationLifecycle:
    """Reacts to close-all, reactivate and quit signals after the server starts."""

    def __init__(
        self,
        *,
        store: StoreLifecycleProtocol,
        server: ServerProtocol,
        window_manager: WindowManagerProtocol,
        request_quit: Callable[[], None],
        platform: str = sys.platform,
    ) -> None:
        self._store = store
        self._server = server
        self._window_manager = window_manager
        self._request_quit = request_quit
        self._platform = platform
        self._state = LifecycleState.NOT_STARTED
        self._bound_port: int | None = None

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def bound_port(self) -> int | None:
        return self._bound_port

    def _require(self, signal: str, *states: LifecycleState) -> None:
        if self._state not in states:
            raise LifecycleTransitionError(signal, self._state.value)

    def started(self, bound_port: int) -> None:
        """Server is up on bound_port."""
        self._require("started", LifecycleState.NOT_STARTED)
        self._bound_port = bound_port
        self._state = LifecycleState.RUNNING

    def window_all_closed(self) -> bool:
        """Last window closed.

        Returns:
            True if quit was requested.
        """
        self._require("window-all-closed", LifecycleState.RUNNING)
        self._window_manager.closed()
        if self._platform in _BACKGROUND_APP_PLATFORMS:
            logger.debug("All windows closed, staying alive", platform=self._platform)
            return False
        self._request_quit()
        return True

    def reactivate(self) -> bool:
        """App reactivated: show a window on the running server if none is present.

        Never reruns the startup pipeline.

        Returns:
            True if a new window was opened.
        """
        logger.info("Activate...")
        self._require("reactivate", LifecycleState.RUNNING)
        if self._bound_port is None:
            raise LifecycleTransitionError("reactivate", "running without a bound port")
        return self._window_manager.create_if_not_there(self._bound_port)

    async def quit(self) -> None:
        """Stop the server, close the current store, then log completion.

        A second call while shutting down or after stopping is a no-op.
        """
        if self._state in (LifecycleState.SHUTTING_DOWN, LifecycleState.STOPPED):
            return
        self._state = LifecycleState.SHUTTING_DOWN
        try:
            try:
                if self._server.is_running:
                    await self._server.stop()
            finally:
                closed = await self._store.close_current()
        finally:
            self._state = LifecycleState.STOPPED
        if closed:
            logger.info("Database closed, shutting down.")
        else:
            logger.info("Shutting down.")
