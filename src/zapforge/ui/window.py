# src/zapforge/ui/window.py
"""Window management for the UI front end.

The UI is the server's own web page, shown in the user's browser. A
"window" here is one browser tab opened on the server's index page;
BrowserWindowManager only tracks whether one is considered open. The
toolkit-facing signals (tab closed, app reactivated) are delivered to the
ApplicationLifecycle, which calls back into this class.
"""

import sys
import webbrowser
from collections.abc import Callable
from urllib.parse import urlencode

import structlog

logger = structlog.get_logger(__name__)


def index_url(port: int, *, ui_mode: str | None = None) -> str:
    """URL of the UI entry page on a local server."""
    url = f"http://localhost:{port}/index.html"
    if ui_mode:
        url += "?" + urlencode({"uiMode": ui_mode})
    return url


class BrowserWindowManager:
    """Opens the UI in a browser and tracks whether a window is present."""

    def __init__(self, opener: Callable[[str], bool] = webbrowser.open, *, platform: str = sys.platform) -> None:
        self._opener = opener
        self._platform = platform
        self._open_port: int | None = None
        self._ui_mode: str | None = None

    @property
    def has_window(self) -> bool:
        return self._open_port is not None

    def open(self, port: int, *, ui_mode: str | None = None) -> None:
        """Show a window on the server at port."""
        url = index_url(port, ui_mode=ui_mode)
        if not self._opener(url):
            logger.warning("No browser available to open the UI", url=url)
        self._open_port = port
        self._ui_mode = ui_mode
        logger.info("Window opened", url=url)

    def create_if_not_there(self, port: int) -> bool:
        """Open a window unless one is already shown.

        Returns:
            True if a window was opened.
        """
        if self.has_window:
            return False
        self.open(port, ui_mode=self._ui_mode)
        return True

    def closed(self) -> None:
        """Record that the window went away."""
        self._open_port = None

    def hide_dock(self) -> None:
        """Hide the dock icon on platforms that have one. Browser windows never add one."""
        if self._platform == "darwin":
            logger.debug("Dock icon hidden")
