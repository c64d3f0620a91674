"""UI window management."""

from zapforge.ui.window import BrowserWindowManager, index_url

__all__ = ["BrowserWindowManager", "index_url"]
