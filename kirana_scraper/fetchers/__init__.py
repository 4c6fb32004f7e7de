"""Browser-backed page rendering."""

from .browser_pool import BrowserPool, get_browser_context
from .renderer import fetch_rendered_page

__all__ = ["BrowserPool", "get_browser_context", "fetch_rendered_page"]
