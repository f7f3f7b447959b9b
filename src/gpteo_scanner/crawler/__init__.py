"""Page fetching and extraction."""

from .browser import BrowserManager, HeadlessRenderer
from .fetcher import PageFetcher

__all__ = ["BrowserManager", "HeadlessRenderer", "PageFetcher"]
