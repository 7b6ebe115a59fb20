"""Shared fixtures: an in-memory browser engine and page analyzer."""

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from core.errors import CapabilityFailure

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"


class FakeEngine:
    """
    Stands in for BrowserEngine.

    Every call is appended to ``calls`` as ``(name, *args)``. Navigating to a
    URL in ``fail_urls`` or calling a method named in ``failures`` raises.
    ``active``/``max_active`` count calls that overlap in time.
    """

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.calls: List[tuple] = []
        self.failures: Dict[str, Exception] = {}
        self.fail_urls: set = set()
        self.page_text = "Example Domain. This domain is for use in illustrative examples."
        self.current_url: Optional[str] = None
        self.started = False
        self.closed = False
        self.start_error: Optional[Exception] = None
        self.active = 0
        self.max_active = 0

    async def _call(self, name: str, *args):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            self.calls.append((name,) + args)
            if self.delay:
                await asyncio.sleep(self.delay)
            else:
                await asyncio.sleep(0)
            if name in self.failures:
                raise self.failures[name]
        finally:
            self.active -= 1

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    # Lifecycle

    async def start(self):
        if self.start_error:
            raise self.start_error
        self.started = True

    async def close(self):
        self.closed = True
        self.started = False

    def get_status(self) -> Dict[str, Any]:
        return {
            "isLaunched": self.started,
            "browserType": "chromium",
            "headless": True,
            "currentUrl": self.current_url,
        }

    # Driver

    async def navigate(self, url: str, wait_until: str = "networkidle", timeout: Optional[int] = None) -> bool:
        await self._call("navigate", url, wait_until)
        if url in self.fail_urls:
            raise CapabilityFailure(f"Navigation failed: net::ERR_NAME_NOT_RESOLVED at {url}")
        self.current_url = url
        return True

    async def click(self, selector: str) -> bool:
        await self._call("click", selector)
        return True

    async def type_text(self, selector: str, text: str) -> bool:
        await self._call("type", selector, text)
        return True

    async def wait_for(self, selector: str, timeout: Optional[int] = None) -> bool:
        await self._call("wait", selector, timeout)
        return True

    async def screenshot(self, path: Optional[str] = None, full_page: bool = False, type: str = "png") -> bytes:
        await self._call("screenshot", path, full_page, type)
        return PNG_BYTES

    async def extract_page_data(self) -> Dict[str, Any]:
        await self._call("extract")
        return {
            "title": "Example Domain",
            "url": self.current_url,
            "text": self.page_text,
            "links": [{"text": "More information", "href": "https://www.iana.org/domains/example"}],
            "images": [],
            "formCount": 0,
            "buttonCount": 0,
        }

    async def run_script(self, script: str) -> Any:
        await self._call("run_script", script)
        return 42

    async def reset_session(self):
        await self._call("reset_session")


class FakeAnalyzer:
    """Stands in for PageAnalyzer; records into the engine's call log."""

    def __init__(self, engine: FakeEngine, present: Optional[List[str]] = None):
        self.engine = engine
        self.present = set(present if present is not None else ["h1", "p"])

    async def analyze_structure(self) -> Dict[str, Any]:
        await self.engine._call("analyze_structure")
        return {"headings": [{"level": "h1", "text": "Example Domain"}], "forms": [], "buttons": []}

    async def extract_main_content(self) -> Dict[str, Any]:
        await self.engine._call("extract_main_content")
        return {"text": self.engine.page_text, "html": "<p>Example Domain</p>", "headings": []}

    async def extract_links(self) -> List[Dict[str, Any]]:
        await self.engine._call("extract_links")
        return [{"text": "More information", "href": "https://www.iana.org/domains/example", "isExternal": True}]

    async def check_elements(self, selectors: List[str]) -> Dict[str, bool]:
        await self.engine._call("check_elements", tuple(selectors))
        return {selector: selector in self.present for selector in selectors}

    async def extract_forms(self) -> List[Dict[str, Any]]:
        await self.engine._call("extract_forms")
        return [{"id": "search", "action": "/search", "method": "get", "fields": []}]

    async def get_performance_metrics(self) -> Dict[str, Any]:
        await self.engine._call("get_performance_metrics")
        return {"loadTime": 120, "domReady": 80, "responseTime": 30}


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def analyzer(engine):
    return FakeAnalyzer(engine)
