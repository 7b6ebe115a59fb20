"""Interfaces the engine components drive: a browser session and a page analyzer."""

from typing import Protocol, Optional, Dict, Any, List


class AutomationDriver(Protocol):
    async def navigate(self, url: str, wait_until: str = "networkidle", timeout: Optional[int] = None) -> bool:
        ...

    async def click(self, selector: str, timeout: Optional[int] = None) -> bool:
        ...

    async def type_text(self, selector: str, text: str, timeout: Optional[int] = None) -> bool:
        ...

    async def wait_for(self, selector: str, timeout: Optional[int] = None) -> bool:
        ...

    async def screenshot(self, path: Optional[str] = None, full_page: bool = False, type: str = "png") -> bytes:
        ...

    async def extract_page_data(self) -> Dict[str, Any]:
        ...

    async def run_script(self, script: str) -> Any:
        ...

    async def reset_session(self) -> None:
        ...


class PageAnalysis(Protocol):
    async def analyze_structure(self) -> Dict[str, Any]:
        ...

    async def extract_links(self) -> List[Dict[str, Any]]:
        ...

    async def check_elements(self, selectors: List[str]) -> Dict[str, bool]:
        ...

    async def get_performance_metrics(self) -> Dict[str, Any]:
        ...

    async def extract_main_content(self) -> Dict[str, Any]:
        ...

    async def extract_forms(self) -> List[Dict[str, Any]]:
        ...
