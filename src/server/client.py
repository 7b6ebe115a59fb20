"""Async HTTP client for the RindBrowser API."""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from utils import log, config


class RindBrowserAPIError(Exception):
    """The API answered with a non-success status."""

    def __init__(self, status_code: int, error: str, body: Optional[Dict[str, Any]] = None):
        super().__init__(f"HTTP {status_code}: {error}")
        self.status_code = status_code
        self.error = error
        self.body = body or {}


class RindBrowserClient:
    """
    Thin wrapper over the HTTP routes plus a few composed helpers.

    Connection-level failures are retried; HTTP error responses are not.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        max_attempts: int = 3,
        retry_wait=None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the client.

        Args:
            base_url: API root (defaults to http://HOST:PORT from configuration)
            timeout: Per-request timeout in seconds
            max_attempts: Attempts per request on connection errors
            retry_wait: tenacity wait strategy between attempts
            transport: Custom httpx transport
        """
        self.base_url = base_url or f"http://{config.host}:{config.port}"
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    log.warning(f"Retrying {method} {path} (attempt {attempt.retry_state.attempt_number})")
                response = await self._client.request(method, path, json=json, params=params)

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            error = body.get("error") if isinstance(body, dict) else None
            raise RindBrowserAPIError(response.status_code, error or response.text, body)
        return response

    async def _call(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        response = await self._request(method, path, json=json, params=params)
        return response.json()

    # Routes

    async def health(self) -> Dict[str, Any]:
        return await self._call("GET", "/health")

    async def initialize(self, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self._call("POST", "/initialize", {"options": options or {}})

    async def navigate(self, url: str) -> Dict[str, Any]:
        return await self._call("POST", "/navigate", {"url": url})

    async def extract(self) -> Dict[str, Any]:
        return await self._call("GET", "/extract")

    async def analyze(self, include: Optional[List[str]] = None) -> Dict[str, Any]:
        """Structure analysis; ``include`` adds ``content`` and/or ``forms`` sections."""
        params = {"include": ",".join(include)} if include else None
        return await self._call("GET", "/analyze", params=params)

    async def click(self, selector: str) -> Dict[str, Any]:
        return await self._call("POST", "/click", {"selector": selector})

    async def type_text(self, selector: str, text: str) -> Dict[str, Any]:
        return await self._call("POST", "/type", {"selector": selector, "text": text})

    async def screenshot(self, full_page: bool = False) -> bytes:
        """Capture the current page; returns raw PNG bytes."""
        response = await self._request("POST", "/screenshot", {"fullPage": full_page})
        return response.content

    async def execute_workflow(
        self,
        workflow: Any,
        params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Execute a workflow.

        Args:
            workflow: Registered workflow name, or an inline list of steps
            params: Overrides for parameters the steps omit
        """
        payload: Dict[str, Any] = {"params": params or {}}
        if isinstance(workflow, str):
            payload["workflowName"] = workflow
        else:
            payload["steps"] = list(workflow)
        return await self._call("POST", "/workflow/execute", payload)

    async def register_workflow(self, name: str, steps: List[Dict[str, Any]]) -> Dict[str, Any]:
        return await self._call("POST", "/workflow/register", {"name": name, "steps": steps})

    async def start_monitor(
        self,
        url: str,
        interval: int = 60000,
        monitor_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Start a monitor; ``interval`` is in milliseconds. A missing id is generated."""
        monitor_id = monitor_id or f"monitor-{uuid.uuid4().hex[:8]}"
        data = await self._call(
            "POST", "/monitor/start", {"url": url, "interval": interval, "monitorId": monitor_id}
        )
        return {**data, "monitorId": monitor_id}

    async def stop_monitor(self, monitor_id: str) -> Dict[str, Any]:
        return await self._call("POST", "/monitor/stop", {"monitorId": monitor_id})

    async def monitor_events(self, monitor_id: str) -> Dict[str, Any]:
        return await self._call("GET", f"/monitor/{monitor_id}/events")

    async def competitor_research(self, competitors: List[Dict[str, str]]) -> Dict[str, Any]:
        return await self._call("POST", "/research/competitors", {"competitors": competitors})

    async def qa_test(self, test_suite: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call("POST", "/qa/test", {"testSuite": test_suite})

    async def status(self) -> Dict[str, Any]:
        return await self._call("GET", "/status")

    async def close(self) -> Dict[str, Any]:
        return await self._call("POST", "/close")

    # Helpers

    async def analyze_page(self, url: str) -> Dict[str, Any]:
        """Navigate to ``url`` and merge page data with the structure analysis."""
        await self.navigate(url)
        extracted = await self.extract()
        analyzed = await self.analyze()
        return {
            "url": url,
            "timestamp": datetime.now().isoformat(),
            **extracted.get("data", {}),
            **analyzed.get("analysis", {}),
        }

    async def login(
        self,
        url: str,
        username_selector: str,
        username: str,
        password_selector: str,
        password: str,
        submit_selector: str
    ) -> Dict[str, Any]:
        steps = [
            {"action": "navigate", "url": url},
            {"action": "type", "selector": username_selector, "text": username},
            {"action": "type", "selector": password_selector, "text": password},
            {"action": "click", "selector": submit_selector},
            {"action": "wait", "selector": "body", "timeout": 5000},
        ]
        return await self.execute_workflow(steps)

    async def fill_form(self, fields: List[Dict[str, str]]) -> Dict[str, Any]:
        """Type each ``{selector, value}`` pair in order."""
        steps = [
            {"action": "type", "selector": field["selector"], "text": field["value"]}
            for field in fields
        ]
        return await self.execute_workflow(steps)
