"""Browser automation engine using Playwright."""

import io
from pathlib import Path
from typing import Optional, Dict, Any, Tuple
from playwright.async_api import (
    async_playwright,
    Browser,
    Page,
    BrowserContext,
    TimeoutError as PlaywrightTimeoutError,
)
from PIL import Image

from core.errors import CapabilityFailure, NotInitialized
from utils import log, config, BrowserOptions


EXTRACT_PAGE_DATA_SCRIPT = """
(textLimit) => {
    return {
        title: document.title,
        url: window.location.href,
        text: (document.body ? document.body.innerText : '').substring(0, textLimit),
        links: Array.from(document.querySelectorAll('a')).map(a => ({
            text: a.innerText,
            href: a.href
        })).slice(0, 50),
        images: Array.from(document.querySelectorAll('img')).map(img => ({
            src: img.src,
            alt: img.alt
        })).slice(0, 20),
        formCount: document.querySelectorAll('form').length,
        buttonCount: document.querySelectorAll('button').length
    };
}
"""


class BrowserEngine:
    """Drives a single Playwright browser session, one primitive at a time."""

    def __init__(self, options: Optional[BrowserOptions] = None):
        """
        Initialize the browser engine.

        Args:
            options: Launch options (browser type, headless, default timeout)
        """
        self.options = options or config.browser_options()
        self.browser_type = self.options.browser_type
        self.headless = self.options.headless
        self.timeout = self.options.timeout
        self.playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Start the browser."""
        log.info(f"Starting browser: {self.browser_type} (headless={self.headless})")

        self.playwright = await async_playwright().start()

        try:
            # Launch browser with appropriate settings
            self.browser, actual_type = await self._launch_browser(self.browser_type)
            self.browser_type = actual_type

            await self._create_context_and_page()
        except Exception:
            # Leave no Playwright driver behind a failed launch
            await self.close()
            raise

        log.info("Browser started successfully")

    async def _launch_browser(self, browser_type: str) -> Tuple[Browser, str]:
        """Launch the requested browser type, falling back if needed."""
        browser_map = {
            "chromium": self.playwright.chromium,
            "firefox": self.playwright.firefox,
            "webkit": self.playwright.webkit,
        }
        target = browser_map.get(browser_type.lower())
        if not target:
            log.warning(f"Unknown browser_type '{browser_type}', defaulting to Chromium")
            target = self.playwright.chromium
            browser_type = "chromium"

        try:
            log.info(f"Launching Playwright browser: {browser_type}")
            args = ["--no-sandbox", "--disable-setuid-sandbox"] if browser_type == "chromium" else []
            browser = await target.launch(headless=self.headless, args=args)
            return browser, browser_type
        except Exception as launch_error:
            log.error(f"Failed to launch {browser_type}: {launch_error}")
            if browser_type == "chromium":
                log.info("Attempting fallback to WebKit")
                browser = await self.playwright.webkit.launch(headless=self.headless)
                return browser, "webkit"
            raise

    async def close(self):
        """Close the browser and cleanup."""
        log.info("Closing browser")

        try:
            for name, resource, release in (
                ("context", self.context, "close"),
                ("browser", self.browser, "close"),
                ("playwright", self.playwright, "stop"),
            ):
                if not resource:
                    continue
                try:
                    await getattr(resource, release)()
                except Exception as e:
                    log.error(f"Failed to {release} {name}: {e}")
        finally:
            self.page = None
            self.context = None
            self.browser = None
            self.playwright = None

    async def _create_context_and_page(self):
        """Create a fresh browser context and page."""
        if not self.browser:
            return
        self.context = await self.browser.new_context(
            viewport=self.options.viewport,
            user_agent=self.options.user_agent
        )
        self.context.set_default_timeout(self.timeout)
        self.page = await self.context.new_page()

    async def reset_session(self):
        """Discard cookies, storage and the current page by opening a new context."""
        self.ensure_started()
        log.info("Resetting browser session")
        if self.context:
            await self.context.close()
        await self._create_context_and_page()

    def ensure_started(self):
        if not self.browser:
            raise NotInitialized("Browser not initialized. Call start() first.")

    async def _ensure_page(self) -> Page:
        """Ensure a valid page exists before interacting."""
        self.ensure_started()
        if self.page and not self.page.is_closed():
            return self.page
        if not self.context:
            await self._create_context_and_page()
            return self.page
        try:
            self.page = await self.context.new_page()
        except Exception:
            await self._create_context_and_page()
        return self.page

    def _failure(self, action: str, error: Exception) -> CapabilityFailure:
        """Convert a Playwright error into a capability failure."""
        if isinstance(error, PlaywrightTimeoutError):
            log.error(f"{action} timed out: {error}")
            return CapabilityFailure(f"Timeout: {action} exceeded its time limit", timeout=True)
        log.error(f"{action} failed: {error}")
        return CapabilityFailure(f"{action} failed: {error}")

    async def navigate(self, url: str, wait_until: str = "networkidle", timeout: Optional[int] = None) -> bool:
        """
        Navigate to a URL.

        Args:
            url: URL to navigate to
            wait_until: When to consider navigation successful
                       ("load", "domcontentloaded", "networkidle")
            timeout: Maximum time in milliseconds (defaults to the session timeout)

        Returns:
            True once the navigation completed
        """
        page = await self._ensure_page()
        try:
            log.info(f"Navigating to: {url}")
            await page.goto(url, wait_until=wait_until, timeout=timeout or self.timeout)
            return True
        except Exception as e:
            raise self._failure(f"Navigation to {url}", e) from e

    async def screenshot(self, path: Optional[str] = None, full_page: bool = False, type: str = "png") -> bytes:
        """
        Take a screenshot of the current page.

        Args:
            path: Optional path to save screenshot (relative paths land in SCREENSHOT_DIR)
            full_page: Capture the whole scrollable page
            type: Image format ("png" or "jpeg")

        Returns:
            Encoded image bytes
        """
        page = await self._ensure_page()
        try:
            screenshot_bytes = await page.screenshot(full_page=full_page, type=type)
        except Exception as e:
            raise self._failure("Screenshot", e) from e

        if path:
            output_path = Path(path)
            if not output_path.is_absolute():
                output_path = config.screenshot_dir / output_path
            output_path.parent.mkdir(parents=True, exist_ok=True)
            image = Image.open(io.BytesIO(screenshot_bytes))
            image.save(output_path, quality=config.screenshot_quality)

        log.info(f"Screenshot captured: {path or 'buffer'}")
        return screenshot_bytes

    async def click(self, selector: str, timeout: Optional[int] = None) -> bool:
        """
        Click an element by selector.

        Args:
            selector: CSS selector for element
            timeout: Maximum time in milliseconds

        Returns:
            True if the click landed
        """
        page = await self._ensure_page()
        try:
            log.info(f"Clicking: {selector}")
            await page.click(selector, timeout=timeout or self.timeout)
            return True
        except Exception as e:
            raise self._failure(f"Click on {selector}", e) from e

    async def type_text(self, selector: str, text: str, timeout: Optional[int] = None) -> bool:
        """
        Type text into an input field.

        Args:
            selector: CSS selector for input element
            text: Text to type
            timeout: Maximum time in milliseconds

        Returns:
            True if typing succeeded
        """
        page = await self._ensure_page()
        try:
            log.info(f"Typing into: {selector}")
            await page.fill(selector, text, timeout=timeout or self.timeout)
            return True
        except Exception as e:
            raise self._failure(f"Typing into {selector}", e) from e

    async def wait_for(self, selector: str, timeout: Optional[int] = None) -> bool:
        """
        Wait for a selector to appear.

        Args:
            selector: CSS selector to wait for
            timeout: Maximum time to wait in milliseconds

        Returns:
            True once the element appeared
        """
        page = await self._ensure_page()
        try:
            await page.wait_for_selector(selector, timeout=timeout or self.timeout)
            log.info(f"Element found: {selector}")
            return True
        except Exception as e:
            raise self._failure(f"Waiting for {selector}", e) from e

    async def extract_page_data(self) -> Dict[str, Any]:
        """
        Extract page content and structure.

        Text is cut to the first ``config.page_text_limit`` characters.

        Returns:
            Title, URL, text, links, images and form/button counts
        """
        page = await self._ensure_page()
        try:
            data = await page.evaluate(EXTRACT_PAGE_DATA_SCRIPT, config.page_text_limit)
        except Exception as e:
            raise self._failure("Page data extraction", e) from e
        log.info(f"Extracted data from: {data.get('title')}")
        return data

    async def run_script(self, script: str) -> Any:
        """
        Execute JavaScript on the page.

        Args:
            script: JavaScript code to execute

        Returns:
            Result of script execution
        """
        page = await self._ensure_page()
        try:
            result = await page.evaluate(script)
        except Exception as e:
            raise self._failure("Script execution", e) from e
        log.debug("Script executed successfully")
        return result

    def get_status(self) -> Dict[str, Any]:
        """Get browser status."""
        return {
            "isLaunched": self.browser is not None,
            "browserType": self.browser_type,
            "headless": self.headless,
            "currentUrl": self.page.url if self.page else None
        }
