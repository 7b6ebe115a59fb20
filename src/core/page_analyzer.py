"""Page content analysis for AI processing."""

from typing import Any, Dict, List

from playwright.async_api import Page

from core.browser_engine import BrowserEngine
from core.errors import CapabilityFailure
from utils import log


STRUCTURE_SCRIPT = """
() => {
    const count = (selector) => document.querySelectorAll(selector).length;
    const meta = (name) => document.querySelector(`meta[name="${name}"]`)?.content || '';

    return {
        structure: {
            headings: {
                h1: count('h1'), h2: count('h2'), h3: count('h3'),
                h4: count('h4'), h5: count('h5'), h6: count('h6')
            },
            content: {
                paragraphs: count('p'),
                lists: count('ul, ol'),
                tables: count('table'),
                articles: count('article'),
                sections: count('section')
            },
            interactive: {
                links: count('a'),
                buttons: count('button'),
                inputs: count('input'),
                textareas: count('textarea'),
                selects: count('select'),
                forms: count('form')
            },
            media: {
                images: count('img'),
                videos: count('video'),
                audios: count('audio'),
                iframes: count('iframe')
            }
        },
        metadata: {
            title: document.title,
            description: meta('description'),
            keywords: meta('keywords'),
            author: meta('author'),
            viewport: meta('viewport')
        }
    };
}
"""

MAIN_CONTENT_SCRIPT = """
(limit) => {
    const candidates = ['main', 'article', '[role="main"]', '#content', '.content'];
    let element = null;
    for (const selector of candidates) {
        element = document.querySelector(selector);
        if (element) break;
    }
    element = element || document.body;

    return {
        text: element.innerText.substring(0, limit),
        html: element.innerHTML.substring(0, limit),
        headings: Array.from(element.querySelectorAll('h1, h2, h3')).map(h => ({
            tag: h.tagName.toLowerCase(),
            text: h.innerText
        }))
    };
}
"""

LINKS_SCRIPT = """
() => Array.from(document.querySelectorAll('a')).map(link => ({
    text: link.innerText.trim(),
    href: link.href,
    title: link.title,
    target: link.target,
    isExternal: link.hostname !== window.location.hostname
}))
"""

FORMS_SCRIPT = """
() => Array.from(document.querySelectorAll('form')).map((form, index) => ({
    id: form.id || `form-${index}`,
    action: form.action,
    method: form.method,
    fields: Array.from(form.querySelectorAll('input, textarea, select')).map(field => ({
        type: field.type,
        name: field.name,
        id: field.id,
        placeholder: field.placeholder,
        required: field.required
    }))
}))
"""

PERFORMANCE_SCRIPT = """
() => {
    const timing = window.performance.timing;
    const navigation = window.performance.getEntriesByType('navigation')[0];

    return {
        loadTime: timing.loadEventEnd - timing.navigationStart,
        domReady: timing.domContentLoadedEventEnd - timing.navigationStart,
        responseTime: timing.responseEnd - timing.requestStart,
        resources: window.performance.getEntriesByType('resource').length,
        navigation: {
            type: navigation?.type || 'unknown',
            redirectCount: navigation?.redirectCount || 0
        }
    };
}
"""


class PageAnalyzer:
    """Structural, content and performance snapshots of the engine's current page."""

    def __init__(self, engine: BrowserEngine, content_limit: int = 10000):
        # The engine may swap its page (session reset), so the page is read per call.
        self.engine = engine
        self.content_limit = content_limit

    @property
    def page(self) -> Page:
        self.engine.ensure_started()
        return self.engine.page

    async def _evaluate(self, description: str, script: str, arg: Any = None) -> Any:
        page = self.page
        try:
            if arg is None:
                return await page.evaluate(script)
            return await page.evaluate(script, arg)
        except Exception as e:
            log.error(f"{description} failed: {e}")
            raise CapabilityFailure(f"{description} failed: {e}") from e

    async def analyze_structure(self) -> Dict[str, Any]:
        """Element counts by category plus document metadata."""
        return await self._evaluate("Structure analysis", STRUCTURE_SCRIPT)

    async def extract_main_content(self) -> Dict[str, Any]:
        """Text, HTML and headings of the main content area."""
        return await self._evaluate("Main content extraction", MAIN_CONTENT_SCRIPT, self.content_limit)

    async def extract_links(self) -> List[Dict[str, Any]]:
        return await self._evaluate("Link extraction", LINKS_SCRIPT)

    async def extract_forms(self) -> List[Dict[str, Any]]:
        return await self._evaluate("Form extraction", FORMS_SCRIPT)

    async def check_elements(self, selectors: List[str]) -> Dict[str, bool]:
        """
        Check which selectors match an element on the page.

        Args:
            selectors: CSS selectors to probe

        Returns:
            Mapping of selector to presence; a probe that errors counts as absent
        """
        page = self.page
        results: Dict[str, bool] = {}
        for selector in selectors:
            try:
                results[selector] = await page.query_selector(selector) is not None
            except Exception as e:
                log.warning(f"Element probe failed for {selector}: {e}")
                results[selector] = False
        return results

    async def get_performance_metrics(self) -> Dict[str, Any]:
        """Navigation timing and resource counts for the current page."""
        return await self._evaluate("Performance metrics", PERFORMANCE_SCRIPT)
