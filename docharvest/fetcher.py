"""Page fetch strategies: plain HTTP (httpx) or rendered DOM (Playwright). No retries."""

import sys
import threading
from typing import Protocol

import httpx

from docharvest.config import DEFAULT_RENDER_TIMEOUT, DEFAULT_TIMEOUT, HarvestConfig
from docharvest.errors import FetchError, RenderError

# Browser-like UA; the listing site serves a stripped page to unknown clients
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_HEADERS = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


class PageFetcher(Protocol):
    """Anything that turns a URL into markup text."""

    def fetch(self, url: str) -> str: ...

    def close(self) -> None: ...


def make_client(timeout: float = DEFAULT_TIMEOUT, headers: dict[str, str] | None = None) -> httpx.Client:
    """httpx client shared by page and document requests."""
    return httpx.Client(
        follow_redirects=True,
        timeout=timeout,
        headers={**DEFAULT_HEADERS, **(headers or {})},
    )


class HttpFetcher:
    """Direct GET; returns the response body as text."""

    def __init__(self, *, timeout: float = DEFAULT_TIMEOUT, client: httpx.Client | None = None) -> None:
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._client_lock = threading.Lock()

    def _get_client(self) -> httpx.Client:
        with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = make_client(self._timeout)
                self._owns_client = True
            return self._client

    def fetch(self, url: str) -> str:
        try:
            resp = self._get_client().get(url, timeout=self._timeout)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(url, f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise FetchError(url, f"{type(e).__name__}: {e}") from e
        return resp.text

    def close(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            self._client.close()

    def __enter__(self) -> "HttpFetcher":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class BrowserFetcher:
    """
    Load the page in a Chromium context, wait for the load event, return the rendered DOM.
    Playwright's sync API is bound to the creating thread; fetch from one thread only.
    """

    def __init__(self, *, timeout: float = DEFAULT_RENDER_TIMEOUT, headed: bool = False) -> None:
        self._timeout = timeout
        self._headed = headed
        self._playwright = None
        self._browser = None
        self._browser_context = None

    def _get_browser_context(self):
        """Lazy-init Playwright browser and one isolated context for every page."""
        if self._browser_context is not None:
            return self._browser_context
        try:
            from playwright.sync_api import sync_playwright
        except ImportError as e:
            raise RenderError(
                "playwright",
                "Browser fetch (--js) requires: pip install docharvest[js] && playwright install chromium",
            ) from e
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(headless=not self._headed)
            self._browser_context = self._browser.new_context(
                viewport={"width": 1280, "height": 720},
                user_agent=DEFAULT_USER_AGENT,
            )
        except Exception as e:
            self.close()
            raise RenderError("chromium", f"browser launch failed: {e}") from e
        return self._browser_context

    def fetch(self, url: str) -> str:
        ctx = self._get_browser_context()
        page = None
        try:
            page = ctx.new_page()
            resp = page.goto(url, wait_until="load", timeout=int(self._timeout * 1000))
            if resp is not None and not resp.ok:
                raise RenderError(url, f"HTTP {resp.status}")
            return page.content()
        except RenderError:
            raise
        except Exception as e:
            # playwright raises TimeoutError / Error subclasses; both end the attempt
            raise RenderError(url, f"{type(e).__name__}: {e}") from e
        finally:
            if page is not None:
                try:
                    page.close()
                except Exception as e:
                    print(f"  Page close failed: {e}", file=sys.stderr)

    def close(self) -> None:
        if self._browser_context is not None:
            try:
                self._browser_context.close()
            except Exception as e:
                print(f"  Browser context close failed: {e}", file=sys.stderr)
            self._browser_context = None
        if self._browser is not None:
            try:
                self._browser.close()
            except Exception as e:
                print(f"  Browser close failed: {e}", file=sys.stderr)
            self._browser = None
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except Exception as e:
                print(f"  Playwright stop failed: {e}", file=sys.stderr)
            self._playwright = None

    def __enter__(self) -> "BrowserFetcher":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def make_fetcher(config: HarvestConfig, client: httpx.Client | None = None) -> HttpFetcher | BrowserFetcher:
    """Pick the fetch strategy the config asks for."""
    if config.use_browser:
        return BrowserFetcher(timeout=config.render_timeout, headed=config.headed)
    return HttpFetcher(timeout=config.timeout, client=client)
