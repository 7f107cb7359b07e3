from __future__ import annotations

import sys
import types

import httpx
import pytest

from docharvest.config import HarvestConfig
from docharvest.errors import FetchError, RenderError
from docharvest.fetcher import DEFAULT_USER_AGENT, BrowserFetcher, HttpFetcher, make_client, make_fetcher

PAGE = "https://sds.airproducts.com/MaterialSearchResults?searchText=a"


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_http_fetch_returns_body_text():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="<a href='javascript:apci.LoadPDF(1);'>x</a>")

    with _client(handler) as client, HttpFetcher(client=client) as fetcher:
        assert "LoadPDF(1)" in fetcher.fetch(PAGE)
    assert str(seen[0].url) == PAGE


@pytest.mark.parametrize("status", [403, 404, 500])
def test_http_fetch_non_success_raises_fetch_error(status: int):
    with _client(lambda req: httpx.Response(status, text="nope")) as client:
        with pytest.raises(FetchError) as exc:
            HttpFetcher(client=client).fetch(PAGE)
    assert exc.value.url == PAGE
    assert str(status) in exc.value.reason


def test_http_fetch_network_error_raises_fetch_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with _client(handler) as client:
        with pytest.raises(FetchError, match="ConnectTimeout"):
            HttpFetcher(client=client).fetch(PAGE)


def test_fetcher_does_not_close_borrowed_client():
    with _client(lambda req: httpx.Response(200, text="ok")) as client:
        with HttpFetcher(client=client) as fetcher:
            fetcher.fetch(PAGE)
        assert not client.is_closed


def test_make_client_sends_browser_headers():
    with make_client(12.0) as client:
        assert client.headers["User-Agent"] == DEFAULT_USER_AGENT
        assert client.timeout.read == 12.0


def test_make_fetcher_picks_strategy():
    assert isinstance(make_fetcher(HarvestConfig()), HttpFetcher)
    browser = make_fetcher(HarvestConfig(use_browser=True, render_timeout=60))
    assert isinstance(browser, BrowserFetcher)
    browser.close()  # never launched; nothing to tear down


def test_render_error_is_a_fetch_error():
    err = RenderError(PAGE, "Timeout 300000ms exceeded")
    assert isinstance(err, FetchError)
    assert PAGE in str(err)


class FakeResponse:
    def __init__(self, status: int) -> None:
        self.status = status
        self.ok = 200 <= status < 300


class FakePage:
    def __init__(self, response=None, goto_error: Exception | None = None, html: str = "<html></html>") -> None:
        self.response = response
        self.goto_error = goto_error
        self.html = html
        self.closed = False

    def goto(self, url: str, wait_until: str, timeout: int):
        if self.goto_error is not None:
            raise self.goto_error
        return self.response

    def content(self) -> str:
        return self.html

    def close(self) -> None:
        self.closed = True


class FakeContext:
    def __init__(self, page: FakePage | None = None, error: Exception | None = None) -> None:
        self.page = page
        self.error = error

    def new_page(self) -> FakePage:
        if self.error is not None:
            raise self.error
        return self.page

    def close(self) -> None:
        pass


class FakeTimeoutError(Exception):
    """Stands in for playwright's TimeoutError."""


def _browser_fetcher(context: FakeContext) -> BrowserFetcher:
    fetcher = BrowserFetcher(timeout=5)
    fetcher._browser_context = context
    return fetcher


def test_browser_fetch_returns_rendered_dom():
    page = FakePage(response=FakeResponse(200), html="<a onclick='LoadPDF(7)'>x</a>")
    assert "LoadPDF(7)" in _browser_fetcher(FakeContext(page)).fetch(PAGE)
    assert page.closed


def test_browser_fetch_non_success_status_raises_render_error():
    page = FakePage(response=FakeResponse(503))
    with pytest.raises(RenderError, match="HTTP 503") as exc:
        _browser_fetcher(FakeContext(page)).fetch(PAGE)
    assert exc.value.url == PAGE
    assert page.closed


def test_browser_fetch_timeout_raises_render_error():
    page = FakePage(goto_error=FakeTimeoutError("Timeout 5000ms exceeded"))
    with pytest.raises(RenderError, match="Timeout 5000ms exceeded"):
        _browser_fetcher(FakeContext(page)).fetch(PAGE)
    assert page.closed


def test_browser_new_page_failure_raises_render_error():
    context = FakeContext(error=Exception("Target page, context or browser has been closed"))
    with pytest.raises(RenderError, match="has been closed") as exc:
        _browser_fetcher(context).fetch(PAGE)
    assert exc.value.url == PAGE


def test_browser_context_failure_during_launch_raises_render_error(monkeypatch):
    stopped = []

    class FakeBrowser:
        def new_context(self, **kwargs):
            raise Exception("Browser has been closed")

        def close(self) -> None:
            pass

    class FakePlaywright:
        chromium = types.SimpleNamespace(launch=lambda headless: FakeBrowser())

        def stop(self) -> None:
            stopped.append(True)

    sync_api = types.ModuleType("playwright.sync_api")
    sync_api.sync_playwright = lambda: types.SimpleNamespace(start=FakePlaywright)
    monkeypatch.setitem(sys.modules, "playwright", types.ModuleType("playwright"))
    monkeypatch.setitem(sys.modules, "playwright.sync_api", sync_api)

    fetcher = BrowserFetcher(timeout=5)
    with pytest.raises(RenderError, match="browser launch failed"):
        fetcher.fetch(PAGE)
    assert stopped == [True]
    assert fetcher._browser_context is None
