from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable

import httpx
import pytest

from docharvest.config import HarvestConfig

PDF_BODY = b"%PDF-1.4\n% test document\n%%EOF\n"


class RecordingPDFServer:
    """MockTransport handler serving PDFs; per-URL overrides for error cases."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.overrides: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self._lock = threading.Lock()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        with self._lock:
            self.calls.append(url)
        override = self.overrides.get(url)
        if override is not None:
            return override(request)
        return httpx.Response(200, headers={"Content-Type": "application/pdf"}, content=PDF_BODY)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))


class StaticFetcher:
    """Page fetcher returning canned markup per URL; an exception value is raised instead."""

    def __init__(self, pages: dict[str, str | Exception] | None = None, default: str = "") -> None:
        self.pages = pages or {}
        self.default = default
        self.calls: list[str] = []

    def fetch(self, url: str) -> str:
        self.calls.append(url)
        value = self.pages.get(url, self.default)
        if isinstance(value, Exception):
            raise value
        return value

    def close(self) -> None:
        pass


@pytest.fixture
def pdf_server() -> RecordingPDFServer:
    return RecordingPDFServer()


@pytest.fixture
def config(tmp_path: Path) -> HarvestConfig:
    return HarvestConfig(
        alphabet="a",
        output_dir=tmp_path / "PDFs",
        cache_file=tmp_path / "scraped_data.html",
        ledger_file=tmp_path / "document_urls.txt",
        show_progress=False,
    )
