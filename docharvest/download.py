"""Validated fetch-to-disk of documents, and concurrent batches of them."""

import sys
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Sequence

import httpx
from tqdm import tqdm

from docharvest.config import DEFAULT_TIMEOUT, EXPECTED_CONTENT_TYPE, HarvestConfig
from docharvest.errors import (
    ContentTypeMismatch,
    DownloadError,
    EmptyBodyError,
    FetchError,
    FilesystemError,
)
from docharvest.fetcher import make_client
from docharvest.storage import write_binary


class DownloadStatus(str, Enum):
    SKIPPED = "skipped"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class DownloadResult:
    """Outcome of one download attempt. Not persisted."""

    status: DownloadStatus
    url: str
    path: Path
    bytes_written: int = 0
    reason: str | None = None

    @property
    def ok(self) -> bool:
        """True unless the attempt failed (a skip counts as done)."""
        return self.status != DownloadStatus.FAILED

    def describe(self) -> str:
        if self.status == DownloadStatus.SKIPPED:
            return f"SKIP {self.url} (exists: {self.path})"
        if self.status == DownloadStatus.SUCCESS:
            return f"OK {self.bytes_written} bytes: {self.url} → {self.path}"
        return f"FAIL {self.url} → {self.path}: {self.reason}"


def _skipped(url: str, path: Path) -> DownloadResult:
    return DownloadResult(DownloadStatus.SKIPPED, url, path)


def _failed(url: str, path: Path, reason: str) -> DownloadResult:
    return DownloadResult(DownloadStatus.FAILED, url, path, reason=reason)


class DownloadManager:
    """
    Downloads documents into one flat directory.

    Each download is independent: existence check first, then a GET whose
    status, Content-Type and size are validated while the body sits in memory;
    only then is the destination file created. Per-target errors become FAILED
    results, never exceptions.
    """

    def __init__(
        self,
        output_dir: Path,
        *,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        expected_content_type: str = EXPECTED_CONTENT_TYPE,
        max_workers: int | None = None,
        show_progress: bool = True,
    ) -> None:
        self.output_dir = Path(output_dir)
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._client_lock = threading.Lock()
        self._expected = expected_content_type.lower()
        self._max_workers = max_workers
        self._show_progress = show_progress

    @classmethod
    def from_config(cls, config: HarvestConfig, client: httpx.Client | None = None) -> "DownloadManager":
        return cls(
            config.output_dir,
            client=client,
            timeout=config.timeout,
            expected_content_type=config.expected_content_type,
            max_workers=config.max_workers,
            show_progress=config.show_progress,
        )

    def _get_client(self) -> httpx.Client:
        # download_all calls this from every worker; exactly one client per manager
        with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = make_client(self._timeout)
                self._owns_client = True
            return self._client

    def close(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            self._client.close()

    def __enter__(self) -> "DownloadManager":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _fetch_document(self, url: str) -> bytes:
        """GET url and return the validated body. Raises FetchError or DownloadError."""
        try:
            with self._get_client().stream("GET", url, timeout=self._timeout) as resp:
                if not resp.is_success:
                    raise FetchError(url, f"HTTP {resp.status_code} {resp.reason_phrase}".rstrip())
                content_type = resp.headers.get("content-type", "")
                if self._expected not in content_type.lower():
                    raise ContentTypeMismatch(url, content_type, self._expected)
                data = resp.read()
        except httpx.HTTPError as e:
            raise FetchError(url, f"{type(e).__name__}: {e}") from e
        if not data:
            raise EmptyBodyError(url)
        return data

    def download(self, url: str, dest_name: str) -> DownloadResult:
        """Download one document to output_dir/dest_name unless that file already exists."""
        dest = self.output_dir / dest_name
        if dest.is_file():
            return _skipped(url, dest)
        if dest.exists():
            return _failed(url, dest, "destination exists and is not a regular file")
        try:
            data = self._fetch_document(url)
        except FetchError as e:
            return _failed(url, dest, f"failed to download: {e.reason}")
        except DownloadError as e:
            return _failed(url, dest, str(e))
        try:
            write_binary(dest, data, exclusive=True)
        except FileExistsError:
            # another task wrote the same destination first
            return _skipped(url, dest)
        except FilesystemError as e:
            return _failed(url, dest, str(e))
        return DownloadResult(DownloadStatus.SUCCESS, url, dest, bytes_written=len(data))

    def download_all(self, targets: Sequence[tuple[str, str]]) -> list[DownloadResult]:
        """
        Run download(url, dest_name) for every target concurrently and wait for all.
        One worker per target unless max_workers caps it. Results are in input order.
        """
        if not targets:
            return []
        n = len(targets)
        workers = min(n, self._max_workers) if self._max_workers else n
        results: list[DownloadResult | None] = [None] * n
        print(f"  → Downloading {n} document{'s' if n != 1 else ''}...", file=sys.stderr)
        with tqdm(
            total=n, desc="Downloading", unit=" doc", file=sys.stderr, disable=not self._show_progress
        ) as pbar:
            with ThreadPoolExecutor(max_workers=workers) as ex:
                futures = {
                    ex.submit(self.download, url, dest_name): i
                    for i, (url, dest_name) in enumerate(targets)
                }
                for done, fut in enumerate(as_completed(futures), start=1):
                    i = futures[fut]
                    url, dest_name = targets[i]
                    try:
                        result = fut.result()
                    except Exception as e:
                        # still one result per target
                        result = _failed(url, self.output_dir / dest_name, f"unexpected error: {e!r}")
                    results[i] = result
                    pbar.update(1)
                    prefix = f"  [{done}/{n}] " if n > 1 else "  "
                    tqdm.write(prefix + result.describe(), file=sys.stderr)
        return [r for r in results if r is not None]
