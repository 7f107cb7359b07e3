"""Filename sanitization, output directory, scrape cache, and the resume ledger."""

import re
import threading
from pathlib import Path

from docharvest.config import DEFAULT_NOISE_SUBSTRINGS, DOCUMENT_EXTENSION
from docharvest.errors import FilesystemError

_UNDERSCORE_RUN_RE = re.compile(r"_+")
_NOT_LETTER_RE = re.compile(r"[^a-z]")
_NOT_LETTER_OR_DIGIT_RE = re.compile(r"[^a-z0-9]")

FALLBACK_STEM = "document"


def url_to_filename(
    url: str,
    noise: tuple[str, ...] | list[str] = DEFAULT_NOISE_SUBSTRINGS,
    *,
    keep_digits: bool = True,
    ext: str = DOCUMENT_EXTENSION,
) -> str:
    """
    Map a URL (or bare identifier) to a flat, safe filename ending in ext exactly once.
    Lowercase; everything outside a-z (and 0-9 when keep_digits) becomes "_"; runs collapse;
    edges trimmed; noise substrings removed.
    keep_digits=False is lossy: URLs differing only in a numeric ID collide.
    """
    name = url.lower()
    ext = ext.lower()
    if ext and name.endswith(ext):
        name = name[: -len(ext)]
    pattern = _NOT_LETTER_OR_DIGIT_RE if keep_digits else _NOT_LETTER_RE
    name = pattern.sub("_", name)
    name = _UNDERSCORE_RUN_RE.sub("_", name).strip("_")
    for piece in noise:
        if piece:
            name = name.replace(piece, "")
    name = _UNDERSCORE_RUN_RE.sub("_", name).strip("_") or FALLBACK_STEM
    return f"{name}{ext}"


def ensure_output_dir(path: Path) -> Path:
    """Create the output directory (and parents). Raises FilesystemError if that is impossible."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"cannot create output directory {path}: {e}") from e
    if not path.is_dir():
        raise FilesystemError(f"output path is not a directory: {path}")
    return path


def append_markup(path: Path, markup: str) -> None:
    """Append one fetched page to the scrape cache, newline-terminated."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(markup + "\n")
    except OSError as e:
        raise FilesystemError(f"cannot append to scrape cache {path}: {e}") from e


def write_binary(path: Path, data: bytes, *, exclusive: bool = False) -> None:
    """
    Write binary data. Raises FilesystemError.
    With exclusive=True an existing file is left alone and FileExistsError propagates.
    """
    try:
        f = open(path, "xb" if exclusive else "wb")
    except FileExistsError:
        raise
    except OSError as e:
        raise FilesystemError(f"failed to create {path}: {e}") from e
    try:
        with f:
            f.write(data)
    except OSError as e:
        # a truncated file would be skipped as complete on the next run
        path.unlink(missing_ok=True)
        raise FilesystemError(f"failed to write {path}: {e}") from e


def _missing_final_newline(path: Path) -> bool:
    """True for a non-empty file whose last byte is not a newline (e.g. hand-edited)."""
    if not path.exists() or path.stat().st_size == 0:
        return False
    with open(path, "rb") as f:
        f.seek(-1, 2)
        return f.read(1) != b"\n"


class ResumeLedger:
    """
    Append-only file of target URLs, one per line, with set semantics.
    Records what was enqueued, not what finished downloading: a URL recorded
    before an interrupted download is still skipped when the ledger is consulted.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._entries: dict[str, None] | None = None  # insertion-ordered set
        self._lock = threading.Lock()

    def _read(self) -> dict[str, None]:
        entries: dict[str, None] = {}
        if not self.path.exists():
            return entries
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise FilesystemError(f"cannot read ledger {self.path}: {e}") from e
        for line in text.splitlines():
            line = line.strip()
            if line:
                entries[line] = None
        return entries

    def _ensure_loaded(self) -> dict[str, None]:
        if self._entries is None:
            self._entries = self._read()
        return self._entries

    def load(self) -> set[str]:
        """(Re)read the ledger file. Missing file means an empty ledger."""
        with self._lock:
            self._entries = self._read()
            return set(self._entries)

    def contains(self, url: str) -> bool:
        with self._lock:
            return url in self._ensure_loaded()

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and self.contains(url)

    def __len__(self) -> int:
        with self._lock:
            return len(self._ensure_loaded())

    def urls(self) -> list[str]:
        """Entries in file order."""
        with self._lock:
            return list(self._ensure_loaded())

    def record(self, url: str) -> bool:
        """Append url unless already present. Returns True if a line was written."""
        url = url.strip()
        if not url:
            return False
        with self._lock:
            entries = self._ensure_loaded()
            if url in entries:
                return False
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                prefix = "\n" if _missing_final_newline(self.path) else ""
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(prefix + url + "\n")
            except OSError as e:
                raise FilesystemError(f"cannot append to ledger {self.path}: {e}") from e
            entries[url] = None
            return True
