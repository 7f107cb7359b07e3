"""Extract document identifiers from listing markup, and order-preserving dedupe."""

import re
from typing import Hashable, Iterable, Protocol, TypeVar

from bs4 import BeautifulSoup

from docharvest.config import DEFAULT_CALL_NAME

T = TypeVar("T", bound=Hashable)

# Attributes that carry the javascript: call on listing rows
CALL_ATTRS = ("href", "onclick")


def call_pattern(name: str = DEFAULT_CALL_NAME) -> re.Pattern[str]:
    """Regex for `name(NUMBER)`; group 1 is the number."""
    return re.compile(rf"{re.escape(name)}\((\d+)\)")


class ExtractionStrategy(Protocol):
    def extract(self, markup: str) -> list[str]: ...


class CallPatternExtractor:
    """
    Scan raw text left to right for calls like `javascript:apci.LoadPDF(123456);`.
    Duplicates are kept; use dedupe() afterwards.
    """

    def __init__(self, name: str = DEFAULT_CALL_NAME) -> None:
        self.name = name
        self._pattern = call_pattern(name)

    def extract(self, markup: str) -> list[str]:
        if not markup:
            return []
        return [m.group(1) for m in self._pattern.finditer(markup)]


class AnchorCallExtractor:
    """
    Same pattern, but only inside href/onclick attribute values, in document order.
    Ignores matches in visible text or inline scripts.
    """

    def __init__(self, name: str = DEFAULT_CALL_NAME, parser: str = "lxml") -> None:
        self.name = name
        self._pattern = call_pattern(name)
        self._parser = parser

    def extract(self, markup: str) -> list[str]:
        if not markup:
            return []
        soup = BeautifulSoup(markup, self._parser)
        ids: list[str] = []
        for tag in soup.find_all(True):
            for attr in CALL_ATTRS:
                value = tag.get(attr)
                if not value or not isinstance(value, str):
                    continue
                ids.extend(m.group(1) for m in self._pattern.finditer(value))
        return ids


def extract_ids(markup: str, name: str = DEFAULT_CALL_NAME) -> list[str]:
    """Standalone raw-text extraction. Prefer a strategy object for repeated use."""
    return CallPatternExtractor(name).extract(markup)


def dedupe(items: Iterable[T]) -> list[T]:
    """Drop repeats, keeping first-seen order."""
    seen: set[T] = set()
    out: list[T] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out
