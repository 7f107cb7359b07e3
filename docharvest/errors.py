"""Error types raised while fetching pages and downloading documents."""


class HarvestError(RuntimeError):
    """Base class for docharvest errors."""


class FetchError(HarvestError):
    """Network error, timeout, or non-success status while retrieving a resource."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{reason} ({url})")
        self.url = url
        self.reason = reason


class RenderError(FetchError):
    """Headless browser navigation failed or timed out."""


class DownloadError(HarvestError):
    """A response was received but is not a usable document."""


class ContentTypeMismatch(DownloadError):
    def __init__(self, url: str, content_type: str, expected: str) -> None:
        super().__init__(
            f"invalid content type for {url}: {content_type or '(none)'} (expected {expected})"
        )
        self.url = url
        self.content_type = content_type
        self.expected = expected


class EmptyBodyError(DownloadError):
    def __init__(self, url: str) -> None:
        super().__init__(f"downloaded 0 bytes for {url}; not creating file")
        self.url = url


class FilesystemError(HarvestError):
    """Creating, writing, or appending to a local file or directory failed."""
