"""docharvest: crawl a search listing, extract document IDs, download the PDFs."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("docharvest")
except PackageNotFoundError:
    __version__ = "0.0.0+dev"
