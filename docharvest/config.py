"""Run configuration: source templates, local paths, timeouts. Built once at startup."""

from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_SEARCH_URL_TEMPLATE = "https://sds.airproducts.com/MaterialSearchResults?searchText={query}"
DEFAULT_DOCUMENT_URL_TEMPLATE = "https://sds.airproducts.com/DisplayPDF?documentID={identifier}"
DEFAULT_ALPHABET = "abcdefghijklmnopqrstuvwxyz"

DEFAULT_OUTPUT_DIR = Path("PDFs")
DEFAULT_CACHE_FILE = Path("scraped_data.html")
DEFAULT_LEDGER_FILE = Path("document_urls.txt")

DEFAULT_TIMEOUT = 30.0
DEFAULT_RENDER_TIMEOUT = 300.0  # page scripts may run for a while before the DOM settles
EXPECTED_CONTENT_TYPE = "application/pdf"
DOCUMENT_EXTENSION = ".pdf"

# Name of the JS call wrapping each document ID in the listing markup, e.g. apci.LoadPDF(123456)
DEFAULT_CALL_NAME = "LoadPDF"

# text: regex over the raw markup. anchor: only href/onclick attribute values (BeautifulSoup)
EXTRACTOR_CHOICES = ("text", "anchor")
DEFAULT_EXTRACTOR = "text"

# Source-specific prefixes that otherwise dominate sanitized filenames
DEFAULT_NOISE_SUBSTRINGS = (
    "https_assets_thermofisher_com_directwebviewer_private_document_aspx_prd_",
)


@dataclass(frozen=True)
class HarvestConfig:
    """Everything a run needs; pass it explicitly, override with dataclasses.replace()."""

    search_url_template: str = DEFAULT_SEARCH_URL_TEMPLATE
    document_url_template: str = DEFAULT_DOCUMENT_URL_TEMPLATE
    alphabet: str = DEFAULT_ALPHABET
    call_name: str = DEFAULT_CALL_NAME
    extractor: str = DEFAULT_EXTRACTOR
    output_dir: Path = DEFAULT_OUTPUT_DIR
    cache_file: Path | None = DEFAULT_CACHE_FILE
    ledger_file: Path = DEFAULT_LEDGER_FILE
    timeout: float = DEFAULT_TIMEOUT
    render_timeout: float = DEFAULT_RENDER_TIMEOUT
    use_browser: bool = False
    headed: bool = False
    expected_content_type: str = EXPECTED_CONTENT_TYPE
    extension: str = DOCUMENT_EXTENSION
    noise_substrings: tuple[str, ...] = field(default=DEFAULT_NOISE_SUBSTRINGS)
    keep_digits: bool = True
    max_workers: int | None = None  # None: one worker per target in the batch
    show_progress: bool = True

    def search_url(self, query: str) -> str:
        return self.search_url_template.format(query=query)

    def document_url(self, identifier: str) -> str:
        return self.document_url_template.format(identifier=identifier)
