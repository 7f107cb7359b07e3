"""Harvest pipeline: fetch listing pages, extract IDs, download documents. Used by CLI and programmatic callers."""

import sys
from dataclasses import dataclass, field

from docharvest.config import HarvestConfig
from docharvest.download import DownloadManager, DownloadResult, DownloadStatus
from docharvest.errors import FetchError
from docharvest.extractors import AnchorCallExtractor, CallPatternExtractor, ExtractionStrategy, dedupe
from docharvest.fetcher import PageFetcher
from docharvest.storage import ResumeLedger, append_markup, url_to_filename


@dataclass
class RunSummary:
    """What one run did. Download results are in enqueue order."""

    pages_fetched: int = 0
    page_failures: int = 0
    identifiers_found: int = 0
    targets_enqueued: int = 0
    results: list[DownloadResult] = field(default_factory=list)

    def _with(self, status: DownloadStatus) -> list[DownloadResult]:
        return [r for r in self.results if r.status == status]

    @property
    def succeeded(self) -> list[DownloadResult]:
        return self._with(DownloadStatus.SUCCESS)

    @property
    def skipped(self) -> list[DownloadResult]:
        return self._with(DownloadStatus.SKIPPED)

    @property
    def failed(self) -> list[DownloadResult]:
        return self._with(DownloadStatus.FAILED)

    def format(self) -> str:
        return (
            f"Pages: {self.pages_fetched} fetched, {self.page_failures} failed; "
            f"IDs: {self.identifiers_found}; targets: {self.targets_enqueued}; "
            f"downloads: {len(self.succeeded)} ok, {len(self.skipped)} skipped, {len(self.failed)} failed"
        )


def default_extractor(config: HarvestConfig) -> ExtractionStrategy:
    """Strategy named by config.extractor."""
    if config.extractor == "anchor":
        return AnchorCallExtractor(config.call_name)
    if config.extractor == "text":
        return CallPatternExtractor(config.call_name)
    raise ValueError(f"unknown extractor: {config.extractor!r}")


def build_target_url(identifier: str, config: HarvestConfig) -> str:
    return config.document_url(identifier)


def destination_name(url: str, config: HarvestConfig) -> str:
    return url_to_filename(
        url,
        config.noise_substrings,
        keep_digits=config.keep_digits,
        ext=config.extension,
    )


def targets_from_markup(
    markup: str,
    config: HarvestConfig,
    extractor: ExtractionStrategy | None = None,
) -> list[str]:
    """Distinct target URLs for the identifiers in markup, first occurrence first."""
    extractor = extractor or default_extractor(config)
    return dedupe(build_target_url(i, config) for i in extractor.extract(markup))


def fetch_page(fetcher: PageFetcher, url: str, config: HarvestConfig, summary: RunSummary) -> str:
    """
    Fetch one listing page and append it to the scrape cache.
    Fetch errors are reported and yield empty markup so the run continues.
    """
    print(f"Scraping: {url}", file=sys.stderr)
    try:
        markup = fetcher.fetch(url)
    except FetchError as e:
        summary.page_failures += 1
        print(f"  Fetch failed: {e}", file=sys.stderr)
        return ""
    summary.pages_fetched += 1
    if config.cache_file is not None:
        append_markup(config.cache_file, markup)
    return markup


def _page_targets(
    markup: str,
    config: HarvestConfig,
    extractor: ExtractionStrategy,
    seen: set[str],
    summary: RunSummary,
) -> list[str]:
    ids = extractor.extract(markup)
    summary.identifiers_found += len(ids)
    fresh = [u for u in dedupe(build_target_url(i, config) for i in ids) if u not in seen]
    seen.update(fresh)
    return fresh


def crawl(
    config: HarvestConfig,
    fetcher: PageFetcher,
    manager: DownloadManager,
    *,
    extractor: ExtractionStrategy | None = None,
    ledger: ResumeLedger | None = None,
) -> RunSummary:
    """
    Live mode: one listing page per character of config.alphabet; each page's new
    targets are downloaded as one concurrent batch before the next page is fetched.
    With a ledger, targets already recorded are not enqueued again and new ones are
    recorded before their download starts.
    """
    extractor = extractor or default_extractor(config)
    summary = RunSummary()
    seen: set[str] = set()
    if ledger is not None:
        ledger.load()
    for query in config.alphabet:
        markup = fetch_page(fetcher, config.search_url(query), config, summary)
        urls = _page_targets(markup, config, extractor, seen, summary)
        if ledger is not None:
            new_urls = [u for u in urls if not ledger.contains(u)]
            if len(new_urls) < len(urls):
                print(f"  Resume: {len(urls) - len(new_urls)} already in ledger", file=sys.stderr)
            for u in new_urls:
                ledger.record(u)
            urls = new_urls
        if not urls:
            continue
        summary.targets_enqueued += len(urls)
        summary.results.extend(manager.download_all([(u, destination_name(u, config)) for u in urls]))
    return summary


def collect(
    config: HarvestConfig,
    fetcher: PageFetcher,
    ledger: ResumeLedger,
    *,
    extractor: ExtractionStrategy | None = None,
) -> RunSummary:
    """Phase one: crawl listing pages and record new target URLs in the ledger. No downloads."""
    extractor = extractor or default_extractor(config)
    summary = RunSummary()
    seen: set[str] = set()
    ledger.load()
    for query in config.alphabet:
        markup = fetch_page(fetcher, config.search_url(query), config, summary)
        added = sum(1 for u in _page_targets(markup, config, extractor, seen, summary) if ledger.record(u))
        summary.targets_enqueued += added
        if added:
            print(f"  Recorded {added} new URL{'s' if added != 1 else ''}", file=sys.stderr)
    return summary


def download_from_ledger(config: HarvestConfig, manager: DownloadManager, ledger: ResumeLedger) -> RunSummary:
    """Phase two: download every ledger entry; files already on disk are skipped."""
    summary = RunSummary()
    ledger.load()
    urls = ledger.urls()
    if not urls:
        print(f"  Ledger is empty or missing: {ledger.path}", file=sys.stderr)
        return summary
    summary.targets_enqueued = len(urls)
    summary.results = manager.download_all([(u, destination_name(u, config)) for u in urls])
    return summary
