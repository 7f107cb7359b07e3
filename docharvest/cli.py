"""docharvest CLI. Invoked as `docharvest` when installed with pip install -e ."""

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from docharvest._deps import check_required, optional_hint
from docharvest.config import DEFAULT_ALPHABET, EXTRACTOR_CHOICES, HarvestConfig
from docharvest.errors import FilesystemError

MODES = ("crawl", "collect", "download")


def build_parser() -> argparse.ArgumentParser:
    defaults = HarvestConfig()
    parser = argparse.ArgumentParser(
        prog="docharvest",
        description="Crawl a search listing, extract document IDs, and download the documents.",
    )
    parser.add_argument(
        "--mode",
        choices=MODES,
        default="crawl",
        help="crawl: fetch pages and download as you go (default). "
        "collect: only record document URLs in the ledger. download: download everything in the ledger.",
    )
    parser.add_argument("--out-dir", default=str(defaults.output_dir), help=f"Output directory (default: {defaults.output_dir})")
    parser.add_argument("--ledger", default=str(defaults.ledger_file), help=f"Ledger file of document URLs (default: {defaults.ledger_file})")
    parser.add_argument("--cache-file", default=str(defaults.cache_file), help=f"Append fetched markup here (default: {defaults.cache_file})")
    parser.add_argument("--no-cache-file", action="store_true", help="Do not keep fetched markup.")
    parser.add_argument(
        "--resume",
        action="store_true",
        help="crawl mode: skip URLs already in the ledger and record new ones (ledger records enqueued, not finished, URLs).",
    )
    parser.add_argument("--search-url", default=defaults.search_url_template, metavar="TEMPLATE", help="Listing URL with a {query} placeholder.")
    parser.add_argument("--document-url", default=defaults.document_url_template, metavar="TEMPLATE", help="Document URL with an {identifier} placeholder.")
    parser.add_argument("--alphabet", default=DEFAULT_ALPHABET, help="One listing page is fetched per character (default: a-z).")
    parser.add_argument("--call-name", default=defaults.call_name, help=f"JS call wrapping each ID in the markup (default: {defaults.call_name})")
    parser.add_argument(
        "--extractor",
        choices=EXTRACTOR_CHOICES,
        default=defaults.extractor,
        help="text: match the call anywhere in the markup (default). anchor: only in link href/onclick attributes.",
    )
    parser.add_argument("--js", action="store_true", help="Render listing pages in a real browser (Playwright).")
    parser.add_argument("--headed", action="store_true", help="Show the browser window (with --js).")
    parser.add_argument("--timeout", type=float, default=defaults.timeout, metavar="SECS", help=f"HTTP timeout (default: {defaults.timeout:.0f})")
    parser.add_argument(
        "--render-timeout",
        type=float,
        default=defaults.render_timeout,
        metavar="SECS",
        help=f"Browser navigation timeout (default: {defaults.render_timeout:.0f})",
    )
    parser.add_argument("--workers", type=int, default=None, metavar="N", help="Cap concurrent downloads (default: one per document in the batch).")
    parser.add_argument(
        "--letters-only-filenames",
        action="store_true",
        help="Drop digits when sanitizing filenames (distinct IDs may then share a file).",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable progress bar (e.g. for scripting)")
    return parser


def build_config(args: argparse.Namespace) -> HarvestConfig:
    if args.workers is not None and args.workers < 1:
        raise ValueError("--workers must be at least 1")
    if not args.alphabet:
        raise ValueError("--alphabet must not be empty")
    if "{query}" not in args.search_url:
        raise ValueError("--search-url needs a {query} placeholder")
    if "{identifier}" not in args.document_url:
        raise ValueError("--document-url needs an {identifier} placeholder")
    return replace(
        HarvestConfig(),
        search_url_template=args.search_url,
        document_url_template=args.document_url,
        alphabet=args.alphabet,
        call_name=args.call_name,
        extractor=args.extractor,
        output_dir=Path(args.out_dir),
        cache_file=None if args.no_cache_file else Path(args.cache_file),
        ledger_file=Path(args.ledger),
        timeout=args.timeout,
        render_timeout=args.render_timeout,
        use_browser=args.js or args.headed,
        headed=args.headed,
        keep_digits=not args.letters_only_filenames,
        max_workers=args.workers,
        show_progress=not args.no_progress,
    )


def run(config: HarvestConfig, mode: str, resume: bool = False):
    """Run one mode with fetchers and clients built from config. Returns the RunSummary."""
    from docharvest.download import DownloadManager
    from docharvest.fetcher import make_client, make_fetcher
    from docharvest.pipeline import collect, crawl, download_from_ledger
    from docharvest.storage import ResumeLedger, ensure_output_dir

    ledger = ResumeLedger(config.ledger_file)
    if mode != "collect":
        ensure_output_dir(config.output_dir)
    with make_client(config.timeout) as client:
        if mode == "download":
            with DownloadManager.from_config(config, client=client) as manager:
                return download_from_ledger(config, manager, ledger)
        with make_fetcher(config, client=client) as fetcher:
            if mode == "collect":
                return collect(config, fetcher, ledger)
            with DownloadManager.from_config(config, client=client) as manager:
                return crawl(config, fetcher, manager, ledger=ledger if resume else None)


def main(argv: list[str] | None = None) -> None:
    check_required()
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = build_config(args)
    except ValueError as e:
        parser.error(str(e))
    hint = optional_hint(config.use_browser)
    if hint:
        print(hint, file=sys.stderr)

    try:
        summary = run(config, args.mode, resume=args.resume)
    except FilesystemError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    print(f"\n{summary.format()}", file=sys.stderr)
    print("Done.", file=sys.stderr)


if __name__ == "__main__":
    main()
