from __future__ import annotations

import argparse
import logging
import sys
from datetime import tzinfo
from pathlib import Path

import requests

import tvsort_config as config
from tvsort_app.core.http import HttpClient, is_url, maybe_gunzip
from tvsort_app.core.models import InputContractError, Listing
from tvsort_app.core.normalize.pipeline import normalize_listing
from tvsort_app.core.normalize.sorting import SortOrderError
from tvsort_app.core.xmltv import XmltvFormatError, merge_listings, read_listing, write_listing

log = logging.getLogger("tvsort")

EXIT_WARNINGS = 1
EXIT_BAD_INPUT = 2
EXIT_INTERNAL = 3


def _read_source(source: str, http: HttpClient, local_tz: tzinfo) -> Listing:
    if source == "-":
        data = sys.stdin.buffer.read()
    elif is_url(source):
        data = http.get_bytes(source)
    else:
        data = maybe_gunzip(Path(source).expanduser().read_bytes())
    listing = read_listing(data, local_tz=local_tz)
    log.info("Read %s programmes from %s", len(listing.programmes), source)
    return listing


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tvsort",
        description="Sort XMLTV listings, fill in missing stop times, drop duplicates and report overlaps.",
    )
    parser.add_argument("inputs", nargs="*", default=["-"], help="XMLTV files or URLs ('-' for stdin)")
    parser.add_argument(
        "--by-channel",
        action=argparse.BooleanOptionalAction,
        default=config.BY_CHANNEL,
        help="Group output by channel instead of one global time order",
    )
    parser.add_argument("--output", help="Write to this file instead of stdout")
    parser.add_argument("--timezone", default=config.TIMEZONE, help="Zone for times without an offset")
    parser.add_argument("--workers", type=int, default=config.WORKERS, help="Channels processed in parallel")
    parser.add_argument("--log-level", default=config.LOG_LEVEL)
    parser.add_argument("--strict", action="store_true", help="Exit with status 1 if any warning was emitted")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(message)s")

    try:
        local_tz = config.load_timezone(args.timezone)
    except ValueError as e:
        parser.error(str(e))
    if args.workers < 1:
        parser.error("--workers must be at least 1")

    http = HttpClient(user_agent=config.USER_AGENT, timeout_seconds=config.HTTP_TIMEOUT_SECONDS)

    try:
        listing = merge_listings(_read_source(src, http, local_tz) for src in args.inputs)
        normalized, diagnostics = normalize_listing(
            listing,
            by_channel=args.by_channel,
            workers=args.workers,
            local_tz=local_tz,
        )
    except (OSError, requests.RequestException) as e:
        log.error("Cannot read input: %s", e)
        return EXIT_BAD_INPUT
    except (InputContractError, XmltvFormatError) as e:
        log.error("Invalid input: %s", e)
        return EXIT_BAD_INPUT
    except SortOrderError:
        log.exception("Internal sort error, aborting")
        return EXIT_INTERNAL

    data = write_listing(normalized)
    if args.output:
        Path(args.output).expanduser().write_bytes(data)
    else:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()

    if args.strict and diagnostics:
        log.warning("%s warnings emitted", len(diagnostics))
        return EXIT_WARNINGS
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
