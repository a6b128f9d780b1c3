from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from opengraph_scan.config import Settings, load_settings
from opengraph_scan.document import OpenGraphDocument
from opengraph_scan.errors import FetchError, InvalidSpecificationError
from opengraph_scan.parse import parse_html, parse_url

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="opengraph-scan",
        description="Extract Open Graph metadata from web pages or local HTML files.",
    )
    parser.add_argument("urls", nargs="*", help="Page URLs to scan")
    parser.add_argument("--html", action="append", default=[], metavar="FILE", help="Parse a local HTML file")
    parser.add_argument("--user-agent", default=None, help="User-Agent header (default: OG_USER_AGENT)")
    parser.add_argument("--referer", default=None, help="Referer header")
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Fail when title/type/image/url are missing",
    )
    parser.add_argument("--no-redirects", action="store_true", help="Do not resolve redirects before fetching")
    parser.add_argument("--format", choices=("json", "html"), default="json", help="Output format")
    return parser


def _render(doc: OpenGraphDocument, fmt: str) -> str:
    if fmt == "html":
        return doc.to_html()
    return doc.to_json()


def main(argv: Sequence[str] | None = None, *, settings: Settings | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.urls and not args.html:
        parser.print_usage(sys.stderr)
        return 2

    s = settings or load_settings()
    configure_logging(s.log_level)
    strict = s.validate_specification if args.strict is None else args.strict

    failed = False
    for path in args.html:
        try:
            text = Path(path).read_text(encoding="utf-8", errors="replace")
            doc = parse_html(text, validate_specification=strict)
        except (OSError, InvalidSpecificationError) as e:
            logger.error("Error processing %s: %s", path, e)
            failed = True
            continue
        print(_render(doc, args.format), flush=True)

    for url in args.urls:
        try:
            doc = parse_url(
                url,
                user_agent=args.user_agent,
                referer=args.referer,
                validate_specification=strict,
                resolve_redirects=False if args.no_redirects else None,
                settings=s,
            )
        except (FetchError, InvalidSpecificationError) as e:
            logger.error("Error processing %s: %s", url, e)
            failed = True
            continue
        print(_render(doc, args.format), flush=True)

    return 1 if failed else 0

