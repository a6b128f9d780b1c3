from __future__ import annotations

import logging

import httpx

from opengraph_scan.config import Settings, load_settings
from opengraph_scan.document import OpenGraphDocument, build_document
from opengraph_scan.fetch import fetch_page, fetch_page_async
from opengraph_scan.html_head import extract_open_graph
from opengraph_scan.redirects import resolve_final_url, resolve_final_url_async

logger = logging.getLogger(__name__)


def parse_html(html_text: str, *, validate_specification: bool = False) -> OpenGraphDocument:
    """
    Build a document from HTML you already have.

    Raises InvalidSpecificationError in strict mode when title/type/image/url is missing.
    """
    return build_document(extract_open_graph(html_text), validate_specification=validate_specification)


def parse_url(
    url: str,
    *,
    user_agent: str | None = None,
    referer: str | None = None,
    validate_specification: bool = False,
    resolve_redirects: bool | None = None,
    settings: Settings | None = None,
    client: httpx.Client | None = None,
) -> OpenGraphDocument:
    """
    Fetch `url` and build its Open Graph document.

    Redirects are resolved hop by hop first (unless disabled); failures there fall back to
    `url`. Raises FetchError when the page cannot be retrieved and InvalidSpecificationError
    in strict mode. `original_url` on the result is the `url` given here.
    """
    s = settings or load_settings()
    ua = user_agent or s.user_agent
    if resolve_redirects is None:
        resolve_redirects = s.resolve_redirects
    target = url
    if resolve_redirects:
        target = resolve_final_url(
            url,
            user_agent=ua,
            timeout_s=s.timeout_s,
            max_redirects=s.max_redirects,
            client=client,
        )
    if target != url:
        logger.info("Resolved %s -> %s", url, target)

    page = fetch_page(
        target,
        referer=referer or s.referer,
        user_agent=ua,
        timeout_s=s.timeout_s,
        client=client,
    )
    return build_document(
        extract_open_graph(page.text),
        original_url=url,
        validate_specification=validate_specification,
    )


async def parse_url_async(
    url: str,
    *,
    user_agent: str | None = None,
    referer: str | None = None,
    validate_specification: bool = False,
    resolve_redirects: bool | None = None,
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
) -> OpenGraphDocument:
    s = settings or load_settings()
    ua = user_agent or s.user_agent
    if resolve_redirects is None:
        resolve_redirects = s.resolve_redirects
    target = url
    if resolve_redirects:
        target = await resolve_final_url_async(
            url,
            user_agent=ua,
            timeout_s=s.timeout_s,
            max_redirects=s.max_redirects,
            client=client,
        )
    if target != url:
        logger.info("Resolved %s -> %s", url, target)

    page = await fetch_page_async(
        target,
        referer=referer or s.referer,
        user_agent=ua,
        timeout_s=s.timeout_s,
        client=client,
    )
    return build_document(
        extract_open_graph(page.text),
        original_url=url,
        validate_specification=validate_specification,
    )
