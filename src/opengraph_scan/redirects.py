from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urljoin

import httpx

from opengraph_scan.fetch import request_headers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RedirectChain:
    """
    URLs visited while following Location headers one hop at a time.

    `urls[0]` is the starting URL. `looped` is set when a Location pointed back into the chain,
    `truncated` when the hop limit stopped resolution early.
    """

    urls: tuple[str, ...]
    looped: bool = False
    truncated: bool = False

    @property
    def final_url(self) -> str:
        return self.urls[-1]

    @property
    def hops(self) -> int:
        return len(self.urls) - 1


def _next_hop(current: str, response: httpx.Response) -> str | None:
    location = (response.headers.get("location") or "").strip()
    if not location:
        return None
    return urljoin(current, location)


class _ChainBuilder:
    def __init__(self, url: str, max_redirects: int) -> None:
        self.urls: list[str] = [url]
        self.max_redirects = max_redirects
        self.looped = False
        self.truncated = False

    @property
    def current(self) -> str:
        return self.urls[-1]

    def advance(self, response: httpx.Response) -> bool:
        """Record the hop named by `response`; False once the chain is complete."""
        nxt = _next_hop(self.current, response)
        if nxt is None:
            return False
        if nxt in self.urls:
            logger.warning("Redirect loop at %s -> %s; stopping", self.current, nxt)
            self.looped = True
            return False
        if len(self.urls) > self.max_redirects:
            logger.warning("Redirect limit (%d) reached at %s; stopping", self.max_redirects, self.current)
            self.truncated = True
            return False
        logger.debug("Redirect %d: %s -> %s (%s)", len(self.urls), self.current, nxt, response.status_code)
        self.urls.append(nxt)
        return True

    def build(self) -> RedirectChain:
        return RedirectChain(urls=tuple(self.urls), looped=self.looped, truncated=self.truncated)


def follow_redirects(
    url: str,
    *,
    user_agent: str | None = None,
    timeout_s: float = 20.0,
    max_redirects: int = 10,
    client: httpx.Client | None = None,
) -> RedirectChain:
    """
    Walk the redirect chain with transport auto-redirects disabled.

    The Location header is honored whatever the status code. Raises httpx.HTTPError on
    transport failures and ValueError on a Location urljoin cannot parse; see
    resolve_final_url for the best-effort variant.
    """
    chain = _ChainBuilder(url, max_redirects)
    owns_client = client is None
    http = client or httpx.Client(timeout=timeout_s)
    try:
        while True:
            with http.stream(
                "GET",
                chain.current,
                headers=request_headers(user_agent=user_agent),
                follow_redirects=False,
            ) as response:
                if not chain.advance(response):
                    break
    finally:
        if owns_client:
            http.close()
    return chain.build()


async def follow_redirects_async(
    url: str,
    *,
    user_agent: str | None = None,
    timeout_s: float = 20.0,
    max_redirects: int = 10,
    client: httpx.AsyncClient | None = None,
) -> RedirectChain:
    chain = _ChainBuilder(url, max_redirects)
    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=timeout_s)
    try:
        while True:
            async with http.stream(
                "GET",
                chain.current,
                headers=request_headers(user_agent=user_agent),
                follow_redirects=False,
            ) as response:
                if not chain.advance(response):
                    break
    finally:
        if owns_client:
            await http.aclose()
    return chain.build()


def resolve_final_url(
    url: str,
    *,
    user_agent: str | None = None,
    timeout_s: float = 20.0,
    max_redirects: int = 10,
    client: httpx.Client | None = None,
) -> str:
    """
    Best-effort final URL: any transport error or unusable Location yields the original `url`.
    """
    try:
        chain = follow_redirects(
            url,
            user_agent=user_agent,
            timeout_s=timeout_s,
            max_redirects=max_redirects,
            client=client,
        )
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
        logger.warning("Redirect resolution failed for %s, using it as-is: %s", url, e)
        return url
    return chain.final_url


async def resolve_final_url_async(
    url: str,
    *,
    user_agent: str | None = None,
    timeout_s: float = 20.0,
    max_redirects: int = 10,
    client: httpx.AsyncClient | None = None,
) -> str:
    try:
        chain = await follow_redirects_async(
            url,
            user_agent=user_agent,
            timeout_s=timeout_s,
            max_redirects=max_redirects,
            client=client,
        )
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
        logger.warning("Redirect resolution failed for %s, using it as-is: %s", url, e)
        return url
    return chain.final_url
