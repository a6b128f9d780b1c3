from __future__ import annotations

import codecs
import logging
import re
import zlib
from dataclasses import dataclass

import httpx

from opengraph_scan.errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "iso8859-1"
ACCEPT_ENCODING = "gzip,deflate"

# A UTF-16 label on a page that decoded as ASCII-compatible text is really UTF-8.
_UTF8_ALIASES = {"unicode", "utf-16"}

_META_CHARSET_RE = re.compile(
    r"""<meta\s+.*?charset\s*=\s*?["']?(?P<charset>[A-Za-z0-9_-]+?)["'\s/>;]""",
    re.IGNORECASE | re.DOTALL,
)


@dataclass(frozen=True)
class FetchResult:
    text: str
    encoding: str
    url: httpx.URL
    headers: httpx.Headers


def lookup_encoding(name: str | None) -> str | None:
    """
    Canonical Python codec name for a charset label, or None if it is not a usable text encoding.

    Codecs that refuse bytes input (`base64`), refuse `errors="replace"` (`idna`) or refuse
    everything (`undefined`) count as unknown.
    """
    label = (name or "").strip().strip("'\"")
    if not label:
        return None
    try:
        info = codecs.lookup(label)
        b"".decode(info.name, errors="replace")
    except (LookupError, UnicodeError):
        return None
    return info.name


def _decode(raw: bytes, encoding: str) -> str | None:
    try:
        return raw.decode(encoding, errors="replace").strip()
    except (LookupError, UnicodeError) as e:
        logger.warning("Cannot decode body as %s: %s", encoding, e)
        return None


def sniff_meta_charset(html_text: str) -> str | None:
    m = _META_CHARSET_RE.search(html_text)
    if not m:
        return None
    charset = m.group("charset").lower()
    if charset in _UTF8_ALIASES:
        return "utf-8"
    return charset


def decode_body(raw: bytes, header_charset: str | None = None) -> tuple[str, str]:
    """
    Decode a response body, letting an in-document <meta charset> override the HTTP header.

    Returns (text, codec name). The header charset (or ISO-8859-1 when the server sends none)
    is used for a first pass; if that text declares a different, known charset the original
    bytes are decoded again with it. Unknown or unusable charset names are ignored.
    """
    encoding = DEFAULT_ENCODING
    if header_charset:
        resolved = lookup_encoding(header_charset)
        if resolved is None:
            logger.warning("Ignoring unknown charset %r from Content-Type", header_charset)
        else:
            encoding = resolved

    text = _decode(raw, encoding)
    if text is None:
        encoding = DEFAULT_ENCODING
        text = raw.decode(encoding, errors="replace").strip()

    declared = sniff_meta_charset(text)
    if declared is None:
        return text, encoding

    meta_encoding = lookup_encoding(declared)
    if meta_encoding is None:
        logger.warning("Ignoring unknown charset %r from <meta> declaration", declared)
        return text, encoding
    if meta_encoding != encoding:
        logger.debug("Re-decoding body as %s (was %s)", meta_encoding, encoding)
        redecoded = _decode(raw, meta_encoding)
        if redecoded is not None:
            text, encoding = redecoded, meta_encoding
    return text, encoding


def decompress_body(raw: bytes, content_encoding: str | None) -> bytes:
    """
    Undo gzip/deflate transfer compression; any other content-encoding is returned as-is.

    Raises zlib.error on a corrupt stream.
    """
    coding = (content_encoding or "").lower()
    if not raw:
        return raw
    if "gzip" in coding:
        return zlib.decompress(raw, 16 + zlib.MAX_WBITS)
    if "deflate" in coding:
        # RFC 9110 deflate is zlib-wrapped, but plenty of servers send a bare deflate stream.
        try:
            return zlib.decompress(raw)
        except zlib.error:
            return zlib.decompress(raw, -zlib.MAX_WBITS)
    return raw


def request_headers(*, referer: str | None = None, user_agent: str | None = None) -> dict[str, str]:
    headers = {"Accept-Encoding": ACCEPT_ENCODING}
    if referer:
        headers["Referer"] = referer
    if user_agent:
        headers["User-Agent"] = user_agent
    return headers


def _build_result(url: str, response: httpx.Response, raw: bytes) -> FetchResult:
    try:
        body = decompress_body(raw, response.headers.get("content-encoding"))
    except zlib.error as e:
        raise FetchError(url, e) from e

    text, encoding = decode_body(body, response.charset_encoding)
    logger.debug(
        "Fetched %s (status=%s, final=%s, encoding=%s, bytes=%d)",
        url,
        response.status_code,
        response.url,
        encoding,
        len(body),
    )
    return FetchResult(text=text, encoding=encoding, url=response.url, headers=response.headers)


def fetch_page(
    url: str,
    *,
    referer: str | None = None,
    user_agent: str | None = None,
    timeout_s: float = 20.0,
    client: httpx.Client | None = None,
) -> FetchResult:
    """
    GET a page and return its decoded text.

    Raises FetchError on transport failures or when the body cannot be read.
    """
    owns_client = client is None
    http = client or httpx.Client(timeout=timeout_s)
    try:
        with http.stream(
            "GET",
            url,
            headers=request_headers(referer=referer, user_agent=user_agent),
            follow_redirects=True,
        ) as response:
            raw = b"".join(response.iter_raw())
            return _build_result(url, response, raw)
    except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
        raise FetchError(url, e) from e
    finally:
        if owns_client:
            http.close()


async def fetch_page_async(
    url: str,
    *,
    referer: str | None = None,
    user_agent: str | None = None,
    timeout_s: float = 20.0,
    client: httpx.AsyncClient | None = None,
) -> FetchResult:
    """
    Async variant of fetch_page; only the network exchange is awaited.
    """
    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=timeout_s)
    try:
        async with http.stream(
            "GET",
            url,
            headers=request_headers(referer=referer, user_agent=user_agent),
            follow_redirects=True,
        ) as response:
            raw = b"".join([chunk async for chunk in response.aiter_raw()])
            return _build_result(url, response, raw)
    except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
        raise FetchError(url, e) from e
    finally:
        if owns_client:
            await http.aclose()
