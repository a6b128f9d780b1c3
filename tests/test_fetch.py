from __future__ import annotations

import asyncio
import gzip
import zlib

import httpx
import pytest

from opengraph_scan.errors import FetchError
from opengraph_scan.fetch import (
    decode_body,
    decompress_body,
    fetch_page,
    fetch_page_async,
    lookup_encoding,
    sniff_meta_charset,
)

FRENCH_TITLE = "Réalité virtuelle : 360° de bonheur à améliorer"

FRENCH_PAGE = f"""
<html><head>
<meta http-equiv="Content-Type" content="text/html; charset=utf-8">
<meta property="og:title" content="{FRENCH_TITLE}">
</head><body></body></html>
"""


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("utf-8", "utf-8"),
        ("UTF8", "utf-8"),
        ("latin-1", "iso8859-1"),
        ('"windows-1251"', "cp1251"),
        ("no-such-charset", None),
        ("base64", None),
        ("undefined", None),
        ("idna", None),
        ("", None),
        (None, None),
    ],
)
def test_lookup_encoding(name: str | None, expected: str | None) -> None:
    assert lookup_encoding(name) == expected


@pytest.mark.parametrize(
    ("html", "expected"),
    [
        ('<meta charset="UTF-8">', "utf-8"),
        ("<meta charset='koi8-r'>", "koi8-r"),
        ("<meta charset=utf-8>", "utf-8"),
        ('<meta http-equiv="Content-Type" content="text/html; charset=windows-1251">', "windows-1251"),
        ('<meta charset="unicode">', "utf-8"),
        ('<meta charset="UTF-16">', "utf-8"),
        ("<html><head><title>none</title></head></html>", None),
    ],
)
def test_sniff_meta_charset(html: str, expected: str | None) -> None:
    assert sniff_meta_charset(html) == expected


def test_decode_body_defaults_to_latin1() -> None:
    text, encoding = decode_body("  <p>café</p>\n".encode("iso-8859-1"))
    assert encoding == "iso8859-1"
    assert text == "<p>café</p>"


def test_decode_body_uses_header_charset() -> None:
    raw = "<p>Привет</p>".encode("cp1251")
    text, encoding = decode_body(raw, "windows-1251")
    assert encoding == "cp1251"
    assert text == "<p>Привет</p>"


def test_meta_charset_overrides_header_charset() -> None:
    raw = FRENCH_PAGE.encode("utf-8")
    text, encoding = decode_body(raw, "iso-8859-1")
    assert encoding == "utf-8"
    assert FRENCH_TITLE in text


def test_meta_charset_matching_header_keeps_first_decode() -> None:
    raw = '<meta charset="windows-1251"><p>Привет</p>'.encode("cp1251")
    text, encoding = decode_body(raw, "cp1251")
    assert encoding == "cp1251"
    assert "Привет" in text


def test_unknown_charsets_are_ignored(caplog: pytest.LogCaptureFixture) -> None:
    raw = '<meta charset="x-made-up"><p>café</p>'.encode("iso-8859-1")
    with caplog.at_level("WARNING", logger="opengraph_scan.fetch"):
        text, encoding = decode_body(raw, "also-made-up")
    assert encoding == "iso8859-1"
    assert "café" in text
    assert "x-made-up" in caplog.text
    assert "also-made-up" in caplog.text


@pytest.mark.parametrize("charset", ["undefined", "idna"])
def test_unusable_header_codec_falls_back_to_latin1(charset: str) -> None:
    text, encoding = decode_body("<p>café</p>".encode("iso-8859-1"), charset)
    assert encoding == "iso8859-1"
    assert text == "<p>café</p>"


@pytest.mark.parametrize("charset", ["undefined", "idna"])
def test_unusable_meta_codec_keeps_first_decode(charset: str) -> None:
    raw = f'<meta charset="{charset}"><p>Привет</p>'.encode("utf-8")
    text, encoding = decode_body(raw, "utf-8")
    assert encoding == "utf-8"
    assert "Привет" in text


def test_decode_body_replaces_invalid_bytes() -> None:
    text, encoding = decode_body(b"ok \xff\xfe", "utf-8")
    assert encoding == "utf-8"
    assert text.startswith("ok ")
    assert "�" in text


def test_decompress_body() -> None:
    data = b"<html>hello</html>"
    assert decompress_body(gzip.compress(data), "gzip") == data
    assert decompress_body(gzip.compress(data), "x-gzip") == data
    assert decompress_body(zlib.compress(data), "deflate") == data
    raw_deflate = zlib.compressobj(wbits=-zlib.MAX_WBITS)
    bare = raw_deflate.compress(data) + raw_deflate.flush()
    assert decompress_body(bare, "Deflate") == data
    assert decompress_body(data, None) == data
    assert decompress_body(data, "br") == data
    assert decompress_body(b"", "gzip") == b""


def test_decompress_body_rejects_corrupt_stream() -> None:
    with pytest.raises(zlib.error):
        decompress_body(b"definitely not gzip", "gzip")


def test_fetch_page_gzip_and_meta_charset(site) -> None:  # noqa: ANN001
    site.add(
        "https://example.com/article",
        body=gzip.compress(FRENCH_PAGE.encode("utf-8")),
        headers={"Content-Encoding": "gzip", "Content-Type": "text/html; charset=ISO-8859-1"},
    )
    with site.client() as client:
        result = fetch_page(
            "https://example.com/article",
            referer="https://ref.example/",
            user_agent="facebookexternalhit",
            client=client,
        )

    assert result.encoding == "utf-8"
    assert FRENCH_TITLE in result.text
    assert result.text.startswith("<html>")
    assert result.url == httpx.URL("https://example.com/article")
    assert result.headers["content-encoding"] == "gzip"

    sent = site.requests[0]
    assert sent.method == "GET"
    assert sent.headers["accept-encoding"] == "gzip,deflate"
    assert sent.headers["user-agent"] == "facebookexternalhit"
    assert sent.headers["referer"] == "https://ref.example/"


def test_fetch_page_omits_referer_when_not_given(site) -> None:  # noqa: ANN001
    site.add("https://example.com/a", body=b"<html></html>")
    with site.client() as client:
        fetch_page("https://example.com/a", client=client)
    assert "referer" not in site.requests[0].headers


def test_fetch_page_reports_final_url(site) -> None:  # noqa: ANN001
    site.redirect("https://example.com/old", "/new", status_code=301)
    site.add("https://example.com/new", body=b"<html><head></head></html>")
    with site.client() as client:
        result = fetch_page("https://example.com/old", client=client)
    assert result.url == httpx.URL("https://example.com/new")
    assert site.urls_requested() == ["https://example.com/old", "https://example.com/new"]


def test_fetch_page_decodes_error_pages(site) -> None:  # noqa: ANN001
    site.add("https://example.com/gone", status_code=404, body=b"<html>missing</html>")
    with site.client() as client:
        result = fetch_page("https://example.com/gone", client=client)
    assert result.text == "<html>missing</html>"


def test_fetch_page_ignores_unusable_charset(site) -> None:  # noqa: ANN001
    site.add(
        "https://example.com/odd",
        body='<meta charset="idna"><p>café</p>'.encode("iso-8859-1"),
        headers={"Content-Type": "text/html; charset=undefined"},
    )
    with site.client() as client:
        result = fetch_page("https://example.com/odd", client=client)
    assert result.encoding == "iso8859-1"
    assert "café" in result.text


def test_fetch_page_transport_error(site) -> None:  # noqa: ANN001
    site.fail("https://down.example/page")
    with site.client() as client, pytest.raises(FetchError) as exc:
        fetch_page("https://down.example/page", client=client)
    assert exc.value.url == "https://down.example/page"
    assert isinstance(exc.value.cause, httpx.ConnectError)
    assert "https://down.example/page" in str(exc.value)


def test_fetch_page_corrupt_body(site) -> None:  # noqa: ANN001
    site.add("https://example.com/bad", body=b"garbage", headers={"Content-Encoding": "gzip"})
    with site.client() as client, pytest.raises(FetchError):
        fetch_page("https://example.com/bad", client=client)


def test_fetch_page_async_matches_sync(site) -> None:  # noqa: ANN001
    site.add(
        "https://example.com/article",
        body=zlib.compress(FRENCH_PAGE.encode("utf-8")),
        headers={"Content-Encoding": "deflate"},
    )

    async def _run():  # noqa: ANN202
        async with site.async_client() as client:
            return await fetch_page_async("https://example.com/article", user_agent="ua", client=client)

    result = asyncio.run(_run())
    assert result.encoding == "utf-8"
    assert FRENCH_TITLE in result.text
    assert site.requests[0].headers["accept-encoding"] == "gzip,deflate"


def test_fetch_page_async_transport_error(site) -> None:  # noqa: ANN001
    site.fail("https://down.example/page")

    async def _run() -> None:
        async with site.async_client() as client:
            await fetch_page_async("https://down.example/page", client=client)

    with pytest.raises(FetchError):
        asyncio.run(_run())
