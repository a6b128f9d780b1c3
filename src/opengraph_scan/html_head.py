from __future__ import annotations

import re
from html.parser import HTMLParser

OG_PREFIX = "og:"
HEAD_CLOSE = "</head>"

# Appended after the truncated head so the parser sees a complete document.
_DOCUMENT_TAIL = "<body></body></html>\r\n"

_ATTR_RE = re.compile(
    r"""(?P<name>[^\s/>"'=<]+)(?:\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[^\s>"']+)))?"""
)

_URL_PROPERTY_RE = re.compile(r"url")

# Only `&amp;` is undone; other entities stay as written.
_URL_ENTITIES = {"&amp;": "&"}


def head_section(html_text: str) -> str:
    """
    Cut the document after the first literal `</head>` and close it off.

    The match is case-sensitive and does not check for an opening <head>. Without any
    `</head>` the whole text is kept.
    """
    end = html_text.find(HEAD_CLOSE)
    if end >= 0:
        html_text = html_text[: end + len(HEAD_CLOSE)]
    return html_text + _DOCUMENT_TAIL


def raw_attributes(starttag_text: str, tag: str) -> dict[str, str]:
    """
    Attributes of a start tag exactly as written (no entity decoding), names lowercased.
    """
    out: dict[str, str] = {}
    for m in _ATTR_RE.finditer(starttag_text[1 + len(tag) :]):
        name = m.group("name").lower()
        if name in out:
            continue
        value = m.group("dq")
        if value is None:
            value = m.group("sq")
        if value is None:
            value = m.group("bare")
        out[name] = value or ""
    return out


def is_url_property(key: str) -> bool:
    return key == "image" or _URL_PROPERTY_RE.match(key) is not None


def decode_url_entities(value: str) -> str:
    for entity, char in _URL_ENTITIES.items():
        value = value.replace(entity, char)
    return value


def normalize_key(prop: str) -> str:
    return prop[len(OG_PREFIX) :].lower()


class _OpenGraphMetaParser(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.open_graph: dict[str, str] = {}

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag != "meta":
            return

        attrs_dict = raw_attributes(self.get_starttag_text() or "", tag)
        prop = attrs_dict.get("property")
        if prop is None:
            prop = attrs_dict.get("name")
        if not prop or not prop.startswith(OG_PREFIX):
            return

        value = attrs_dict.get("content", "")
        if not value.strip():
            return

        key = normalize_key(prop)
        if key in self.open_graph:
            return
        if is_url_property(key):
            value = decode_url_entities(value)
        self.open_graph[key] = value


def extract_open_graph(html_text: str) -> dict[str, str]:
    """
    Collect `og:` meta tags from the document head.

    Keys lose the `og:` prefix and are lowercased; the first tag for a key wins and tags
    without content are skipped. Order follows the document.
    """
    parser = _OpenGraphMetaParser()
    parser.feed(head_section(html_text))
    parser.close()
    return parser.open_graph
