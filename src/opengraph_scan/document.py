from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from opengraph_scan.errors import InvalidSpecificationError, ReadOnlyDocumentError

REQUIRED_PROPERTIES: tuple[str, ...] = ("title", "type", "image", "url")

LOCALE_ALTERNATE = "locale:alternate"


def parse_absolute_uri(value: str | None) -> httpx.URL | None:
    """
    Parse an absolute URI (scheme and host present). Relative or malformed values give None.

    `image` and `url` must be fetchable, so host-less URIs such as `urn:isbn:...` or
    `data:...` also give None; their raw text stays available in the entries.
    """
    if not value:
        return None
    try:
        uri = httpx.URL(value)
    except httpx.InvalidURL:
        return None
    if not uri.is_absolute_url:
        return None
    return uri


def _attr(value: str) -> str:
    return value.replace('"', "&quot;")


class _RejectMutation:
    """Mutating dict methods, all raising ReadOnlyDocumentError."""

    __slots__ = ()

    def __setitem__(self, key: str, value: str) -> None:
        raise ReadOnlyDocumentError("item assignment")

    def __delitem__(self, key: str) -> None:
        raise ReadOnlyDocumentError("item deletion")

    def add(self, key: str, value: str) -> None:
        raise ReadOnlyDocumentError("add")

    def remove(self, key: str) -> None:
        raise ReadOnlyDocumentError("remove")

    def pop(self, key: str, *default: str) -> str:
        raise ReadOnlyDocumentError("pop")

    def popitem(self) -> tuple[str, str]:
        raise ReadOnlyDocumentError("popitem")

    def clear(self) -> None:
        raise ReadOnlyDocumentError("clear")

    def update(self, *args: Any, **kwargs: str) -> None:
        raise ReadOnlyDocumentError("update")

    def setdefault(self, key: str, default: str = "") -> str:
        raise ReadOnlyDocumentError("setdefault")


class ReadOnlyEntries(_RejectMutation, Mapping[str, str]):
    """Insertion-ordered property map that cannot be changed after construction."""

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, str] | Iterable[tuple[str, str]] = ()) -> None:
        self._data: dict[str, str] = dict(data)

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"ReadOnlyEntries({self._data!r})"


@dataclass(frozen=True, eq=False)
class OpenGraphDocument(_RejectMutation, Mapping[str, str]):
    """
    Read-only Open Graph data for one page.

    Behaves as a mapping of property name (without `og:`) to content, in document order.
    A missing key raises KeyError like any mapping; use `doc.get(key, "")` for an empty
    default. `image`/`url` are None when absent or not absolute URIs. Every mutating
    mapping method, on the document and on `entries`, raises ReadOnlyDocumentError.
    """

    entries: Mapping[str, str] = field(default_factory=dict)
    title: str = ""
    type: str = ""
    image: httpx.URL | None = None
    url: httpx.URL | None = None
    original_url: httpx.URL | None = None
    locale_alternates: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", ReadOnlyEntries(self.entries))
        object.__setattr__(self, "locale_alternates", tuple(self.locale_alternates))

    # Mapping

    def __getitem__(self, key: str) -> str:
        return self.entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    # Validation / serialization

    def missing_required(self) -> tuple[str, ...]:
        return tuple(p for p in REQUIRED_PROPERTIES if not self.entries.get(p))

    def is_valid(self) -> bool:
        return not self.missing_required()

    def to_html(self) -> str:
        parts = [f'<meta property="og:{k}" content="{_attr(v)}">' for k, v in self.entries.items()]
        parts.extend(
            f'<meta property="og:{LOCALE_ALTERNATE}" content="{_attr(alt)}">' for alt in self.locale_alternates
        )
        return "".join(parts)

    def __str__(self) -> str:
        return self.to_html()

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "type": self.type,
            "image": str(self.image) if self.image is not None else None,
            "url": str(self.url) if self.url is not None else None,
            "original_url": str(self.original_url) if self.original_url is not None else None,
            "entries": dict(self.entries),
            "locale_alternates": list(self.locale_alternates),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> OpenGraphDocument:
        """
        Rebuild a document serialized with to_json; typed fields are derived from the entries.
        """
        payload = json.loads(text)
        return build_document(
            payload.get("entries") or {},
            original_url=payload.get("original_url"),
            locale_alternates=payload.get("locale_alternates") or (),
        )


def build_document(
    entries: Mapping[str, str],
    *,
    original_url: str | httpx.URL | None = None,
    locale_alternates: Iterable[str] = (),
    validate_specification: bool = False,
) -> OpenGraphDocument:
    """
    Assemble a document from extracted properties.

    Raises InvalidSpecificationError when `validate_specification` is set and any of
    title/type/image/url is missing or empty.
    """
    doc = OpenGraphDocument(
        entries=entries,
        title=entries.get("title") or "",
        type=entries.get("type") or "",
        image=parse_absolute_uri(entries.get("image")),
        url=parse_absolute_uri(entries.get("url")),
        original_url=httpx.URL(original_url) if original_url else None,
        locale_alternates=tuple(locale_alternates),
    )
    if validate_specification:
        missing = doc.missing_required()
        if missing:
            raise InvalidSpecificationError(missing)
    return doc


def make_graph(
    title: str,
    type: str,  # noqa: A002
    image: str,
    url: str,
    description: str = "",
    site_name: str = "",
    audio: str = "",
    video: str = "",
    locale: str = "",
    locale_alternates: Iterable[str] | None = None,
    determiner: str = "",
) -> OpenGraphDocument:
    """
    Build a document from known values, e.g. to emit tags for a page you publish.

    No validation is done. Optional properties are only included when non-blank.
    """
    entries: dict[str, str] = {"title": title, "type": type, "image": image, "url": url}
    optional = (
        ("description", description),
        ("site_name", site_name),
        ("audio", audio),
        ("video", video),
        ("locale", locale),
        ("determiner", determiner),
    )
    for key, value in optional:
        if value and value.strip():
            entries[key] = value
    return OpenGraphDocument(
        entries=entries,
        title=title,
        type=type,
        image=parse_absolute_uri(image),
        url=parse_absolute_uri(url),
        locale_alternates=tuple(locale_alternates or ()),
    )
