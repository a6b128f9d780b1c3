from __future__ import annotations


class OpenGraphError(Exception):
    """Base class for errors raised by opengraph_scan."""


class FetchError(OpenGraphError):
    """The page could not be retrieved (transport failure or missing body)."""

    def __init__(self, url: str, cause: BaseException | str) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Failed to fetch {url}: {cause}")


class InvalidSpecificationError(OpenGraphError):
    """
    Strict validation failed: the document lacks required Open Graph properties.
    """

    def __init__(self, missing: tuple[str, ...]) -> None:
        self.missing = missing
        super().__init__(
            "The parsed HTML does not meet the open graph specification "
            f"(missing: {', '.join(missing)})"
        )


class ReadOnlyDocumentError(OpenGraphError, TypeError):
    """Raised on any attempt to mutate an OpenGraphDocument."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"OpenGraphDocument is read-only ({operation} is not supported)")
