from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

Responder = Callable[[httpx.Request], httpx.Response]


class FakeSite:
    """Routes requests by absolute URL to canned responses; records what was asked for."""

    def __init__(self) -> None:
        self.routes: dict[str, Responder] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        url: str,
        *,
        status_code: int = 200,
        body: bytes = b"",
        headers: dict[str, str] | None = None,
    ) -> None:
        def _respond(request: httpx.Request) -> httpx.Response:
            # A raw stream keeps the body undecoded, like a real socket would.
            return httpx.Response(
                status_code,
                headers=headers,
                stream=httpx.ByteStream(body),
                request=request,
            )

        self.routes[url] = _respond

    def redirect(self, url: str, location: str, *, status_code: int = 302) -> None:
        self.add(url, status_code=status_code, headers={"Location": location})

    def fail(self, url: str) -> None:
        def _respond(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.routes[url] = _respond

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        respond = self.routes.get(str(request.url))
        if respond is None:
            return httpx.Response(404, stream=httpx.ByteStream(b""), request=request)
        return respond(request)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    def async_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def urls_requested(self) -> list[str]:
        return [str(r.url) for r in self.requests]


@pytest.fixture()
def site() -> FakeSite:
    return FakeSite()
