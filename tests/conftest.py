from __future__ import annotations

import httpx
import pytest

from pagepeeker.services import thumbnails as thumbnails_service


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    recorded: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        recorded.append(seconds)

    monkeypatch.setattr(thumbnails_service, "_sleep", fake_sleep)
    return recorded


class ScriptedPagePeeker:
    """MockTransport handler answering the PagePeeker endpoints from a script."""

    def __init__(self, ready_flags: list[object], *, image: bytes = b"\xff\xd8\xff\xe0fake-jpeg") -> None:
        self.ready_flags = list(ready_flags)
        self.image = image
        self.requests: list[httpx.Request] = []

    @property
    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def count(self, path: str) -> int:
        return self.paths.count(path)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/v2/thumbs_ready.php":
            flag = self.ready_flags.pop(0) if len(self.ready_flags) > 1 else self.ready_flags[0]
            return httpx.Response(200, json={"IsReady": flag}, request=request)
        if request.url.path == "/v2/thumbs.php":
            return httpx.Response(200, content=self.image, headers={"content-type": "image/jpeg"}, request=request)
        return httpx.Response(404, json={"error": "not found"}, request=request)


@pytest.fixture
def scripted_service() -> type[ScriptedPagePeeker]:
    return ScriptedPagePeeker


@pytest.fixture
def make_http_client():
    def _make(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make
