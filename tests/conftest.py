import json

import httpx
import pytest
import structlog


@pytest.fixture(autouse=True)
def _reset_structlog():
    # CLI tests point structlog at click's temporary stderr
    yield
    structlog.reset_defaults()


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it answered."""

    def __init__(self, status: int = 200, body: object = None, text: str | None = None) -> None:
        self.requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if text is not None:
                return httpx.Response(status, text=text)
            return httpx.Response(status, json=body if body is not None else {})

        super().__init__(handler)

    def json_bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]


class ExplodingTransport(httpx.MockTransport):
    """Fails the test if anything tries to reach the network."""

    def __init__(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError(f"unexpected request to {request.url}")

        super().__init__(handler)
