"""Shared test fixtures."""
from __future__ import annotations

from collections.abc import AsyncGenerator, Callable

import httpx
import pytest

from sfbulk.connectors.salesforce import SalesforceConnector
from sfbulk.core.config import SalesforceConfig

INSTANCE_URL = "https://test.my.salesforce.com"

_Reply = httpx.Response | Callable[[httpx.Request], httpx.Response]


class FakeOrg:
    """Routes requests by (method, path) to queued canned responses.

    The last queued response for a route is repeated once the queue is
    down to one entry. Every request is recorded in ``requests``.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], list[_Reply]] = {}

    def add(self, method: str, path: str, *replies: _Reply) -> None:
        self._routes.setdefault((method, path), []).extend(replies)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(
                404, json=[{"message": "The requested resource does not exist", "errorCode": "NOT_FOUND"}]
            )
        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        return reply(request) if callable(reply) else reply


@pytest.fixture
def config() -> SalesforceConfig:
    return SalesforceConfig(instance_url=INSTANCE_URL, access_token="00Dxx!token")


@pytest.fixture
def org() -> FakeOrg:
    return FakeOrg()


@pytest.fixture
async def connector(
    config: SalesforceConfig, org: FakeOrg
) -> AsyncGenerator[SalesforceConnector, None]:
    sf = SalesforceConnector(config, transport=httpx.MockTransport(org.handler))
    await sf.connect()
    yield sf
    await sf.close()
