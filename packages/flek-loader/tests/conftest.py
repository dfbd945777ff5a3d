"""Shared test fixtures for flek-loader tests.

Provides an in-memory retrieval collaborator and widget sources so loader
tests never touch the network.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from flek_loader.config import LoaderConfig, RetrievalRequest, RetrievalResponse

SERVER_URI = "http://widgets.test"

HELLO_SOURCE = '''
def Hello(*, name="world"):
    return f"Hello, {name}!"

exports.default = Hello
'''

STRING_EXPORT_SOURCE = 'exports.default = "not a widget"'


class FakeRetriever:
    """Retrieval collaborator serving canned bodies from a dict.

    Attributes:
        sources: Mapping of url to body, or to an exception to raise.
        calls: Every request received, in order.
        gate: Cleared to hold responses until the test releases them.
    """

    def __init__(self, sources: dict[str, Any]) -> None:
        self.sources = sources
        self.calls: list[RetrievalRequest] = []
        self.gate = asyncio.Event()
        self.gate.set()

    async def __call__(self, request: RetrievalRequest) -> RetrievalResponse:
        self.calls.append(request)
        await self.gate.wait()
        body = self.sources[request.url]
        if isinstance(body, Exception):
            raise body
        return RetrievalResponse(url=request.url, status_code=200, data=body)

    def urls(self) -> list[str]:
        return [call.url for call in self.calls]


@pytest.fixture
def server_uri() -> str:
    return SERVER_URI


@pytest.fixture
def hello_source() -> str:
    """Source of a widget greeting its ``name`` prop."""
    return HELLO_SOURCE


@pytest.fixture
def string_export_source() -> str:
    """Source whose default export is not callable."""
    return STRING_EXPORT_SOURCE


@pytest.fixture
def loader_config() -> LoaderConfig:
    return LoaderConfig(server_uri=SERVER_URI)


@pytest.fixture
def retriever() -> FakeRetriever:
    """FakeRetriever with a working widget at A, B and the default key."""
    return FakeRetriever(
        {
            f"{SERVER_URI}/A.py": HELLO_SOURCE,
            f"{SERVER_URI}/B.py": HELLO_SOURCE,
            f"{SERVER_URI}/currentWidget": HELLO_SOURCE,
            f"{SERVER_URI}/string.py": STRING_EXPORT_SOURCE,
            f"{SERVER_URI}/broken.py": "def broken(:\n",
            f"{SERVER_URI}/bytes.py": b"exports.default = print",
            f"{SERVER_URI}/offline.py": ConnectionError("connection refused"),
        }
    )


@pytest.fixture
def accept_all() -> Any:
    """verify() predicate accepting every response."""

    def verify(response: Any) -> bool:
        return True

    return verify
