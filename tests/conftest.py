from __future__ import annotations

import hashlib
from typing import Dict, List

import httpx
import pytest


def sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class FakeServer:
    """In-memory release repository served through httpx.MockTransport."""

    base_url = "https://mirror.test/pub/"

    def __init__(self):
        self.files: Dict[str, bytes] = {}
        self.statuses: Dict[str, int] = {}
        self.requests: List[str] = []

    def add(self, path: str, data: bytes) -> str:
        self.files["/pub/" + path] = data
        return sha256(data)

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(path)
        if path in self.statuses:
            return httpx.Response(self.statuses[path])
        if path not in self.files:
            return httpx.Response(404)
        return httpx.Response(200, content=self.files[path])

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handle))

    def file_requests(self) -> List[str]:
        return [p for p in self.requests if not p.endswith("sha256sum.txt")]


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()
