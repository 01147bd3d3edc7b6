"""Shared fixtures: an in-memory Graph/ARM API behind httpx.MockTransport."""

from __future__ import annotations

from typing import Callable, Optional, Union

import httpx
import pytest

from entra_blog.graph.client import ArmClient, GraphClient
from entra_blog.safety.guardian import WriteGuardian

Handler = Callable[[httpx.Request], httpx.Response]


class FakeApi:
    """Routes (method, path) to canned JSON or a handler; records every request."""

    def __init__(self):
        self.routes: dict[tuple[str, str], Union[Handler, httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        json: Optional[dict] = None,
        status: int = 200,
        handler: Optional[Handler] = None,
    ) -> None:
        if handler is None:
            payload = json if json is not None else {}
            self.routes[(method, path)] = lambda request: httpx.Response(status, json=payload)
        else:
            self.routes[(method, path)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(
                404,
                json={"error": {"code": "Request_ResourceNotFound",
                                "message": f"No route for {request.method} {request.url.path}"}},
            )
        return route(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def sent(self, method: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method]


def by_filter(responses: dict[str, dict], default: Optional[dict] = None) -> Handler:
    """Handler choosing a response by the $filter query parameter."""
    def handler(request: httpx.Request) -> httpx.Response:
        key = request.url.params.get("$filter", "")
        return httpx.Response(200, json=responses.get(key, default or {"value": []}))
    return handler


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def guardian() -> WriteGuardian:
    return WriteGuardian()


@pytest.fixture
def graph(fake_api, guardian):
    with GraphClient("test-token", guardian, transport=fake_api.transport) as client:
        yield client


@pytest.fixture
def arm(fake_api, guardian):
    with ArmClient("arm-token", guardian, transport=fake_api.transport) as client:
        yield client


POST_TEXT = """---
layout: post
title: Activating PIM roles from PowerShell
tags: [pim, powershell, entra]
author: Jane Admin
---

Time-bound elevation beats standing access.

```powershell
Connect-MgGraph -Scopes "RoleManagement.ReadWrite.Directory"
Get-MgContext
```

And a Python equivalent:

```python
print("hello")
```
"""


@pytest.fixture
def posts_dir(tmp_path):
    directory = tmp_path / "_posts"
    directory.mkdir()
    (directory / "2024-03-18-activate-pim.md").write_text(POST_TEXT, encoding="utf-8")
    (directory / "2023-11-02-group-membership.md").write_text(
        "---\nlayout: post\ntitle: Group membership at scale\n"
        "tags: groups entra\nauthor: Jane Admin\n---\n\nAdd users idempotently.\n",
        encoding="utf-8",
    )
    return directory
