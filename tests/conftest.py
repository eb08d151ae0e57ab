"""Shared fixtures: a local aiohttp server that serves list bodies."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Awaitable, Callable

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def text_handler(body: str, status: int = 200) -> Handler:
    async def handler(_request: web.Request) -> web.Response:
        return web.Response(text=body, status=status)

    return handler


def bytes_handler(body: bytes, content_type: str) -> Handler:
    async def handler(_request: web.Request) -> web.Response:
        return web.Response(body=body, headers={"Content-Type": content_type})

    return handler


@asynccontextmanager
async def serve(routes: dict[str, Handler]) -> AsyncIterator[TestServer]:
    app = web.Application()
    for path, handler in routes.items():
        app.router.add_get(path, handler)
    async with TestServer(app) as server:
        yield server


@pytest.fixture
def list_server() -> Callable[[dict[str, Handler]], AsyncContextManager[TestServer]]:
    """Return a factory that starts a server for the given routes."""
    return serve


@pytest.fixture
def text() -> Callable[..., Handler]:
    return text_handler


@pytest.fixture
def raw() -> Callable[[bytes, str], Handler]:
    return bytes_handler
