"""
Shared fixtures: a local aiohttp server standing in for the API.
"""

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from epgu import Archive, Client, ClientConfig, OrderMeta

TOKEN = "test-token"


async def read_parts(request: web.Request):
    """Parse a multipart request into a list of part dicts, in wire order."""
    reader = await request.multipart()
    parts = []
    async for part in reader:
        parts.append({
            'name': part.name,
            'filename': part.filename,
            'content_type': part.headers.get("Content-Type"),
            'data': bytes(await part.read()),
        })
    return parts


@pytest.fixture
def meta():
    return OrderMeta(region="45000000000", service_code="60010153", target_code="-60010153")


@pytest.fixture
def archive():
    return Archive(name="35002123456-archive", data=bytes(range(256)) + bytes(45))


@pytest_asyncio.fixture
async def serve():
    """Start a server for the given routes; returns the server."""
    servers = []

    async def start(*routes):
        app = web.Application()
        app.add_routes(list(routes))
        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        return server

    yield start

    for server in servers:
        await server.close()


@pytest_asyncio.fixture
async def make_client():
    """Create a client pointed at a test server."""
    clients = []

    def factory(server, **kwargs):
        config = ClientConfig(base_uri=str(server.make_url("/")), **kwargs)
        client = Client.new(config)
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.close()
