"""Shared aiohttp client against a local aiohttp server."""

from __future__ import annotations

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer, unused_port

from http_client import ExternalAPIClient, ExternalAPIError


async def _ok(request):
    return web.json_response({"features": [], "q": request.query.get("text")})


async def _echo(request):
    return web.json_response(await request.json())


async def _quota(request):
    return web.json_response({"error": {"code": 403, "message": "Quota exceeded"}}, status=403)


async def _html(request):
    return web.Response(text="<html><body>gateway</body></html>", content_type="text/html")


async def _html_error(request):
    return web.Response(text="<html>bad gateway</html>", status=502, content_type="text/html")


def _app() -> web.Application:
    app = web.Application()
    app.router.add_get("/ok", _ok)
    app.router.add_post("/echo", _echo)
    app.router.add_get("/quota", _quota)
    app.router.add_get("/html", _html)
    app.router.add_get("/html-error", _html_error)
    return app


def _run(scenario):
    """Start the local server, run *scenario(client, server)* and clean up."""

    async def main():
        server = TestServer(_app())
        await server.start_server()
        client = ExternalAPIClient()
        try:
            return await scenario(client, server)
        finally:
            await client.close()
            await server.close()

    return asyncio.run(main())


def test_get_json_returns_body():
    async def scenario(client, server):
        return await client._get_json(str(server.make_url("/ok")), params={"text": "Pike"})

    assert _run(scenario) == {"features": [], "q": "Pike"}


def test_post_json_sends_body():
    async def scenario(client, server):
        return await client._post_json(str(server.make_url("/echo")), {"coordinates": [[1, 2]]})

    assert _run(scenario) == {"coordinates": [[1, 2]]}


def test_non_200_raises_with_status_and_json_body():
    async def scenario(client, server):
        with pytest.raises(ExternalAPIError) as excinfo:
            await client._get_json(str(server.make_url("/quota")))
        return excinfo.value

    error = _run(scenario)
    assert error.status == 403
    assert error.payload == {"error": {"code": 403, "message": "Quota exceeded"}}


def test_non_200_html_body_has_no_payload():
    async def scenario(client, server):
        with pytest.raises(ExternalAPIError) as excinfo:
            await client._get_json(str(server.make_url("/html-error")))
        return excinfo.value

    error = _run(scenario)
    assert error.status == 502
    assert error.payload is None


def test_html_body_raises():
    async def scenario(client, server):
        with pytest.raises(ExternalAPIError) as excinfo:
            await client._get_json(str(server.make_url("/html")))
        return excinfo.value

    assert _run(scenario).status is None


def test_refused_connection_raises():
    async def scenario():
        client = ExternalAPIClient()
        try:
            with pytest.raises(ExternalAPIError) as excinfo:
                await client._get_json(f"http://127.0.0.1:{unused_port()}/ok")
            return excinfo.value
        finally:
            await client.close()

    assert asyncio.run(scenario()).status is None


def test_close_resets_session():
    async def scenario(client, server):
        await client._get_json(str(server.make_url("/ok")))
        first = client._session
        await client.close()
        closed_after = first.closed
        reset = client._session is None
        await client._get_json(str(server.make_url("/ok")))
        return closed_after, reset, client._session is not first

    assert _run(scenario) == (True, True, True)
