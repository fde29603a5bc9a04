import pytest
from httpx import ASGITransport, AsyncClient
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from app.middleware import SecurityHeadersMiddleware


async def _homepage(request: Request):
    return PlainTextResponse("OK")


async def _get(is_production: bool):
    test_app = Starlette(routes=[Route("/", _homepage)])
    test_app.add_middleware(SecurityHeadersMiddleware, is_production=is_production)
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as ac:
        return await ac.get("/")


@pytest.mark.asyncio
async def test_security_headers_in_production():
    response = await _get(is_production=True)
    assert response.status_code == 200
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert "max-age=31536000" in response.headers["Strict-Transport-Security"]
    assert "Content-Security-Policy" in response.headers


@pytest.mark.asyncio
async def test_no_hsts_outside_production():
    response = await _get(is_production=False)
    assert "Strict-Transport-Security" not in response.headers
    assert "Content-Security-Policy" in response.headers


@pytest.mark.asyncio
async def test_request_id_echoed_when_valid(client: AsyncClient):
    response = await client.get("/services", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"
    assert response.headers["X-Process-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_request_id_replaced_when_malformed(client: AsyncClient):
    response = await client.get("/services", headers={"X-Request-ID": "bad id\nwith newline"})
    assert response.headers["X-Request-ID"] != "bad id\nwith newline"
    assert len(response.headers["X-Request-ID"]) == 36


@pytest.mark.asyncio
async def test_authenticated_responses_are_not_cached():
    test_app = Starlette(routes=[Route("/", _homepage)])
    test_app.add_middleware(SecurityHeadersMiddleware)
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as ac:
        authed = await ac.get("/", headers={"Authorization": "Bearer token"})
        anonymous = await ac.get("/")
    assert authed.headers["Cache-Control"] == "no-store"
    assert "Cache-Control" not in anonymous.headers
    assert anonymous.headers["Permissions-Policy"] == "camera=(), microphone=(), geolocation=()"
