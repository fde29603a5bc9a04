import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.service import create_access_token
from app.config import settings
from app.models.user import User
from tests.conftest import admin_token, auth_header, customer_token, provider_token


def _token(**claims) -> str:
    payload = {
        "type": "access",
        "jti": str(uuid.uuid4()),
        "iss": settings.JWT_ISSUER,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    payload.update(claims)
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


@pytest.mark.asyncio
async def test_missing_token_is_401(client: AsyncClient):
    response = await client.get("/auth/me")
    assert response.status_code == 401
    assert response.json() == {"detail": "Authentication required", "code": "UNAUTHORIZED"}
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_garbage_token_is_401(client: AsyncClient):
    response = await client.get("/auth/me", headers=auth_header("not.a.valid.jwt"))
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid authentication token"


@pytest.mark.asyncio
async def test_token_without_sub(client: AsyncClient, db: AsyncSession):
    response = await client.get("/auth/me", headers=auth_header(_token()))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_with_non_uuid_sub(client: AsyncClient, db: AsyncSession):
    response = await client.get("/auth/me", headers=auth_header(_token(sub="42")))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_wrong_issuer(client: AsyncClient, customer_user: User):
    token = _token(sub=str(customer_user.id), iss="someone-else")
    response = await client.get("/auth/me", headers=auth_header(token))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_expired_token(client: AsyncClient, customer_user: User):
    token = _token(sub=str(customer_user.id), exp=datetime.now(timezone.utc) - timedelta(minutes=1))
    response = await client.get("/auth/me", headers=auth_header(token))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_refresh_type_token_rejected(client: AsyncClient, customer_user: User):
    token = _token(sub=str(customer_user.id), type="refresh")
    response = await client.get("/auth/me", headers=auth_header(token))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unknown_user(client: AsyncClient, db: AsyncSession):
    response = await client.get("/auth/me", headers=auth_header(create_access_token(str(uuid.uuid4()))))
    assert response.status_code == 401
    assert response.json()["detail"] == "User not found"


@pytest.mark.asyncio
async def test_suspended_user_is_forbidden(client: AsyncClient, db: AsyncSession, customer_user: User):
    customer_user.is_active = False
    await db.flush()
    response = await client.get("/auth/me", headers=auth_header(customer_token(customer_user)))
    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_admin_routes_require_admin(
    client: AsyncClient, customer_user: User, provider_user: User, admin_user: User
):
    for token in (customer_token(customer_user), provider_token(provider_user)):
        response = await client.get("/admin/stats", headers=auth_header(token))
        assert response.status_code == 403
        assert response.json()["detail"] == "Admin access required"

    response = await client.get("/admin/stats", headers=auth_header(admin_token(admin_user)))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_provider_only_route(client: AsyncClient, customer_user: User):
    response = await client.put(
        "/providers/me", json={"bio": "hello"}, headers=auth_header(customer_token(customer_user))
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Only providers can access this resource"
