import uuid
from datetime import date

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_log import AuditLog
from app.models.enums import BookingStatus, UserRole
from app.models.provider_profile import ProviderProfile
from app.models.service import Service
from app.models.user import User
from tests.conftest import admin_token, auth_header, customer_token, make_booking, make_user, token_for


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_stats(
    client: AsyncClient,
    db: AsyncSession,
    admin_user: User,
    customer_user: User,
    other_customer: User,
    service: Service,
):
    await make_booking(db, customer_user, service, status=BookingStatus.COMPLETED)
    await make_booking(db, other_customer, service, status=BookingStatus.COMPLETED, scheduled_time="12:00")
    await make_booking(db, customer_user, service, scheduled_time="15:00")
    db.add(Service(
        provider_id=service.provider_id,
        title="Geyser install",
        description="Old listing",
        category=service.category,
        price=service.price,
        price_type=service.price_type,
        is_active=False,
    ))
    await db.flush()

    response = await client.get("/admin/stats", headers=auth_header(admin_token(admin_user)))
    assert response.status_code == 200
    data = response.json()
    assert data["users"] == {"customers": 2, "providers": 1, "admins": 1, "total": 4}
    assert data["services"] == {"total": 2, "active": 1}
    assert data["bookings"]["total"] == 3
    assert data["bookings"]["by_status"]["COMPLETED"] == 2
    assert data["bookings"]["by_status"]["REQUESTED"] == 1
    assert data["bookings"]["by_status"]["CANCELLED"] == 0
    assert data["reviews"] == 0
    assert data["revenue"] == 3000.0


@pytest.mark.asyncio
async def test_stats_requires_admin(client: AsyncClient, customer_user: User):
    response = await client.get("/admin/stats", headers=auth_header(customer_token(customer_user)))
    assert response.status_code == 403


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_users_filters(
    client: AsyncClient, admin_user: User, customer_user: User, other_customer: User, provider_user: User
):
    headers = auth_header(admin_token(admin_user))

    everyone = await client.get("/admin/users", headers=headers)
    assert everyone.status_code == 200
    assert everyone.json()["total"] == 4

    customers = await client.get("/admin/users", params={"role": "CUSTOMER"}, headers=headers)
    assert {u["email"] for u in customers.json()["users"]} == {"customer@test.com", "other@test.com"}

    search = await client.get("/admin/users", params={"search": "ramesh"}, headers=headers)
    assert [u["id"] for u in search.json()["users"]] == [str(provider_user.id)]


@pytest.mark.asyncio
async def test_suspend_user(client: AsyncClient, db: AsyncSession, admin_user: User, customer_user: User):
    response = await client.put(
        f"/admin/users/{customer_user.id}",
        json={"is_active": False, "reason": "Repeated no-shows"},
        headers=auth_header(admin_token(admin_user)),
    )
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    audit = (await db.execute(select(AuditLog).where(AuditLog.action == "user_updated"))).scalar_one()
    assert audit.admin_user_id == admin_user.id
    assert audit.target_user_id == customer_user.id
    assert audit.detail == "Repeated no-shows"
    assert audit.metadata_json == {"is_active": {"from": True, "to": False}}

    # suspended accounts are locked out
    me = await client.get("/auth/me", headers=auth_header(customer_token(customer_user)))
    assert me.status_code == 403


@pytest.mark.asyncio
async def test_promote_to_provider_creates_profile(
    client: AsyncClient, db: AsyncSession, admin_user: User, customer_user: User
):
    response = await client.put(
        f"/admin/users/{customer_user.id}",
        json={"role": "PROVIDER"},
        headers=auth_header(admin_token(admin_user)),
    )
    assert response.status_code == 200
    assert response.json()["role"] == "PROVIDER"

    profile = (
        await db.execute(select(ProviderProfile).where(ProviderProfile.user_id == customer_user.id))
    ).scalar_one_or_none()
    assert profile is not None


@pytest.mark.asyncio
async def test_noop_update_is_not_audited(client: AsyncClient, db: AsyncSession, admin_user: User, customer_user: User):
    response = await client.put(
        f"/admin/users/{customer_user.id}",
        json={"is_active": True},
        headers=auth_header(admin_token(admin_user)),
    )
    assert response.status_code == 200
    assert (await db.execute(select(AuditLog))).scalars().all() == []


@pytest.mark.asyncio
async def test_admin_cannot_modify_self(client: AsyncClient, admin_user: User):
    response = await client.put(
        f"/admin/users/{admin_user.id}",
        json={"role": "CUSTOMER"},
        headers=auth_header(admin_token(admin_user)),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_unknown_user(client: AsyncClient, admin_user: User):
    response = await client.put(
        f"/admin/users/{uuid.uuid4()}",
        json={"is_verified": False},
        headers=auth_header(admin_token(admin_user)),
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_user(client: AsyncClient, db: AsyncSession, admin_user: User, other_customer: User):
    user_id = other_customer.id
    response = await client.delete(f"/admin/users/{user_id}", headers=auth_header(admin_token(admin_user)))
    assert response.status_code == 200
    assert response.json() == {"status": "deleted", "user_id": str(user_id)}

    remaining = (await db.execute(select(User.id).where(User.id == user_id))).scalar_one_or_none()
    assert remaining is None

    audit = (await db.execute(select(AuditLog).where(AuditLog.action == "user_deleted"))).scalar_one()
    assert audit.metadata_json == {"user_id": str(user_id), "role": "CUSTOMER"}


@pytest.mark.asyncio
async def test_cannot_delete_self_or_other_admins(client: AsyncClient, db: AsyncSession, admin_user: User):
    headers = auth_header(admin_token(admin_user))
    assert (await client.delete(f"/admin/users/{admin_user.id}", headers=headers)).status_code == 400

    other_admin = await make_user(db, UserRole.ADMIN, name="Second Admin")
    assert (await client.delete(f"/admin/users/{other_admin.id}", headers=headers)).status_code == 403


@pytest.mark.asyncio
async def test_delete_requires_admin(client: AsyncClient, customer_user: User, other_customer: User):
    response = await client.delete(
        f"/admin/users/{other_customer.id}", headers=auth_header(token_for(customer_user))
    )
    assert response.status_code == 403


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_all_bookings(
    client: AsyncClient,
    db: AsyncSession,
    admin_user: User,
    customer_user: User,
    other_customer: User,
    service: Service,
):
    first = await make_booking(db, customer_user, service, scheduled_date=date(2024, 6, 1))
    second = await make_booking(
        db, other_customer, service, status=BookingStatus.CONFIRMED, scheduled_date=date(2024, 6, 10)
    )
    headers = auth_header(admin_token(admin_user))

    everything = await client.get("/admin/bookings", headers=headers)
    assert everything.status_code == 200
    assert everything.json()["total"] == 2

    confirmed = await client.get("/admin/bookings", params={"status": "CONFIRMED"}, headers=headers)
    assert [b["id"] for b in confirmed.json()["bookings"]] == [str(second.id)]

    by_customer = await client.get(
        "/admin/bookings", params={"customer_id": str(customer_user.id)}, headers=headers
    )
    assert [b["id"] for b in by_customer.json()["bookings"]] == [str(first.id)]

    window = await client.get(
        "/admin/bookings", params={"date_from": "2024-06-05", "date_to": "2024-06-30"}, headers=headers
    )
    assert [b["id"] for b in window.json()["bookings"]] == [str(second.id)]


@pytest.mark.asyncio
async def test_list_bookings_rejects_inverted_range(client: AsyncClient, admin_user: User):
    response = await client.get(
        "/admin/bookings",
        params={"date_from": "2024-07-01", "date_to": "2024-06-01"},
        headers=auth_header(admin_token(admin_user)),
    )
    assert response.status_code == 400
