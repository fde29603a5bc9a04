"""Whole booking journeys driven through the HTTP API."""
import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification
from app.models.service import Service
from app.models.user import User
from tests.conftest import auth_header, customer_token, provider_token


async def _titles_for(db: AsyncSession, user: User) -> list[str]:
    result = await db.execute(
        select(Notification.title)
        .where(Notification.user_id == user.id)
        .order_by(Notification.created_at, Notification.title)
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_book_progress_complete_and_review(
    client: AsyncClient, db: AsyncSession, customer_user: User, provider_user: User, service: Service
):
    customer_headers = auth_header(customer_token(customer_user))
    provider_headers = auth_header(provider_token(provider_user))

    created = await client.post(
        "/bookings",
        json={
            "serviceId": str(service.id),
            "scheduledDate": "2024-06-01",
            "scheduledTime": "10:00",
            "address": "12 MG Road",
        },
        headers=customer_headers,
    )
    assert created.status_code == 201
    booking = created.json()
    assert booking["status"] == "REQUESTED"
    assert booking["total_price"] == "1500.00"
    assert await _titles_for(db, provider_user) == ["New Booking Request"]

    expected = {
        "CONFIRMED": "Booking Confirmed",
        "IN_PROGRESS": "Service Started",
        "COMPLETED": "Service Completed",
    }
    for status, title in expected.items():
        response = await client.put(
            f"/bookings/{booking['id']}", json={"status": status}, headers=provider_headers
        )
        assert response.status_code == 200, response.text
        assert response.json()["status"] == status
        assert title in await _titles_for(db, customer_user)

    review = await client.post(
        "/reviews", json={"booking_id": booking["id"], "rating": 5}, headers=customer_headers
    )
    assert review.status_code == 201
    assert "New Review" in await _titles_for(db, provider_user)

    detail = await client.get(f"/bookings/{booking['id']}", headers=customer_headers)
    assert detail.json()["review"]["rating"] == 5

    again = await client.post(
        "/reviews", json={"booking_id": booking["id"], "rating": 4}, headers=customer_headers
    )
    assert again.status_code == 400

    provider = await client.get(f"/providers/{provider_user.id}")
    assert provider.status_code == 200
    assert provider.json()["profile"]["total_reviews"] == 1
    assert provider.json()["profile"]["completed_jobs"] == 1


@pytest.mark.asyncio
async def test_customer_cancels_then_booking_is_frozen(
    client: AsyncClient, db: AsyncSession, customer_user: User, provider_user: User, service: Service
):
    customer_headers = auth_header(customer_token(customer_user))
    provider_headers = auth_header(provider_token(provider_user))

    created = await client.post(
        "/bookings",
        json={
            "service_id": str(service.id),
            "scheduled_date": "2024-06-01",
            "scheduled_time": "10:00",
            "address": "12 MG Road",
        },
        headers=customer_headers,
    )
    booking_id = created.json()["id"]

    cancelled = await client.put(
        f"/bookings/{booking_id}", json={"status": "CANCELLED"}, headers=customer_headers
    )
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "CANCELLED"
    assert "Booking Cancelled" in await _titles_for(db, provider_user)
    assert await _titles_for(db, customer_user) == []

    for status in ("CONFIRMED", "IN_PROGRESS", "COMPLETED", "CANCELLED"):
        response = await client.put(
            f"/bookings/{booking_id}", json={"status": status}, headers=provider_headers
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_TRANSITION"

    response = await client.put(
        f"/bookings/{booking_id}", json={"status": "CANCELLED"}, headers=customer_headers
    )
    assert response.json()["code"] == "INVALID_TRANSITION"
