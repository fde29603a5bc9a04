import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import ReportStatus, ReportType
from app.models.notification import Notification
from app.models.report import Report
from app.models.service import Service
from app.models.user import User
from tests.conftest import admin_token, auth_header, customer_token, provider_token, token_for


async def _make_report(db: AsyncSession, reporter: User, target: User, reason: str = "No show") -> Report:
    report = Report(
        reporter_id=reporter.id,
        type=ReportType.USER,
        reason=reason,
        status=ReportStatus.PENDING,
        target_user_id=target.id,
    )
    db.add(report)
    await db.flush()
    return report


async def _notifications_for(db: AsyncSession, user: User) -> list[Notification]:
    result = await db.execute(select(Notification).where(Notification.user_id == user.id))
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_create_report_notifies_admins(
    client: AsyncClient, db: AsyncSession, customer_user: User, provider_user: User, admin_user: User
):
    response = await client.post(
        "/reports",
        json={
            "type": "USER",
            "reason": "Provider never showed up",
            "description": "Waited two hours",
            "target_user_id": str(provider_user.id),
        },
        headers=auth_header(customer_token(customer_user)),
    )
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "PENDING"
    assert data["reporter_id"] == str(customer_user.id)

    notifications = await _notifications_for(db, admin_user)
    assert len(notifications) == 1
    assert notifications[0].title == "New Report Submitted"
    assert notifications[0].message == "A new user report has been submitted: Provider never showed up"
    assert notifications[0].data == {"report_id": data["id"]}


@pytest.mark.asyncio
async def test_report_a_service(client: AsyncClient, customer_user: User, service: Service):
    response = await client.post(
        "/reports",
        json={"type": "SERVICE", "reason": "Misleading listing", "target_service_id": str(service.id)},
        headers=auth_header(customer_token(customer_user)),
    )
    assert response.status_code == 201
    assert response.json()["target_service_id"] == str(service.id)


@pytest.mark.asyncio
async def test_cannot_report_yourself(client: AsyncClient, customer_user: User):
    response = await client.post(
        "/reports",
        json={"type": "USER", "reason": "Testing", "target_user_id": str(customer_user.id)},
        headers=auth_header(customer_token(customer_user)),
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "You cannot report yourself"


@pytest.mark.asyncio
async def test_report_requires_a_target(client: AsyncClient, customer_user: User):
    response = await client.post(
        "/reports",
        json={"type": "USER", "reason": "Something happened"},
        headers=auth_header(customer_token(customer_user)),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_report_requires_auth(client: AsyncClient, provider_user: User):
    response = await client.post(
        "/reports",
        json={"type": "USER", "reason": "Rude", "target_user_id": str(provider_user.id)},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_reports_is_scoped(
    client: AsyncClient,
    db: AsyncSession,
    customer_user: User,
    other_customer: User,
    provider_user: User,
    admin_user: User,
):
    mine = await _make_report(db, customer_user, provider_user)
    await _make_report(db, other_customer, provider_user, reason="Overcharged")

    own = await client.get("/reports", headers=auth_header(customer_token(customer_user)))
    assert own.status_code == 200
    assert own.json()["total"] == 1
    assert own.json()["reports"][0]["id"] == str(mine.id)

    everything = await client.get("/reports", headers=auth_header(admin_token(admin_user)))
    assert everything.json()["total"] == 2


@pytest.mark.asyncio
async def test_list_reports_filters(
    client: AsyncClient, db: AsyncSession, customer_user: User, provider_user: User, admin_user: User
):
    resolved = await _make_report(db, customer_user, provider_user)
    resolved.status = ReportStatus.RESOLVED
    await _make_report(db, customer_user, provider_user, reason="Late again")
    await db.flush()

    response = await client.get(
        "/reports", params={"status": "RESOLVED"}, headers=auth_header(admin_token(admin_user))
    )
    assert [r["id"] for r in response.json()["reports"]] == [str(resolved.id)]

    by_type = await client.get("/reports", params={"type": "REVIEW"}, headers=auth_header(admin_token(admin_user)))
    assert by_type.json()["total"] == 0


@pytest.mark.asyncio
async def test_get_report_permissions(
    client: AsyncClient,
    db: AsyncSession,
    customer_user: User,
    other_customer: User,
    provider_user: User,
    admin_user: User,
):
    report = await _make_report(db, customer_user, provider_user)

    own = await client.get(f"/reports/{report.id}", headers=auth_header(customer_token(customer_user)))
    assert own.status_code == 200
    assert own.json()["reporter"]["name"] == "Priya Customer"

    # the reported provider cannot read it
    target = await client.get(f"/reports/{report.id}", headers=auth_header(provider_token(provider_user)))
    assert target.status_code == 403

    stranger = await client.get(f"/reports/{report.id}", headers=auth_header(token_for(other_customer)))
    assert stranger.status_code == 403

    admin = await client.get(f"/reports/{report.id}", headers=auth_header(admin_token(admin_user)))
    assert admin.status_code == 200

    missing = await client.get(f"/reports/{uuid.uuid4()}", headers=auth_header(admin_token(admin_user)))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_admin_update_notifies_reporter(
    client: AsyncClient, db: AsyncSession, customer_user: User, provider_user: User, admin_user: User
):
    report = await _make_report(db, customer_user, provider_user)

    response = await client.put(
        f"/reports/{report.id}",
        json={"status": "RESOLVED", "resolution": "Provider warned"},
        headers=auth_header(admin_token(admin_user)),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "RESOLVED"
    assert response.json()["resolution"] == "Provider warned"

    notifications = await _notifications_for(db, customer_user)
    assert len(notifications) == 1
    assert notifications[0].title == "Report Status Updated"
    assert notifications[0].message == "Your report has been updated to: RESOLVED. Resolution: Provider warned"


@pytest.mark.asyncio
async def test_resolution_only_update_is_silent(
    client: AsyncClient, db: AsyncSession, customer_user: User, provider_user: User, admin_user: User
):
    report = await _make_report(db, customer_user, provider_user)

    response = await client.put(
        f"/reports/{report.id}",
        json={"resolution": "Looking into it"},
        headers=auth_header(admin_token(admin_user)),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "PENDING"
    assert await _notifications_for(db, customer_user) == []


@pytest.mark.asyncio
async def test_only_admins_update_reports(
    client: AsyncClient, db: AsyncSession, customer_user: User, provider_user: User
):
    report = await _make_report(db, customer_user, provider_user)
    response = await client.put(
        f"/reports/{report.id}",
        json={"status": "DISMISSED"},
        headers=auth_header(customer_token(customer_user)),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_delete_report(
    client: AsyncClient, db: AsyncSession, customer_user: User, provider_user: User, admin_user: User
):
    report = await _make_report(db, customer_user, provider_user)
    report_id = report.id

    response = await client.delete(f"/reports/{report_id}", headers=auth_header(admin_token(admin_user)))
    assert response.status_code == 200
    assert response.json() == {"status": "deleted", "report_id": str(report_id)}

    again = await client.delete(f"/reports/{report_id}", headers=auth_header(admin_token(admin_user)))
    assert again.status_code == 404
