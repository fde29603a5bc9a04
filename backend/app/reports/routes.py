"""User reports about other users, services, reviews and bookings (moderation queue)."""
import uuid

import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import get_db
from app.dependencies import get_current_admin, get_current_user, get_notification_emitter
from app.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.models.enums import NotificationType, ReportStatus, ReportType, UserRole
from app.models.report import Report
from app.models.user import User
from app.schemas.report import (
    ReportCreateRequest,
    ReportDetailResponse,
    ReportListResponse,
    ReportResponse,
    ReportUpdateRequest,
)
from app.services.notifications import NotificationDraft, NotificationEmitter, emit_best_effort, notify_admins
from app.utils.rate_limit import LIST_RATE_LIMIT, limiter

logger = structlog.get_logger()
router = APIRouter(prefix="/reports", tags=["reports"])


async def _get_report(db: AsyncSession, report_id: uuid.UUID, refresh: bool = False) -> Report:
    stmt = select(Report).where(Report.id == report_id).options(selectinload(Report.reporter))
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    result = await db.execute(stmt)
    report = result.scalar_one_or_none()
    if not report:
        raise NotFoundError("Report")
    return report


@router.post("", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def create_report(
    request: Request,
    body: ReportCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    emitter: NotificationEmitter = Depends(get_notification_emitter),
):
    """Report a user, service, review or booking. Every admin is notified."""
    if body.target_user_id == user.id:
        raise ValidationError("You cannot report yourself")

    report = Report(
        reporter_id=user.id,
        type=body.type,
        reason=body.reason,
        description=body.description,
        status=ReportStatus.PENDING,
        target_user_id=body.target_user_id,
        target_service_id=body.target_service_id,
        target_review_id=body.target_review_id,
        target_booking_id=body.target_booking_id,
    )
    db.add(report)
    await db.flush()

    notified = await notify_admins(
        db,
        emitter,
        title="New Report Submitted",
        message=f"A new {ReportType(body.type).value.lower()} report has been submitted: {body.reason}",
        notification_type=NotificationType.REPORT,
        data={"report_id": str(report.id)},
    )
    logger.info("report_created", report_id=str(report.id), type=ReportType(body.type).value, admins_notified=notified)
    return ReportResponse.model_validate(await _get_report(db, report.id, refresh=True))


@router.get("", response_model=ReportListResponse)
@limiter.limit(LIST_RATE_LIMIT)
async def list_reports(
    request: Request,
    report_status: ReportStatus | None = Query(None, alias="status"),
    report_type: ReportType | None = Query(None, alias="type"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0, le=10000),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Admins see every report; other users only their own."""
    filters = []
    if user.role != UserRole.ADMIN:
        filters.append(Report.reporter_id == user.id)
    if report_status is not None:
        filters.append(Report.status == report_status)
    if report_type is not None:
        filters.append(Report.type == report_type)

    total = (await db.execute(select(func.count(Report.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(Report)
        .where(*filters)
        .options(selectinload(Report.reporter))
        .order_by(Report.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return ReportListResponse(
        reports=[ReportDetailResponse.model_validate(r) for r in result.scalars().all()],
        total=total,
    )


@router.get("/{report_id}", response_model=ReportDetailResponse)
async def get_report(
    report_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    report = await _get_report(db, report_id)
    if user.role != UserRole.ADMIN and report.reporter_id != user.id:
        raise ForbiddenError("Access denied")
    return ReportDetailResponse.model_validate(report)


@router.put("/{report_id}", response_model=ReportDetailResponse)
@limiter.limit("30/minute")
async def update_report(
    request: Request,
    report_id: uuid.UUID,
    body: ReportUpdateRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    emitter: NotificationEmitter = Depends(get_notification_emitter),
):
    """Move a report through moderation. The reporter hears about status changes."""
    report = await _get_report(db, report_id)
    previous_status = ReportStatus(report.status)

    update_data = body.model_dump(exclude_unset=True)
    if update_data.get("status") is not None:
        report.status = body.status
    if "resolution" in update_data:
        report.resolution = body.resolution
    await db.flush()

    if body.status is not None and body.status != previous_status:
        message = f"Your report has been updated to: {body.status.value}"
        if body.resolution:
            message += f". Resolution: {body.resolution}"
        await emit_best_effort(
            emitter,
            NotificationDraft(
                user_id=report.reporter_id,
                title="Report Status Updated",
                message=message,
                type=NotificationType.REPORT,
                data={"report_id": str(report.id), "status": body.status.value},
            ),
        )

    logger.info("report_updated", report_id=str(report.id), admin_id=str(admin.id), status=ReportStatus(report.status).value)
    return ReportDetailResponse.model_validate(await _get_report(db, report.id, refresh=True))


@router.delete("/{report_id}", status_code=status.HTTP_200_OK)
@limiter.limit("10/minute")
async def delete_report(
    request: Request,
    report_id: uuid.UUID,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    await _get_report(db, report_id)
    await db.execute(delete(Report).where(Report.id == report_id))
    await db.flush()
    logger.info("report_deleted", report_id=str(report_id), admin_id=str(admin.id))
    return {"status": "deleted", "report_id": str(report_id)}
