"""Owner-approved export endpoints, one router per exportable collection."""

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from crm.api import deps
from crm.core.limiter import limiter
from crm.db.session import get_db
from crm.models import User
from crm.schemas.exports import ExportOtpRequested, ExportResult, ExportVerifyRequest
from crm.services.audit import record_audit_log_for_user
from crm.services.exports import (
    EXPORT_TARGETS,
    ExportRequestContext,
    ExportTarget,
    export_rows,
    request_export_otp,
    verify_export_otp,
)
from crm.services.otp import OTPService

VERIFY_RATE_LIMIT = "10/minute"


def build_export_router(target: ExportTarget) -> APIRouter:
    router = APIRouter(prefix=f"/{target.collection}/export", tags=[target.collection, "exports"])

    @router.post(
        "/request-otp",
        response_model=ExportOtpRequested,
        summary=f"Ask the owner to approve a {target.collection} export",
    )
    async def request_otp(
        request: Request,
        current_user: User = Depends(deps.require_permission(target.permission)),
        db: AsyncSession = Depends(get_db),
        otp_service: OTPService = Depends(deps.get_otp_service),
    ) -> dict:
        ctx = ExportRequestContext.from_request(request, current_user, target.purpose)
        response = await request_export_otp(otp_service, ctx)
        record_audit_log_for_user(
            db,
            current_user,
            action="export_otp_requested",
            entity_type=target.collection,
            meta={"purpose": target.purpose},
            request=request,
        )
        await db.commit()
        return response

    @router.post(
        "/verify",
        response_model=ExportResult,
        summary=f"Redeem the owner's code and export {target.collection}",
    )
    @limiter.limit(VERIFY_RATE_LIMIT)
    async def verify(
        request: Request,
        payload: ExportVerifyRequest | None = Body(default=None),
        current_user: User = Depends(deps.require_permission(target.permission)),
        db: AsyncSession = Depends(get_db),
        otp_service: OTPService = Depends(deps.get_otp_service),
    ) -> ExportResult:
        otp = ((payload.otp if payload else None) or "").strip()
        if not otp:
            raise deps.otp_required()

        verification = await verify_export_otp(otp_service, target.purpose, otp)
        if not verification.ok:
            raise deps.otp_rejected(verification)

        items = await export_rows(db, target)
        record_audit_log_for_user(
            db,
            current_user,
            action="export_completed",
            entity_type=target.collection,
            meta={"purpose": target.purpose, "count": len(items)},
            request=request,
        )
        await db.commit()
        return ExportResult(ok=True, items=items)

    return router


routers = [build_export_router(target) for target in EXPORT_TARGETS.values()]
