import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.api import deps
from crm.core.limiter import limiter
from crm.core.security import create_access_token, verify_password
from crm.core.settings import settings
from crm.db.session import get_db
from crm.models import User
from crm.schemas.auth import LoginRequest, OwnerOtpRequest, Token, UserOut
from crm.schemas.exports import ExportOtpRequested
from crm.services.audit import record_audit_log_for_user
from crm.services.exports import ExportRequestContext, request_export_otp
from crm.services.login_guard import login_guard
from crm.services.otp import OTPService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Token)
@limiter.limit(lambda: f"{settings.rate_limit_per_minute}/minute")
async def login(
    credentials: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Token:
    identifier = credentials.email.lower()
    login_guard.ensure_allowed(identifier)

    stmt = select(User).where(func.lower(User.email) == identifier)
    user = (await db.execute(stmt)).scalar_one_or_none()
    if not user or not user.is_active or not verify_password(credentials.password, user.hashed_password):
        logger.info("Failed login for %s", identifier)
        login_guard.record_failure(identifier)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

    login_guard.record_success(identifier)
    token = create_access_token(str(user.id), role=user.role)
    return Token(access_token=token)


@router.get("/me", response_model=UserOut)
async def read_me(current_user: User = Depends(deps.require_authenticated_user)) -> User:
    return current_user


@router.post("/request-otp", response_model=ExportOtpRequested, summary="Ask the owner to approve an action")
async def request_owner_otp(
    payload: OwnerOtpRequest,
    request: Request,
    current_user: User = Depends(deps.require_authenticated_user),
    db: AsyncSession = Depends(get_db),
    otp_service: OTPService = Depends(deps.get_otp_service),
) -> dict:
    purpose = payload.purpose.strip()
    if not purpose:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Purpose is required.")
    ctx = ExportRequestContext.from_request(request, current_user, purpose)
    response = await request_export_otp(otp_service, ctx)
    record_audit_log_for_user(
        db,
        current_user,
        action="owner_otp_requested",
        entity_type="otp",
        entity_id=purpose,
        request=request,
    )
    await db.commit()
    return response
