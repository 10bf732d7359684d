from typing import Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.core.context import set_user_id
from crm.core.permissions import PermissionCode, role_has_permission
from crm.core.security import decode_token
from crm.db.session import get_db
from crm.models import User
from crm.services.otp import OTPService, OTPVerification
from crm.services.otp_store import get_otp_store


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


async def get_db_session(db: AsyncSession = Depends(get_db)) -> AsyncSession:
    return db


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    try:
        payload = decode_token(token, expected_type="access")
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    user_sub = payload.get("sub")
    if not user_sub:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    stmt = select(User).where(User.id == user_sub)
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    set_user_id(str(user.id))
    return user


async def require_authenticated_user(current_user: User = Depends(get_current_user)) -> User:
    """Simple guard to require an authenticated user (no permission checks)."""
    return current_user


def require_permission(permission_code: PermissionCode | str):
    async def dependency(current_user: User = Depends(require_authenticated_user)) -> User:
        if not role_has_permission(current_user.role, permission_code):
            target = permission_code.value if isinstance(permission_code, PermissionCode) else str(permission_code)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {target}",
            )
        return current_user

    return dependency


def get_otp_service() -> OTPService:
    return OTPService(get_otp_store())


def otp_required(message: str = "OTP is required.") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"code": "otp_required", "message": message},
    )


def otp_rejected(verification: OTPVerification) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "otp_rejected", "message": verification.message, "reason": verification.reason},
    )


async def _json_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def require_owner_otp(expected_purpose: str, purpose_field: str = "purpose"):
    """Redeem the owner's code sent in the JSON body before the action runs.

    The body must carry ``otp`` and ``purpose``; the purpose has to match the
    action so a code approved for one operation cannot unlock another.
    """

    async def dependency(
        request: Request,
        otp_service: OTPService = Depends(get_otp_service),
    ) -> str:
        body = await _json_body(request)
        otp = body.get("otp")
        purpose = body.get(purpose_field)
        if not otp or not purpose:
            raise otp_required("OTP and purpose are required.")
        if str(purpose) != expected_purpose:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"OTP purpose must be '{expected_purpose}' for this action.",
            )
        verification = await otp_service.verify(expected_purpose, str(otp))
        if not verification.ok:
            raise otp_rejected(verification)
        return expected_purpose

    return dependency
