from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.api import deps
from crm.core.permissions import PermissionCode
from crm.core.security import get_password_hash
from crm.db.session import get_db
from crm.models import User
from crm.schemas.common import MessageResponse, PageResponse
from crm.schemas.users import UserCreate, UserSummary
from crm.services.audit import model_snapshot, record_audit_log_for_user
from crm.services.pagination import normalize_paging, paginate, resolve_sort, text_search

router = APIRouter(prefix="/users", tags=["users"])

CREATE_USER_PURPOSE = "create_user"
DELETE_USER_PURPOSE = "delete_user"


@router.get("", response_model=PageResponse[UserSummary], summary="List users")
async def list_users(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    q: str | None = Query(default=None),
    _: User = Depends(deps.require_permission(PermissionCode.USER_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> PageResponse[UserSummary]:
    page_num, page_size = normalize_paging(page, limit)
    conditions = []
    search = text_search(User, q, ("name", "email"))
    if search is not None:
        conditions.append(search)
    result = await paginate(
        db,
        User,
        conditions,
        page=page_num,
        limit=page_size,
        order_by=resolve_sort(User, None, ("created_at",)),
    )
    return PageResponse[UserSummary].from_result(
        result, [UserSummary.model_validate(user) for user in result.items]
    )


@router.post(
    "",
    response_model=UserSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user (requires owner approval)",
)
async def create_user(
    payload: UserCreate,
    request: Request,
    current_user: User = Depends(deps.require_permission(PermissionCode.USER_MANAGE)),
    _approved: str = Depends(deps.require_owner_otp(CREATE_USER_PURPOSE)),
    db: AsyncSession = Depends(get_db),
) -> User:
    email = payload.email.lower()
    existing = (await db.execute(select(User).where(func.lower(User.email) == email))).scalar_one_or_none()
    if existing is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A user with this email already exists")
    try:
        hashed = get_password_hash(payload.password)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    user = User(name=payload.name, email=email, hashed_password=hashed, role=payload.role.value, is_active=True)
    db.add(user)
    await db.flush()
    record_audit_log_for_user(
        db,
        current_user,
        action="user_created",
        entity_type="user",
        entity_id=user.id,
        meta=model_snapshot(user, include=("name", "email", "role")),
        request=request,
    )
    await db.commit()
    await db.refresh(user)
    return user


@router.delete("/{user_id}", response_model=MessageResponse, summary="Delete a user (requires owner approval)")
async def delete_user(
    user_id: UUID,
    request: Request,
    current_user: User = Depends(deps.require_permission(PermissionCode.USER_MANAGE)),
    _approved: str = Depends(deps.require_owner_otp(DELETE_USER_PURPOSE)),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")
    snapshot = model_snapshot(user, include=("name", "email", "role"))
    await db.delete(user)
    record_audit_log_for_user(
        db,
        current_user,
        action="user_deleted",
        entity_type="user",
        entity_id=user_id,
        meta=snapshot,
        request=request,
    )
    await db.commit()
    return MessageResponse(message="User deleted")
