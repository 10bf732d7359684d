from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.api import deps
from crm.core.permissions import PermissionCode
from crm.db.session import get_db
from crm.models import Case, CaseAudit, User
from crm.schemas.cases import CaseAuditOut, CaseComment, CaseOut, CaseUpdate
from crm.schemas.common import CASE_TASK_COMPLETE, PageResponse
from crm.services.pagination import SplitPool, normalize_paging, paginate_split, resolve_sort, text_search

router = APIRouter(prefix="/cases", tags=["cases"])

# Open cases (no task or any task other than Complete) come before completed ones.
CASE_POOL = SplitPool(field="task", first=None, second=CASE_TASK_COMPLETE)
CASE_SEARCH_FIELDS = ("case_id", "loan_type", "customer_name", "mobile")
CASE_SORT_FIELDS = ("created_at", "updated_at", "case_id", "customer_name")
NON_NULLABLE_FIELDS = frozenset({"status", "loan_type", "disbursed_amount"})


async def _get_case_or_404(db: AsyncSession, case_id: UUID) -> Case:
    case = await db.get(Case, case_id)
    if case is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Case not found")
    return case


@router.get("", response_model=PageResponse[CaseOut], summary="List cases, open before completed")
async def list_cases(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    q: str | None = Query(default=None),
    task: str | None = Query(default=None),
    sort: str | None = Query(default=None),
    _: User = Depends(deps.require_permission(PermissionCode.CASE_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> PageResponse[CaseOut]:
    page_num, page_size = normalize_paging(page, limit)
    conditions = []
    search = text_search(Case, q, CASE_SEARCH_FIELDS)
    if search is not None:
        conditions.append(search)

    result = await paginate_split(
        db,
        Case,
        conditions,
        CASE_POOL,
        page=page_num,
        limit=page_size,
        order_by=resolve_sort(Case, sort, CASE_SORT_FIELDS),
        bucket_value=task,
    )
    return PageResponse[CaseOut].from_result(result, [CaseOut.model_validate(case) for case in result.items])


@router.get("/{case_id}", response_model=CaseOut)
async def get_case(
    case_id: UUID,
    _: User = Depends(deps.require_permission(PermissionCode.CASE_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> Case:
    return await _get_case_or_404(db, case_id)


@router.patch("/{case_id}", response_model=CaseOut)
async def update_case(
    case_id: UUID,
    payload: CaseUpdate,
    request: Request,
    current_user: User = Depends(deps.require_permission(PermissionCode.CASE_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> Case:
    case = await _get_case_or_404(db, case_id)
    changes = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key not in NON_NULLABLE_FIELDS
    }
    previous_status = case.status
    for field_name, value in changes.items():
        setattr(case, field_name, value)

    status_changed = "status" in changes and changes["status"] != previous_status
    db.add(
        CaseAudit(
            case_id=case.id,
            actor_id=current_user.id,
            action="status_changed" if status_changed else "updated",
            from_status=previous_status if status_changed else None,
            to_status=case.status if status_changed else None,
        )
    )
    db.add(case)
    await db.commit()
    await db.refresh(case)
    return case


@router.post("/{case_id}/comment", response_model=CaseAuditOut, status_code=status.HTTP_201_CREATED)
async def add_comment(
    case_id: UUID,
    payload: CaseComment,
    current_user: User = Depends(deps.require_permission(PermissionCode.CASE_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> CaseAudit:
    case = await _get_case_or_404(db, case_id)
    entry = CaseAudit(case_id=case.id, actor_id=current_user.id, action="comment", comment=payload.comment)
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    return entry


@router.get("/{case_id}/audit", response_model=list[CaseAuditOut], summary="Case history, newest first")
async def case_audit(
    case_id: UUID,
    _: User = Depends(deps.require_permission(PermissionCode.CASE_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> list[CaseAudit]:
    case = await _get_case_or_404(db, case_id)
    stmt = (
        select(CaseAudit)
        .where(CaseAudit.case_id == case.id)
        .order_by(CaseAudit.created_at.desc(), CaseAudit.id.desc())
    )
    return list((await db.execute(stmt)).scalars().all())
