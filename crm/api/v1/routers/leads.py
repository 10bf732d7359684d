from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from crm.api import deps
from crm.core.permissions import PermissionCode
from crm.db.session import get_db
from crm.models import Lead, User
from crm.schemas.cases import CaseOut
from crm.schemas.common import LeadStatus, MessageResponse, PageResponse
from crm.schemas.customers import CustomerOut
from crm.schemas.leads import LeadCreate, LeadOut, LeadUpdate
from crm.services.audit import model_snapshot, record_audit_log_for_user
from crm.services.counters import next_lead_id
from crm.services.leads import convert_lead
from crm.services.pagination import SplitPool, normalize_paging, paginate_split, resolve_sort, text_search

router = APIRouter(prefix="/leads", tags=["leads"])

LEAD_POOL = SplitPool(
    field="status",
    first=LeadStatus.FREE_POOL.value,
    second=LeadStatus.ARCHIVED.value,
    pins=frozenset(member.value for member in LeadStatus),
)
LEAD_SEARCH_FIELDS = ("name", "mobile", "email", "lead_id")
LEAD_SORT_FIELDS = ("created_at", "updated_at", "name", "lead_id")
NON_NULLABLE_FIELDS = frozenset({"name", "mobile", "lead_type", "gd_status", "workflow_status", "status"})


async def _get_lead_or_404(db: AsyncSession, lead_id: UUID) -> Lead:
    lead = await db.get(Lead, lead_id)
    if lead is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lead not found")
    return lead


@router.get("", response_model=PageResponse[LeadOut], summary="List leads, free pool before archived")
async def list_leads(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    q: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    sort: str | None = Query(default=None),
    _: User = Depends(deps.require_permission(PermissionCode.LEAD_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> PageResponse[LeadOut]:
    page_num, page_size = normalize_paging(page, limit)
    conditions = []
    search = text_search(Lead, q, LEAD_SEARCH_FIELDS)
    if search is not None:
        conditions.append(search)

    result = await paginate_split(
        db,
        Lead,
        conditions,
        LEAD_POOL,
        page=page_num,
        limit=page_size,
        order_by=resolve_sort(Lead, sort, LEAD_SORT_FIELDS),
        bucket_value=status_filter,
    )
    return PageResponse[LeadOut].from_result(result, [LeadOut.model_validate(lead) for lead in result.items])


@router.post("", response_model=LeadOut, status_code=status.HTTP_201_CREATED, summary="Create a lead")
async def create_lead(
    payload: LeadCreate,
    request: Request,
    current_user: User = Depends(deps.require_permission(PermissionCode.LEAD_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> Lead:
    data = payload.model_dump()
    data["status"] = payload.status.value
    lead = Lead(lead_id=await next_lead_id(db), **data)
    db.add(lead)
    await db.flush()
    record_audit_log_for_user(
        db,
        current_user,
        action="lead_created",
        entity_type="lead",
        entity_id=lead.lead_id,
        meta=model_snapshot(lead, include=("lead_id", "name", "mobile", "status")),
        request=request,
    )
    await db.commit()
    await db.refresh(lead)
    return lead


@router.get("/{lead_id}", response_model=LeadOut)
async def get_lead(
    lead_id: UUID,
    _: User = Depends(deps.require_permission(PermissionCode.LEAD_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> Lead:
    return await _get_lead_or_404(db, lead_id)


@router.patch("/{lead_id}", response_model=LeadOut)
async def update_lead(
    lead_id: UUID,
    payload: LeadUpdate,
    request: Request,
    current_user: User = Depends(deps.require_permission(PermissionCode.LEAD_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> Lead:
    lead = await _get_lead_or_404(db, lead_id)
    changes = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key not in NON_NULLABLE_FIELDS
    }
    if "status" in changes:
        changes["status"] = LeadStatus(changes["status"]).value
    before = model_snapshot(lead, include=changes.keys())
    for field_name, value in changes.items():
        setattr(lead, field_name, value)
    db.add(lead)
    record_audit_log_for_user(
        db,
        current_user,
        action="lead_updated",
        entity_type="lead",
        entity_id=lead.lead_id,
        meta={"before": before, "after": model_snapshot(lead, include=changes.keys())},
        request=request,
    )
    await db.commit()
    await db.refresh(lead)
    return lead


@router.delete("/{lead_id}", response_model=MessageResponse)
async def delete_lead(
    lead_id: UUID,
    request: Request,
    current_user: User = Depends(deps.require_permission(PermissionCode.LEAD_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    lead = await _get_lead_or_404(db, lead_id)
    snapshot = model_snapshot(lead, include=("lead_id", "name", "mobile", "status"))
    await db.delete(lead)
    record_audit_log_for_user(
        db,
        current_user,
        action="lead_deleted",
        entity_type="lead",
        entity_id=snapshot.get("lead_id"),
        meta=snapshot,
        request=request,
    )
    await db.commit()
    return MessageResponse(message="Lead deleted")


@router.patch("/{lead_id}/convert", summary="Archive a lead and open its case and customer")
async def convert(
    lead_id: UUID,
    request: Request,
    current_user: User = Depends(deps.require_permission(PermissionCode.LEAD_CONVERT)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    lead = await _get_lead_or_404(db, lead_id)
    conversion = await convert_lead(db, lead)
    record_audit_log_for_user(
        db,
        current_user,
        action="lead_converted",
        entity_type="lead",
        entity_id=lead.lead_id,
        meta={
            "case_created": conversion.case_created,
            "customer_created": conversion.customer_created,
        },
        request=request,
    )
    await db.commit()
    return {
        "message": "Lead converted successfully",
        "lead": LeadOut.model_validate(conversion.lead).model_dump(mode="json"),
        "case": CaseOut.model_validate(conversion.case).model_dump(mode="json"),
        "customer": CustomerOut.model_validate(conversion.customer).model_dump(mode="json"),
    }
