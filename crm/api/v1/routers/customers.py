from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.api import deps
from crm.core.permissions import PermissionCode
from crm.db.session import get_db
from crm.models import Customer, Disbursement, User
from crm.schemas.common import CustomerStatus, MessageResponse, PageResponse
from crm.schemas.customers import CustomerOut, CustomerUpdate, DisbursementCreate, DisbursementOut
from crm.services.audit import model_snapshot, record_audit_log_for_user, serialize_for_audit
from crm.services.pagination import SplitPool, normalize_paging, paginate_split, resolve_sort, text_search

router = APIRouter(prefix="/customers", tags=["customers"])

CUSTOMER_POOL = SplitPool(
    field="status",
    first=CustomerStatus.OPEN.value,
    second=CustomerStatus.CLOSE.value,
    pins=frozenset(member.value for member in CustomerStatus),
)
CUSTOMER_SEARCH_FIELDS = ("name", "mobile", "email", "customer_id")
CUSTOMER_SORT_FIELDS = ("created_at", "updated_at", "name", "customer_id")
NON_NULLABLE_FIELDS = frozenset({"name", "status"})


async def _get_customer_or_404(db: AsyncSession, customer_id: UUID) -> Customer:
    customer = await db.get(Customer, customer_id)
    if customer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    return customer


@router.get("", response_model=PageResponse[CustomerOut], summary="List customers, open before closed")
async def list_customers(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    q: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    bank: str | None = Query(default=None),
    sort: str | None = Query(default=None),
    _: User = Depends(deps.require_permission(PermissionCode.CUSTOMER_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> PageResponse[CustomerOut]:
    page_num, page_size = normalize_paging(page, limit)
    conditions = []
    search = text_search(Customer, q, CUSTOMER_SEARCH_FIELDS)
    if search is not None:
        conditions.append(search)
    if bank and bank.strip():
        conditions.append(Customer.bank_name == bank.strip())

    result = await paginate_split(
        db,
        Customer,
        conditions,
        CUSTOMER_POOL,
        page=page_num,
        limit=page_size,
        order_by=resolve_sort(Customer, sort, CUSTOMER_SORT_FIELDS),
        bucket_value=status_filter,
    )
    return PageResponse[CustomerOut].from_result(
        result, [CustomerOut.model_validate(customer) for customer in result.items]
    )


@router.get("/meta/banks", response_model=list[str], summary="Distinct bank names for the filter")
async def list_banks(
    _: User = Depends(deps.require_permission(PermissionCode.CUSTOMER_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> list[str]:
    stmt = (
        select(Customer.bank_name)
        .where(Customer.bank_name.is_not(None), Customer.bank_name != "")
        .distinct()
        .order_by(Customer.bank_name)
    )
    return list((await db.execute(stmt)).scalars().all())


@router.get("/meta/statuses", response_model=list[str])
async def list_statuses(
    _: User = Depends(deps.require_permission(PermissionCode.CUSTOMER_VIEW)),
) -> list[str]:
    return [member.value for member in CustomerStatus]


@router.get("/{customer_id}", response_model=CustomerOut)
async def get_customer(
    customer_id: UUID,
    _: User = Depends(deps.require_permission(PermissionCode.CUSTOMER_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> Customer:
    return await _get_customer_or_404(db, customer_id)


@router.patch("/{customer_id}", response_model=CustomerOut)
async def update_customer(
    customer_id: UUID,
    payload: CustomerUpdate,
    request: Request,
    current_user: User = Depends(deps.require_permission(PermissionCode.CUSTOMER_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> Customer:
    customer = await _get_customer_or_404(db, customer_id)
    changes = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key not in NON_NULLABLE_FIELDS
    }
    before = model_snapshot(customer, include=changes.keys())
    for field_name, value in changes.items():
        setattr(customer, field_name, value)
    db.add(customer)
    record_audit_log_for_user(
        db,
        current_user,
        action="customer_updated",
        entity_type="customer",
        entity_id=customer.customer_id,
        meta={"before": before, "after": model_snapshot(customer, include=changes.keys())},
        request=request,
    )
    await db.commit()
    await db.refresh(customer)
    return customer


@router.get("/{customer_id}/disbursements", response_model=list[DisbursementOut])
async def list_disbursements(
    customer_id: UUID,
    _: User = Depends(deps.require_permission(PermissionCode.CUSTOMER_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> list[Disbursement]:
    customer = await _get_customer_or_404(db, customer_id)
    stmt = (
        select(Disbursement)
        .where(Disbursement.customer_id == customer.id)
        .order_by(Disbursement.date.asc(), Disbursement.created_at.asc())
    )
    return list((await db.execute(stmt)).scalars().all())


@router.post(
    "/{customer_id}/disbursements",
    response_model=DisbursementOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_disbursement(
    customer_id: UUID,
    payload: DisbursementCreate,
    request: Request,
    current_user: User = Depends(deps.require_permission(PermissionCode.DISBURSEMENT_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> Disbursement:
    customer = await _get_customer_or_404(db, customer_id)
    disbursement = Disbursement(
        customer_id=customer.id,
        amount=payload.amount,
        date=payload.date,
        notes=payload.notes,
    )
    db.add(disbursement)
    await db.flush()
    record_audit_log_for_user(
        db,
        current_user,
        action="disbursement_added",
        entity_type="customer",
        entity_id=customer.customer_id,
        meta=serialize_for_audit(
            {"disbursement_id": disbursement.id, "amount": payload.amount, "date": payload.date}
        ),
        request=request,
    )
    await db.commit()
    await db.refresh(disbursement)
    return disbursement


@router.delete("/{customer_id}/disbursements/{disbursement_id}", response_model=MessageResponse)
async def delete_disbursement(
    customer_id: UUID,
    disbursement_id: UUID,
    request: Request,
    current_user: User = Depends(deps.require_permission(PermissionCode.DISBURSEMENT_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    customer = await _get_customer_or_404(db, customer_id)
    disbursement = await db.get(Disbursement, disbursement_id)
    if disbursement is None or disbursement.customer_id != customer.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Disbursement not found")
    meta = serialize_for_audit(
        {"disbursement_id": disbursement.id, "amount": disbursement.amount, "date": disbursement.date}
    )
    await db.delete(disbursement)
    record_audit_log_for_user(
        db,
        current_user,
        action="disbursement_deleted",
        entity_type="customer",
        entity_id=customer.customer_id,
        meta=meta,
        request=request,
    )
    await db.commit()
    return MessageResponse(message="Disbursement deleted")
