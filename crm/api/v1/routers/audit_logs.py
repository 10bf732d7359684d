from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crm.api import deps
from crm.core.permissions import PermissionCode
from crm.db.session import get_db
from crm.models import AuditLog, User
from crm.schemas.audit import AuditLogEntry
from crm.schemas.common import PageResponse
from crm.services.pagination import normalize_paging, paginate, resolve_sort, text_search

router = APIRouter(prefix="/audit-logs", tags=["audit-logs"])


@router.get("", response_model=PageResponse[AuditLogEntry], summary="List audit log entries, newest first")
async def list_audit_logs(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    q: str | None = Query(default=None),
    action: str | None = Query(default=None),
    _: User = Depends(deps.require_permission(PermissionCode.AUDIT_LOG_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> PageResponse[AuditLogEntry]:
    page_num, page_size = normalize_paging(page, limit)
    conditions = []
    search = text_search(AuditLog, q, ("action", "entity_type", "entity_id"))
    if search is not None:
        conditions.append(search)
    if action:
        conditions.append(AuditLog.action == action)

    result = await paginate(
        db,
        AuditLog,
        conditions,
        page=page_num,
        limit=page_size,
        order_by=resolve_sort(AuditLog, None, ("created_at",)),
    )
    return PageResponse[AuditLogEntry].from_result(
        result, [AuditLogEntry.model_validate(entry) for entry in result.items]
    )
