from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from crm.core.logging import get_audit_logger
from crm.models.audit_log import AuditLog
from crm.utils.request_meta import client_ip, user_agent

audit_logger = get_audit_logger()


def serialize_for_audit(value: Any) -> Any:
    return jsonable_encoder(
        value,
        custom_encoder={
            Decimal: lambda v: str(v),
            datetime: lambda v: v.isoformat(),
            date: lambda v: v.isoformat(),
        },
    )


def model_snapshot(model: Any, *, include: Iterable[str] | None = None) -> dict[str, Any]:
    if model is None:
        return {}
    wanted = set(include) if include is not None else None
    data: dict[str, Any] = {}
    for column in model.__table__.columns:
        if wanted is not None and column.name not in wanted:
            continue
        data[column.name] = getattr(model, column.key)
    return serialize_for_audit(data)


def record_audit_log(
    db: AsyncSession,
    *,
    actor_id,
    action: str,
    entity_type: str = "",
    entity_id: Any = "",
    meta: dict[str, Any] | None = None,
    request: Request | None = None,
) -> AuditLog:
    """Stage an audit row on the session; the caller owns the commit."""
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id or ""),
        meta=serialize_for_audit(meta or {}),
        ip=client_ip(request) if request is not None else "",
        user_agent=user_agent(request),
    )
    db.add(entry)
    audit_logger.info(
        "%s %s:%s actor=%s",
        action,
        entity_type or "-",
        entry.entity_id or "-",
        actor_id,
        extra={"action": action, "entity_type": entity_type, "entity_id": entry.entity_id, "actor_id": actor_id},
    )
    return entry


def record_audit_log_for_user(
    db: AsyncSession,
    current_user,
    *,
    action: str,
    entity_type: str = "",
    entity_id: Any = "",
    meta: dict[str, Any] | None = None,
    request: Request | None = None,
) -> AuditLog:
    return record_audit_log(
        db,
        actor_id=getattr(current_user, "id", None),
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta=meta,
        request=request,
    )
