"""Owner-approved bulk exports.

Requesting an export issues a one-time code for the collection's purpose and
mails it, with the requester's identity, to the configured owner address. The
code never appears in the API response. Redeeming the code and reading the
export happen in the same request, so a successful verification cannot be
replayed against a later read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.core.permissions import PermissionCode
from crm.core.settings import settings
from crm.models import Case, Customer, Lead
from crm.services import email as email_service
from crm.services.otp import OTPService, OTPVerification
from crm.utils.request_meta import client_ip

logger = logging.getLogger(__name__)

EmailSender = Callable[[str, str, str], Awaitable[tuple[bool, str | None]]]


@dataclass(frozen=True, slots=True)
class ExportTarget:
    collection: str
    purpose: str
    model: Any
    fields: tuple[str, ...]
    permission: PermissionCode


EXPORT_TARGETS: dict[str, ExportTarget] = {
    "leads": ExportTarget(
        collection="leads",
        purpose="export_leads",
        model=Lead,
        fields=(
            "lead_id",
            "name",
            "mobile",
            "email",
            "lead_type",
            "sub_type",
            "status",
            "bank",
            "branch",
            "channel_partner",
            "requirement_amount",
            "sanctioned_amount",
            "created_at",
        ),
        permission=PermissionCode.LEAD_EXPORT,
    ),
    "cases": ExportTarget(
        collection="cases",
        purpose="export_cases",
        model=Case,
        fields=(
            "case_id",
            "lead_id",
            "customer_name",
            "mobile",
            "email",
            "loan_type",
            "amount",
            "disbursed_amount",
            "bank",
            "branch",
            "status",
            "task",
            "created_at",
        ),
        permission=PermissionCode.CASE_EXPORT,
    ),
    "customers": ExportTarget(
        collection="customers",
        purpose="export_customers",
        model=Customer,
        fields=(
            "customer_id",
            "name",
            "mobile",
            "email",
            "bank_name",
            "branch",
            "channel_partner",
            "status",
            "created_at",
        ),
        permission=PermissionCode.CUSTOMER_EXPORT,
    ),
}


@dataclass(frozen=True, slots=True)
class ExportRequestContext:
    requester_name: str
    requester_email: str
    requester_role: str
    requester_ip: str
    purpose: str

    @classmethod
    def from_request(cls, request: Request, user, purpose: str) -> "ExportRequestContext":
        return cls(
            requester_name=getattr(user, "name", None) or "Unknown",
            requester_email=getattr(user, "email", None) or "Unknown",
            requester_role=getattr(user, "role", None) or "Unknown",
            requester_ip=client_ip(request),
            purpose=purpose,
        )


def build_owner_notification(ctx: ExportRequestContext, code: str, ttl_seconds: int) -> tuple[str, str]:
    title = ctx.purpose.replace("_", " ").upper()
    minutes = max(1, ttl_seconds // 60)
    subject = f"OTP Request: {ctx.purpose}"
    body = (
        f"OTP for {title}: {code}\n"
        "\n"
        "Requested by:\n"
        f"Name: {ctx.requester_name}\n"
        f"Email: {ctx.requester_email}\n"
        f"Role: {ctx.requester_role}\n"
        f"IP: {ctx.requester_ip}\n"
        "\n"
        f"Valid for {minutes} minutes.\n"
    )
    return subject, body


async def notify_owner(subject: str, body: str, *, send: EmailSender | None = None) -> bool:
    """Mail the owner; a missing address or a failed send is logged, not raised."""
    owner = settings.owner_email
    if not owner:
        logger.warning("OWNER_EMAIL is not configured; skipped owner notification %r", subject)
        return False
    sender = send or email_service.send_email
    sent, error = await sender(owner, subject, body)
    if not sent:
        logger.error("Owner notification %r was not delivered: %s", subject, error)
    return sent


async def request_export_otp(
    otp_service: OTPService,
    ctx: ExportRequestContext,
    *,
    send: EmailSender | None = None,
) -> dict[str, Any]:
    code = await otp_service.issue(ctx.purpose)
    subject, body = build_owner_notification(ctx, code, otp_service.ttl_seconds)
    await notify_owner(subject, body, send=send)
    return {
        "ok": True,
        "message": "OTP sent to the owner for approval.",
        "requester": {
            "name": ctx.requester_name,
            "email": ctx.requester_email,
            "ip": ctx.requester_ip,
        },
    }


async def verify_export_otp(otp_service: OTPService, purpose: str, otp: str) -> OTPVerification:
    return await otp_service.verify(purpose, otp)


async def export_rows(db: AsyncSession, target: ExportTarget) -> list[dict[str, Any]]:
    """Unfiltered projection of the exportable fields, newest first."""
    model = target.model
    stmt = select(model).order_by(model.created_at.desc(), model.id.desc())
    records = (await db.execute(stmt)).scalars().all()
    return [
        jsonable_encoder({name: getattr(record, name) for name in target.fields})
        for record in records
    ]
