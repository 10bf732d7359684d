"""Lead to case/customer conversion."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.models import Case, Customer, Lead
from crm.schemas.common import DEFAULT_LOAN_TYPE, LOAN_TYPES, CustomerStatus, LeadStatus

logger = logging.getLogger(__name__)

CONVERTED_CASE_STATUS = "Pending"


@dataclass
class Conversion:
    lead: Lead
    case: Case
    customer: Customer
    case_created: bool
    customer_created: bool


def loan_type_for(sub_type: str | None) -> str:
    return sub_type if sub_type in LOAN_TYPES else DEFAULT_LOAN_TYPE


def _customer_from_lead(lead: Lead) -> Customer:
    return Customer(
        customer_id=lead.lead_id,
        name=lead.name,
        dob=lead.dob,
        mobile=lead.mobile,
        email=lead.email,
        channel_partner=lead.channel_partner or "",
        bank_name=lead.bank or "",
        branch=lead.branch or "",
        status=CustomerStatus.OPEN.value,
        pan=lead.pan or "",
        aadhar=lead.aadhar or "",
        address={
            "permanent": {"line1": lead.permanent_address or ""},
            "correspondence": {"line1": lead.current_address or ""},
        },
        notes=lead.notes or "",
    )


def _case_from_lead(lead: Lead, customer: Customer) -> Case:
    return Case(
        case_id=lead.lead_id,
        lead_id=lead.lead_id,
        customer_name=lead.name,
        mobile=lead.mobile,
        email=lead.email,
        lead_type=lead.lead_type,
        sub_type=lead.sub_type,
        loan_type=loan_type_for(lead.sub_type),
        requirement_amount=lead.requirement_amount,
        amount=lead.requirement_amount,
        bank=lead.bank or "",
        branch=lead.branch,
        channel_partner=lead.channel_partner,
        status=CONVERTED_CASE_STATUS,
        permanent_address=lead.permanent_address,
        current_address=lead.current_address,
        site_address=lead.site_address,
        office_address=lead.office_address,
        pan=lead.pan,
        aadhar=lead.aadhar,
        notes=lead.notes or "",
        customer_id=customer.id,
        assigned_to_id=lead.assigned_to_id,
    )


async def convert_lead(db: AsyncSession, lead: Lead) -> Conversion:
    """Archive ``lead`` and make sure a case and a customer exist for it.

    Both records reuse the lead's human-readable id, so running the conversion
    again returns the existing rows instead of creating duplicates. The caller
    commits.
    """
    if lead.status != LeadStatus.ARCHIVED.value:
        lead.status = LeadStatus.ARCHIVED.value
        db.add(lead)

    customer = (
        await db.execute(select(Customer).where(Customer.customer_id == lead.lead_id))
    ).scalar_one_or_none()
    customer_created = customer is None
    if customer is None:
        customer = _customer_from_lead(lead)
        db.add(customer)
        await db.flush()

    case = (await db.execute(select(Case).where(Case.lead_id == lead.lead_id))).scalar_one_or_none()
    case_created = case is None
    if case is None:
        case = _case_from_lead(lead, customer)
        db.add(case)
        await db.flush()

    logger.info(
        "Converted lead %s case_created=%s customer_created=%s",
        lead.lead_id,
        case_created,
        customer_created,
    )
    return Conversion(
        lead=lead,
        case=case,
        customer=customer,
        case_created=case_created,
        customer_created=customer_created,
    )
