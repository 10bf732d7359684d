from crm.models.audit_log import AuditLog
from crm.models.case import Case
from crm.models.case_audit import CaseAudit
from crm.models.counter import Counter
from crm.models.customer import Customer, Disbursement
from crm.models.lead import Lead
from crm.models.user import User

__all__ = [
    "AuditLog",
    "Case",
    "CaseAudit",
    "Counter",
    "Customer",
    "Disbursement",
    "Lead",
    "User",
]
