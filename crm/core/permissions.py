from enum import Enum


class Role(str, Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    MANAGER = "manager"
    OFFICER = "officer"
    VIEWER = "viewer"


class PermissionCode(str, Enum):
    # Users / audit
    USER_VIEW = "user.view"
    USER_MANAGE = "user.manage"
    AUDIT_LOG_VIEW = "audit_log.view"

    # Leads
    LEAD_VIEW = "lead.view"
    LEAD_MANAGE = "lead.manage"
    LEAD_CONVERT = "lead.convert"
    LEAD_EXPORT = "lead.export"

    # Cases
    CASE_VIEW = "case.view"
    CASE_MANAGE = "case.manage"
    CASE_EXPORT = "case.export"

    # Customers / disbursements
    CUSTOMER_VIEW = "customer.view"
    CUSTOMER_MANAGE = "customer.manage"
    CUSTOMER_EXPORT = "customer.export"
    DISBURSEMENT_MANAGE = "disbursement.manage"


_READ_ONLY = {
    PermissionCode.LEAD_VIEW,
    PermissionCode.CASE_VIEW,
    PermissionCode.CUSTOMER_VIEW,
}

_OFFICER = _READ_ONLY | {
    PermissionCode.LEAD_MANAGE,
    PermissionCode.LEAD_CONVERT,
    PermissionCode.CASE_MANAGE,
    PermissionCode.DISBURSEMENT_MANAGE,
}

_MANAGER = _OFFICER | {
    PermissionCode.USER_VIEW,
    PermissionCode.AUDIT_LOG_VIEW,
    PermissionCode.LEAD_EXPORT,
    PermissionCode.CASE_EXPORT,
    PermissionCode.CUSTOMER_EXPORT,
}

ROLE_PERMISSIONS: dict[Role, frozenset[PermissionCode]] = {
    Role.SUPERADMIN: frozenset(PermissionCode),
    Role.ADMIN: frozenset(PermissionCode),
    Role.MANAGER: frozenset(_MANAGER),
    Role.OFFICER: frozenset(_OFFICER),
    Role.VIEWER: frozenset(_READ_ONLY),
}


def role_has_permission(role: str | None, permission: PermissionCode | str) -> bool:
    try:
        resolved_role = Role(role)
        code = PermissionCode(permission)
    except ValueError:
        return False
    return code in ROLE_PERMISSIONS[resolved_role]
