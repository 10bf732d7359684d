from fastapi import APIRouter

from crm.api.v1.routers import audit_logs, auth, cases, customers, exports, health, leads, users

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(users.router)
for export_router in exports.routers:
    api_router.include_router(export_router)
api_router.include_router(leads.router)
api_router.include_router(cases.router)
api_router.include_router(customers.router)
api_router.include_router(audit_logs.router)

__all__ = ["api_router"]
