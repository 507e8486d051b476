"""
API v1 routes.
"""

from fastapi import APIRouter

from greyn.api.v1 import (
    activities,
    admin_access_control,
    admin_activities,
    admin_audit_logs,
    admin_rate_limits,
    admin_transactions,
    admin_users,
    auth,
    payments,
    routing,
)

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(routing.router, prefix="/routing", tags=["Routing"])
router.include_router(activities.router, prefix="/activities", tags=["Activities"])
router.include_router(payments.router, prefix="/payments", tags=["Payments"])
router.include_router(admin_users.router, prefix="/admin/users", tags=["Admin: Users"])
router.include_router(admin_rate_limits.router, prefix="/admin/rate-limits", tags=["Admin: Rate Limits"])
router.include_router(
    admin_access_control.router, prefix="/admin/security/access-control", tags=["Admin: Access Control"]
)
router.include_router(admin_audit_logs.router, prefix="/admin/audit-logs", tags=["Admin: Audit Logs"])
router.include_router(admin_transactions.router, prefix="/admin/transactions", tags=["Admin: Transactions"])
router.include_router(admin_activities.router, prefix="/admin/activities", tags=["Admin: Activities"])
