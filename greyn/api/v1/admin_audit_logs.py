"""
Admin audit log endpoints.
"""

import json
import uuid
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Query, Response
from fastapi.encoders import jsonable_encoder

from greyn.api.deps import AdminUser, Audit, DbSession
from greyn.api.listing import export_response, list_payload
from greyn.engines.listing import ListQuery
from greyn.engines.security.audit_logs import EXPORT_COLUMNS, AuditLogService, audit_log_to_dict
from greyn.schemas.common import SuccessResponse, ok

router = APIRouter()


def _query(search, severity, action, status_filter, date_range, page=1, limit=15) -> ListQuery:
    return ListQuery(
        search=search,
        filters={"severity": severity, "action": action, "status": status_filter, "date_range": date_range},
        page=page,
        limit=limit,
    )


@router.get("", response_model=SuccessResponse)
async def list_audit_logs(
    admin: AdminUser,
    db: DbSession,
    audit: Audit,
    search: Optional[str] = None,
    severity: Optional[str] = None,
    action: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    date_range: Optional[str] = None,
    page: int = 1,
    limit: int = 15,
):
    query = _query(search, severity, action, status_filter, date_range, page, limit)
    result = await AuditLogService(db, audit).list(query)
    return ok(list_payload(result, audit_log_to_dict))


@router.get("/export")
async def export_audit_logs(
    admin: AdminUser,
    db: DbSession,
    audit: Audit,
    format: str = "csv",
    search: Optional[str] = None,
    severity: Optional[str] = None,
    action: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    date_range: Optional[str] = None,
):
    """Export every matching entry. The export itself is audited."""
    query = _query(search, severity, action, status_filter, date_range)
    entries = await AuditLogService(db, audit).export(admin, query, format)
    return export_response([audit_log_to_dict(e) for e in entries], EXPORT_COLUMNS, format, "audit-logs")


@router.get("/{log_id}", response_model=SuccessResponse)
async def get_audit_log(log_id: uuid.UUID, admin: AdminUser, db: DbSession, audit: Audit):
    return ok(audit_log_to_dict(await AuditLogService(db, audit).get(log_id)))


@router.get("/{log_id}/export")
async def export_audit_log(log_id: uuid.UUID, admin: AdminUser, db: DbSession, audit: Audit):
    entry = await AuditLogService(db, audit).get(log_id)
    body = json.dumps(jsonable_encoder(audit_log_to_dict(entry)), indent=2)
    return Response(
        content=body,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="audit-log-{entry.id}.json"'},
    )


@router.get("/{log_id}/verify", response_model=SuccessResponse)
async def verify_audit_log(log_id: uuid.UUID, admin: AdminUser, db: DbSession, audit: Audit):
    """Recompute the integrity hash and compare it with the stored one."""
    check = await AuditLogService(db, audit).verify(log_id)
    return ok(asdict(check), check.message)
