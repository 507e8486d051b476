"""
Admin access control endpoints: overview, access policies, IP rules and
role permissions.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from greyn.api.deps import AdminUser, Audit, DbSession
from greyn.api.listing import list_payload
from greyn.engines.listing import ListQuery
from greyn.engines.security.access_rules import (
    AccessControlService,
    access_rule_to_dict,
    ip_rule_to_dict,
    role_access_to_dict,
)
from greyn.schemas.access_control import (
    AccessRuleCreate,
    AccessRuleUpdate,
    IPRuleCreate,
    IPRuleUpdate,
    RoleAccessUpdate,
)
from greyn.schemas.common import SuccessResponse, ok

router = APIRouter()


def _seed(include_seed: Optional[str]) -> ListQuery:
    return ListQuery(filters={"include_seed": include_seed})


def _bad_request(e: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/overview", response_model=SuccessResponse)
async def access_control_overview(admin: AdminUser, db: DbSession, audit: Audit, include_seed: Optional[str] = None):
    return ok(await AccessControlService(db, audit).overview(_seed(include_seed)))


# Access policies

@router.get("/access-rules", response_model=SuccessResponse)
async def list_access_rules(
    admin: AdminUser,
    db: DbSession,
    audit: Audit,
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    type: Optional[str] = None,
    include_seed: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
):
    query = ListQuery(
        search=search,
        filters={"status": status_filter, "type": type, "include_seed": include_seed},
        page=page,
        limit=limit,
    )
    result = await AccessControlService(db, audit).list_access_rules(query)
    return ok(list_payload(result, access_rule_to_dict))


@router.post("/access-rules", response_model=SuccessResponse, status_code=status.HTTP_201_CREATED)
async def create_access_rule(data: AccessRuleCreate, admin: AdminUser, db: DbSession, audit: Audit):
    try:
        rule = await AccessControlService(db, audit).create_access_rule(admin, data.model_dump())
    except ValueError as e:
        raise _bad_request(e)
    return ok(access_rule_to_dict(rule), "Access rule created")


@router.get("/access-rules/{rule_id}", response_model=SuccessResponse)
async def get_access_rule(
    rule_id: uuid.UUID, admin: AdminUser, db: DbSession, audit: Audit, include_seed: Optional[str] = None
):
    rule = await AccessControlService(db, audit).get_access_rule(rule_id, _seed(include_seed))
    return ok(access_rule_to_dict(rule))


@router.put("/access-rules/{rule_id}", response_model=SuccessResponse)
async def update_access_rule(
    rule_id: uuid.UUID,
    data: AccessRuleUpdate,
    admin: AdminUser,
    db: DbSession,
    audit: Audit,
    include_seed: Optional[str] = None,
):
    try:
        rule = await AccessControlService(db, audit).update_access_rule(
            admin, rule_id, data.model_dump(exclude_unset=True), _seed(include_seed)
        )
    except ValueError as e:
        raise _bad_request(e)
    return ok(access_rule_to_dict(rule), "Access rule updated")


@router.delete("/access-rules/{rule_id}", response_model=SuccessResponse)
async def delete_access_rule(
    rule_id: uuid.UUID, admin: AdminUser, db: DbSession, audit: Audit, include_seed: Optional[str] = None
):
    await AccessControlService(db, audit).delete_access_rule(admin, rule_id, _seed(include_seed))
    return ok(message="Access rule deleted")


# IP rules

@router.get("/ip-rules", response_model=SuccessResponse)
async def list_ip_rules(
    admin: AdminUser,
    db: DbSession,
    audit: Audit,
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    type: Optional[str] = None,
    include_seed: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
):
    query = ListQuery(
        search=search,
        filters={"status": status_filter, "type": type, "include_seed": include_seed},
        page=page,
        limit=limit,
    )
    result = await AccessControlService(db, audit).list_ip_rules(query)
    return ok(list_payload(result, ip_rule_to_dict))


@router.post("/ip-rules", response_model=SuccessResponse, status_code=status.HTTP_201_CREATED)
async def create_ip_rule(data: IPRuleCreate, admin: AdminUser, db: DbSession, audit: Audit):
    try:
        rule = await AccessControlService(db, audit).create_ip_rule(admin, data.model_dump())
    except ValueError as e:
        raise _bad_request(e)
    return ok(ip_rule_to_dict(rule), "IP rule created")


@router.get("/ip-rules/{rule_id}", response_model=SuccessResponse)
async def get_ip_rule(
    rule_id: uuid.UUID, admin: AdminUser, db: DbSession, audit: Audit, include_seed: Optional[str] = None
):
    rule = await AccessControlService(db, audit).get_ip_rule(rule_id, _seed(include_seed))
    return ok(ip_rule_to_dict(rule))


@router.put("/ip-rules/{rule_id}", response_model=SuccessResponse)
async def update_ip_rule(
    rule_id: uuid.UUID,
    data: IPRuleUpdate,
    admin: AdminUser,
    db: DbSession,
    audit: Audit,
    include_seed: Optional[str] = None,
):
    try:
        rule = await AccessControlService(db, audit).update_ip_rule(
            admin, rule_id, data.model_dump(exclude_unset=True), _seed(include_seed)
        )
    except ValueError as e:
        raise _bad_request(e)
    return ok(ip_rule_to_dict(rule), "IP rule updated")


@router.delete("/ip-rules/{rule_id}", response_model=SuccessResponse)
async def delete_ip_rule(
    rule_id: uuid.UUID, admin: AdminUser, db: DbSession, audit: Audit, include_seed: Optional[str] = None
):
    await AccessControlService(db, audit).delete_ip_rule(admin, rule_id, _seed(include_seed))
    return ok(message="IP rule deleted")


# Role permissions

@router.get("/role-access", response_model=SuccessResponse)
async def list_role_access(admin: AdminUser, db: DbSession, audit: Audit):
    configs = await AccessControlService(db, audit).list_role_access()
    return ok({"role_access": [role_access_to_dict(c) for c in configs]})


@router.get("/role-access/{role}", response_model=SuccessResponse)
async def get_role_access(role: str, admin: AdminUser, db: DbSession, audit: Audit):
    return ok(role_access_to_dict(await AccessControlService(db, audit).get_role_access(role)))


@router.put("/role-access/{role}", response_model=SuccessResponse)
async def update_role_access(role: str, data: RoleAccessUpdate, admin: AdminUser, db: DbSession, audit: Audit):
    try:
        config = await AccessControlService(db, audit).update_role_access(
            admin, role, data.model_dump(exclude_unset=True)
        )
    except ValueError as e:
        raise _bad_request(e)
    return ok(role_access_to_dict(config), "Role access updated")
