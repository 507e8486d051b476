"""
Admin finance transaction endpoints.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from greyn.api.deps import AdminUser, DbSession
from greyn.api.listing import export_response, list_payload
from greyn.engines.finance import TransactionService, transaction_to_dict
from greyn.engines.finance.transactions import EXPORT_COLUMNS
from greyn.engines.listing import ListQuery
from greyn.schemas.common import SuccessResponse, ok

router = APIRouter()


def _query(search, status_filter, type_filter, date_range, include_seed, page=1, limit=10) -> ListQuery:
    return ListQuery(
        search=search,
        filters={
            "status": status_filter,
            "type": type_filter,
            "date_range": date_range,
            "include_seed": include_seed,
        },
        page=page,
        limit=limit,
    )


@router.get("", response_model=SuccessResponse)
async def list_transactions(
    admin: AdminUser,
    db: DbSession,
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    type_filter: Optional[str] = Query(None, alias="type"),
    date_range: Optional[str] = None,
    include_seed: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
):
    query = _query(search, status_filter, type_filter, date_range, include_seed, page, limit)
    result = await TransactionService(db).list(query)
    return ok(list_payload(result, transaction_to_dict))


@router.get("/analytics", response_model=SuccessResponse)
async def transaction_analytics(
    admin: AdminUser,
    db: DbSession,
    group_by: str = "day",
    status_filter: Optional[str] = Query(None, alias="status"),
    type_filter: Optional[str] = Query(None, alias="type"),
    date_range: Optional[str] = None,
    include_seed: Optional[str] = None,
):
    query = _query(None, status_filter, type_filter, date_range, include_seed)
    try:
        data = await TransactionService(db).analytics(query, group_by)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ok(data)


@router.get("/export")
async def export_transactions(
    admin: AdminUser,
    db: DbSession,
    format: str = "csv",
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    type_filter: Optional[str] = Query(None, alias="type"),
    date_range: Optional[str] = None,
    include_seed: Optional[str] = None,
):
    query = _query(search, status_filter, type_filter, date_range, include_seed)
    rows = await TransactionService(db).all_for_export(query)
    return export_response([transaction_to_dict(t) for t in rows], EXPORT_COLUMNS, format, "transactions")


@router.get("/{transaction_id}", response_model=SuccessResponse)
async def get_transaction(transaction_id: str, admin: AdminUser, db: DbSession):
    return ok(transaction_to_dict(await TransactionService(db).get(transaction_id)))


@router.get("/{transaction_id}/receipt", response_model=SuccessResponse)
async def transaction_receipt(transaction_id: str, admin: AdminUser, db: DbSession):
    return ok(await TransactionService(db).receipt(transaction_id))


@router.get("/{transaction_id}/invoice", response_model=SuccessResponse)
async def transaction_invoice(transaction_id: str, admin: AdminUser, db: DbSession):
    return ok(await TransactionService(db).invoice(transaction_id))
