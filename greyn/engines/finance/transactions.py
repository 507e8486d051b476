"""
Finance transaction console: list with money stats, analytics buckets,
receipts and invoices.
"""

import secrets
import string
import time
import uuid
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from greyn.engines.listing import ListQuery, ListResult, fetch_page, search_clause
from greyn.engines.security.audit_logs import DATE_RANGES
from greyn.kernel.errors import NotFoundError
from greyn.kernel.models.base import as_utc, enum_value, utcnow
from greyn.kernel.models.transaction import FinanceTransaction, TransactionStatus

GROUP_BY_OPTIONS = ("day", "week", "month")

EXPORT_COLUMNS = [
    ("transaction_id", "Transaction ID"),
    ("timestamp", "Date"),
    ("type", "Type"),
    ("entity", "Entity"),
    ("description", "Description"),
    ("amount", "Amount"),
    ("currency", "Currency"),
    ("fees", "Fees"),
    ("net_amount", "Net Amount"),
    ("status", "Status"),
    ("payment_method", "Payment Method"),
    ("reference", "Reference"),
    ("invoice_id", "Invoice ID"),
]

_TXN_ALPHABET = string.ascii_uppercase + string.digits


def generate_transaction_id() -> str:
    """TXN-<epoch ms>-<9 random uppercase alphanumerics>."""
    suffix = "".join(secrets.choice(_TXN_ALPHABET) for _ in range(9))
    return f"TXN-{int(time.time() * 1000)}-{suffix}"


def transaction_to_dict(txn: FinanceTransaction) -> Dict[str, Any]:
    return {
        "id": txn.transaction_id,
        "transaction_id": txn.transaction_id,
        "timestamp": txn.timestamp,
        "type": enum_value(txn.type),
        "amount": txn.amount,
        "currency": txn.currency or "USD",
        "entity": txn.entity,
        "description": txn.description,
        "status": enum_value(txn.status),
        "reference": txn.reference,
        "payment_method": enum_value(txn.payment_method),
        "fees": txn.fees,
        "net_amount": txn.net_amount,
        "invoice_id": txn.invoice_id,
    }


def effective_amount(txn: FinanceTransaction) -> float:
    return txn.net_amount if txn.net_amount is not None else txn.amount


def period_key(timestamp: datetime, group_by: str) -> str:
    """Bucket key: YYYY-MM-DD for day, the Sunday starting the week, or YYYY-MM."""
    ts = as_utc(timestamp)
    if group_by == "day":
        return ts.date().isoformat()
    if group_by == "week":
        # weekday(): Monday=0 .. Sunday=6
        start = ts.date() - timedelta(days=(ts.weekday() + 1) % 7)
        return start.isoformat()
    return f"{ts.year:04d}-{ts.month:02d}"


def transactions_date_start(date_range: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """'today' means since midnight UTC; other ranges are rolling windows."""
    now = now or utcnow()
    if date_range == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    window = DATE_RANGES.get(date_range or "")
    return now - window if window else None


class TransactionService:
    """Read-only finance views. Writes happen through the payment webhook."""

    SEARCH_COLUMNS = (
        FinanceTransaction.transaction_id,
        FinanceTransaction.entity,
        FinanceTransaction.reference,
        FinanceTransaction.description,
        FinanceTransaction.invoice_id,
    )

    def __init__(self, session: AsyncSession):
        self.session = session

    def _filtered(self, query: ListQuery):
        stmt = select(FinanceTransaction)
        include_seed = str(query.filter("include_seed") or "").lower() in ("1", "true")
        if not include_seed:
            stmt = stmt.where(FinanceTransaction.source != "seed")
        if query.search:
            stmt = stmt.where(search_clause(self.SEARCH_COLUMNS, query.search))
        if query.filter("status"):
            stmt = stmt.where(FinanceTransaction.status == query.filter("status"))
        if query.filter("type"):
            stmt = stmt.where(FinanceTransaction.type == query.filter("type"))
        since = transactions_date_start(query.filter("date_range"))
        if since is not None:
            stmt = stmt.where(FinanceTransaction.timestamp >= since)
        return stmt

    async def list(self, query: ListQuery) -> ListResult[FinanceTransaction]:
        stmt = self._filtered(query)
        items, pagination = await fetch_page(
            self.session, stmt.order_by(FinanceTransaction.timestamp.desc()), query
        )
        return ListResult(items=items, stats=await self._stats(stmt), pagination=pagination)

    async def _stats(self, stmt) -> Dict[str, Any]:
        sub = stmt.subquery()
        effective = func.coalesce(sub.c.net_amount, sub.c.amount)
        completed = sub.c.status == TransactionStatus.COMPLETED.value
        pending = sub.c.status == TransactionStatus.PENDING.value

        def total(expr):
            return func.coalesce(func.sum(expr), 0)

        row = (await self.session.execute(
            select(
                func.count(),
                total(case((completed, 1), else_=0)),
                total(case((pending, 1), else_=0)),
                total(case((sub.c.status == TransactionStatus.FAILED.value, 1), else_=0)),
                total(case((and_(completed, sub.c.amount > 0), effective), else_=0)),
                total(case((and_(completed, sub.c.amount < 0), func.abs(effective)), else_=0)),
                total(case((completed, func.coalesce(sub.c.fees, 0)), else_=0)),
                total(case((pending, effective), else_=0)),
            ).select_from(sub)
        )).one()

        revenue = round(float(row[4]), 2)
        expenses = round(float(row[5]), 2)
        return {
            "total": int(row[0]),
            "completed": int(row[1]),
            "pending": int(row[2]),
            "failed": int(row[3]),
            "total_revenue": revenue,
            "total_expenses": expenses,
            "total_fees": round(float(row[6]), 2),
            "net_amount": round(revenue - expenses, 2),
            "pending_amount": round(float(row[7]), 2),
        }

    async def all_for_export(self, query: ListQuery) -> List[FinanceTransaction]:
        stmt = self._filtered(query).order_by(FinanceTransaction.timestamp.desc())
        return list((await self.session.execute(stmt)).scalars().all())

    async def analytics(self, query: ListQuery, group_by: str = "day") -> Dict[str, Any]:
        """
        Summary, per-type / per-status counts and a time series.

        Raises:
            ValueError: group_by is not day, week or month
        """
        group_by = (group_by or "day").lower()
        if group_by not in GROUP_BY_OPTIONS:
            raise ValueError("group_by must be day, week, or month")

        stmt = self._filtered(query).order_by(FinanceTransaction.timestamp.asc())
        rows = (await self.session.execute(stmt)).scalars().all()

        by_type: Dict[str, int] = defaultdict(int)
        by_status: Dict[str, int] = defaultdict(int)
        buckets: Dict[str, Dict[str, Any]] = {}
        revenue = expenses = 0.0

        for txn in rows:
            status = enum_value(txn.status)
            by_type[enum_value(txn.type)] += 1
            by_status[status] += 1

            key = period_key(txn.timestamp, group_by)
            bucket = buckets.setdefault(key, {"period": key, "count": 0, "revenue": 0.0, "expenses": 0.0})
            bucket["count"] += 1

            if status == TransactionStatus.COMPLETED.value:
                amount = effective_amount(txn)
                if amount > 0:
                    revenue += amount
                    bucket["revenue"] += amount
                else:
                    expenses += abs(amount)
                    bucket["expenses"] += abs(amount)

        time_series = sorted(buckets.values(), key=lambda b: b["period"])
        for bucket in time_series:
            bucket["revenue"] = round(bucket["revenue"], 2)
            bucket["expenses"] = round(bucket["expenses"], 2)

        return {
            "summary": {
                "total_revenue": round(revenue, 2),
                "total_expenses": round(expenses, 2),
                "net_amount": round(revenue - expenses, 2),
                "count": len(rows),
            },
            "by_type": dict(by_type),
            "by_status": dict(by_status),
            "time_series": time_series,
        }

    async def get(self, identifier: str) -> FinanceTransaction:
        """Look up by public transaction_id, falling back to the row UUID."""
        clauses = [FinanceTransaction.transaction_id == identifier]
        try:
            clauses.append(FinanceTransaction.id == uuid.UUID(identifier))
        except ValueError:
            pass
        result = await self.session.execute(select(FinanceTransaction).where(or_(*clauses)))
        txn = result.scalars().first()
        if txn is None:
            raise NotFoundError("Transaction not found")
        return txn

    async def receipt(self, identifier: str) -> Dict[str, Any]:
        txn = transaction_to_dict(await self.get(identifier))
        return {
            "transaction_id": txn["transaction_id"],
            "reference": txn["reference"],
            "date": txn["timestamp"],
            "type": txn["type"],
            "entity": txn["entity"],
            "description": txn["description"],
            "amount": txn["amount"],
            "currency": txn["currency"],
            "fees": txn["fees"],
            "net_amount": txn["net_amount"],
            "status": txn["status"],
            "payment_method": txn["payment_method"],
        }

    async def invoice(self, identifier: str) -> Dict[str, Any]:
        txn = transaction_to_dict(await self.get(identifier))
        if not txn["invoice_id"]:
            raise NotFoundError("No invoice for this transaction")
        return {
            "invoice_id": txn["invoice_id"],
            "transaction_id": txn["transaction_id"],
            "reference": txn["reference"],
            "date": txn["timestamp"],
            "entity": txn["entity"],
            "description": txn["description"],
            "amount": txn["amount"],
            "currency": txn["currency"],
            "fees": txn["fees"],
            "net_amount": txn["net_amount"],
            "status": txn["status"],
        }
