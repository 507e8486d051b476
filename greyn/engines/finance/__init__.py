"""
Finance ledger views for the admin console.
"""

from greyn.engines.finance.transactions import (
    TransactionService,
    generate_transaction_id,
    period_key,
    transaction_to_dict,
)

__all__ = ["TransactionService", "generate_transaction_id", "period_key", "transaction_to_dict"]
