"""
Shared search / filter / pagination / export helpers for list consoles.
"""

from greyn.engines.listing.list_query import (
    ListQuery,
    ListResult,
    Pagination,
    count_rows,
    escape_like,
    fetch_page,
    search_clause,
)
from greyn.engines.listing.export import export_filename, render_export, to_csv

__all__ = [
    "ListQuery",
    "ListResult",
    "Pagination",
    "count_rows",
    "escape_like",
    "fetch_page",
    "search_clause",
    "export_filename",
    "render_export",
    "to_csv",
]
