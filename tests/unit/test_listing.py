"""Unit tests for list query normalization and export rendering."""

import json
from datetime import date, datetime, timezone

import pytest

from greyn.engines.listing import ListQuery, Pagination, escape_like, export_filename, render_export, to_csv


class TestListQuery:
    def test_defaults(self):
        query = ListQuery()
        assert (query.page, query.limit, query.offset) == (1, 20, 0)
        assert query.search is None

    def test_paging_is_clamped(self):
        query = ListQuery(page=0, limit=500)
        assert query.page == 1
        assert query.limit == 100

        assert ListQuery(page=-3, limit=-1).limit == 1

    def test_offset(self):
        assert ListQuery(page=3, limit=15).offset == 30

    def test_blank_search_becomes_none(self):
        assert ListQuery(search="   ").search is None
        assert ListQuery(search="  auth ").search == "auth"

    @pytest.mark.parametrize("value", ["", "all", None])
    def test_blank_filter_values_mean_no_filter(self, value):
        assert ListQuery(filters={"status": value}).filter("status") is None

    def test_filter_value(self):
        assert ListQuery(filters={"status": "critical"}).filter("status") == "critical"
        assert ListQuery().filter("missing") is None


class TestPagination:
    def test_page_count(self):
        assert Pagination.create(page=1, limit=20, total=41).total_pages == 3
        assert Pagination.create(page=1, limit=20, total=40).total_pages == 2

    def test_empty_result_still_has_one_page(self):
        assert Pagination.create(page=1, limit=20, total=0).total_pages == 1


def test_escape_like_treats_wildcards_literally():
    assert escape_like("100%_done\\") == "100\\%\\_done\\\\"


class TestExport:
    COLUMNS = [("endpoint", "Endpoint"), ("description", "Description"), ("last_reset", "Last Reset")]

    def test_csv_quotes_commas_quotes_and_newlines(self):
        rows = [
            {
                "endpoint": "/api/auth/login",
                "description": 'Login, "strict"\nmode',
                "last_reset": datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
            },
            {"endpoint": "/api/users", "description": None},
        ]
        body = to_csv(rows, self.COLUMNS)
        lines = body.split("\n")

        assert lines[0] == "Endpoint,Description,Last Reset"
        assert '"Login, ""strict""\nmode"' in body
        assert "2026-03-01T12:00:00+00:00" in body
        assert body.rstrip("\n").endswith("/api/users,,")

    def test_json_export(self):
        body, media_type = render_export([{"endpoint": "/x", "limit": 5}], self.COLUMNS, "json")

        assert media_type == "application/json"
        assert json.loads(body) == [{"endpoint": "/x", "limit": 5}]

    def test_format_is_case_insensitive(self):
        _, media_type = render_export([], self.COLUMNS, "CSV")
        assert media_type.startswith("text/csv")

    def test_unknown_format(self):
        with pytest.raises(ValueError, match="Unsupported export format"):
            render_export([], self.COLUMNS, "xlsx")

    def test_filename(self):
        assert export_filename("rate-limits", "csv", today=date(2026, 3, 1)) == "rate-limits-2026-03-01.csv"
