"""Tests for PaginationEngine and pagination metadata."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest
from activelog_query.filters import POSTGRES_DIALECT
from activelog_query.models import PaginatedResult, QueryOptions
from activelog_query.pagination import PaginationEngine, calculate_pagination_meta
from activelog_query.query import QueryBuilder
from sqlalchemy import literal_column, select, table


class TestCalculatePaginationMeta:
    """Tests for calculate_pagination_meta."""

    def test_first_page(self):
        meta = calculate_pagination_meta(page=1, limit=3, total_records=7)

        assert meta.count == 3
        assert meta.next_page == 2
        assert meta.previous_page is False
        assert meta.page_count == 3

    def test_last_partial_page(self):
        meta = calculate_pagination_meta(page=3, limit=3, total_records=7)

        assert meta.count == 1
        assert meta.next_page is False
        assert meta.previous_page == 2

    def test_no_records(self):
        meta = calculate_pagination_meta(page=1, limit=10, total_records=0)

        assert meta.page_count == 0
        assert meta.count == 0
        assert meta.previous_page is False
        assert meta.next_page is False

    def test_page_past_the_end(self):
        meta = calculate_pagination_meta(page=5, limit=3, total_records=7)

        assert meta.count == 0
        assert meta.previous_page == 4
        assert meta.next_page is False

    def test_exact_multiple(self):
        meta = calculate_pagination_meta(page=2, limit=5, total_records=10)

        assert meta.page_count == 2
        assert meta.count == 5
        assert meta.next_page is False

    def test_clamps_inputs(self):
        meta = calculate_pagination_meta(page=0, limit=-1, total_records=25)

        assert meta.page == 1
        assert meta.limit == 10
        assert meta.page_count == 3

    def test_serializes_with_camel_case(self):
        meta = calculate_pagination_meta(page=2, limit=2, total_records=5)

        assert meta.model_dump(by_alias=True) == {
            "page": 2,
            "limit": 2,
            "count": 2,
            "previousPage": 1,
            "nextPage": 3,
            "pageCount": 3,
            "totalRecords": 5,
        }

    def test_false_serializes_as_false(self):
        meta = calculate_pagination_meta(page=1, limit=10, total_records=3)

        dumped = meta.model_dump(by_alias=True)
        assert dumped["previousPage"] is False
        assert dumped["nextPage"] is False


class TestPaginationEngine:
    """Tests for PaginationEngine."""

    @pytest.mark.parametrize(
        "page,limit,offset",
        [(1, 10, 0), (2, 10, 10), (4, 25, 75), (0, 10, 0), (3, 0, 20)],
    )
    def test_offset(self, page, limit, offset):
        assert PaginationEngine(page, limit).offset == offset

    def test_apply_pagination(self):
        query = select(literal_column("activities.*")).select_from(table("activities"))

        compiled = PaginationEngine(3, 20).apply_pagination(query).compile(dialect=POSTGRES_DIALECT)

        assert "LIMIT $1 OFFSET $2" in str(compiled)
        assert [compiled.params[name] for name in compiled.positiontup] == [20, 40]

    def test_build_response(self):
        result = PaginationEngine(1, 2).build_response([{"id": 1}, {"id": 2}], total_records=3)

        assert isinstance(result, PaginatedResult)
        assert result.data == [{"id": 1}, {"id": 2}]
        assert result.meta.next_page == 2
        assert result.meta.total_records == 3

    def test_paginate_runs_count_then_select(self):
        builder = QueryBuilder("activities", QueryOptions(page=1, limit=2))
        session = Mock()
        count_result = Mock()
        count_result.scalar_one.return_value = 3
        rows_result = Mock()
        rows_result.mappings.return_value.all.return_value = [{"id": 1}, {"id": 2}]
        session.exec.side_effect = [count_result, rows_result]

        result = builder.pagination.paginate(session, builder)

        assert session.exec.call_count == 2
        first_statement = session.exec.call_args_list[0].args[0]
        assert "count" in str(first_statement).lower()
        assert result.data == [{"id": 1}, {"id": 2}]
        assert result.meta.total_records == 3
        assert result.meta.count == 2

    def test_paginate_async(self):
        builder = QueryBuilder("activities", QueryOptions(page=2, limit=2))
        session = Mock()
        count_result = Mock()
        count_result.scalar_one.return_value = 3
        rows_result = Mock()
        rows_result.mappings.return_value.all.return_value = [{"id": 3}]
        session.exec = AsyncMock(side_effect=[count_result, rows_result])

        result = asyncio.run(builder.pagination.paginate_async(session, builder))

        assert result.data == [{"id": 3}]
        assert result.meta.count == 1
        assert result.meta.previous_page == 1
        assert result.meta.next_page is False
