"""Tests for SearchIndex (autocomplete lookups)."""

from __future__ import annotations

import logging

import pytest
from botocore.exceptions import ClientError

from athena_explorer.catalog.models import NodeKind
from athena_explorer.catalog.search import SearchIndex
from athena_explorer.catalog.source import CatalogSource
from athena_explorer.exceptions.errors import CatalogUnavailable
from conftest import data_page


@pytest.fixture
def index(fake_client, engine) -> SearchIndex:
    return SearchIndex(CatalogSource(fake_client, engine), default_catalog="AwsDataCatalog")


# ---------------------------------------------------------------------------
# Databases
# ---------------------------------------------------------------------------


def test_database_search_dedupes_duplicate_pages(index, fake_client) -> None:
    fake_client.database_pages["AwsDataCatalog"] = [
        [{"Name": "sales"}, {"Name": "default"}],
        [{"Name": "sales"}],
        [{"Name": "web"}],
    ]

    items = index.search(NodeKind.DATABASE, "")

    assert [i.name for i in items] == ["sales", "default", "web"]
    assert [i.name for i in items].count("sales") == 1
    assert len(fake_client.calls_to("list_databases")) == 3


def test_database_search_last_seen_wins(index, fake_client) -> None:
    fake_client.database_pages["AwsDataCatalog"] = [[{"Name": "sales"}], [{"Name": "sales"}]]

    source = index.source
    dbs = source.all_databases("AwsDataCatalog")

    assert len(dbs) == 1
    assert dbs[0] is fake_client.database_pages["AwsDataCatalog"][1][0]


def test_database_search_filters_by_substring(index, fake_client) -> None:
    fake_client.database_pages["AwsDataCatalog"] = [[{"Name": "sales_raw"}, {"Name": "web"}, {"Name": "SALES_v2"}]]

    items = index.search(NodeKind.DATABASE, "sales")

    assert [i.name for i in items] == ["sales_raw", "SALES_v2"]


def test_database_search_uses_catalog_param(index, fake_client) -> None:
    fake_client.database_pages["hive_prod"] = [[{"Name": "events"}]]

    items = index.search(NodeKind.DATABASE, "", {"catalog": "hive_prod"})

    assert [(i.name, i.catalog) for i in items] == [("events", "hive_prod")]


# ---------------------------------------------------------------------------
# Tables and views
# ---------------------------------------------------------------------------


def test_table_search_without_database_makes_no_calls(index, fake_client) -> None:
    assert index.search(NodeKind.TABLE, "ord") == []
    assert index.search(NodeKind.TABLE, "ord", {"catalog": "AwsDataCatalog"}) == []
    assert fake_client.calls == []


def test_table_search_delegates_filter_to_listing(index, fake_client) -> None:
    sql = "SHOW TABLES IN `sales` '*ord*'"
    fake_client.script(sql, pages=[data_page(["tab_name"], ["orders"], ["order_items"])])

    items = index.search(NodeKind.TABLE, "ord", {"database": "sales"})

    assert [(i.name, i.kind, i.database) for i in items] == [
        ("orders", NodeKind.TABLE, "sales"),
        ("order_items", NodeKind.TABLE, "sales"),
    ]
    assert [c[1] for c in fake_client.calls_to("submit_execution")] == [sql]


def test_view_search_lists_real_views(index, fake_client) -> None:
    # Views come from SHOW VIEWS, not from fixed placeholder entries.
    sql = 'SHOW VIEWS IN "sales" LIKE \'*daily*\''
    fake_client.script(sql, pages=[data_page(["Views"], ["daily_revenue"])])

    items = index.search(NodeKind.VIEW, "daily", {"database": "sales"})

    assert [(i.name, i.kind) for i in items] == [("daily_revenue", NodeKind.VIEW)]


def test_view_search_without_database_is_empty(index, fake_client) -> None:
    assert index.search(NodeKind.VIEW, "x") == []
    assert fake_client.calls == []


def test_table_search_failure_is_catalog_unavailable(index, fake_client) -> None:
    fake_client.script("SHOW TABLES IN `sales`", statuses=["FAILED"], reason="Access denied")

    with pytest.raises(CatalogUnavailable):
        index.search(NodeKind.TABLE, "", {"database": "sales"})


# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------


def test_column_search_requires_tables(index, fake_client) -> None:
    assert index.search(NodeKind.COLUMN, "") == []
    assert index.search(NodeKind.COLUMN, "", {"tables": []}) == []
    assert fake_client.calls == []


def test_column_search_flattens_and_tags_tables(index, fake_client) -> None:
    fake_client.tables[("AwsDataCatalog", "sales", "orders")] = {
        "Name": "orders",
        "Columns": [{"Name": "id", "Type": "bigint"}, {"Name": "total", "Type": "double"}],
    }
    fake_client.tables[("AwsDataCatalog", "web", "visits")] = {
        "Name": "visits",
        "Columns": [{"Name": "url", "Type": "string"}],
        "PartitionKeys": [{"Name": "dt", "Type": "string"}],
    }

    items = index.search(
        NodeKind.COLUMN,
        "",
        {"tables": [{"database": "sales", "label": "orders"}, {"database": "web", "label": "visits"}]},
    )

    assert [(i.table, i.name) for i in items] == [
        ("orders", "id"),
        ("orders", "total"),
        ("visits", "url"),
        ("visits", "dt"),
    ]
    assert len(fake_client.calls_to("describe_table")) == 2


def test_column_search_skips_failing_table(index, fake_client, caplog) -> None:
    fake_client.tables[("AwsDataCatalog", "sales", "gone")] = ClientError(
        {"Error": {"Code": "MetadataException", "Message": "Table gone not found"}}, "GetTableMetadata"
    )
    fake_client.tables[("AwsDataCatalog", "sales", "orders")] = {
        "Name": "orders",
        "Columns": [{"Name": "id", "Type": "bigint"}],
    }

    with caplog.at_level(logging.WARNING):
        items = index.search(
            NodeKind.COLUMN,
            "",
            {"tables": [{"database": "sales", "label": "gone"}, {"database": "sales", "label": "orders"}]},
        )

    assert [(i.table, i.name) for i in items] == [("orders", "id")]
    assert "Skipping table in column search" in caplog.text


def test_unknown_kind_returns_empty(index, fake_client) -> None:
    assert index.search(NodeKind.CATALOG_GROUP, "x") == []
    assert fake_client.calls == []
