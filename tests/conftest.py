"""Shared fakes for the Athena-facing tests.

Nothing here talks to AWS. ``FakeAthenaClient`` mirrors the methods of
``athena_explorer.db.athena.AthenaClient`` and records every call so tests
can assert on exactly how many round trips were made.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from athena_explorer.config.settings import Settings
from athena_explorer.db.engine import QueryEngine
from athena_explorer.db.models import (
    ExecutionState,
    ExecutionStatus,
    QueryHandle,
    ResultLocation,
    ResultPage,
)


def paginate(pages: Sequence[List[Any]], cursor: Optional[str]) -> Tuple[List[Any], Optional[str]]:
    """Serve ``pages`` as a cursor listing: cursor "p<i>" means page i."""
    idx = int(cursor[1:]) if cursor else 0
    nxt = f"p{idx + 1}" if idx + 1 < len(pages) else None
    return list(pages[idx]) if pages else [], nxt


class FakeAthenaClient:
    def __init__(self) -> None:
        self.calls: List[Tuple[Any, ...]] = []
        self._scripts: Dict[str, Dict[str, Any]] = {}
        self._handles: Dict[str, str] = {}
        self.objects: Dict[str, bytes] = {}
        self.catalog_pages: List[List[Dict[str, Any]]] = []
        self.database_pages: Dict[str, List[List[Dict[str, Any]]]] = {}
        self.tables: Dict[Tuple[str, str, str], Any] = {}

    # -- scripting -----------------------------------------------------
    def script(
        self,
        sql: str,
        statuses: Sequence[str] = ("SUCCEEDED",),
        pages: Sequence[ResultPage] = (),
        reason: str = "",
        location: Optional[str] = None,
        submit_error: Optional[Exception] = None,
    ) -> None:
        self._scripts[sql] = {
            "statuses": list(statuses),
            "pages": list(pages),
            "reason": reason,
            "location": location,
            "submit_error": submit_error,
        }

    def calls_to(self, name: str) -> List[Tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == name]

    # -- AthenaClient surface -----------------------------------------
    def submit_execution(self, sql, workgroup, output_location="", catalog=None, database=None):
        self.calls.append(("submit_execution", sql, workgroup, output_location, catalog, database))
        script = self._scripts[sql]
        if script["submit_error"] is not None:
            raise script["submit_error"]
        qid = f"qid-{len(self._handles) + 1}"
        self._handles[qid] = sql
        return QueryHandle(id=qid)

    def get_execution_status(self, handle):
        self.calls.append(("get_execution_status", handle.id))
        script = self._scripts[self._handles[handle.id]]
        states = script["statuses"]
        state = states.pop(0) if len(states) > 1 else states[0]
        status = ExecutionStatus(state)
        loc = script["location"] if status is ExecutionStatus.SUCCEEDED else None
        return ExecutionState(
            status=status,
            reason=script["reason"] if status.is_terminal else "",
            result_location=ResultLocation(loc) if loc else None,
        )

    def stop_execution(self, handle):
        self.calls.append(("stop_execution", handle.id))

    def list_result_page(self, handle, cursor=None, page_size=1000):
        self.calls.append(("list_result_page", handle.id, cursor))
        pages = self._scripts[self._handles[handle.id]]["pages"]
        idx = int(cursor[1:]) if cursor else 0
        page = pages[idx]
        nxt = f"p{idx + 1}" if idx + 1 < len(pages) else None
        return ResultPage(rows=page.rows, columns=page.columns, next_cursor=nxt)

    def fetch_object(self, location):
        self.calls.append(("fetch_object", location.storage_uri))
        return self.objects[location.storage_uri]

    def list_catalogs(self, cursor=None):
        self.calls.append(("list_catalogs", cursor))
        return paginate(self.catalog_pages, cursor)

    def list_databases(self, catalog, cursor=None):
        self.calls.append(("list_databases", catalog, cursor))
        return paginate(self.database_pages.get(catalog, []), cursor)

    def describe_table(self, catalog, database, table):
        self.calls.append(("describe_table", catalog, database, table))
        meta = self.tables[(catalog, database, table)]
        if isinstance(meta, Exception):
            raise meta
        return meta


def header_page(columns: Sequence[str], *rows: Sequence[Optional[str]]) -> ResultPage:
    """First GetQueryResults page: metadata plus the header row."""
    return ResultPage(rows=[list(columns)] + [list(r) for r in rows], columns=tuple(columns))


def data_page(columns: Optional[Sequence[str]], *rows: Sequence[Optional[str]]) -> ResultPage:
    return ResultPage(rows=[list(r) for r in rows], columns=tuple(columns) if columns else None)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        athena_workgroup="analysts",
        athena_output_location="s3://results-bucket/athena/",
        poll_interval=0.2,
    )


@pytest.fixture
def fake_client() -> FakeAthenaClient:
    return FakeAthenaClient()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def engine(fake_client, settings, sleeps) -> QueryEngine:
    return QueryEngine(fake_client, settings, sleep=sleeps.append)
