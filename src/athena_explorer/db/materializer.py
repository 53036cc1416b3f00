from __future__ import annotations

from typing import Callable, List, Optional, Protocol
import csv
import io
import threading
import time

from athena_explorer.config.settings import Settings
from athena_explorer.db.athena import AthenaClient
from athena_explorer.db.models import (
    ColumnSchema,
    QueryHandle,
    ResultLocation,
    RowSet,
    build_rows,
)
from athena_explorer.exceptions.errors import (
    ExecutionCancelled,
    ResultSchemaChanged,
    ResultUnavailable,
)
from athena_explorer.logging.logger import get_logger


log = get_logger("db.materializer")

Records = List[List[Optional[str]]]


class ResultStrategy(Protocol):
    name: str

    def fetch(
        self,
        handle: QueryHandle,
        location: Optional[ResultLocation],
        schema_hint: Optional[ColumnSchema],
        cancel: Optional[threading.Event],
        headerless: bool,
    ) -> RowSet: ...


def _check_cancel(cancel: Optional[threading.Event], handle: QueryHandle) -> None:
    if cancel is not None and cancel.is_set():
        raise ExecutionCancelled(f"Result retrieval for {handle.id} cancelled by caller")


def _positional_schema(records: Records) -> ColumnSchema:
    width = max((len(r) for r in records), default=1)
    return tuple(f"_col{i}" for i in range(width))


class PagedResultStrategy:
    """Read results through GetQueryResults.

    Athena repeats the header only as the first row of the first page, so
    that single row is dropped. Column names come from the first page's
    ResultSetMetadata, not from the header row. SHOW/DESCRIBE output has no
    header row at all (``headerless``).
    """

    name = "paged"

    def __init__(
        self,
        client: AthenaClient,
        page_size: int = 1000,
        page_delay: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.page_size = page_size
        self.page_delay = page_delay
        self.sleep = sleep

    def fetch(
        self,
        handle: QueryHandle,
        location: Optional[ResultLocation] = None,
        schema_hint: Optional[ColumnSchema] = None,
        cancel: Optional[threading.Event] = None,
        headerless: bool = False,
    ) -> RowSet:
        schema: Optional[ColumnSchema] = None
        values: Records = []
        cursor: Optional[str] = None
        pages = 0

        while True:
            _check_cancel(cancel, handle)
            if pages and self.page_delay > 0:
                self.sleep(self.page_delay)

            page = self.client.list_result_page(handle, cursor, page_size=self.page_size)
            rows = page.rows
            if pages == 0:
                schema = page.columns or schema_hint
                if not headerless:
                    if schema is None and rows:
                        schema = tuple(v or "" for v in rows[0])
                    rows = rows[1:]
            elif page.columns is not None and schema is not None and page.columns != schema:
                raise ResultSchemaChanged(
                    f"Column schema changed on page {pages + 1} of {handle.id}: {schema} -> {page.columns}"
                )

            values.extend(rows)
            pages += 1
            cursor = page.next_cursor
            if not cursor:
                break

        if schema is None:
            schema = _positional_schema(values) if values else ()
        log.info("Fetched paged results", extra={"query_id": handle.id, "pages": pages, "rows": len(values)})
        return RowSet(schema=schema, rows=build_rows(schema, values), total_retrieved=len(values))


def _split_quoted(text: str, delimiter: str) -> Records:
    # csv.reader returns "" for both an unquoted empty field and "", so the
    # quoting has to be tracked per field here.
    records: Records = []
    row: List[Optional[str]] = []
    buf: List[str] = []
    quoted = in_quotes = False
    i, n = 0, len(text)

    def end_field() -> None:
        nonlocal quoted
        row.append("".join(buf) if (quoted or buf) else None)
        buf.clear()
        quoted = False

    while i < n:
        ch = text[i]
        if in_quotes:
            if ch == '"':
                if i + 1 < n and text[i + 1] == '"':
                    buf.append('"')
                    i += 1
                else:
                    in_quotes = False
            else:
                buf.append(ch)
        elif ch == '"' and not buf and not quoted:
            in_quotes = quoted = True
        elif ch == delimiter:
            end_field()
        elif ch in "\r\n":
            if ch == "\r" and i + 1 < n and text[i + 1] == "\n":
                i += 1
            end_field()
            records.append(row)
            row = []
        else:
            buf.append(ch)
        i += 1

    if buf or quoted or row:
        end_field()
        records.append(row)
    return records


def parse_delimited(body: bytes, delimiter: str = ",", quoted: bool = True) -> Records:
    """Split an Athena result object into records.

    Athena's CSV quotes every non-NULL value and writes NULL as an empty
    unquoted field: NULL comes back as None, an empty string as "". A blank
    line is a single NULL cell. The ``.txt`` output of SHOW/DESCRIBE is
    unquoted and tab separated.
    """
    text = body.decode("utf-8-sig")
    if quoted:
        return _split_quoted(text, delimiter)
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter, quoting=csv.QUOTE_NONE)
    return [rec if rec else [None] for rec in reader]


class BulkObjectStrategy:
    """Read the whole result object Athena wrote to the output location."""

    name = "bulk"

    def __init__(self, client: AthenaClient, output_location: str = "", delimiter: str = ","):
        self.client = client
        self.output_location = output_location
        self.delimiter = delimiter

    def resolve_location(
        self, handle: QueryHandle, location: Optional[ResultLocation], headerless: bool = False
    ) -> ResultLocation:
        if location is not None and location.storage_uri:
            return location
        if self.output_location:
            # Athena writes <OutputLocation>/<QueryExecutionId>.csv (.txt for DDL)
            suffix = "txt" if headerless else "csv"
            return ResultLocation(self.output_location.rstrip("/") + f"/{handle.id}.{suffix}")
        raise ResultUnavailable(f"No result location for query {handle.id}")

    def column_info(self, handle: QueryHandle) -> Optional[ColumnSchema]:
        # The .txt object has no header line; names come from ResultSetMetadata
        page = self.client.list_result_page(handle, page_size=1)
        return page.columns

    def fetch(
        self,
        handle: QueryHandle,
        location: Optional[ResultLocation] = None,
        schema_hint: Optional[ColumnSchema] = None,
        cancel: Optional[threading.Event] = None,
        headerless: bool = False,
    ) -> RowSet:
        _check_cancel(cancel, handle)
        loc = self.resolve_location(handle, location, headerless)
        body = self.client.fetch_object(loc)

        if loc.storage_uri.endswith(".txt"):
            values = parse_delimited(body, "\t", quoted=False) if body.strip() else []
            if not schema_hint:
                schema_hint = self.column_info(handle)
            schema: ColumnSchema = schema_hint or (_positional_schema(values) if values else ())
        else:
            records = parse_delimited(body, self.delimiter)
            if records:
                schema = tuple(v or "" for v in records[0])
                values = records[1:]
            else:
                schema = schema_hint or ()
                values = []

        log.info(
            "Fetched result object",
            extra={"query_id": handle.id, "location": loc.storage_uri, "bytes": len(body), "rows": len(values)},
        )
        return RowSet(schema=schema, rows=build_rows(schema, values), total_retrieved=len(values))


class ResultMaterializer:
    """Turns a succeeded execution into a RowSet using one configured strategy."""

    def __init__(self, strategy: ResultStrategy):
        self.strategy = strategy

    @classmethod
    def from_settings(
        cls,
        client: AthenaClient,
        settings: Settings,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "ResultMaterializer":
        if settings.result_strategy == "bulk":
            return cls(BulkObjectStrategy(client, settings.athena_output_location, settings.csv_delimiter))
        return cls(PagedResultStrategy(client, settings.page_size, settings.page_delay, sleep=sleep))

    def materialize(
        self,
        handle: QueryHandle,
        location: Optional[ResultLocation] = None,
        schema_hint: Optional[ColumnSchema] = None,
        cancel: Optional[threading.Event] = None,
        headerless: bool = False,
    ) -> RowSet:
        return self.strategy.fetch(handle, location, schema_hint, cancel, headerless)
