from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import threading

import boto3

from athena_explorer.config.settings import Settings
from athena_explorer.db.models import (
    ExecutionState,
    ExecutionStatus,
    QueryHandle,
    ResultLocation,
    ResultPage,
)
from athena_explorer.logging.logger import get_logger


log = get_logger("db.athena")


@dataclass
class AthenaConnection:
    """Lazily opened, exclusively owned boto3 session for one connection profile.

    ``open()`` is idempotent: the first call builds the session and clients,
    later calls hand back the same ones. Credentials and region are read from
    ``settings`` once and never change afterwards.
    """

    settings: Settings
    _session: Any = field(default=None, init=False, repr=False)
    _athena: Any = field(default=None, init=False, repr=False)
    _s3: Any = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def open(self) -> "AthenaConnection":
        if self._athena is not None:
            return self
        with self._lock:
            if self._athena is not None:
                return self
            s = self.settings
            if s.connection_method == "keys":
                session = boto3.Session(
                    aws_access_key_id=s.aws_access_key_id,
                    aws_secret_access_key=s.aws_secret_access_key,
                    aws_session_token=s.aws_session_token or None,
                    region_name=s.aws_region or "us-east-1",
                )
            else:
                session = boto3.Session(
                    profile_name=s.aws_profile or None,
                    region_name=s.aws_region or "us-east-1",
                )
            log.info(
                "Opening Athena connection",
                extra={
                    "region": session.region_name,
                    "method": s.connection_method,
                    "profile": s.aws_profile,
                },
            )
            self._session = session
            self._s3 = session.client("s3")
            self._athena = session.client("athena")
        return self

    def close(self) -> None:
        with self._lock:
            self._athena = None
            self._s3 = None
            self._session = None

    @property
    def athena(self):
        return self.open()._athena

    @property
    def s3(self):
        return self.open()._s3


def _datum_value(datum: Dict[str, Any]) -> Optional[str]:
    # Athena omits VarCharValue for SQL NULL and sends "" for an empty string.
    return datum.get("VarCharValue") if datum else None


class AthenaClient:
    """The Athena and S3 calls used by the engine and the catalog layer.

    Paginated methods return ``(items, next_cursor)`` for a single page. A
    caller must keep calling with the returned cursor until it is None, or
    the listing is silently truncated; ``db.utils.drain`` does exactly that.
    """

    def __init__(self, connection: AthenaConnection):
        self.connection = connection

    # -----------------------------
    # Query execution
    # -----------------------------
    def submit_execution(
        self,
        sql: str,
        workgroup: str,
        output_location: str = "",
        catalog: Optional[str] = None,
        database: Optional[str] = None,
    ) -> QueryHandle:
        start_args: Dict[str, Any] = {"QueryString": sql}
        if workgroup:
            start_args["WorkGroup"] = workgroup
        if output_location:
            start_args["ResultConfiguration"] = {"OutputLocation": output_location}
        context: Dict[str, str] = {}
        if catalog:
            context["Catalog"] = catalog
        if database:
            context["Database"] = database
        if context:
            start_args["QueryExecutionContext"] = context

        qid = self.connection.athena.start_query_execution(**start_args)["QueryExecutionId"]
        return QueryHandle(id=qid)

    def get_execution_status(self, handle: QueryHandle) -> ExecutionState:
        resp = self.connection.athena.get_query_execution(QueryExecutionId=handle.id)
        execution = resp.get("QueryExecution", {})
        status = execution.get("Status", {})
        out_loc = execution.get("ResultConfiguration", {}).get("OutputLocation", "")
        return ExecutionState(
            status=ExecutionStatus(status.get("State", "QUEUED")),
            reason=status.get("StateChangeReason", "") or "",
            result_location=ResultLocation(out_loc) if out_loc else None,
        )

    def stop_execution(self, handle: QueryHandle) -> None:
        self.connection.athena.stop_query_execution(QueryExecutionId=handle.id)

    def list_result_page(
        self, handle: QueryHandle, cursor: Optional[str] = None, page_size: int = 1000
    ) -> ResultPage:
        args: Dict[str, Any] = {"QueryExecutionId": handle.id, "MaxResults": page_size}
        if cursor:
            args["NextToken"] = cursor
        r = self.connection.athena.get_query_results(**args)
        result_set = r.get("ResultSet", {})
        col_info = result_set.get("ResultSetMetadata", {}).get("ColumnInfo")
        columns = tuple(c.get("Name", "") for c in col_info) if col_info is not None else None
        rows = [[_datum_value(d) for d in rec.get("Data", [])] for rec in result_set.get("Rows", [])]
        return ResultPage(rows=rows, columns=columns, next_cursor=r.get("NextToken"))

    def fetch_object(self, location: ResultLocation) -> bytes:
        bucket, key = location.bucket_and_key()
        obj = self.connection.s3.get_object(Bucket=bucket, Key=key)
        return obj["Body"].read()

    # -----------------------------
    # Catalog
    # -----------------------------
    def list_catalogs(self, cursor: Optional[str] = None) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        args: Dict[str, Any] = {}
        if cursor:
            args["NextToken"] = cursor
        r = self.connection.athena.list_data_catalogs(**args)
        return list(r.get("DataCatalogsSummary", [])), r.get("NextToken")

    def list_databases(
        self, catalog: str, cursor: Optional[str] = None
    ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        args: Dict[str, Any] = {"CatalogName": catalog}
        if cursor:
            args["NextToken"] = cursor
        r = self.connection.athena.list_databases(**args)
        return list(r.get("DatabaseList", [])), r.get("NextToken")

    def describe_table(self, catalog: str, database: str, table: str) -> Dict[str, Any]:
        r = self.connection.athena.get_table_metadata(
            CatalogName=catalog,
            DatabaseName=database,
            TableName=table,
        )
        return r.get("TableMetadata", {})
