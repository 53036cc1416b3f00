from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional
import threading
import time

from botocore.exceptions import BotoCoreError, ClientError

from athena_explorer.config.settings import Settings
from athena_explorer.db.athena import AthenaClient
from athena_explorer.db.materializer import ResultMaterializer
from athena_explorer.db.models import ExecutionState, ExecutionStatus, QueryHandle, RowSet
from athena_explorer.db.queries import is_utility_statement
from athena_explorer.exceptions.errors import (
    ExecutionCancelled,
    ExecutionFailed,
    ExecutionTimedOut,
)
from athena_explorer.logging.logger import get_logger


log = get_logger("db.engine")


def _error_message(e: Exception) -> str:
    if isinstance(e, ClientError):
        return e.response.get("Error", {}).get("Message") or str(e)
    return str(e)


@dataclass
class QueryEngine:
    """Submit a statement, poll until Athena reports a terminal state, fetch rows.

    The caller is blocked for the whole execution; nothing is returned until
    every result page has been read. There is no timeout unless
    ``settings.execution_timeout`` is set, and no retry on any failure.
    """

    client: AthenaClient
    settings: Settings
    materializer: Optional[ResultMaterializer] = None
    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], float] = time.monotonic

    def __post_init__(self) -> None:
        if self.materializer is None:
            self.materializer = ResultMaterializer.from_settings(self.client, self.settings, sleep=self.sleep)

    def execute(
        self,
        sql: str,
        catalog: Optional[str] = None,
        database: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> RowSet:
        s = self.settings
        log.info(
            "Athena start_query_execution",
            extra={
                "workgroup": s.athena_workgroup,
                "output": s.athena_output_location,
                "catalog": catalog,
                "database": database,
                "sql_head": sql[:300],
            },
        )
        try:
            handle = self.client.submit_execution(
                sql,
                s.athena_workgroup,
                s.athena_output_location,
                catalog=catalog,
                database=database,
            )
        except (ClientError, BotoCoreError) as e:
            # Athena rejects some statements before they get an execution id
            raise ExecutionFailed(_error_message(e)) from e

        try:
            state = self.wait(handle, cancel=cancel)
        except (ClientError, BotoCoreError) as e:
            raise ExecutionFailed(_error_message(e)) from e

        if state.status is ExecutionStatus.FAILED:
            log.warning("Athena query failed", extra={"query_id": handle.id, "reason": state.reason})
            raise ExecutionFailed(state.reason)
        if state.status is ExecutionStatus.CANCELLED:
            log.warning("Athena query cancelled", extra={"query_id": handle.id, "reason": state.reason})
            raise ExecutionCancelled(state.reason)

        try:
            rs = self.materializer.materialize(
                handle,
                state.result_location,
                cancel=cancel,
                headerless=is_utility_statement(sql),
            )
        except (ClientError, BotoCoreError) as e:
            raise ExecutionFailed(_error_message(e)) from e
        log.info("Athena query succeeded", extra={"query_id": handle.id, "rows": rs.total_retrieved})
        return rs

    def wait(self, handle: QueryHandle, cancel: Optional[threading.Event] = None) -> ExecutionState:
        """Poll GetQueryExecution until a terminal state.

        The interval starts at ``poll_interval`` and is multiplied by
        ``poll_backoff`` after each tick, capped at ``max_poll_interval``.
        """
        s = self.settings
        interval = s.poll_interval
        started = self.clock()

        while True:
            state = self.client.get_execution_status(handle)
            if state.status.is_terminal:
                return state

            if cancel is not None and cancel.is_set():
                self._stop(handle)
                raise ExecutionCancelled(f"Query {handle.id} cancelled by caller")
            if s.execution_timeout is not None and self.clock() - started >= s.execution_timeout:
                self._stop(handle)
                raise ExecutionTimedOut(
                    f"Query {handle.id} still {state.status.value} after {s.execution_timeout}s"
                )

            self.sleep(interval)
            interval = min(interval * s.poll_backoff, max(s.max_poll_interval, s.poll_interval))

    def _stop(self, handle: QueryHandle) -> None:
        try:
            self.client.stop_execution(handle)
        except (ClientError, BotoCoreError):
            log.warning("stop_query_execution failed", extra={"query_id": handle.id}, exc_info=True)
