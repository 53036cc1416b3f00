from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

import pandas as pd

from athena_explorer.db.utils import parse_s3_uri
from athena_explorer.exceptions.errors import ResultUnavailable

Row = Dict[str, Optional[str]]
ColumnSchema = Tuple[str, ...]


class ExecutionStatus(str, Enum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = {ExecutionStatus.SUCCEEDED, ExecutionStatus.FAILED, ExecutionStatus.CANCELLED}


@dataclass(frozen=True)
class QueryHandle:
    id: str
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class ResultLocation:
    storage_uri: str

    def bucket_and_key(self) -> Tuple[str, str]:
        try:
            return parse_s3_uri(self.storage_uri)
        except ValueError as e:
            raise ResultUnavailable(str(e)) from e


@dataclass(frozen=True)
class ExecutionState:
    status: ExecutionStatus
    reason: str = ""
    result_location: Optional[ResultLocation] = None


@dataclass(frozen=True)
class ResultPage:
    """One GetQueryResults page, already flattened to cell values.

    ``columns`` is None when the page carried no metadata.
    """

    rows: List[List[Optional[str]]]
    columns: Optional[ColumnSchema] = None
    next_cursor: Optional[str] = None


@dataclass
class RowSet:
    schema: ColumnSchema
    rows: List[Row] = field(default_factory=list)
    total_retrieved: int = 0

    @property
    def message(self) -> str:
        return f"Query ok with {self.total_retrieved} results"

    def to_dataframe(self) -> pd.DataFrame:
        """Rows as a DataFrame of object columns; NULL cells stay None."""
        return pd.DataFrame(
            [[r.get(c) for c in self.schema] for r in self.rows],
            columns=list(self.schema),
            dtype=object,
        )


def build_rows(schema: ColumnSchema, values: List[List[Optional[str]]]) -> List[Row]:
    """Map positional cell values onto the schema. Missing trailing cells are NULL."""
    return [{c: (v[i] if i < len(v) else None) for i, c in enumerate(schema)} for v in values]
