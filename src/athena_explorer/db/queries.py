"""SQL text for the statements the driver and catalog layer run through Athena."""
from __future__ import annotations

from typing import Optional
import re

from athena_explorer.db.utils import quote_hive_ident, quote_ident, quote_literal


def table_ref(catalog: str, database: str, table: str) -> str:
    return ".".join(quote_ident(p) for p in (catalog, database, table))


def like_pattern(search: Optional[str]) -> Optional[str]:
    """SHOW TABLES / SHOW VIEWS patterns use '*' as the wildcard."""
    s = (search or "").strip()
    return f"*{s}*" if s else None


def show_tables(database: str, pattern: Optional[str] = None) -> str:
    # SHOW TABLES is Hive DDL: backtick identifiers, bare pattern literal.
    sql = f"SHOW TABLES IN {quote_hive_ident(database)}"
    if pattern:
        sql += f" {quote_literal(pattern)}"
    return sql


def show_views(database: str, pattern: Optional[str] = None) -> str:
    sql = f"SHOW VIEWS IN {quote_ident(database)}"
    if pattern:
        sql += f" LIKE {quote_literal(pattern)}"
    return sql


def fetch_records(catalog: str, database: str, table: str, limit: int = 50, offset: int = 0) -> str:
    return (
        f"SELECT * FROM {table_ref(catalog, database, table)} "
        f"OFFSET {max(int(offset), 0)} LIMIT {max(int(limit), 0)}"
    )


def count_records(catalog: str, database: str, table: str) -> str:
    return f"SELECT count(1) AS total FROM {table_ref(catalog, database, table)}"


_UTILITY_RE = re.compile(r"^\s*(?:--[^\n]*\n\s*|/\*.*?\*/\s*)*(show|describe|desc)\b", re.IGNORECASE | re.DOTALL)


def is_utility_statement(sql: str) -> bool:
    """SHOW/DESCRIBE run as Hive DDL: their output has no header row."""
    return bool(_UTILITY_RE.match(sql or ""))
