from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from athena_explorer.db import queries
from athena_explorer.db.athena import AthenaClient
from athena_explorer.db.engine import QueryEngine
from athena_explorer.db.models import RowSet
from athena_explorer.db.utils import dedupe, drain
from athena_explorer.logging.logger import get_logger

log = get_logger("catalog.source")


def _first_column(rs: RowSet) -> List[str]:
    if not rs.schema:
        return []
    col = rs.schema[0]
    return [str(r[col]).strip() for r in rs.rows if r.get(col)]


@dataclass
class CatalogSource:
    """Every listing the catalog tree and the search index read from.

    Catalogs, databases and table metadata come from the Athena catalog API.
    Tables and views are listed by running SHOW TABLES / SHOW VIEWS through
    the query engine, because the catalog API has no views-only listing.
    The ``all_*`` methods drain their cursors and collapse duplicate names.
    """

    client: AthenaClient
    engine: QueryEngine

    def all_catalogs(self) -> List[Dict[str, Any]]:
        return dedupe(drain(self.client.list_catalogs), key=lambda c: c.get("CatalogName"))

    def all_databases(self, catalog: str) -> List[Dict[str, Any]]:
        items = drain(lambda cursor: self.client.list_databases(catalog, cursor))
        return dedupe(items, key=lambda d: d.get("Name"))

    def list_tables_and_views(self, catalog: str, database: str, pattern: Optional[str] = None) -> List[str]:
        rs = self.engine.execute(queries.show_tables(database, pattern), catalog=catalog)
        return dedupe(_first_column(rs), key=lambda n: n)

    def list_views(self, catalog: str, database: str, pattern: Optional[str] = None) -> List[str]:
        rs = self.engine.execute(queries.show_views(database, pattern), catalog=catalog)
        return dedupe(_first_column(rs), key=lambda n: n)

    def describe_table(self, catalog: str, database: str, table: str) -> Dict[str, Any]:
        return self.client.describe_table(catalog, database, table)
