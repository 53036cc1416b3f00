from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from athena_explorer.catalog.models import CatalogNode, NodeKind, SearchableItem
from athena_explorer.catalog.source import CatalogSource
from athena_explorer.catalog.walker import REMOTE_ERRORS, column_nodes
from athena_explorer.db.queries import like_pattern
from athena_explorer.exceptions.errors import CatalogUnavailable
from athena_explorer.logging.logger import get_logger

log = get_logger("catalog.search")


@dataclass
class SearchIndex:
    """Flat candidate lists for autocomplete and quick picks.

    Unlike the tree walker, column search is best effort: a table whose
    metadata cannot be read is logged and skipped.
    """

    source: CatalogSource
    default_catalog: str = "AwsDataCatalog"

    def search(
        self,
        kind: NodeKind,
        filter_text: str = "",
        extra_params: Optional[Mapping[str, Any]] = None,
    ) -> List[SearchableItem]:
        params = dict(extra_params or {})
        catalog = params.get("catalog") or self.default_catalog

        if kind is NodeKind.COLUMN:
            return self._columns(params.get("tables") or [], catalog)
        if kind in (NodeKind.TABLE, NodeKind.VIEW) and not params.get("database"):
            return []

        try:
            if kind is NodeKind.DATABASE:
                return self._databases(catalog, filter_text)
            if kind in (NodeKind.TABLE, NodeKind.VIEW):
                return self._relations(kind, catalog, params["database"], filter_text)
        except CatalogUnavailable:
            raise
        except REMOTE_ERRORS as e:
            raise CatalogUnavailable(e) from e
        return []

    def _databases(self, catalog: str, filter_text: str) -> List[SearchableItem]:
        # ListDatabases has no server-side filter and may repeat a database
        # across pages; all_databases() collapses those by name.
        needle = (filter_text or "").strip().lower()
        return [
            CatalogNode(
                name=d["Name"],
                kind=NodeKind.DATABASE,
                catalog=catalog,
                database=d["Name"],
                child_kind=NodeKind.TABLE_GROUP,
                icon="database",
            )
            for d in self.source.all_databases(catalog)
            if not needle or needle in d["Name"].lower()
        ]

    def _relations(self, kind: NodeKind, catalog: str, database: str, filter_text: str) -> List[SearchableItem]:
        pattern = like_pattern(filter_text)
        if kind is NodeKind.VIEW:
            names = self.source.list_views(catalog, database, pattern)
        else:
            names = self.source.list_tables_and_views(catalog, database, pattern)
        return [
            CatalogNode(
                name=n,
                kind=kind,
                catalog=catalog,
                database=database,
                child_kind=NodeKind.COLUMN,
                icon=kind.value,
            )
            for n in names
        ]

    def _columns(self, tables: List[Dict[str, Any]], default_catalog: str) -> List[SearchableItem]:
        out: List[SearchableItem] = []
        for t in tables:
            label = t.get("label")
            database = t.get("database")
            if not (label and database):
                continue
            catalog = t.get("catalog") or default_catalog
            try:
                meta = self.source.describe_table(catalog, database, label)
            except REMOTE_ERRORS:
                log.warning(
                    "Skipping table in column search",
                    extra={"catalog": catalog, "database": database, "table": label},
                    exc_info=True,
                )
                continue
            out.extend(column_nodes(meta, catalog, database, label))
        return out
