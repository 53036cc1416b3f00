from __future__ import annotations

import threading
from typing import Any, List, Mapping, Optional

from athena_explorer.catalog.models import ROOT, CatalogNode, NodeKind, SearchableItem
from athena_explorer.catalog.search import SearchIndex
from athena_explorer.catalog.source import CatalogSource
from athena_explorer.catalog.walker import CatalogWalker
from athena_explorer.config.settings import Settings, load_settings
from athena_explorer.db import queries
from athena_explorer.db.athena import AthenaClient, AthenaConnection
from athena_explorer.db.engine import QueryEngine
from athena_explorer.db.models import RowSet
from athena_explorer.logging.logger import get_logger, init_logging

log = get_logger("driver")


class AthenaDriver:
    """What a SQL tool needs from one Athena connection profile.

    execute() runs a statement to completion, children() expands one level of
    the catalog tree, search() feeds autocomplete. All three share a single
    lazily opened connection owned by this driver.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        connection: Optional[AthenaConnection] = None,
        client: Optional[AthenaClient] = None,
    ):
        if settings is None:
            settings = load_settings()
            init_logging(settings.log_level, settings.log_file or None)
        self.settings = settings
        self.connection = connection or AthenaConnection(self.settings)
        self.client = client or AthenaClient(self.connection)
        self.engine = QueryEngine(self.client, self.settings)
        self.source = CatalogSource(self.client, self.engine)
        self.walker = CatalogWalker(self.source)
        self.index = SearchIndex(self.source, default_catalog=self.settings.athena_catalog)

    def open(self) -> AthenaConnection:
        return self.connection.open()

    def close(self) -> None:
        self.connection.close()

    def test_connection(self) -> None:
        self.open()
        self.execute("SELECT 1")

    def execute(self, sql: str, cancel: Optional[threading.Event] = None) -> RowSet:
        return self.engine.execute(sql, catalog=self.settings.athena_catalog or "AwsDataCatalog", cancel=cancel)

    def children(self, node: CatalogNode = ROOT) -> List[CatalogNode]:
        return self.walker.children(node)

    def search(
        self,
        kind: NodeKind,
        filter_text: str = "",
        extra_params: Optional[Mapping[str, Any]] = None,
    ) -> List[SearchableItem]:
        return self.index.search(kind, filter_text, extra_params)

    # -----------------------------
    # Table preview helpers
    # -----------------------------
    @staticmethod
    def _require_relation(node: CatalogNode) -> None:
        if node.kind not in (NodeKind.TABLE, NodeKind.VIEW):
            raise ValueError(f"Expected a table or view node, got {node.kind.value}")

    def describe_table(self, node: CatalogNode) -> List[CatalogNode]:
        self._require_relation(node)
        return self.walker.children(node)

    def fetch_records(self, node: CatalogNode, limit: int = 50, offset: int = 0) -> RowSet:
        self._require_relation(node)
        sql = queries.fetch_records(node.catalog, node.database, node.name, limit=limit, offset=offset)
        return self.execute(sql)

    def count_records(self, node: CatalogNode) -> int:
        self._require_relation(node)
        rs = self.execute(queries.count_records(node.catalog, node.database, node.name))
        if not rs.rows:
            return 0
        return int(rs.rows[0].get("total") or 0)
