from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from botocore.exceptions import BotoCoreError, ClientError

from athena_explorer.catalog.models import CatalogNode, NodeKind
from athena_explorer.catalog.source import CatalogSource
from athena_explorer.exceptions.errors import AthenaExplorerError, CatalogUnavailable
from athena_explorer.logging.logger import get_logger

log = get_logger("catalog.walker")

REMOTE_ERRORS = (ClientError, BotoCoreError, AthenaExplorerError)


def _group(name: str, child_kind: NodeKind, kind: NodeKind, parent: CatalogNode) -> CatalogNode:
    return CatalogNode(
        name=name,
        kind=kind,
        catalog=parent.catalog,
        database=parent.database,
        child_kind=child_kind,
        icon="folder",
    )


def column_nodes(metadata: Dict[str, Any], catalog: str, database: str, table: str) -> List[CatalogNode]:
    """Columns first, then partition keys, in the order Athena returns them."""
    out: List[CatalogNode] = []
    cols = [(c, False) for c in metadata.get("Columns", []) or []]
    cols += [(c, True) for c in metadata.get("PartitionKeys", []) or []]
    for col, is_partition in cols:
        name = col.get("Name", "")
        data_type = col.get("Type", "") or ""
        comment = (col.get("Comment") or "").strip()
        if name.lower() == "id":
            icon = "pk"
        elif is_partition:
            icon = "partition"
        else:
            icon = "column"
        out.append(
            CatalogNode(
                name=name,
                kind=NodeKind.COLUMN,
                catalog=catalog,
                database=database,
                table=table,
                icon=icon,
                data_type=data_type,
                detail=f"{data_type} - {comment}" if comment else data_type,
                # GetTableMetadata has no nullability; Hive columns are nullable.
                is_nullable=True,
                is_partition_key=is_partition,
            )
        )
    return out


@dataclass
class CatalogWalker:
    """One level of the catalog tree per call.

    Nothing is cached: every call goes back to Athena and builds fresh nodes.
    A failing remote call fails the whole level with CatalogUnavailable;
    pages fetched before the failure are dropped.
    """

    source: CatalogSource

    def children(self, node: CatalogNode) -> List[CatalogNode]:
        kind = node.kind
        if kind is NodeKind.ROOT:
            return [_group("Catalogs", NodeKind.CATALOG, NodeKind.CATALOG_GROUP, node)]
        if kind is NodeKind.CATALOG:
            return [_group("Databases", NodeKind.DATABASE, NodeKind.DATABASE_GROUP, node)]
        if kind is NodeKind.DATABASE:
            return [
                _group("Tables", NodeKind.TABLE, NodeKind.TABLE_GROUP, node),
                _group("Views", NodeKind.VIEW, NodeKind.VIEW_GROUP, node),
            ]
        if kind is NodeKind.COLUMN:
            return []

        try:
            return self._remote_children(node)
        except CatalogUnavailable:
            raise
        except REMOTE_ERRORS as e:
            log.warning(
                "Catalog listing failed",
                extra={"kind": kind.value, "catalog": node.catalog, "database": node.database, "node": node.name},
                exc_info=True,
            )
            raise CatalogUnavailable(e) from e

    def _remote_children(self, node: CatalogNode) -> List[CatalogNode]:
        kind = node.kind
        if kind is NodeKind.CATALOG_GROUP:
            return [
                CatalogNode(
                    name=c["CatalogName"],
                    kind=NodeKind.CATALOG,
                    catalog=c["CatalogName"],
                    child_kind=NodeKind.DATABASE_GROUP,
                    icon="catalog",
                )
                for c in self.source.all_catalogs()
            ]

        if kind is NodeKind.DATABASE_GROUP:
            return [
                CatalogNode(
                    name=d["Name"],
                    kind=NodeKind.DATABASE,
                    catalog=node.catalog,
                    database=d["Name"],
                    child_kind=NodeKind.TABLE_GROUP,
                    icon="database",
                )
                for d in self.source.all_databases(node.catalog)
            ]

        if kind is NodeKind.TABLE_GROUP:
            combined = self.source.list_tables_and_views(node.catalog, node.database)
            views = set(self.source.list_views(node.catalog, node.database))
            return [self._relation(node, name, NodeKind.TABLE) for name in combined if name not in views]

        if kind is NodeKind.VIEW_GROUP:
            return [
                self._relation(node, name, NodeKind.VIEW)
                for name in self.source.list_views(node.catalog, node.database)
            ]

        if kind in (NodeKind.TABLE, NodeKind.VIEW):
            meta = self.source.describe_table(node.catalog, node.database, node.name)
            return column_nodes(meta, node.catalog, node.database, node.name)

        return []

    @staticmethod
    def _relation(parent: CatalogNode, name: str, kind: NodeKind) -> CatalogNode:
        return CatalogNode(
            name=name,
            kind=kind,
            catalog=parent.catalog,
            database=parent.database,
            child_kind=NodeKind.COLUMN,
            icon=kind.value,
        )
