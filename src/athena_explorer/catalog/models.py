from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class NodeKind(str, Enum):
    ROOT = "connection"
    CATALOG_GROUP = "catalogs"
    CATALOG = "catalog"
    DATABASE_GROUP = "databases"
    DATABASE = "database"
    TABLE_GROUP = "tables"
    VIEW_GROUP = "views"
    TABLE = "table"
    VIEW = "view"
    COLUMN = "column"


@dataclass(frozen=True)
class CatalogNode:
    """One entry of the catalog tree, also returned by searches.

    Group nodes are synthetic folders; they carry the catalog/database of
    their parent so the next level can be listed. Column-only fields stay at
    their defaults for every other kind.
    """

    name: str
    kind: NodeKind
    catalog: str = ""
    database: str = ""
    table: str = ""
    child_kind: Optional[NodeKind] = None
    icon: str = ""

    # Column-only
    data_type: str = ""
    detail: str = ""
    is_nullable: Optional[bool] = None
    is_partition_key: bool = False

    @property
    def parent_path(self) -> Tuple[str, ...]:
        if self.kind is NodeKind.CATALOG:
            parts: Tuple[str, ...] = ()
        elif self.kind is NodeKind.DATABASE:
            parts = (self.catalog,)
        elif self.kind in (NodeKind.TABLE, NodeKind.VIEW):
            parts = (self.catalog, self.database)
        elif self.kind is NodeKind.COLUMN:
            parts = (self.catalog, self.database, self.table)
        else:
            parts = tuple(p for p in (self.catalog, self.database) if p)
        return parts


ROOT = CatalogNode(name="", kind=NodeKind.ROOT)

SearchableItem = CatalogNode
