from __future__ import annotations

from typing import Callable, Dict, Hashable, List, Optional, Tuple, TypeVar
import re

T = TypeVar("T")

# fetch(cursor) -> (items, next_cursor)
PageFetcher = Callable[[Optional[str]], Tuple[List[T], Optional[str]]]


def parse_s3_uri(uri: str) -> Tuple[str, str]:
    """Parse s3://bucket/key -> (bucket, key)."""
    m = re.match(r"^s3://([^/]+)/(.+)$", (uri or "").strip())
    if not m:
        raise ValueError(f"Invalid S3 URI: {uri}")
    return m.group(1), m.group(2)


def quote_ident(name: str) -> str:
    """Double-quoted identifier (Trino/Athena DML)."""
    return '"' + name.replace('"', '""') + '"'


def quote_hive_ident(name: str) -> str:
    """Backtick identifier (Athena DDL / SHOW statements)."""
    return "`" + name.replace("`", "``") + "`"


def quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def drain(fetch: PageFetcher[T]) -> List[T]:
    """Follow a cursor-paginated listing to its end.

    One call per page; stops exactly when the response carries no cursor.
    Stopping earlier would silently truncate the listing, so every
    paginated caller in this package goes through here.
    """
    items: List[T] = []
    cursor: Optional[str] = None
    while True:
        page, cursor = fetch(cursor)
        items.extend(page)
        if not cursor:
            return items


def dedupe(items: List[T], key: Callable[[T], Hashable]) -> List[T]:
    """Collapse duplicates by natural key: first position kept, last value wins."""
    seen: Dict[Hashable, T] = {}
    for item in items:
        seen[key(item)] = item
    return list(seen.values())
