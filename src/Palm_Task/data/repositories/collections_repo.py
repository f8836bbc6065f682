"""
Palm_Task.data.repositories.collections_repo

SQLite-backed persistence for the five feed collections.

Each collection supports exactly two operations:

- replace_all(collection, records)  delete + insert in one transaction
- read_all(collection)              every stored record, in feed order

A failed replace_all rolls back, so readers never see a half-replaced
collection. Collections are independent: one failing write does not undo
another.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from Palm_Task.data.connection import get_connection
from Palm_Task.data.schema import (
    COLLECTION_CONSULTANTS,
    COLLECTION_NON_BUYERS,
    COLLECTION_PRODUCT_IMAGES,
    COLLECTION_SKU_MAP,
    COLLECTION_TASKS,
    create_tables,
)
from Palm_Task.domain.errors import PersistenceError
from Palm_Task.domain.models import Consultant, NonBuyer, ProductImage, Task, TaskSkuMap

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------


def _task_to_row(t: Task) -> Tuple[Any, ...]:
    return (
        t.id, t.sector_code, t.pdv_code, t.pdv_name, t.due_label,
        t.cluster, t.category, t.subject, t.operation, t.coins,
        t.hash_id, t.flag_score, t.description,
        t.bought_count, t.mix_total, t.missing_count,
    )


def _row_to_task(row) -> Task:
    # reconciliation fields are session-only and come back as defaults
    return Task(
        id=row["id"],
        sector_code=row["sector_code"],
        pdv_code=row["pdv_code"],
        pdv_name=row["pdv_name"],
        due_label=row["due_label"],
        cluster=row["cluster"],
        category=row["category"],
        subject=row["subject"],
        operation=row["operation"],
        coins=int(row["coins"] or 0),
        hash_id=row["hash_id"],
        flag_score=row["flag_score"],
        description=row["description"],
        bought_count=int(row["bought_count"] or 0),
        mix_total=int(row["mix_total"] or 0),
        missing_count=int(row["missing_count"] or 0),
    )


def _non_buyer_to_row(nb: NonBuyer) -> Tuple[Any, ...]:
    return (nb.pdv_code, nb.sector, nb.fantasy_name, nb.last_visit, nb.normalized_code)


def _row_to_non_buyer(row) -> NonBuyer:
    return NonBuyer(
        sector=row["sector"],
        pdv_code=row["pdv_code"],
        fantasy_name=row["fantasy_name"],
        last_visit=row["last_visit"],
        normalized_code=row["normalized_code"],
    )


def _sku_map_to_row(m: TaskSkuMap) -> Tuple[Any, ...]:
    return (m.hash_id, json.dumps(list(m.skus), ensure_ascii=False))


def _row_to_sku_map(row) -> TaskSkuMap:
    try:
        skus = json.loads(row["skus"] or "[]")
    except ValueError:
        skus = []
    return TaskSkuMap(hash_id=row["hash_id"], skus=tuple(str(s) for s in skus))


def _image_to_row(img: ProductImage) -> Tuple[Any, ...]:
    return (img.id, img.name, img.image_url, img.normalized_name)


def _row_to_image(row) -> ProductImage:
    return ProductImage(
        id=row["id"],
        name=row["name"],
        image_url=row["image_url"],
        normalized_name=row["normalized_name"],
    )


def _consultant_to_row(c: Consultant) -> Tuple[Any, ...]:
    return (c.id, c.sector, c.name, c.password, c.avatar_url, c.avatar_data_uri)


def _row_to_consultant(row) -> Consultant:
    return Consultant(
        id=row["id"],
        sector=row["sector"],
        name=row["name"],
        password=row["password"],
        avatar_url=row["avatar_url"],
        avatar_data_uri=row["avatar_data_uri"],
    )


@dataclass(frozen=True)
class _CollectionSpec:
    table: str
    record_type: type
    columns: Tuple[str, ...]          # in _to_row order, position appended on insert
    to_row: Callable[[Any], Tuple[Any, ...]]
    from_row: Callable[[Any], Any]


_SPECS: Dict[str, _CollectionSpec] = {
    COLLECTION_TASKS: _CollectionSpec(
        table="tasks",
        record_type=Task,
        columns=(
            "id", "sector_code", "pdv_code", "pdv_name", "due_label",
            "cluster", "category", "subject", "operation", "coins",
            "hash_id", "flag_score", "description",
            "bought_count", "mix_total", "missing_count",
        ),
        to_row=_task_to_row,
        from_row=_row_to_task,
    ),
    COLLECTION_NON_BUYERS: _CollectionSpec(
        table="non_buyers",
        record_type=NonBuyer,
        columns=("pdv_code", "sector", "fantasy_name", "last_visit", "normalized_code"),
        to_row=_non_buyer_to_row,
        from_row=_row_to_non_buyer,
    ),
    COLLECTION_SKU_MAP: _CollectionSpec(
        table="sku_map",
        record_type=TaskSkuMap,
        columns=("hash_id", "skus"),
        to_row=_sku_map_to_row,
        from_row=_row_to_sku_map,
    ),
    COLLECTION_PRODUCT_IMAGES: _CollectionSpec(
        table="product_images",
        record_type=ProductImage,
        columns=("id", "name", "image_url", "normalized_name"),
        to_row=_image_to_row,
        from_row=_row_to_image,
    ),
    COLLECTION_CONSULTANTS: _CollectionSpec(
        table="consultants",
        record_type=Consultant,
        columns=("id", "sector", "name", "password", "avatar_url", "avatar_data_uri"),
        to_row=_consultant_to_row,
        from_row=_row_to_consultant,
    ),
}


def _spec_for(collection: str) -> _CollectionSpec:
    spec = _SPECS.get(collection)
    if spec is None:
        raise ValueError(f"Unknown collection: {collection!r} (known: {', '.join(_SPECS)})")
    return spec


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class CollectionStore:
    """
    Whole-collection replace/read over the local SQLite file.

    base_dir is forwarded to get_connection(); None means the default
    db directory.
    """

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self.base_dir = base_dir
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        conn = get_connection(self.base_dir)
        if not self._initialized:
            create_tables(conn)
            self._initialized = True
        return conn

    def replace_all(self, collection: str, records: Sequence[Any]) -> int:
        """
        Replace every row of `collection` with `records` atomically.

        Records sharing a key collapse to the last one. Returns the number
        of records written. Raises PersistenceError (after rollback) if the
        transaction fails.
        """
        spec = _spec_for(collection)
        for rec in records:
            if not isinstance(rec, spec.record_type):
                raise TypeError(
                    f"{collection} expects {spec.record_type.__name__}, got {type(rec).__name__}"
                )

        cols = spec.columns + ("position",)
        placeholders = ", ".join("?" for _ in cols)
        insert_sql = (
            f"INSERT OR REPLACE INTO {spec.table} ({', '.join(cols)}) "
            f"VALUES ({placeholders})"
        )
        rows = [spec.to_row(rec) + (pos,) for pos, rec in enumerate(records)]

        try:
            with closing(self._connect()) as conn:
                with conn:  # commit on success, rollback on error
                    conn.execute(f"DELETE FROM {spec.table}")
                    conn.executemany(insert_sql, rows)
        except sqlite3.Error as exc:
            logger.error("Writing collection %s failed: %s", collection, exc)
            raise PersistenceError(
                f"Could not replace collection {collection!r}: {exc}",
                collection=collection,
            ) from exc

        logger.debug("Replaced %s with %d records", collection, len(rows))
        return len(rows)

    def read_all(self, collection: str) -> List[Any]:
        """
        Every record in `collection`, in the order it was written.
        A collection that was never written reads as [].
        """
        spec = _spec_for(collection)
        try:
            with closing(self._connect()) as conn:
                rows = conn.execute(
                    f"SELECT {', '.join(spec.columns)} FROM {spec.table} "
                    f"ORDER BY position ASC"
                ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Could not read collection {collection!r}: {exc}",
                collection=collection,
            ) from exc

        return [spec.from_row(r) for r in rows]

    def count(self, collection: str) -> int:
        spec = _spec_for(collection)
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(f"SELECT COUNT(*) FROM {spec.table}").fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Could not count collection {collection!r}: {exc}",
                collection=collection,
            ) from exc
        return int(row[0])
