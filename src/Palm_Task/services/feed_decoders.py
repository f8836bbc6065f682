"""
Palm_Task.services.feed_decoders

Turn parsed feed rows into typed records.

Every decoder:
  - skips row 0 (the sheet header)
  - reads columns by position (see the per-feed column lists below)
  - fills blank fields with defaults instead of failing
  - silently drops rows missing their required key, so one bad row never
    sinks a whole sync
  - keeps one record per key, the last row winning (same as the store's
    INSERT OR REPLACE)
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, Iterable, List, Sequence, Tuple, TypeVar

from Palm_Task.domain.models import Consultant, NonBuyer, ProductImage, Task, TaskSkuMap
from Palm_Task.utils.delimited import parse_rows
from Palm_Task.utils.normalization import normalize_code, normalize_text

logger = logging.getLogger(__name__)

Row = Sequence[str]
T = TypeVar("T")

# Defaults used by the published sheet for blank task cells
DEFAULT_DUE_LABEL = "Hoje"
DEFAULT_PDV_NAME = "PDV Desconhecido"
DEFAULT_CLUSTER = "Outros"
DEFAULT_CATEGORY = "Geral"
DEFAULT_SUBJECT = "Outros"
DEFAULT_OPERATION = "Geral"
DEFAULT_FLAG_SCORE = "Não"

# Consultant avatars
NO_PHOTO_SENTINEL = "SEM FOTO"
MIN_AVATAR_LENGTH = 11

_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _col(values: Row, index: int, default: str = "") -> str:
    if index < len(values):
        v = values[index].strip()
        if v:
            return v
    return default


def parse_int(value: str) -> int:
    """
    Leading integer of `value`, 0 when there is none.

    "12" -> 12, " 7 pts" -> 7, "3.9" -> 3, "abc" -> 0
    """
    m = _INT_PREFIX_RE.match(value or "")
    return int(m.group(1)) if m else 0


def split_mix(value: str) -> Tuple[int, int]:
    """
    Split a "bought/total" cell into (bought, total).

    No "/" gives (0, 0). Negative parts become 0 and bought is capped at
    total when a total is present.
    """
    if "/" not in (value or ""):
        return 0, 0
    bought_raw, total_raw = value.split("/", 1)
    bought = max(0, parse_int(bought_raw))
    total = max(0, parse_int(total_raw))
    if total > 0:
        bought = min(bought, total)
    return bought, total


def _keep_last(records: Iterable[T], key: Callable[[T], str]) -> List[T]:
    by_key: Dict[str, T] = {}
    for rec in records:
        by_key[key(rec)] = rec
    return list(by_key.values())


def _data_rows(rows: Sequence[Row]) -> Sequence[Row]:
    return rows[1:] if rows else []


# ---------------------------------------------------------------------------
# Decoders (rows already parsed)
# ---------------------------------------------------------------------------


def decode_tasks(rows: Sequence[Row]) -> List[Task]:
    """
    Columns: 0 due label, 1 sector, 2 pdv code, 3 pdv name, 4 cluster,
    5 "bought/total", 6 missing, 7 description, 8 hash id, 9 operation,
    10 coins, 11 category, 12 subject, 13 flag score.

    id is the hash id, or the data-row index when the hash is blank.
    Rows with every cell blank (trailing sheet padding) are skipped.
    """
    tasks: List[Task] = []
    blank = 0

    for index, values in enumerate(_data_rows(rows)):
        if not any(v.strip() for v in values):
            blank += 1
            continue

        hash_id = _col(values, 8)
        bought, total = split_mix(_col(values, 5))

        tasks.append(
            Task(
                id=hash_id or str(index),
                due_label=_col(values, 0, DEFAULT_DUE_LABEL),
                sector_code=_col(values, 1),
                pdv_code=_col(values, 2),
                pdv_name=_col(values, 3, DEFAULT_PDV_NAME),
                cluster=_col(values, 4, DEFAULT_CLUSTER),
                bought_count=bought,
                mix_total=total,
                missing_count=parse_int(_col(values, 6)),
                description=_col(values, 7),
                hash_id=hash_id,
                operation=_col(values, 9, DEFAULT_OPERATION),
                coins=max(0, parse_int(_col(values, 10))),
                category=_col(values, 11, DEFAULT_CATEGORY),
                subject=_col(values, 12, DEFAULT_SUBJECT),
                flag_score=_col(values, 13, DEFAULT_FLAG_SCORE),
            )
        )

    if blank:
        logger.debug("Skipped %d blank task rows", blank)
    return _keep_last(tasks, lambda t: t.id)


def decode_non_buyers(rows: Sequence[Row]) -> List[NonBuyer]:
    """
    Columns: 0 sector, 1 pdv code, 2 fantasy name, 3 last visit.
    Rows with fewer than 3 columns or no store code are dropped.
    """
    result: List[NonBuyer] = []
    dropped = 0

    for values in _data_rows(rows):
        pdv_code = _col(values, 1)
        if len(values) < 3 or not pdv_code:
            dropped += 1
            continue
        result.append(
            NonBuyer(
                sector=_col(values, 0),
                pdv_code=pdv_code,
                fantasy_name=_col(values, 2),
                last_visit=_col(values, 3),
                normalized_code=normalize_code(pdv_code),
            )
        )

    if dropped:
        logger.debug("Dropped %d non-buyer rows without a store code", dropped)
    return _keep_last(result, lambda nb: nb.pdv_code)


def decode_sku_map(rows: Sequence[Row]) -> List[TaskSkuMap]:
    """
    Columns: 0 hash id, 1 comma-separated SKU names.
    """
    result: List[TaskSkuMap] = []
    dropped = 0

    for values in _data_rows(rows):
        hash_id = _col(values, 0)
        skus_cell = _col(values, 1)
        if len(values) < 2 or not hash_id or not skus_cell:
            dropped += 1
            continue
        skus = tuple(s.strip() for s in skus_cell.split(",") if s.strip())
        result.append(TaskSkuMap(hash_id=hash_id, skus=skus))

    if dropped:
        logger.debug("Dropped %d incomplete SKU map rows", dropped)
    return _keep_last(result, lambda m: m.hash_id)


def decode_product_images(rows: Sequence[Row]) -> List[ProductImage]:
    """
    Columns: 0 id, 1 name, 2 image url.

    A blank id falls back to the row's position in the sheet (header = 0).
    """
    result: List[ProductImage] = []
    dropped = 0

    for i, values in enumerate(rows):
        if i == 0:
            continue
        name = _col(values, 1)
        url = _col(values, 2)
        if len(values) < 3 or not name or not url:
            dropped += 1
            continue
        result.append(
            ProductImage(
                id=_col(values, 0, str(i)),
                name=name,
                image_url=url,
                normalized_name=normalize_text(name),
            )
        )

    if dropped:
        logger.debug("Dropped %d product image rows without name or url", dropped)
    return _keep_last(result, lambda img: img.id)


def usable_avatar(value: str) -> str:
    """The avatar reference, or "" for placeholders like "SEM FOTO"."""
    if len(value) < MIN_AVATAR_LENGTH or NO_PHOTO_SENTINEL in value.upper():
        return ""
    return value


def decode_consultants(rows: Sequence[Row]) -> List[Consultant]:
    """
    Columns: 0 id, 1 sector, 2 password, 3 avatar url, 4 name.
    """
    result: List[Consultant] = []
    dropped = 0

    for values in _data_rows(rows):
        cid = _col(values, 0)
        sector = _col(values, 1)
        if len(values) < 5 or not cid or not sector:
            dropped += 1
            continue
        result.append(
            Consultant(
                id=cid,
                sector=sector,
                password=_col(values, 2),
                avatar_url=usable_avatar(_col(values, 3)),
                name=_col(values, 4),
            )
        )

    if dropped:
        logger.debug("Dropped %d consultant rows without id or sector", dropped)
    return _keep_last(result, lambda c: c.id)


# ---------------------------------------------------------------------------
# Text entry points
# ---------------------------------------------------------------------------


def parse_tasks_csv(text: str) -> List[Task]:
    return decode_tasks(parse_rows(text))


def parse_non_buyers_csv(text: str) -> List[NonBuyer]:
    return decode_non_buyers(parse_rows(text))


def parse_sku_map_csv(text: str) -> List[TaskSkuMap]:
    return decode_sku_map(parse_rows(text))


def parse_product_images_csv(text: str) -> List[ProductImage]:
    return decode_product_images(parse_rows(text))


def parse_consultants_csv(text: str) -> List[Consultant]:
    return decode_consultants(parse_rows(text))
