"""
Palm_Task.services.reconciliation_service

Cross-reference decoded tasks with the non-buyer list and the SKU map.

The enriched fields (is_non_buyer, associated_skus) are derived per session
and never written back to the store, so this runs after every load.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Set, Tuple

from Palm_Task.domain.models import NonBuyer, Task, TaskSkuMap
from Palm_Task.utils.normalization import normalize_code


def non_buyer_codes(non_buyers: Iterable[NonBuyer]) -> Set[str]:
    return {normalize_code(nb.pdv_code) for nb in non_buyers}


def sku_lookup(sku_map: Iterable[TaskSkuMap]) -> Dict[str, Tuple[str, ...]]:
    # later entries for the same hash win
    return {m.hash_id: tuple(m.skus) for m in sku_map}


def reconcile(
    tasks: Iterable[Task],
    non_buyers: Iterable[NonBuyer],
    sku_map: Iterable[TaskSkuMap],
) -> List[Task]:
    """
    Return new Task objects with is_non_buyer and associated_skus set.

    Tasks matching nothing get False / (). Inputs are not modified.
    """
    codes = non_buyer_codes(non_buyers)
    skus_by_hash = sku_lookup(sku_map)

    return [
        replace(
            t,
            is_non_buyer=normalize_code(t.pdv_code) in codes,
            associated_skus=skus_by_hash.get(t.hash_id, ()),
        )
        for t in tasks
    ]
