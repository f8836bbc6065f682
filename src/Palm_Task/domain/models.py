"""
Palm_Task.domain.models

Dataclasses for the records decoded from the published spreadsheet feeds.
Repositories return these and services operate on them.

Records are frozen: a new sync or a reconciliation pass produces new
instances (dataclasses.replace) instead of editing existing ones.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

HIGH_PRIORITY_COINS = 100

PRIORITY_HIGH = "HIGH"
PRIORITY_NORMAL = "NORMAL"


def priority_for_coins(coins: int) -> str:
    return PRIORITY_HIGH if coins >= HIGH_PRIORITY_COINS else PRIORITY_NORMAL


# ---------- Tasks ----------

@dataclass(frozen=True)
class Task:
    id: str
    sector_code: str
    pdv_code: str                 # store code, as published
    pdv_name: str
    due_label: str = ""
    cluster: str = ""
    category: str = ""
    subject: str = ""
    operation: str = ""
    coins: int = 0
    hash_id: str = ""             # join key into the SKU map
    flag_score: str = ""
    description: str = ""
    bought_count: int = 0         # "bought/total" numerator
    mix_total: int = 0            # "bought/total" denominator
    missing_count: int = 0
    # set by reconciliation only, never persisted
    is_non_buyer: bool = False
    associated_skus: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def priority(self) -> str:
        return priority_for_coins(self.coins)

    @property
    def mix_percent(self) -> int:
        """Share of the mix already bought, 0 when there is no mix data."""
        if self.mix_total <= 0:
            return 0
        return int(self.bought_count * 100 / self.mix_total + 0.5)


# ---------- Non-buyers & SKU map ----------

@dataclass(frozen=True)
class NonBuyer:
    sector: str
    pdv_code: str
    fantasy_name: str = ""
    last_visit: str = ""
    normalized_code: str = ""     # normalize_code(pdv_code)


@dataclass(frozen=True)
class TaskSkuMap:
    hash_id: str
    skus: Tuple[str, ...] = field(default_factory=tuple)


# ---------- Catalog & people ----------

@dataclass(frozen=True)
class ProductImage:
    id: str
    name: str
    image_url: str
    normalized_name: str = ""     # normalize_text(name)


@dataclass(frozen=True)
class Consultant:
    id: str
    sector: str
    name: str = ""
    password: str = ""            # "" means no password required
    avatar_url: str = ""
    avatar_data_uri: Optional[str] = None  # inlined during a remote sync

    @property
    def requires_password(self) -> bool:
        return bool(self.password.strip())
