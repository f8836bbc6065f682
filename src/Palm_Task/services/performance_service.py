"""
Palm_Task.services.performance_service

Numbers behind the home and performance screens, computed from reconciled
tasks of one sector.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from Palm_Task.domain.models import HIGH_PRIORITY_COINS, NonBuyer, Task

OTHERS_LABEL = "Outros"


@dataclass
class DistributionEntry:
    label: str
    value: int
    percent: float


@dataclass
class SkuStat:
    name: str
    count: int          # tasks mentioning the SKU
    avg_coins: int


@dataclass
class PerformanceSummary:
    task_count: int = 0
    total_coins: int = 0
    non_buyer_count: int = 0
    non_buyer_task_count: int = 0
    by_cluster: List[DistributionEntry] = field(default_factory=list)
    by_category: List[DistributionEntry] = field(default_factory=list)
    by_subject: List[DistributionEntry] = field(default_factory=list)
    top_skus: List[SkuStat] = field(default_factory=list)
    high_value_tasks: List[Task] = field(default_factory=list)


def distribution(tasks: Sequence[Task], field_name: str) -> List[DistributionEntry]:
    """
    Count tasks per value of `field_name`, most frequent first.
    Blank values are counted as "Outros".
    """
    counts: Counter = Counter()
    for t in tasks:
        label = str(getattr(t, field_name) or OTHERS_LABEL).strip() or OTHERS_LABEL
        counts[label] += 1

    total = sum(counts.values())
    entries = [
        DistributionEntry(label=label, value=value, percent=(value / total) * 100 if total else 0.0)
        for label, value in counts.items()
    ]
    entries.sort(key=lambda e: e.value, reverse=True)
    return entries


def top_skus(tasks: Sequence[Task], limit: int = 10) -> List[SkuStat]:
    """
    SKUs that appear in the most tasks, with the average reward of those tasks.
    """
    counts: Dict[str, int] = {}
    coins: Dict[str, int] = {}
    for t in tasks:
        for sku in t.associated_skus:
            counts[sku] = counts.get(sku, 0) + 1
            coins[sku] = coins.get(sku, 0) + t.coins

    stats = [
        SkuStat(name=name, count=n, avg_coins=int(coins[name] / n + 0.5))
        for name, n in counts.items()
    ]
    stats.sort(key=lambda s: s.count, reverse=True)
    return stats[:limit]


def high_value_tasks(tasks: Sequence[Task], limit: int = 3) -> List[Task]:
    hv = [t for t in tasks if t.coins >= HIGH_PRIORITY_COINS]
    hv.sort(key=lambda t: t.coins, reverse=True)
    return hv[:limit]


def summarize(tasks: Sequence[Task], non_buyers: Sequence[NonBuyer]) -> PerformanceSummary:
    return PerformanceSummary(
        task_count=len(tasks),
        total_coins=sum(t.coins for t in tasks),
        non_buyer_count=len(non_buyers),
        non_buyer_task_count=sum(1 for t in tasks if t.is_non_buyer),
        by_cluster=distribution(tasks, "cluster"),
        by_category=distribution(tasks, "category"),
        by_subject=distribution(tasks, "subject"),
        top_skus=top_skus(tasks),
        high_value_tasks=high_value_tasks(tasks),
    )
