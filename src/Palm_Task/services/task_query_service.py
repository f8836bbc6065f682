"""
Palm_Task.services.task_query_service

Read-only queries the screens run over the reconciled collections.

The agent's sector is always passed in explicitly; nothing here reads a
"current user" from anywhere.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Iterable, List, Optional, Sequence, TypeVar

from Palm_Task.domain.models import Consultant, NonBuyer, Task
from Palm_Task.utils.normalization import clean_search

T = TypeVar("T")

ALL = "Todos"   # "no filter" value used by the facet pickers

_FACET_FIELDS = {"cluster", "category", "subject", "flag_score"}


def _sector_of(record) -> str:
    if isinstance(record, Task):
        return record.sector_code
    return getattr(record, "sector", "")


def filter_by_sector(records: Iterable[T], sector: str) -> List[T]:
    """
    Records whose sector equals `sector` (both trimmed).
    An empty sector means nobody is logged in: no records.
    """
    wanted = (sector or "").strip()
    if not wanted:
        return []
    return [r for r in records if _sector_of(r).strip() == wanted]


def _is_unset(value: Optional[str]) -> bool:
    return value is None or value.strip() in ("", ALL)


def _facet_differs(wanted: Optional[str], actual: str) -> bool:
    return not _is_unset(wanted) and actual.strip() != wanted.strip()


def _search_blob(task: Task) -> str:
    return json.dumps(asdict(task), ensure_ascii=False).lower()


def filter_tasks(
    tasks: Sequence[Task],
    cluster: Optional[str] = None,
    category: Optional[str] = None,
    subject: Optional[str] = None,
    flag_score: Optional[str] = None,
    search: str = "",
    sort_by_coins: bool = False,
) -> List[Task]:
    """
    Task list filtering as done on the task screen.

    Facet arguments left as None / "" / "Todos" do not filter. `search` is a
    case-insensitive substring match over every field of the task,
    including its associated SKUs.
    """
    needle = (search or "").strip().lower()

    def keep(t: Task) -> bool:
        if _facet_differs(cluster, t.cluster) or _facet_differs(category, t.category):
            return False
        if _facet_differs(subject, t.subject) or _facet_differs(flag_score, t.flag_score):
            return False
        if needle and needle not in _search_blob(t):
            return False
        return True

    result = [t for t in tasks if keep(t)]
    if sort_by_coins:
        result.sort(key=lambda t: t.coins, reverse=True)
    return result


def facet_values(tasks: Iterable[Task], field_name: str) -> List[str]:
    """
    Sorted distinct non-blank values of one facet field.
    """
    if field_name not in _FACET_FIELDS:
        raise ValueError(f"Unknown facet: {field_name!r} (allowed: {', '.join(sorted(_FACET_FIELDS))})")
    values = {getattr(t, field_name).strip() for t in tasks}
    values.discard("")
    return sorted(values)


def filter_non_buyers(non_buyers: Iterable[NonBuyer], sector: str, search: str = "") -> List[NonBuyer]:
    """
    Non-buyers in `sector` whose fantasy name or store code contains
    `search` (punctuation and case ignored).
    """
    needle = clean_search(search)
    return [
        nb for nb in filter_by_sector(non_buyers, sector)
        if needle in clean_search(nb.fantasy_name) or needle in clean_search(nb.pdv_code)
    ]


# ---------- Consultants ----------

def find_consultant(consultants: Iterable[Consultant], sector: str) -> Optional[Consultant]:
    """First consultant registered for `sector`, if any."""
    wanted = (sector or "").strip()
    for c in consultants:
        if c.sector.strip() == wanted:
            return c
    return None


def is_password_required(consultants: Iterable[Consultant], sector: str) -> bool:
    c = find_consultant(consultants, sector)
    return bool(c and c.requires_password)


def check_password(consultants: Iterable[Consultant], sector: str, password: Optional[str]) -> bool:
    """
    Offline check against the synced consultant list. Sectors without a
    consultant, or without a password, always pass.
    """
    c = find_consultant(consultants, sector)
    if c is None or not c.requires_password:
        return True
    return password == c.password
