"""
Palm_Task.services.image_lookup_service

Resolve free-text SKU names (from the SKU map) to product image URLs.

Strategy:
  1) exact hit on the trimmed name in the flat index
  2) exact hit on normalize_text(name) in the index
  3) token fallback: every token longer than 2 characters must appear in a
     product's normalized name; first product in feed order wins

The index holds both the raw product id and the normalized name as keys,
so stages 1-2 are dict lookups. Stage 3 scans the product list.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from rapidfuzz import fuzz, process

from Palm_Task.domain.models import ProductImage
from Palm_Task.utils.normalization import normalize_text

MIN_TOKEN_LENGTH = 3


@dataclass
class ImageMatch:
    url: Optional[str]
    method: str                  # "exact", "normalized", "tokens", "none"
    normalized_input: str
    matched_name: Optional[str] = None


def build_image_index(images: Sequence[ProductImage]) -> Dict[str, str]:
    """
    {id: url, normalized_name: url} for every image.
    Collisions keep the later image (feed order).
    """
    index: Dict[str, str] = {}
    for img in images:
        index[img.id] = img.image_url
        # names made only of punctuation would otherwise claim the "" key
        if img.normalized_name:
            index[img.normalized_name] = img.image_url
    return index


def match_image(
    sku_name: str,
    index: Dict[str, str],
    images: Sequence[ProductImage],
) -> ImageMatch:
    if not sku_name or not sku_name.strip():
        return ImageMatch(url=None, method="none", normalized_input="")

    simple_key = sku_name.strip()
    target = normalize_text(sku_name)

    # 1) raw key (ids, or names already in normalized form)
    url = index.get(simple_key)
    if url:
        return ImageMatch(url=url, method="exact", normalized_input=target, matched_name=simple_key)

    # 2) normalized name
    url = index.get(target) if target else None
    if url:
        return ImageMatch(url=url, method="normalized", normalized_input=target, matched_name=target)

    # 3) token containment over the raw list
    tokens = [tok for tok in target.split() if len(tok) >= MIN_TOKEN_LENGTH]
    if tokens:
        for img in images:
            if all(tok in img.normalized_name for tok in tokens):
                return ImageMatch(
                    url=img.image_url,
                    method="tokens",
                    normalized_input=target,
                    matched_name=img.name,
                )

    return ImageMatch(url=None, method="none", normalized_input=target)


def resolve_image(
    sku_name: str,
    index: Dict[str, str],
    images: Sequence[ProductImage],
) -> Optional[str]:
    """Image URL for `sku_name`, or None."""
    return match_image(sku_name, index, images).url


class ImageResolver:
    """
    Product list plus its flat index, for repeated lookups.

    Build once per load/sync; resolution never touches the network or store.
    """

    def __init__(self, images: Sequence[ProductImage]) -> None:
        self.images: List[ProductImage] = list(images)
        self.index: Dict[str, str] = build_image_index(self.images)

    def match(self, sku_name: str) -> ImageMatch:
        return match_image(sku_name, self.index, self.images)

    def resolve(self, sku_name: str) -> Optional[str]:
        return match_image(sku_name, self.index, self.images).url

    def unresolved(self, sku_names: Sequence[str]) -> List[str]:
        """Distinct SKU names with no image, in first-seen order."""
        seen = set()
        missing = []
        for name in sku_names:
            if name in seen:
                continue
            seen.add(name)
            if self.resolve(name) is None:
                missing.append(name)
        return missing

    def suggest(self, sku_name: str, limit: int = 3, min_score: float = 60.0) -> List[Tuple[str, float]]:
        """
        Closest catalog names for a SKU, as (name, score 0-100).

        Only for reporting SKUs that resolve() misses; resolve() never
        looks at these scores.
        """
        target = normalize_text(sku_name)
        if not target or not self.images:
            return []

        choices = [img.normalized_name for img in self.images]
        hits = process.extract(
            target,
            choices,
            scorer=fuzz.token_sort_ratio,
            limit=limit,
        )
        return [
            (self.images[idx].name, float(score))
            for _, score, idx in hits
            if score >= min_score
        ]
