"""Filter Engine.

Narrows a catalog by free-text query and category/source facets. Matching is
plain case-insensitive substring containment; results keep catalog order.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, TypeVar, Union

from .models import ALL_CATEGORIES, CatalogItem, SourceFacet

T = TypeVar("T", bound=CatalogItem)


@dataclass(frozen=True)
class FilterCriteria:
    """Ephemeral search state for one listing."""
    query: str = ""
    category: str = ALL_CATEGORIES
    source: Optional[SourceFacet] = None

    def __post_init__(self):
        if isinstance(self.source, str):
            object.__setattr__(self, "source", SourceFacet(self.source))


def category_matches(item: CatalogItem, category: str) -> bool:
    return category == ALL_CATEGORIES or item.category == category


def source_matches(item: CatalogItem, source: Optional[Union[SourceFacet, str]]) -> bool:
    if source is None:
        return True
    facet = SourceFacet(source)
    if facet is SourceFacet.ALL:
        return True
    item_source = getattr(item, "source", None)
    return item_source is not None and SourceFacet(item_source) is facet


def search_matches(item: CatalogItem, query: str) -> bool:
    """True if ``query`` occurs in any searchable text of the item."""
    # Surrounding whitespace is ignored, so "  " searches like ""
    needle = query.strip().lower()
    if not needle:
        return True
    return any(needle in (text or "").lower() for text in item.search_fields())


def matches(item: CatalogItem, criteria: FilterCriteria) -> bool:
    return (
        category_matches(item, criteria.category)
        and source_matches(item, criteria.source)
        and search_matches(item, criteria.query)
    )


def filter_items(items: Iterable[T], criteria: FilterCriteria) -> List[T]:
    """Return the stable subsequence of ``items`` matching ``criteria``."""
    return [item for item in items if matches(item, criteria)]


def category_counts(items: Sequence[CatalogItem]) -> Dict[str, int]:
    """Items per category, with the "All" total first."""
    counts = Counter(item.category for item in items)
    result = {ALL_CATEGORIES: len(items)}
    result.update(counts)
    return result


def source_counts(items: Sequence[CatalogItem]) -> Dict[str, int]:
    """Official/community split for items that carry a source facet."""
    result = {SourceFacet.OFFICIAL.value: 0, SourceFacet.COMMUNITY.value: 0}
    for item in items:
        source = getattr(item, "source", None)
        if source is not None:
            result[SourceFacet(source).value] += 1
    return result
