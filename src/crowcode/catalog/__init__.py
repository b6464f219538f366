"""Catalog Module for crowcode.

Provides the curated item lists and the logic to browse them:
- Item models and per-domain categories
- The bundled, read-only catalog store
- Query/category/source filtering
- Live GitHub stats for linked repositories
"""

from .filter import FilterCriteria, category_counts, filter_items, source_counts
from .models import (
    ALL_CATEGORIES,
    CATEGORIES,
    CatalogItem,
    Domain,
    MCPServer,
    Plugin,
    Skill,
    SourceFacet,
    Tool,
)
from .store import CatalogError, CatalogStore

__all__ = [
    "ALL_CATEGORIES",
    "CATEGORIES",
    "CatalogItem",
    "CatalogError",
    "CatalogStore",
    "Domain",
    "FilterCriteria",
    "MCPServer",
    "Plugin",
    "Skill",
    "SourceFacet",
    "Tool",
    "category_counts",
    "filter_items",
    "source_counts",
]
