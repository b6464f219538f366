"""Catalog Store for crowcode.

Loads the curated item lists bundled with the package (one JSON file per
domain) and serves them read-only for the rest of the process.
"""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

import structlog

from .models import CATEGORIES, Domain, ITEM_TYPES, CatalogItem

log = structlog.get_logger()

DATA_FILES = {
    Domain.SKILLS: "skills.json",
    Domain.MCP_SERVERS: "mcp_servers.json",
    Domain.TOOLS: "tools.json",
    Domain.PLUGINS: "plugins.json",
}


class CatalogError(Exception):
    """Malformed catalog data or unknown catalog item."""
    pass


class CatalogStore:
    """Immutable, per-domain lists of catalog items.

    Item order is the curated order from the data files; the filter engine
    preserves it.
    """

    _default: Optional["CatalogStore"] = None

    def __init__(self, items: Dict[Domain, List[CatalogItem]]):
        self._items: Dict[Domain, Tuple[CatalogItem, ...]] = {
            domain: tuple(items.get(domain, [])) for domain in Domain
        }
        self._by_id: Dict[Domain, Dict[str, CatalogItem]] = {}
        for domain, domain_items in self._items.items():
            index: Dict[str, CatalogItem] = {}
            for item in domain_items:
                if item.id in index:
                    raise CatalogError(f"Duplicate {domain.value} id: {item.id!r}")
                if item.category not in CATEGORIES[domain]:
                    raise CatalogError(
                        f"{domain.value} item {item.id!r} has unknown category {item.category!r}"
                    )
                index[item.id] = item
            self._by_id[domain] = index

    # --- Loading ---

    @classmethod
    def from_records(cls, records: Dict[Domain, List[dict]]) -> "CatalogStore":
        """Build a store from raw JSON-style records."""
        items: Dict[Domain, List[CatalogItem]] = {}
        for domain, rows in records.items():
            item_cls = ITEM_TYPES[domain]
            parsed = []
            for row in rows:
                try:
                    parsed.append(item_cls.from_dict(row))
                except (KeyError, TypeError, ValueError) as e:
                    raise CatalogError(f"Invalid {domain.value} record {row!r}: {e}") from e
            items[domain] = parsed
        return cls(items)

    @classmethod
    def from_directory(cls, path: Path) -> "CatalogStore":
        """Load catalog JSON files from a directory. Missing files mean an empty domain."""
        records: Dict[Domain, List[dict]] = {}
        for domain, filename in DATA_FILES.items():
            file = path / filename
            if not file.exists():
                records[domain] = []
                continue
            records[domain] = _read_records(file.read_text(encoding="utf-8"), filename)
        return cls.from_records(records)

    @classmethod
    def bundled(cls) -> "CatalogStore":
        """Load the catalog shipped inside the package."""
        data_dir = resources.files("crowcode.catalog").joinpath("data")
        records: Dict[Domain, List[dict]] = {}
        for domain, filename in DATA_FILES.items():
            text = data_dir.joinpath(filename).read_text(encoding="utf-8")
            records[domain] = _read_records(text, filename)
        store = cls.from_records(records)
        log.debug("catalog_loaded", **{d.value: len(store.items(d)) for d in Domain})
        return store

    @classmethod
    def default(cls) -> "CatalogStore":
        """Process-wide bundled catalog, loaded on first use."""
        if cls._default is None:
            cls._default = cls.bundled()
        return cls._default

    # --- Queries ---

    def items(self, domain: Domain) -> List[CatalogItem]:
        return list(self._items[domain])

    def get(self, domain: Domain, item_id: str) -> CatalogItem:
        try:
            return self._by_id[domain][item_id]
        except KeyError:
            raise CatalogError(f"No {domain.value} item with id {item_id!r}") from None

    def find(self, domain: Domain, item_id: str) -> Optional[CatalogItem]:
        return self._by_id[domain].get(item_id)

    def contains(self, domain: Domain, item_id: str) -> bool:
        return item_id in self._by_id[domain]

    def __iter__(self) -> Iterator[CatalogItem]:
        for domain in Domain:
            yield from self._items[domain]

    def __len__(self) -> int:
        return sum(len(v) for v in self._items.values())


def _read_records(text: str, filename: str) -> List[dict]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise CatalogError(f"{filename} is not valid JSON: {e}") from e
    # Accept either a bare list or {"items": [...]}
    rows = data if isinstance(data, list) else data.get("items", [])
    if not isinstance(rows, list):
        raise CatalogError(f"{filename} must contain a list of items")
    return rows
