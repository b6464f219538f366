"""Favorites state and its optimistic sync to the profile store.

Each (domain, item id) pair is either favorited or not. ``toggle`` flips the
local membership immediately, then asks the profile store to add or remove
the id. If the store call fails, a compensating action puts back the last
membership the store confirmed for that single id; the rest of the domain's
set is never touched, so concurrent toggles on other items survive.

Ordering rules:
- Store calls for the same (domain, id) go out one at a time, in request
  order. Calls for different ids do not wait on each other.
- A failed toggle only rolls back if no newer toggle for the same id has been
  requested; otherwise the newer one decides the final state.
- Toggles requested while a profile is being hydrated wait for hydration to
  settle, then apply against the hydrated set.
- Results that arrive after the session changed (sign-out or a different
  user) are dropped.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple, TypeVar, Union

import structlog

from .auth import Identity
from .catalog.models import CatalogItem, Domain
from .store.base import ProfileStore, SetOp, StoreError

log = structlog.get_logger()

T = TypeVar("T", bound=CatalogItem)

FAILURE_MESSAGE = "Couldn't update favorites. Please try again."


class FavoritesState:
    """Domain -> set of favorited item ids."""

    def __init__(self, initial: Optional[Mapping[Domain, Iterable[str]]] = None):
        self._sets: Dict[Domain, Set[str]] = {domain: set() for domain in Domain}
        if initial:
            self.replace(initial)

    def contains(self, domain: Domain, item_id: str) -> bool:
        return item_id in self._sets[domain]

    def add(self, domain: Domain, item_id: str) -> None:
        self._sets[domain].add(item_id)

    def discard(self, domain: Domain, item_id: str) -> None:
        self._sets[domain].discard(item_id)

    def set_membership(self, domain: Domain, item_id: str, member: bool) -> None:
        if member:
            self.add(domain, item_id)
        else:
            self.discard(domain, item_id)

    def ids(self, domain: Domain) -> FrozenSet[str]:
        return frozenset(self._sets[domain])

    def replace(self, favorites: Mapping[Domain, Iterable[str]]) -> None:
        for domain in Domain:
            self._sets[domain] = set(favorites.get(domain, ()))

    def clear(self) -> None:
        for ids in self._sets.values():
            ids.clear()

    def snapshot(self) -> Dict[Domain, FrozenSet[str]]:
        return {domain: frozenset(ids) for domain, ids in self._sets.items()}

    def is_empty(self) -> bool:
        return not any(self._sets.values())

    def __len__(self) -> int:
        return sum(len(ids) for ids in self._sets.values())


class ToggleStatus(str, Enum):
    APPLIED = "applied"
    ROLLED_BACK = "rolled_back"
    SIGN_IN_REQUIRED = "sign_in_required"
    DISCARDED = "discarded"


@dataclass
class ToggleResult:
    status: ToggleStatus
    domain: Domain
    item_id: str
    favorited: bool = False  # local membership once this toggle settled
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is ToggleStatus.APPLIED


@dataclass
class _KeyState:
    """Bookkeeping for one (domain, id) while toggles are in flight."""
    confirmed: bool
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    latest: int = 0
    inflight: int = 0


class FavoritesManager:
    """Client-side favorites with optimistic updates and rollback."""

    def __init__(self, store: ProfileStore):
        self.state = FavoritesState()
        self._store = store
        self._identity: Optional[Identity] = None
        self._generation = 0
        self._hydrated = asyncio.Event()
        self._hydrated.set()
        self._keys: Dict[Tuple[Domain, str], _KeyState] = {}

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def hydrated(self) -> bool:
        return self._hydrated.is_set()

    # --- Session transitions ---

    def begin_hydration(self, identity: Identity) -> int:
        """Switch to ``identity`` with an empty set; returns the hydration token."""
        self._generation += 1
        self._identity = identity
        self._keys = {}
        self.state.clear()
        self._hydrated.clear()
        return self._generation

    def hydrate(self, token: int, favorites: Mapping[Domain, Iterable[str]]) -> bool:
        """Load fetched favorites unless the session moved on since ``token``."""
        if token != self._generation:
            log.debug("favorites_hydration_stale", token=token, generation=self._generation)
            return False
        self.state.replace(favorites)
        self._hydrated.set()
        return True

    def clear(self) -> None:
        """Anonymous session: no identity, no favorites."""
        self._generation += 1
        self._identity = None
        self._keys = {}
        self.state.clear()
        self._hydrated.set()

    # --- Reads ---

    def is_favorite(self, domain: Domain, item_id: str) -> bool:
        return self.state.contains(domain, item_id)

    def annotate(self, domain: Domain, items: Iterable[T]) -> List[Tuple[T, bool]]:
        ids = self.state.ids(domain)
        return [(item, item.id in ids) for item in items]

    def snapshot(self) -> Dict[Domain, FrozenSet[str]]:
        return self.state.snapshot()

    # --- Toggle ---

    async def toggle(self, domain: Union[Domain, str], item_id: str) -> ToggleResult:
        domain = Domain(domain)
        if self._identity is None:
            return ToggleResult(ToggleStatus.SIGN_IN_REQUIRED, domain, item_id)

        requested_by = self._identity.uid
        await self._hydrated.wait()
        identity = self._identity
        if identity is None:
            return ToggleResult(ToggleStatus.SIGN_IN_REQUIRED, domain, item_id)
        if identity.uid != requested_by:
            # Requested by the previous user; never apply it to this one
            return self._discarded(domain, item_id)

        generation = self._generation
        key = (domain, item_id)
        was_favorite = self.state.contains(domain, item_id)

        ks = self._keys.get(key)
        if ks is None:
            # Nothing in flight, so local membership is what the store holds
            ks = self._keys[key] = _KeyState(confirmed=was_favorite)
        ks.latest += 1
        seq = ks.latest
        ks.inflight += 1

        self.state.set_membership(domain, item_id, not was_favorite)
        op = SetOp.REMOVE if was_favorite else SetOp.ADD

        error: Optional[StoreError] = None
        try:
            async with ks.lock:
                if generation != self._generation:
                    return self._discarded(domain, item_id)
                try:
                    await self._store.mutate_set_field(identity.uid, domain, item_id, op)
                except StoreError as e:
                    error = e
        finally:
            ks.inflight -= 1
            if ks.inflight == 0 and self._keys.get(key) is ks:
                del self._keys[key]

        if generation != self._generation:
            return self._discarded(domain, item_id)

        if error is None:
            ks.confirmed = not was_favorite
            return ToggleResult(ToggleStatus.APPLIED, domain, item_id, favorited=not was_favorite)

        log.warning(
            "favorite_toggle_failed",
            domain=domain.value,
            item_id=item_id,
            op=op.value,
            error=str(error),
        )
        if ks.latest == seq:
            self.state.set_membership(domain, item_id, ks.confirmed)
        return ToggleResult(
            ToggleStatus.ROLLED_BACK,
            domain,
            item_id,
            favorited=self.state.contains(domain, item_id),
            message=FAILURE_MESSAGE,
        )

    def _discarded(self, domain: Domain, item_id: str) -> ToggleResult:
        log.info("favorite_toggle_discarded", domain=domain.value, item_id=item_id)
        return ToggleResult(ToggleStatus.DISCARDED, domain, item_id)
