"""Profile store contract.

A profile store keeps one document per uid:

    {uid, email, displayName, photoURL,
     favorites: {skills: [...], mcpServers: [...], tools: [...], plugins: [...]},
     createdAt}

and a flat collection of skill submissions. Favorites lists have set
semantics: adding an id that is present and removing one that is absent are
both no-ops. Every backend raises :class:`StoreError` on failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from ..catalog.models import Domain


class StoreError(Exception):
    """Profile or submission store failure."""
    pass


class SetOp(str, Enum):
    ADD = "add"
    REMOVE = "remove"


def empty_favorites() -> Dict[Domain, List[str]]:
    return {domain: [] for domain in Domain}


@dataclass
class RemoteProfile:
    """Server-side mirror of a user's favorites."""
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    favorites: Dict[Domain, List[str]] = field(default_factory=empty_favorites)
    created_at: Optional[datetime] = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "uid": self.uid,
            "email": self.email,
            "displayName": self.display_name,
            "photoURL": self.photo_url,
            "favorites": {d.value: list(self.favorites.get(d, [])) for d in Domain},
            "createdAt": self.created_at,
        }

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "RemoteProfile":
        raw = data.get("favorites") or {}
        favorites = empty_favorites()
        for domain in Domain:
            # Older documents predate some domains
            favorites[domain] = [str(i) for i in raw.get(domain.value) or []]
        created = data.get("createdAt")
        if isinstance(created, str):
            created = datetime.fromisoformat(created)
        return cls(
            uid=data["uid"],
            email=data.get("email"),
            display_name=data.get("displayName"),
            photo_url=data.get("photoURL"),
            favorites=favorites,
            created_at=created,
        )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProfileStore(Protocol):
    async def get(self, uid: str) -> Optional[RemoteProfile]: ...

    async def create(self, uid: str, profile: RemoteProfile) -> None: ...

    async def mutate_set_field(self, uid: str, domain: Domain, item_id: str, op: SetOp) -> None: ...


class SubmissionStore(Protocol):
    async def add_submission(self, record: Dict[str, Any]) -> str: ...

    async def list_submissions(self, uid: str) -> List[Dict[str, Any]]: ...
