"""In-process profile store.

Used for ephemeral sessions and as the reference backend in tests.
"""

from __future__ import annotations

import copy
import uuid
from typing import Any, Dict, List, Optional

from ..catalog.models import Domain
from .base import RemoteProfile, SetOp, StoreError, utcnow


class MemoryStore:
    """Dict-backed profile and submission store."""

    def __init__(self) -> None:
        self.profiles: Dict[str, Dict[str, Any]] = {}
        self.submissions: Dict[str, Dict[str, Any]] = {}

    async def get(self, uid: str) -> Optional[RemoteProfile]:
        doc = self.profiles.get(uid)
        if doc is None:
            return None
        return RemoteProfile.from_document(copy.deepcopy(doc))

    async def create(self, uid: str, profile: RemoteProfile) -> None:
        if uid in self.profiles:
            return
        doc = profile.to_document()
        doc["uid"] = uid
        doc["createdAt"] = doc["createdAt"] or utcnow()
        self.profiles[uid] = doc

    async def mutate_set_field(self, uid: str, domain: Domain, item_id: str, op: SetOp) -> None:
        doc = self.profiles.get(uid)
        if doc is None:
            raise StoreError(f"No profile for uid {uid!r}")
        ids: List[str] = doc["favorites"].setdefault(domain.value, [])
        if SetOp(op) is SetOp.ADD:
            if item_id not in ids:
                ids.append(item_id)
        elif item_id in ids:
            ids.remove(item_id)

    async def add_submission(self, record: Dict[str, Any]) -> str:
        submission_id = uuid.uuid4().hex
        self.submissions[submission_id] = {**record, "createdAt": utcnow()}
        return submission_id

    async def list_submissions(self, uid: str) -> List[Dict[str, Any]]:
        return [
            {"id": sid, **copy.deepcopy(doc)}
            for sid, doc in self.submissions.items()
            if doc.get("submittedBy") == uid
        ]
