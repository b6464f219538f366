"""JSON-file profile store.

Keeps ``profiles.json`` and ``submissions.json`` under the crowcode data
directory. Every call re-reads the file so several terminals sharing one
data directory see each other's writes (last write wins).
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from ..catalog.models import Domain
from .base import RemoteProfile, SetOp, StoreError, utcnow

log = structlog.get_logger()


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class LocalStore:
    """Profile and submission store backed by JSON files."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.profiles_path = self.data_dir / "profiles.json"
        self.submissions_path = self.data_dir / "submissions.json"

    def _load(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StoreError(f"Cannot read {path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"{path} is not a JSON object")
        return data

    def _save(self, path: Path, data: Dict[str, Any]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(json.dumps(data, indent=2, default=_encode), encoding="utf-8")
            tmp.replace(path)
        except OSError as e:
            raise StoreError(f"Cannot write {path}: {e}") from e

    # --- Profiles ---

    async def get(self, uid: str) -> Optional[RemoteProfile]:
        doc = self._load(self.profiles_path).get(uid)
        if doc is None:
            return None
        return RemoteProfile.from_document(doc)

    async def create(self, uid: str, profile: RemoteProfile) -> None:
        profiles = self._load(self.profiles_path)
        if uid in profiles:
            return
        doc = profile.to_document()
        doc["uid"] = uid
        doc["createdAt"] = doc["createdAt"] or utcnow()
        profiles[uid] = doc
        self._save(self.profiles_path, profiles)
        log.debug("profile_created", uid=uid, path=str(self.profiles_path))

    async def mutate_set_field(self, uid: str, domain: Domain, item_id: str, op: SetOp) -> None:
        profiles = self._load(self.profiles_path)
        doc = profiles.get(uid)
        if doc is None:
            raise StoreError(f"No profile for uid {uid!r}")
        favorites = doc.setdefault("favorites", {})
        ids = favorites.setdefault(domain.value, [])
        if SetOp(op) is SetOp.ADD:
            if item_id in ids:
                return
            ids.append(item_id)
        else:
            if item_id not in ids:
                return
            ids.remove(item_id)
        self._save(self.profiles_path, profiles)

    # --- Submissions ---

    async def add_submission(self, record: Dict[str, Any]) -> str:
        submissions = self._load(self.submissions_path)
        submission_id = uuid.uuid4().hex
        submissions[submission_id] = {**record, "createdAt": utcnow()}
        self._save(self.submissions_path, submissions)
        return submission_id

    async def list_submissions(self, uid: str) -> List[Dict[str, Any]]:
        submissions = self._load(self.submissions_path)
        return [
            {"id": sid, **doc}
            for sid, doc in submissions.items()
            if doc.get("submittedBy") == uid
        ]
