"""Cloud Firestore profile store.

Profiles live in the ``users`` collection keyed by uid; submissions in
``submissions``. Favorites are updated with ``ArrayUnion``/``ArrayRemove`` so
concurrent writers never overwrite each other's lists.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from google.api_core import exceptions as gexc
from google.auth import exceptions as gauth_exc
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from ..catalog.models import Domain
from .base import RemoteProfile, SetOp, StoreError

log = structlog.get_logger()

USERS = "users"
SUBMISSIONS = "submissions"

# Server-side errors, plus credential and transport failures from google-auth
FAILURES = (gexc.GoogleAPIError, gauth_exc.GoogleAuthError)


class FirestoreStore:
    """Profile and submission store on Firestore (async client)."""

    def __init__(
        self,
        project: Optional[str] = None,
        database: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        self._project = project or None
        self._database = database or None
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = firestore.AsyncClient(project=self._project, database=self._database)
        return self._client

    def _user(self, uid: str) -> Any:
        return self.client.collection(USERS).document(uid)

    # --- Profiles ---

    async def get(self, uid: str) -> Optional[RemoteProfile]:
        try:
            snap = await self._user(uid).get()
        except FAILURES as e:
            raise StoreError(f"Profile read failed for {uid!r}: {e}") from e
        if not snap.exists:
            return None
        data = snap.to_dict() or {}
        data.setdefault("uid", uid)
        return RemoteProfile.from_document(data)

    async def create(self, uid: str, profile: RemoteProfile) -> None:
        doc = profile.to_document()
        doc["uid"] = uid
        doc["createdAt"] = firestore.SERVER_TIMESTAMP
        try:
            await self._user(uid).create(doc)
        except gexc.AlreadyExists:
            log.debug("profile_exists", uid=uid)
        except FAILURES as e:
            raise StoreError(f"Profile create failed for {uid!r}: {e}") from e

    async def mutate_set_field(self, uid: str, domain: Domain, item_id: str, op: SetOp) -> None:
        transform = firestore.ArrayUnion([item_id]) if SetOp(op) is SetOp.ADD else firestore.ArrayRemove([item_id])
        try:
            await self._user(uid).update({f"favorites.{domain.value}": transform})
        except FAILURES as e:
            raise StoreError(f"Favorites {op.value} failed for {uid!r}: {e}") from e

    # --- Submissions ---

    async def add_submission(self, record: Dict[str, Any]) -> str:
        try:
            _, ref = await self.client.collection(SUBMISSIONS).add(
                {**record, "createdAt": firestore.SERVER_TIMESTAMP}
            )
        except FAILURES as e:
            raise StoreError(f"Submission failed: {e}") from e
        return ref.id

    async def list_submissions(self, uid: str) -> List[Dict[str, Any]]:
        results: List[Dict[str, Any]] = []
        try:
            query = self.client.collection(SUBMISSIONS).where(filter=FieldFilter("submittedBy", "==", uid))
            async for snap in query.stream():
                results.append({"id": snap.id, **(snap.to_dict() or {})})
        except FAILURES as e:
            raise StoreError(f"Submission listing failed for {uid!r}: {e}") from e
        return results
