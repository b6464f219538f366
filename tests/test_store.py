"""Tests for profile store backends."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from google.api_core import exceptions as gexc
from google.auth import exceptions as gauth_exc
from google.cloud import firestore

from crowcode.catalog.models import Domain
from crowcode.config import Settings
from crowcode.store import LocalStore, MemoryStore, open_store
from crowcode.store.base import RemoteProfile, SetOp, StoreError, empty_favorites
from crowcode.store.firestore import FirestoreStore


@pytest.fixture(params=["memory", "local"])
def backend(request, tmp_path):
    if request.param == "memory":
        return MemoryStore()
    return LocalStore(tmp_path / "data")


class TestRemoteProfile:
    """Tests for the profile document shape."""

    def test_document_has_every_domain(self):
        """Test favorites serialize under all four domain keys."""
        doc = RemoteProfile(uid="u1", favorites={Domain.SKILLS: ["a"]}).to_document()
        assert doc["favorites"] == {"skills": ["a"], "mcpServers": [], "tools": [], "plugins": []}
        assert doc["photoURL"] is None

    def test_from_document_parses_iso_timestamp(self):
        """Test string timestamps from JSON files are parsed."""
        profile = RemoteProfile.from_document({"uid": "u1", "createdAt": "2024-05-01T12:00:00+00:00"})
        assert profile.created_at == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)
        assert profile.favorites == empty_favorites()


class TestProfileBackends:
    """Behavior shared by the memory and JSON-file stores."""

    async def test_get_missing(self, backend):
        """Test an unknown uid reads as None."""
        assert await backend.get("nobody") is None

    async def test_create_then_get(self, backend):
        """Test a created profile reads back with empty favorites."""
        await backend.create("u1", RemoteProfile(uid="u1", email="a@b.c"))
        profile = await backend.get("u1")
        assert profile.uid == "u1"
        assert profile.email == "a@b.c"
        assert profile.favorites == empty_favorites()
        assert profile.created_at is not None

    async def test_create_does_not_overwrite(self, backend):
        """Test a second create keeps the first document."""
        await backend.create("u1", RemoteProfile(uid="u1", favorites={Domain.TOOLS: ["x"]}))
        await backend.create("u1", RemoteProfile(uid="u1"))
        profile = await backend.get("u1")
        assert profile.favorites[Domain.TOOLS] == ["x"]

    async def test_set_semantics(self, backend):
        """Test repeated adds and absent removes are no-ops."""
        await backend.create("u1", RemoteProfile(uid="u1"))
        await backend.mutate_set_field("u1", Domain.SKILLS, "a", SetOp.ADD)
        await backend.mutate_set_field("u1", Domain.SKILLS, "a", SetOp.ADD)
        await backend.mutate_set_field("u1", Domain.SKILLS, "b", SetOp.ADD)
        await backend.mutate_set_field("u1", Domain.SKILLS, "zzz", SetOp.REMOVE)
        await backend.mutate_set_field("u1", Domain.SKILLS, "a", SetOp.REMOVE)
        profile = await backend.get("u1")
        assert profile.favorites[Domain.SKILLS] == ["b"]
        assert profile.favorites[Domain.PLUGINS] == []

    async def test_mutate_without_profile_fails(self, backend):
        """Test updating a missing profile raises StoreError."""
        with pytest.raises(StoreError):
            await backend.mutate_set_field("ghost", Domain.SKILLS, "a", SetOp.ADD)

    async def test_submissions_filtered_by_user(self, backend):
        """Test listing only returns the caller's submissions."""
        mine = await backend.add_submission({"name": "A", "submittedBy": "u1"})
        await backend.add_submission({"name": "B", "submittedBy": "u2"})
        records = await backend.list_submissions("u1")
        assert [r["id"] for r in records] == [mine]
        assert records[0]["name"] == "A"
        assert records[0]["createdAt"]


class TestLocalStore:
    """Tests specific to the JSON-file store."""

    async def test_writes_json_file(self, tmp_path):
        """Test profiles are persisted as readable JSON."""
        store = LocalStore(tmp_path)
        await store.create("u1", RemoteProfile(uid="u1"))
        await store.mutate_set_field("u1", Domain.PLUGINS, "p1", SetOp.ADD)
        data = json.loads((tmp_path / "profiles.json").read_text())
        assert data["u1"]["favorites"]["plugins"] == ["p1"]
        assert isinstance(data["u1"]["createdAt"], str)

    async def test_shared_directory(self, tmp_path):
        """Test two stores on one directory see each other's writes."""
        a, b = LocalStore(tmp_path), LocalStore(tmp_path)
        await a.create("u1", RemoteProfile(uid="u1"))
        await b.mutate_set_field("u1", Domain.TOOLS, "cursor", SetOp.ADD)
        assert (await a.get("u1")).favorites[Domain.TOOLS] == ["cursor"]

    async def test_corrupt_file_raises(self, tmp_path):
        """Test unreadable JSON surfaces as StoreError."""
        (tmp_path / "profiles.json").write_text("{not json")
        with pytest.raises(StoreError):
            await LocalStore(tmp_path).get("u1")


def firestore_client():
    client = MagicMock()
    doc_ref = client.collection.return_value.document.return_value
    return client, doc_ref


class TestFirestoreStore:
    """Tests for the Firestore backend against a mocked AsyncClient."""

    async def test_get_missing(self):
        """Test a nonexistent document reads as None."""
        client, doc_ref = firestore_client()
        doc_ref.get = AsyncMock(return_value=MagicMock(exists=False))
        store = FirestoreStore(client=client)
        assert await store.get("u1") is None
        client.collection.assert_called_with("users")
        client.collection.return_value.document.assert_called_with("u1")

    async def test_get_existing(self):
        """Test a stored document becomes a RemoteProfile."""
        client, doc_ref = firestore_client()
        snap = MagicMock(exists=True)
        snap.to_dict.return_value = {"email": "a@b.c", "favorites": {"skills": ["x"]}}
        doc_ref.get = AsyncMock(return_value=snap)
        profile = await FirestoreStore(client=client).get("u1")
        assert profile.uid == "u1"
        assert profile.favorites[Domain.SKILLS] == ["x"]
        assert profile.favorites[Domain.TOOLS] == []

    async def test_create_uses_server_timestamp(self):
        """Test create writes the document with a server timestamp."""
        client, doc_ref = firestore_client()
        doc_ref.create = AsyncMock()
        await FirestoreStore(client=client).create("u1", RemoteProfile(uid="u1"))
        doc = doc_ref.create.call_args[0][0]
        assert doc["createdAt"] is firestore.SERVER_TIMESTAMP
        assert doc["favorites"]["mcpServers"] == []

    async def test_create_existing_is_noop(self):
        """Test AlreadyExists from create is swallowed."""
        client, doc_ref = firestore_client()
        doc_ref.create = AsyncMock(side_effect=gexc.AlreadyExists("exists"))
        await FirestoreStore(client=client).create("u1", RemoteProfile(uid="u1"))

    @pytest.mark.parametrize("op,transform", [
        (SetOp.ADD, firestore.ArrayUnion),
        (SetOp.REMOVE, firestore.ArrayRemove),
    ])
    async def test_mutate_uses_array_transforms(self, op, transform):
        """Test favorites are updated with array union/remove on one field."""
        client, doc_ref = firestore_client()
        doc_ref.update = AsyncMock()
        await FirestoreStore(client=client).mutate_set_field("u1", Domain.MCP_SERVERS, "gh", op)
        update = doc_ref.update.call_args[0][0]
        assert list(update) == ["favorites.mcpServers"]
        assert isinstance(update["favorites.mcpServers"], transform)

    async def test_api_error_becomes_store_error(self):
        """Test Google API failures are wrapped."""
        client, doc_ref = firestore_client()
        doc_ref.update = AsyncMock(side_effect=gexc.ServiceUnavailable("down"))
        with pytest.raises(StoreError):
            await FirestoreStore(client=client).mutate_set_field("u1", Domain.SKILLS, "a", SetOp.ADD)

    async def test_credential_error_becomes_store_error(self):
        """Test missing or expired credentials are wrapped like API errors."""
        client, doc_ref = firestore_client()
        doc_ref.get = AsyncMock(side_effect=gauth_exc.DefaultCredentialsError("no creds"))
        doc_ref.update = AsyncMock(side_effect=gauth_exc.RefreshError("expired"))
        store = FirestoreStore(client=client)
        with pytest.raises(StoreError):
            await store.get("u1")
        with pytest.raises(StoreError):
            await store.mutate_set_field("u1", Domain.SKILLS, "a", SetOp.ADD)

    async def test_client_construction_failure_becomes_store_error(self):
        """Test a client that cannot find credentials fails as StoreError."""
        with patch("crowcode.store.firestore.firestore.AsyncClient",
                   side_effect=gauth_exc.DefaultCredentialsError("no creds")):
            store = FirestoreStore(project="demo")
            with pytest.raises(StoreError):
                await store.get("u1")
            with pytest.raises(StoreError):
                await store.list_submissions("u1")

    async def test_add_submission_returns_id(self):
        """Test the new document id is returned."""
        client = MagicMock()
        ref = MagicMock()
        ref.id = "sub-1"
        client.collection.return_value.add = AsyncMock(return_value=(None, ref))
        assert await FirestoreStore(client=client).add_submission({"name": "A"}) == "sub-1"
        client.collection.assert_called_with("submissions")

    async def test_list_submissions_streams_query(self):
        """Test submissions are streamed from a submittedBy query."""
        client = MagicMock()
        snap = MagicMock()
        snap.id = "sub-1"
        snap.to_dict.return_value = {"name": "A", "submittedBy": "u1"}

        async def stream():
            yield snap

        query = client.collection.return_value.where.return_value
        query.stream = stream
        records = await FirestoreStore(client=client).list_submissions("u1")
        assert records == [{"id": "sub-1", "name": "A", "submittedBy": "u1"}]
        field_filter = client.collection.return_value.where.call_args.kwargs["filter"]
        assert field_filter.field_path == "submittedBy"
        assert field_filter.value == "u1"


class TestOpenStore:
    """Tests for backend selection from settings."""

    def test_memory(self):
        assert isinstance(open_store(Settings(store="memory")), MemoryStore)

    def test_local_uses_data_dir(self, tmp_path):
        store = open_store(Settings(store="local", data_dir=str(tmp_path)))
        assert isinstance(store, LocalStore)
        assert store.data_dir == tmp_path

    def test_firestore(self):
        store = open_store(Settings(store="firestore", firestore_project="demo"))
        assert isinstance(store, FirestoreStore)
