"""Shared fixtures for crowcode tests."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Tuple

import pytest
import structlog

from crowcode.auth import Identity
from crowcode.catalog.models import Domain, Plugin, Skill, SourceFacet
from crowcode.store.base import SetOp, StoreError
from crowcode.store.memory import MemoryStore


class ScriptedStore(MemoryStore):
    """MemoryStore whose favorites mutations can be held open or made to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: List[Tuple[str, Domain, str, SetOp]] = []
        self.gates: Dict[Tuple[Domain, str], List[asyncio.Event]] = {}
        self.failures: Dict[Tuple[Domain, str], List[bool]] = {}
        self.get_calls: List[str] = []
        self.create_calls: List[str] = []
        self.fail_get = False
        self.get_gate: Optional[asyncio.Event] = None

    def hold(self, domain: Domain, item_id: str) -> asyncio.Event:
        """Block the next mutation of this item until the returned event is set."""
        event = asyncio.Event()
        self.gates.setdefault((domain, item_id), []).append(event)
        return event

    def fail_next(self, domain: Domain, item_id: str, fail: bool = True) -> None:
        self.failures.setdefault((domain, item_id), []).append(fail)

    async def get(self, uid):
        self.get_calls.append(uid)
        if self.get_gate is not None:
            await self.get_gate.wait()
        if self.fail_get:
            raise StoreError("profile read failed")
        return await super().get(uid)

    async def create(self, uid, profile):
        self.create_calls.append(uid)
        await super().create(uid, profile)

    async def mutate_set_field(self, uid, domain, item_id, op):
        self.calls.append((uid, domain, item_id, op))
        gates = self.gates.get((domain, item_id))
        if gates:
            await gates.pop(0).wait()
        failures = self.failures.get((domain, item_id))
        if failures and failures.pop(0):
            raise StoreError("network down")
        await super().mutate_set_field(uid, domain, item_id, op)


@pytest.fixture()
def identity() -> Identity:
    return Identity(uid="u1", email="ada@example.com", display_name="Ada", provider_data=("github.com",))


@pytest.fixture()
def store() -> ScriptedStore:
    return ScriptedStore()


@pytest.fixture()
def scenario_catalog() -> List[Skill]:
    return [
        Skill(id="s1", name="Git Helper", description="", category="DevOps", tags=("git", "cli")),
        Skill(id="s2", name="PDF Writer", description="", category="Document Processing", tags=("pdf",)),
    ]


@pytest.fixture()
def plugins() -> List[Plugin]:
    return [
        Plugin(id="p1", name="Code Review", description="Reviews PRs", category="Development",
               tags=("review",), source=SourceFacet.OFFICIAL),
        Plugin(id="p2", name="Test Runner", description="Runs tests", category="Testing",
               tags=("pytest",), source=SourceFacet.COMMUNITY),
        Plugin(id="p3", name="Lint Fixer", description="Fixes lint in review", category="Development",
               tags=("lint",), source=SourceFacet.COMMUNITY),
    ]


@pytest.fixture()
def isolated_config(tmp_path, monkeypatch):
    """Point config/data dirs at a temp dir and clear crowcode env vars."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.chdir(tmp_path)
    for key in (
        "CROWCODE_STORE",
        "CROWCODE_DATA_DIR",
        "CROWCODE_FIRESTORE_PROJECT",
        "CROWCODE_FIRESTORE_DATABASE",
        "CROWCODE_GITHUB_TOKEN",
        "GITHUB_TOKEN",
        "GOOGLE_CLOUD_PROJECT",
        "CROWCODE_LOG_LEVEL",
        "CROWCODE_LOG_FORMAT",
    ):
        # set first so teardown also removes values loaded from .env files
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    return tmp_path


async def settle() -> None:
    """Let every ready task run until it blocks."""
    for _ in range(5):
        await asyncio.sleep(0)


def profile_ids(store: MemoryStore, uid: str, domain: Domain) -> Optional[List[str]]:
    doc = store.profiles.get(uid)
    return None if doc is None else doc["favorites"].get(domain.value)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo configure_logging so later tests don't write to a closed capture stream."""
    yield
    structlog.reset_defaults()
