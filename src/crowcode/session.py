"""Identity Session and Profile Bootstrap.

``IdentitySession`` is the explicit session context for a running front end:
it follows the auth capability (LOADING -> AUTHENTICATED | ANONYMOUS), runs
the profile bootstrap on every sign-in, and owns the favorites manager that
toggles go through.

Usage:

    async with IdentitySession(auth, store) as session:
        await session.wait_settled()
        result = await session.toggle_favorite(Domain.SKILLS, "pdf-writer")
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Set

import structlog

from .auth import AuthCapability, AuthError, AuthProvider, Identity, Unsubscribe
from .catalog.models import Domain
from .favorites import FavoritesManager, ToggleResult
from .store.base import ProfileStore, RemoteProfile, StoreError, empty_favorites, utcnow

log = structlog.get_logger()


class SessionState(str, Enum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


@dataclass
class SignInResult:
    identity: Optional[Identity] = None
    cancelled: bool = False
    message: Optional[str] = None  # transient, user-facing

    @property
    def ok(self) -> bool:
        return self.identity is not None


class ProfileBootstrap:
    """Fetch-or-create the remote profile for an identity and hydrate favorites."""

    def __init__(self, store: ProfileStore, favorites: FavoritesManager):
        self._store = store
        self._favorites = favorites

    async def run(self, identity: Identity, token: int) -> Optional[RemoteProfile]:
        """Returns the profile, or ``None`` when the store could not be reached.

        Either way favorites end up hydrated for ``token`` (empty on failure),
        so queued toggles are released. Hydration also settles when an
        unexpected error propagates.
        """
        favorites: Dict[Domain, List[str]] = {}
        try:
            profile = await self._fetch_or_create(identity)
            favorites = profile.favorites
        except StoreError as e:
            log.warning("profile_bootstrap_failed", uid=identity.uid, error=str(e))
            return None
        finally:
            self._favorites.hydrate(token, favorites)

        log.info(
            "profile_hydrated",
            uid=identity.uid,
            favorites=sum(len(ids) for ids in profile.favorites.values()),
        )
        return profile

    async def _fetch_or_create(self, identity: Identity) -> RemoteProfile:
        profile = await self._store.get(identity.uid)
        if profile is not None:
            return profile

        fresh = RemoteProfile(
            uid=identity.uid,
            email=identity.email,
            display_name=identity.display_name,
            photo_url=identity.photo_url,
            favorites=empty_favorites(),
            created_at=utcnow(),
        )
        await self._store.create(identity.uid, fresh)
        log.info("profile_created", uid=identity.uid)

        # create() is a no-op if another client won the race, so read back
        try:
            stored = await self._store.get(identity.uid)
        except StoreError as e:
            log.info("profile_refetch_failed", uid=identity.uid, error=str(e))
            return fresh
        return stored if stored is not None else fresh


class IdentitySession:
    """Current identity, profile and favorites for one front end."""

    def __init__(
        self,
        auth: AuthCapability,
        store: ProfileStore,
        favorites: Optional[FavoritesManager] = None,
    ):
        self.auth = auth
        self.store = store
        self.favorites = favorites or FavoritesManager(store)
        self.bootstrap = ProfileBootstrap(store, self.favorites)
        self.state = SessionState.LOADING
        self.identity: Optional[Identity] = None
        self.profile: Optional[RemoteProfile] = None
        self._epoch = 0
        self._unsubscribe: Optional[Unsubscribe] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[Callable[[SessionState, Optional[Identity]], None]] = []

    async def __aenter__(self) -> "IdentitySession":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        self.stop()
        await self.wait_settled()

    # --- Lifecycle ---

    async def start(self) -> None:
        """Subscribe to the auth capability. Idempotent."""
        if self._unsubscribe is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._unsubscribe = self.auth.subscribe(self._on_auth_change)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def wait_settled(self) -> None:
        """Wait until every scheduled identity transition has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def add_listener(self, listener: Callable[[SessionState, Optional[Identity]], None]) -> None:
        self._listeners.append(listener)

    # --- Transitions ---

    def _on_auth_change(self, identity: Optional[Identity]) -> None:
        if self._loop is None:
            raise RuntimeError("IdentitySession.start() was not awaited")
        task = self._loop.create_task(self.handle_identity(identity))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def handle_identity(self, identity: Optional[Identity]) -> None:
        """Apply an identity change reported by the auth capability."""
        self._epoch += 1
        epoch = self._epoch

        if identity is None:
            self.identity = None
            self.profile = None
            self.favorites.clear()
            self._set_state(SessionState.ANONYMOUS)
            return

        self.identity = identity
        self.profile = None
        token = self.favorites.begin_hydration(identity)
        self._set_state(SessionState.AUTHENTICATED)

        profile = await self.bootstrap.run(identity, token)
        if epoch == self._epoch:
            self.profile = profile
        else:
            log.debug("profile_bootstrap_superseded", uid=identity.uid)

    def _set_state(self, state: SessionState) -> None:
        self.state = state
        log.debug("session_state", state=state.value, uid=self.identity.uid if self.identity else None)
        for listener in list(self._listeners):
            listener(state, self.identity)

    # --- User actions ---

    async def sign_in(self, provider: AuthProvider) -> SignInResult:
        try:
            identity = await self.auth.sign_in(provider)
        except AuthError as e:
            if e.cancelled:
                log.debug("sign_in_cancelled", provider=provider.value)
                return SignInResult(cancelled=True)
            log.warning("sign_in_failed", provider=provider.value, code=e.code)
            return SignInResult(message=str(e) or f"Failed to sign in with {provider.name.title()}")
        await self.wait_settled()
        return SignInResult(identity=identity)

    async def sign_out(self) -> None:
        await self.auth.sign_out()
        await self.wait_settled()

    async def toggle_favorite(self, domain: Domain, item_id: str) -> ToggleResult:
        return await self.favorites.toggle(domain, item_id)
