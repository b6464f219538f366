"""Authentication capability.

The rest of crowcode only sees the :class:`AuthCapability` protocol: sign in
with a provider, sign out, and subscribe to identity changes. ``LocalAuth``
is the terminal implementation; it keeps the signed-in identity in a session
file next to the config and asks a credentials prompt for who is signing in.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Tuple

import structlog

from .config import config_dir

log = structlog.get_logger()


class AuthProvider(str, Enum):
    """Supported identity providers (values are provider ids)."""
    GOOGLE = "google.com"
    GITHUB = "github.com"
    APPLE = "apple.com"

    @classmethod
    def parse(cls, value: str) -> "AuthProvider":
        key = value.strip().lower()
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member
        raise ValueError(f"Unknown auth provider: {value!r}")


# Error codes meaning the user backed out, not that something broke
CANCELLED_CODES = frozenset({
    "auth/popup-closed-by-user",
    "auth/cancelled-popup-request",
    "auth/user-cancelled",
})


class AuthError(Exception):
    """Sign-in failure carrying a provider-specific code."""

    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code

    @property
    def cancelled(self) -> bool:
        return self.code in CANCELLED_CODES


@dataclass(frozen=True)
class Identity:
    """Signed-in user as reported by the auth capability."""
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    email_verified: bool = False
    provider_data: Tuple[str, ...] = ()

    @property
    def label(self) -> str:
        return self.display_name or self.email or "Anonymous"

    def to_dict(self) -> dict:
        return {
            "uid": self.uid,
            "email": self.email,
            "displayName": self.display_name,
            "photoURL": self.photo_url,
            "emailVerified": self.email_verified,
            "providerData": [{"providerId": p} for p in self.provider_data],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Identity":
        providers = []
        for p in data.get("providerData", []):
            providers.append(p.get("providerId", "") if isinstance(p, dict) else str(p))
        return cls(
            uid=data["uid"],
            email=data.get("email"),
            display_name=data.get("displayName"),
            photo_url=data.get("photoURL"),
            email_verified=bool(data.get("emailVerified", False)),
            provider_data=tuple(providers),
        )


IdentityCallback = Callable[[Optional[Identity]], None]
Unsubscribe = Callable[[], None]


class AuthCapability(Protocol):
    async def sign_in(self, provider: AuthProvider) -> Identity: ...

    async def sign_out(self) -> None: ...

    def subscribe(self, callback: IdentityCallback) -> Unsubscribe: ...


@dataclass
class Credentials:
    """What the user typed when asked who is signing in."""
    email: str
    display_name: str = ""
    photo_url: str = ""


CredentialsPrompt = Callable[[AuthProvider], Optional[Credentials]]


def _session_path() -> Path:
    return config_dir() / "session.json"


class LocalAuth:
    """File-backed auth capability for the terminal front end.

    The uid is derived from provider and email so signing in again with the
    same account maps to the same remote profile.
    """

    def __init__(self, prompt: Optional[CredentialsPrompt] = None, path: Optional[Path] = None):
        self._prompt = prompt
        self._path = path or _session_path()
        self._subscribers: List[IdentityCallback] = []
        self._current: Optional[Identity] = self._load()

    @property
    def current(self) -> Optional[Identity]:
        return self._current

    def _load(self) -> Optional[Identity]:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return Identity.from_dict(data)
        except (ValueError, KeyError, TypeError):
            log.warning("auth_session_unreadable", path=str(self._path))
            return None

    def _save(self, identity: Optional[Identity]) -> None:
        if identity is None:
            if self._path.exists():
                self._path.unlink()
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(identity.to_dict(), indent=2), encoding="utf-8")

    def _emit(self) -> None:
        for callback in list(self._subscribers):
            callback(self._current)

    async def sign_in(self, provider: AuthProvider) -> Identity:
        if self._prompt is None:
            raise AuthError("auth/operation-not-supported-in-this-environment",
                            "No interactive sign-in available")
        creds = self._prompt(provider)
        if creds is None or not creds.email.strip():
            raise AuthError("auth/popup-closed-by-user", "Sign-in was cancelled")
        email = creds.email.strip().lower()
        if "@" not in email:
            raise AuthError("auth/invalid-email", f"Invalid email address: {creds.email!r}")

        uid = uuid.uuid5(uuid.NAMESPACE_URL, f"{provider.value}:{email}").hex
        identity = Identity(
            uid=uid,
            email=email,
            display_name=creds.display_name or None,
            photo_url=creds.photo_url or None,
            email_verified=False,
            provider_data=(provider.value,),
        )
        self._current = identity
        self._save(identity)
        log.info("auth_signed_in", uid=uid, provider=provider.value)
        self._emit()
        return identity

    async def sign_out(self) -> None:
        self._current = None
        self._save(None)
        log.info("auth_signed_out")
        self._emit()

    def subscribe(self, callback: IdentityCallback) -> Unsubscribe:
        """Register ``callback``; it is called right away with the current state."""
        self._subscribers.append(callback)
        callback(self._current)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe
