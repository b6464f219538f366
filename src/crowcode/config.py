from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .env import load_env_files

APP = "crowcode"

STORE_BACKENDS = ("local", "memory", "firestore")


def config_dir() -> Path:
    """
    Cross-platform config directory:
      - Windows: %APPDATA%\\crowcode
      - macOS/Linux: $XDG_CONFIG_HOME/crowcode or ~/.config/crowcode
    """
    if os.name == "nt":
        base = os.environ.get("APPDATA") or str(Path.home())
        return Path(base) / APP
    return Path(os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))) / APP


def config_path() -> Path:
    return config_dir() / "config.json"


def default_data_dir() -> Path:
    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA") or str(Path.home())
        return Path(base) / APP / "data"
    return Path(os.environ.get("XDG_DATA_HOME", str(Path.home() / ".local" / "share"))) / APP


@dataclass
class Settings:
    store: str = "local"          # local | memory | firestore
    data_dir: str = ""            # local store location (default: XDG data dir)
    firestore_project: str = ""
    firestore_database: str = "(default)"
    github_token: str = ""
    log_level: str = "WARNING"
    log_format: str = "console"   # console | json

    @staticmethod
    def load(path: Optional[Path] = None) -> "Settings":
        path = path or config_path()

        # .env files first so they can feed the overrides below
        load_env_files(config_dir())

        data: dict = {}

        if path.exists():
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                data = {}

        s = Settings(
            store=str(data.get("store", Settings.store)),
            data_dir=str(data.get("data_dir", Settings.data_dir)),
            firestore_project=str(data.get("firestore_project", Settings.firestore_project)),
            firestore_database=str(data.get("firestore_database", Settings.firestore_database)),
            github_token=str(data.get("github_token", Settings.github_token)),
            log_level=str(data.get("log_level", Settings.log_level)),
            log_format=str(data.get("log_format", Settings.log_format)),
        )

        # Environment overrides (highest priority)
        s.store = os.environ.get("CROWCODE_STORE", s.store)
        s.data_dir = os.environ.get("CROWCODE_DATA_DIR", s.data_dir)
        s.firestore_project = os.environ.get(
            "CROWCODE_FIRESTORE_PROJECT",
            os.environ.get("GOOGLE_CLOUD_PROJECT", s.firestore_project),
        )
        s.firestore_database = os.environ.get("CROWCODE_FIRESTORE_DATABASE", s.firestore_database)
        s.github_token = os.environ.get("CROWCODE_GITHUB_TOKEN", os.environ.get("GITHUB_TOKEN", s.github_token))
        s.log_level = os.environ.get("CROWCODE_LOG_LEVEL", s.log_level).upper()
        s.log_format = os.environ.get("CROWCODE_LOG_FORMAT", s.log_format).lower()

        if s.store not in STORE_BACKENDS:
            s.store = Settings.store

        return s

    def resolved_data_dir(self) -> Path:
        return Path(self.data_dir).expanduser() if self.data_dir else default_data_dir()

    def save(self, path: Optional[Path] = None) -> Path:
        path = path or config_path()
        path.parent.mkdir(parents=True, exist_ok=True)

        payload = {
            "store": self.store,
            "data_dir": self.data_dir,
            "firestore_project": self.firestore_project,
            "firestore_database": self.firestore_database,
            "github_token": self.github_token,
            "log_level": self.log_level,
            "log_format": self.log_format,
        }
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return path
