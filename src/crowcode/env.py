"""Minimal .env loader for crowcode settings.

Reads ``CROWCODE_*`` (and ``GITHUB_TOKEN`` / ``GOOGLE_CLOUD_PROJECT``) values
from .env files. Precedence, strongest first:
1. Variables already present in the process environment
2. ./.env
3. <config dir>/.env
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict


def parse_env_file(path: Path) -> Dict[str, str]:
    """Return the KEY=value pairs of a .env file.

    Blank lines, ``#`` comments, an optional ``export`` prefix and matching
    single/double quotes around the value are understood.
    """
    result: Dict[str, str] = {}

    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return result

    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()

        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue

        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        result[key] = value

    return result


def load_env_files(config_dir: Path) -> None:
    """Merge config-dir and cwd .env files into ``os.environ`` without overwriting."""
    combined: Dict[str, str] = {}
    for env_file in (config_dir / ".env", Path.cwd() / ".env"):
        combined.update(parse_env_file(env_file))

    for key, value in combined.items():
        os.environ.setdefault(key, value)
