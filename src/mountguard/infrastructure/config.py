"""Configuration constants and .env parsing."""

from __future__ import annotations

import os
from pathlib import Path


def read_env_file(keys: list[str]) -> dict[str, str]:
    """Parse .env file and return values for requested keys.

    Does NOT load into os.environ; callers decide what to do with values.
    """
    env_file = Path.cwd() / ".env"
    try:
        content = env_file.read_text()
    except OSError:
        return {}

    result: dict[str, str] = {}
    wanted = set(keys)

    for line in content.splitlines():
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        eq_idx = trimmed.find("=")
        if eq_idx == -1:
            continue
        key = trimmed[:eq_idx].strip()
        if key not in wanted:
            continue
        value = trimmed[eq_idx + 1 :].strip()
        if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
            value = value[1:-1]
        if value:
            result[key] = value

    return result


_ENV_KEYS = [
    "MOUNT_ALLOWLIST_PATH",
    "MAIN_GROUP_FOLDER",
    "PATH_RESOLVE_TIMEOUT",
    "GROUPS_DIR",
    "STORE_DIR",
]

# Read config values from .env (os.environ wins).
_env_config = read_env_file(_ENV_KEYS)


def _setting(key: str, default: str) -> str:
    return os.environ.get(key) or _env_config.get(key, default)


def _float_setting(key: str, default: float) -> float:
    raw = _setting(key, str(default))
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


# Absolute paths
PROJECT_ROOT: Path = Path.cwd()
HOME_DIR: Path = Path.home()

# Lives outside the project root so containers can never mount and edit it.
MOUNT_ALLOWLIST_PATH: Path = Path(
    _setting("MOUNT_ALLOWLIST_PATH", str(HOME_DIR / ".config" / "mountguard" / "mount-allowlist.json"))
).expanduser()
GROUPS_DIR: Path = Path(_setting("GROUPS_DIR", str(PROJECT_ROOT / "groups"))).expanduser().resolve()
STORE_DIR: Path = Path(_setting("STORE_DIR", str(PROJECT_ROOT / "store"))).expanduser().resolve()
MAIN_GROUP_FOLDER: str = _setting("MAIN_GROUP_FOLDER", "main")

PATH_RESOLVE_TIMEOUT: float = _float_setting("PATH_RESOLVE_TIMEOUT", 5.0)  # seconds
PATH_RESOLVE_WORKERS: int = 4

CONTAINER_WORKSPACE_DIR: str = "/workspace/group"
CONTAINER_EXTRA_DIR: str = "/workspace/extra"
