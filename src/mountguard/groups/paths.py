"""Centralized path construction for group directories."""

from __future__ import annotations

import re
from pathlib import Path

from mountguard.infrastructure.config import GROUPS_DIR

_FOLDER_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$")


def is_valid_group_folder(folder: str) -> bool:
    """A folder is a single safe path segment: no separators, no dots-only names."""
    return bool(_FOLDER_RE.match(folder))


class GroupPaths:
    """Centralized path construction for group-related directories."""

    @staticmethod
    def group_dir(folder: str, groups_dir: Path = GROUPS_DIR) -> Path:
        """Root directory for a group: groups/{folder}"""
        if not is_valid_group_folder(folder):
            raise ValueError(f"Invalid group folder: {folder!r}")
        return groups_dir / folder
