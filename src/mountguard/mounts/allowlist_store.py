"""Mount allowlist loading, strict validation and atomic reload.

The allowlist lives OUTSIDE the project root (see ``MOUNT_ALLOWLIST_PATH``) so
that no container can ever mount and rewrite its own permissions.
"""

from __future__ import annotations

import json
import signal
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from mountguard.errors import AllowlistUnavailableError, SchemaError, SchemaErrorKind
from mountguard.infrastructure.config import MOUNT_ALLOWLIST_PATH
from mountguard.infrastructure.logger import logger
from mountguard.mounts.types import AllowedRoot, MountAllowlist

REQUIRED_FIELDS = ("allowedRoots", "blockedPatterns", "nonMainReadOnly")

AllowlistSource = Path | str | Mapping[str, Any]


def parse_allowlist(data: Any) -> MountAllowlist:
    """Validate a decoded allowlist document.

    Raises SchemaError on the first problem found. Nothing is defaulted: a
    root without ``allowReadWrite`` is rejected rather than read as read-only.
    """
    if not isinstance(data, Mapping):
        raise SchemaError(SchemaErrorKind.INVALID_TYPE, field="<root>", detail="allowlist must be a JSON object")

    for name in REQUIRED_FIELDS:
        if name not in data:
            raise SchemaError(SchemaErrorKind.MISSING_FIELD, field=name)

    raw_roots = data["allowedRoots"]
    if not isinstance(raw_roots, list):
        raise SchemaError(SchemaErrorKind.INVALID_TYPE, field="allowedRoots", detail="expected a list")

    patterns = data["blockedPatterns"]
    if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
        raise SchemaError(SchemaErrorKind.INVALID_TYPE, field="blockedPatterns", detail="expected a list of strings")

    if not isinstance(data["nonMainReadOnly"], bool):
        raise SchemaError(SchemaErrorKind.INVALID_TYPE, field="nonMainReadOnly", detail="expected a boolean")

    roots: list[AllowedRoot] = []
    for index, raw in enumerate(raw_roots):
        if not isinstance(raw, Mapping):
            raise SchemaError(SchemaErrorKind.INVALID_ROOT, index=index, detail="root must be an object")
        if "mode" in raw:
            raise SchemaError(
                SchemaErrorKind.INVALID_ROOT,
                index=index,
                detail='legacy "mode" field is not supported; use "allowReadWrite": true|false',
            )
        if "allowReadWrite" not in raw:
            raise SchemaError(SchemaErrorKind.INVALID_ROOT, index=index, detail='missing "allowReadWrite"')
        try:
            roots.append(AllowedRoot.model_validate(raw))
        except ValidationError as exc:
            raise SchemaError(SchemaErrorKind.INVALID_ROOT, index=index, detail=_first_error(exc)) from exc

    return MountAllowlist(
        allowed_roots=tuple(roots),
        blocked_patterns=tuple(patterns),
        non_main_read_only=data["nonMainReadOnly"],
    )


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(part) for part in err["loc"])
    return f"{loc}: {err['msg']}" if loc else err["msg"]


def load_allowlist(path: Path) -> MountAllowlist | None:
    """Read and validate an allowlist file. Returns None if the file does not exist."""
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise SchemaError(SchemaErrorKind.UNREADABLE, detail=f"{path}: {exc}") from exc

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise SchemaError(SchemaErrorKind.INVALID_JSON, detail=f"{path}: {exc}") from exc

    return parse_allowlist(data)


class AllowlistStore:
    """Holds the published allowlist snapshot.

    Readers call ``current()`` and keep the returned reference for the whole
    launch; snapshots are immutable, so no reader lock is needed. Writers build
    and validate a complete snapshot before swapping the reference.
    """

    def __init__(self, path: Path = MOUNT_ALLOWLIST_PATH) -> None:
        self._path = path
        self._snapshot: MountAllowlist | None = None
        self._write_lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def current(self) -> MountAllowlist:
        snapshot = self._snapshot
        if snapshot is None:
            raise AllowlistUnavailableError(f"No valid mount allowlist loaded from {self._path}")
        return snapshot

    def load(self, source: AllowlistSource | None = None) -> MountAllowlist:
        """Startup load. On SchemaError no snapshot is published and launches stay blocked."""
        try:
            snapshot = self._build(source)
        except SchemaError as exc:
            with self._write_lock:
                self._snapshot = None
            logger.error(
                "Mount allowlist invalid - container launches are blocked until it is fixed",
                path=str(self._path),
                error=str(exc),
            )
            raise
        self._publish(snapshot, event="Mount allowlist loaded")
        return snapshot

    def reload(self, source: AllowlistSource | None = None) -> MountAllowlist:
        """Validate a new snapshot and swap it in. On SchemaError the previous one stays active."""
        try:
            snapshot = self._build(source)
        except SchemaError as exc:
            logger.error(
                "Mount allowlist reload rejected - keeping previous snapshot",
                path=str(self._path),
                error=str(exc),
                has_previous=self._snapshot is not None,
            )
            raise
        self._publish(snapshot, event="Mount allowlist reloaded")
        return snapshot

    def install_reload_signal(self, signum: int = signal.SIGHUP) -> None:
        """Reload the allowlist file whenever the process receives ``signum``."""

        def handler(_signum: int, _frame: object) -> None:
            try:
                self.reload()
            except SchemaError:
                pass  # already logged by reload(); previous snapshot stays active

        signal.signal(signum, handler)

    def _build(self, source: AllowlistSource | None) -> MountAllowlist:
        if isinstance(source, Mapping):
            return parse_allowlist(source)

        path = Path(source) if source is not None else self._path
        snapshot = load_allowlist(path)
        if snapshot is None:
            logger.warning(
                "Mount allowlist not found - additional mounts will be BLOCKED",
                path=str(path),
            )
            return MountAllowlist.deny_all()
        return snapshot

    def _publish(self, snapshot: MountAllowlist, event: str) -> None:
        with self._write_lock:
            self._snapshot = snapshot
        logger.info(
            event,
            path=str(self._path),
            allowed_roots=len(snapshot.allowed_roots),
            blocked_patterns=len(snapshot.blocked_patterns),
            non_main_read_only=snapshot.non_main_read_only,
        )


def generate_allowlist_template() -> str:
    """Generate a template allowlist file for users to customize."""
    template = MountAllowlist(
        allowed_roots=(
            AllowedRoot(path="~/projects", allow_read_write=True, description="Development projects"),
            AllowedRoot(path="~/repos", allow_read_write=True, description="Git repositories"),
            AllowedRoot(path="~/Documents/work", allow_read_write=False, description="Work documents (read-only)"),
        ),
        blocked_patterns=("password*", "*secret*", "*token*"),
        non_main_read_only=True,
    )
    return template.to_json()


def write_allowlist(path: Path, data: Any) -> MountAllowlist:
    """Validate ``data`` and write it to ``path``. Nothing is written if validation fails."""
    allowlist = parse_allowlist(data)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(allowlist.to_json(), encoding="utf-8")
    tmp.replace(path)
    logger.info("Mount allowlist written", path=str(path), allowed_roots=len(allowlist.allowed_roots))
    return allowlist
