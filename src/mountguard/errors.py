"""Exception hierarchy for mountguard.

Snapshot-level errors (``SchemaError``, ``AllowlistUnavailableError``) halt
launches. Per-mount errors (``MountError`` subclasses) only drop the offending
mount and are reported back to the caller as rejections.

This module must NOT import from any other ``mountguard`` submodule.
"""

from __future__ import annotations

from enum import Enum


class MountGuardError(Exception):
    """Base exception for all mountguard errors."""


# --- Allowlist snapshot errors ---


class SchemaErrorKind(str, Enum):
    MISSING_FIELD = "MissingField"
    INVALID_ROOT = "InvalidRoot"
    INVALID_TYPE = "InvalidType"
    INVALID_JSON = "InvalidJson"
    UNREADABLE = "Unreadable"


class SchemaError(MountGuardError):
    """The mount allowlist is malformed. No snapshot is built from it."""

    def __init__(
        self,
        kind: SchemaErrorKind,
        *,
        field: str | None = None,
        index: int | None = None,
        detail: str = "",
    ) -> None:
        self.kind = kind
        self.field = field
        self.index = index
        self.detail = detail
        super().__init__(self._describe())

    def _describe(self) -> str:
        parts = [self.kind.value]
        if self.field is not None:
            parts.append(f"field={self.field}")
        if self.index is not None:
            parts.append(f"index={self.index}")
        message = " ".join(parts)
        return f"{message}: {self.detail}" if self.detail else message


class AllowlistUnavailableError(MountGuardError):
    """No valid allowlist snapshot has been published."""


# --- Path normalization ---


class NormalizationError(MountGuardError):
    """A host path could not be canonicalized."""

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Cannot normalize {path!r}: {detail}")


class NormalizationTimeoutError(NormalizationError):
    """Path resolution exceeded its time budget."""

    def __init__(self, path: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(path, f"timed out after {timeout}s")


# --- Per-mount errors (recoverable) ---


class MountError(MountGuardError):
    """A single mount request was refused. The launch continues without it."""

    reason: str = "invalid"


class DenialReason(str, Enum):
    BLOCKED = "Blocked"
    NOT_COVERED = "NotCovered"
    UNRESOLVABLE = "Unresolvable"
    PATH_CHANGED = "PathChanged"


class MountDeniedError(MountError):
    def __init__(self, reason: DenialReason, host_path: str, detail: str = "", pattern: str | None = None) -> None:
        self.denial = reason
        self.reason = reason.value
        self.host_path = host_path
        self.pattern = pattern
        text = f"{reason.value}: {host_path}"
        super().__init__(f"{text} ({detail})" if detail else text)


class InvalidContainerPathError(MountError):
    reason = "InvalidContainerPath"

    def __init__(self, container_path: str, detail: str) -> None:
        self.container_path = container_path
        super().__init__(f"Invalid container path {container_path!r}: {detail}")


class InvalidHostPathError(MountError):
    reason = "InvalidHostPath"

    def __init__(self, host_path: str, detail: str) -> None:
        self.host_path = host_path
        super().__init__(f"Invalid host path {host_path!r}: {detail}")


class DuplicateMountError(MountError):
    reason = "DuplicateMount"

    def __init__(self, container_path: str) -> None:
        self.container_path = container_path
        super().__init__(f"Container path already mounted: {container_path}")


class MalformedMountError(MountError):
    """A mount request entry in a group's container config is unusable."""

    reason = "Malformed"


# --- Launch-fatal errors ---


class WorkspaceMountError(MountGuardError):
    """The group's own workspace mount cannot be produced."""


class LaunchAbortedError(MountGuardError):
    """The Enforcer dropped the workspace mount; the container must not start."""
