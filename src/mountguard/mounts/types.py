"""Mount domain types: allowlist wire models and resolution results."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_validator
from pydantic.alias_generators import to_camel

from mountguard.errors import MountError

# Always denied, whatever the allowlist declares. Component patterns: each
# blocks the matching path segment and everything beneath it.
DEFAULT_BLOCKED_PATTERNS: tuple[str, ...] = (
    ".ssh",
    ".gnupg",
    ".gpg",
    ".aws",
    ".azure",
    ".gcloud",
    ".kube",
    ".docker",
    "credentials",
    "credentials.json",
    ".env",
    ".env.*",
    ".netrc",
    ".npmrc",
    ".pypirc",
    "id_rsa*",
    "id_ed25519*",
    "id_ecdsa*",
    "private_key*",
    "*.pem",
    ".secret*",
)


class _WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python, immutable once built."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class AllowedRoot(_WireModel):
    model_config = ConfigDict(extra="forbid")

    path: StrictStr = Field(min_length=1)  # Absolute path or ~ for home
    allow_read_write: StrictBool  # Required: a missing value is a config error, not read-only
    description: StrictStr | None = None


class MountAllowlist(_WireModel):
    allowed_roots: tuple[AllowedRoot, ...]
    blocked_patterns: tuple[StrictStr, ...]
    non_main_read_only: StrictBool

    @field_validator("blocked_patterns")
    @classmethod
    def _dedupe_patterns(cls, patterns: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(patterns))

    @property
    def effective_blocked_patterns(self) -> tuple[str, ...]:
        """Built-in defaults plus the declared patterns."""
        return tuple(dict.fromkeys(DEFAULT_BLOCKED_PATTERNS + self.blocked_patterns))

    @classmethod
    def deny_all(cls) -> MountAllowlist:
        """Snapshot used when no allowlist file exists: no additional mount is covered."""
        return cls(allowed_roots=(), blocked_patterns=(), non_main_read_only=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2) + "\n"


class AdditionalMount(_WireModel):
    model_config = ConfigDict(extra="forbid")

    host_path: StrictStr = Field(min_length=1)  # Absolute path on host (supports ~ for home)
    container_path: StrictStr | None = None  # Relative to /workspace/extra; defaults to basename of host_path
    readonly: StrictBool | None = None  # Only True restricts; the root and designation still gate writes


@dataclass(frozen=True)
class ResolvedMount:
    host_path: str
    container_path: str
    writable: bool
    workspace: bool = False

    @property
    def readonly(self) -> bool:
        return not self.writable

    def to_dict(self) -> dict:
        return {"hostPath": self.host_path, "containerPath": self.container_path, "writable": self.writable}


@dataclass(frozen=True)
class MountRejection:
    host_path: str | None
    container_path: str | None
    error: MountError

    @property
    def reason(self) -> str:
        return self.error.reason

    def to_dict(self) -> dict:
        return {
            "hostPath": self.host_path,
            "containerPath": self.container_path,
            "reason": self.reason,
            "message": str(self.error),
        }


@dataclass
class MountResolution:
    mounts: list[ResolvedMount] = field(default_factory=list)
    rejections: list[MountRejection] = field(default_factory=list)

    @property
    def workspace(self) -> ResolvedMount | None:
        return next((m for m in self.mounts if m.workspace), None)

    def to_dict(self) -> dict:
        return {
            "mounts": [m.to_dict() for m in self.mounts],
            "rejections": [r.to_dict() for r in self.rejections],
        }
