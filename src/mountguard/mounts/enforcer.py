"""Last-chance mount re-validation immediately before container launch.

Between resolution and launch the allowlist may be reloaded and paths on disk
may be swapped for symlinks. Every mount is re-checked against the snapshot
that is current *now*; anything that no longer passes is dropped.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace

from mountguard.errors import DenialReason, LaunchAbortedError, MountDeniedError, MountError
from mountguard.groups.types import GroupContext
from mountguard.infrastructure.logger import logger
from mountguard.mounts.allowlist_store import AllowlistStore
from mountguard.mounts.path_normalizer import PathNormalizer
from mountguard.mounts.resolver import (
    PROTECTED_PATTERNS,
    blocked_patterns_for,
    check_blocked,
    check_host_path,
    compute_writable,
    designation_forces_readonly,
    normalize_or_deny,
    require_root,
)
from mountguard.mounts.types import MountAllowlist, MountRejection, ResolvedMount


@dataclass
class EnforcedMounts:
    mounts: list[ResolvedMount] = field(default_factory=list)
    dropped: list[MountRejection] = field(default_factory=list)


class Enforcer:
    def __init__(
        self,
        store: AllowlistStore,
        normalizer: PathNormalizer | None = None,
        protected_patterns: Sequence[str] = PROTECTED_PATTERNS,
    ) -> None:
        self._store = store
        self._normalizer = normalizer or PathNormalizer()
        self._protected = tuple(protected_patterns)

    def enforce(self, mounts: Iterable[ResolvedMount], group: GroupContext) -> EnforcedMounts:
        """Re-check ``mounts``; raises LaunchAbortedError if the workspace mount fails."""
        allowlist = self._store.current()
        patterns = blocked_patterns_for(allowlist, self._protected)
        result = EnforcedMounts()

        for mount in mounts:
            try:
                checked = self._recheck(allowlist, group, mount, patterns)
            except MountError as exc:
                logger.warning(
                    "Mount dropped at launch",
                    group=group.folder,
                    host_path=mount.host_path,
                    container_path=mount.container_path,
                    reason=exc.reason,
                    error=str(exc),
                )
                if mount.workspace:
                    raise LaunchAbortedError(f"Workspace mount for {group.folder} failed re-validation: {exc}") from exc
                result.dropped.append(MountRejection(mount.host_path, mount.container_path, exc))
                continue
            result.mounts.append(checked)

        return result

    def _recheck(
        self,
        allowlist: MountAllowlist,
        group: GroupContext,
        mount: ResolvedMount,
        patterns: tuple[str, ...],
    ) -> ResolvedMount:
        normalized = normalize_or_deny(self._normalizer, mount.host_path)
        if normalized != mount.host_path:
            raise MountDeniedError(DenialReason.PATH_CHANGED, mount.host_path, f"now resolves to {normalized}")
        check_host_path(normalized)
        check_blocked(normalized, patterns)

        if mount.workspace:
            writable = mount.writable and not designation_forces_readonly(allowlist, group)
        else:
            root = require_root(allowlist, normalized, self._normalizer)
            # Never widen: a mount resolved read-only stays read-only.
            writable = compute_writable(mount.writable, root, allowlist, group)

        if writable == mount.writable:
            return mount
        logger.info("Mount narrowed to read-only at launch", group=group.folder, host_path=mount.host_path)
        return replace(mount, writable=writable)
