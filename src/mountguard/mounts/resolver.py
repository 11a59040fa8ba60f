"""Resolution of a group's requested mounts against an allowlist snapshot."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path, PurePosixPath

from mountguard.errors import (
    DenialReason,
    DuplicateMountError,
    InvalidContainerPathError,
    InvalidHostPathError,
    MountDeniedError,
    MountError,
    NormalizationError,
    WorkspaceMountError,
)
from mountguard.groups.paths import GroupPaths
from mountguard.groups.types import GroupContext
from mountguard.infrastructure.config import (
    CONTAINER_EXTRA_DIR,
    CONTAINER_WORKSPACE_DIR,
    GROUPS_DIR,
    MOUNT_ALLOWLIST_PATH,
)
from mountguard.infrastructure.logger import logger
from mountguard.mounts.path_normalizer import PathNormalizer, expand_home
from mountguard.mounts.pattern_matcher import first_blocking_pattern
from mountguard.mounts.types import (
    AdditionalMount,
    AllowedRoot,
    MountAllowlist,
    MountRejection,
    MountResolution,
    ResolvedMount,
)

# The allowlist's own directory is never mountable, whatever the roots say.
PROTECTED_PATTERNS: tuple[str, ...] = (f"{MOUNT_ALLOWLIST_PATH.parent}/**",)


def is_within(path: str, root: str) -> bool:
    """True if ``root`` equals ``path`` or is a whole-segment prefix of it."""
    if path == root:
        return True
    prefix = root if root.endswith("/") else root + "/"
    return path.startswith(prefix)


def designation_forces_readonly(allowlist: MountAllowlist, group: GroupContext) -> bool:
    return allowlist.non_main_read_only and not group.is_main


def blocked_patterns_for(allowlist: MountAllowlist, extra: Iterable[str] = PROTECTED_PATTERNS) -> tuple[str, ...]:
    return allowlist.effective_blocked_patterns + tuple(extra)


def check_blocked(normalized: str, patterns: Iterable[str]) -> None:
    pattern = first_blocking_pattern(normalized, patterns)
    if pattern is not None:
        raise MountDeniedError(DenialReason.BLOCKED, normalized, f'matches blocked pattern "{pattern}"', pattern=pattern)


def normalize_or_deny(normalizer: PathNormalizer, host_path: str) -> str:
    """Normalization failures (including timeouts) are denials."""
    try:
        return normalizer.normalize(host_path)
    except NormalizationError as exc:
        raise MountDeniedError(DenialReason.UNRESOLVABLE, host_path, exc.detail) from exc


def select_root(
    allowlist: MountAllowlist,
    normalized: str,
    normalizer: PathNormalizer,
) -> AllowedRoot | None:
    """Pick the most specific covering root; the first declared wins a tie."""
    best: AllowedRoot | None = None
    best_depth = -1
    for root in allowlist.allowed_roots:
        try:
            root_path = normalizer.normalize(root.path)
        except NormalizationError as exc:
            logger.warning("Skipping unresolvable allowed root", root=root.path, error=exc.detail)
            continue
        if not is_within(normalized, root_path):
            continue
        depth = len(PurePosixPath(root_path).parts)
        if depth > best_depth:
            best, best_depth = root, depth
    return best


def require_root(allowlist: MountAllowlist, normalized: str, normalizer: PathNormalizer) -> AllowedRoot:
    root = select_root(allowlist, normalized, normalizer)
    if root is None:
        raise MountDeniedError(DenialReason.NOT_COVERED, normalized, "not under any allowed root")
    return root


def compute_writable(
    requested_write: bool,
    root: AllowedRoot,
    allowlist: MountAllowlist,
    group: GroupContext,
) -> bool:
    """Write access needs the request, the root and the designation to all agree."""
    return requested_write and root.allow_read_write and not designation_forces_readonly(allowlist, group)


def check_host_path(normalized: str) -> None:
    """A bind source is split on ':' by the container runtime."""
    if ":" in normalized:
        raise InvalidHostPathError(normalized, "must not contain ':'")


def container_target(mount: AdditionalMount) -> str:
    """Absolute in-container path under the extra-mounts directory.

    Without an explicit ``containerPath`` the name is the last segment of the
    host path as requested, so a symlink keeps its own name.
    """
    if mount.container_path is None:
        requested = expand_home(mount.host_path)
        relative = PurePosixPath(requested).name
        if not relative:
            raise InvalidContainerPathError(requested, "cannot derive a name from the host path")
    else:
        relative = mount.container_path

    if not relative or relative != relative.strip():
        raise InvalidContainerPathError(relative, "must be non-empty without surrounding whitespace")
    if relative.startswith("/"):
        raise InvalidContainerPathError(relative, "must be relative")
    if ":" in relative or "\x00" in relative:
        raise InvalidContainerPathError(relative, "must not contain ':' or NUL")
    parts = [part for part in relative.split("/") if part and part != "."]
    if ".." in parts:
        raise InvalidContainerPathError(relative, "must not contain '..'")
    if not parts:
        raise InvalidContainerPathError(relative, "must name a directory")
    return f"{CONTAINER_EXTRA_DIR}/{'/'.join(parts)}"


class MountResolver:
    """Builds the ordered mount list for one launch.

    Stateless between calls: all per-group state lives in ``resolve()``.
    """

    def __init__(
        self,
        normalizer: PathNormalizer | None = None,
        groups_dir: Path = GROUPS_DIR,
        protected_patterns: Sequence[str] = PROTECTED_PATTERNS,
    ) -> None:
        self._normalizer = normalizer or PathNormalizer()
        self._groups_dir = groups_dir
        self._protected = tuple(protected_patterns)

    @property
    def normalizer(self) -> PathNormalizer:
        return self._normalizer

    @property
    def protected_patterns(self) -> tuple[str, ...]:
        return self._protected

    def workspace_host_path(self, folder: str) -> Path:
        try:
            return GroupPaths.group_dir(folder, self._groups_dir)
        except ValueError as exc:
            raise WorkspaceMountError(str(exc)) from exc

    def resolve(
        self,
        allowlist: MountAllowlist,
        group: GroupContext,
        requested_mounts: Iterable[AdditionalMount],
    ) -> MountResolution:
        patterns = blocked_patterns_for(allowlist, self._protected)
        resolution = MountResolution()
        resolution.mounts.append(self._workspace_mount(allowlist, group, patterns))
        seen = {CONTAINER_WORKSPACE_DIR}

        for mount in requested_mounts:
            try:
                resolved = self.resolve_mount(allowlist, group, mount, patterns)
                if resolved.container_path in seen:
                    raise DuplicateMountError(resolved.container_path)
            except MountError as exc:
                resolution.rejections.append(MountRejection(mount.host_path, mount.container_path, exc))
                continue
            seen.add(resolved.container_path)
            resolution.mounts.append(resolved)

        return resolution

    def _workspace_mount(
        self,
        allowlist: MountAllowlist,
        group: GroupContext,
        patterns: tuple[str, ...],
    ) -> ResolvedMount:
        host = self.workspace_host_path(group.folder)
        try:
            normalized = self._normalizer.normalize(str(host))
            groups_root = self._normalizer.normalize(str(self._groups_dir))
        except NormalizationError as exc:
            raise WorkspaceMountError(f"Group workspace unavailable: {exc}") from exc
        if normalized == groups_root or not is_within(normalized, groups_root):
            raise WorkspaceMountError(f"Group workspace escapes {groups_root}: {normalized}")
        if ":" in normalized:
            raise WorkspaceMountError(f"Group workspace path contains ':': {normalized}")
        pattern = first_blocking_pattern(normalized, patterns)
        if pattern is not None:
            raise WorkspaceMountError(f'Group workspace matches blocked pattern "{pattern}": {normalized}')

        return ResolvedMount(
            host_path=normalized,
            container_path=CONTAINER_WORKSPACE_DIR,
            writable=not designation_forces_readonly(allowlist, group),
            workspace=True,
        )

    def resolve_mount(
        self,
        allowlist: MountAllowlist,
        group: GroupContext,
        mount: AdditionalMount,
        patterns: tuple[str, ...] | None = None,
    ) -> ResolvedMount:
        """Resolve a single request. Raises a MountError subclass if it is refused."""
        if patterns is None:
            patterns = blocked_patterns_for(allowlist, self._protected)
        normalized = normalize_or_deny(self._normalizer, mount.host_path)
        check_host_path(normalized)
        check_blocked(normalized, patterns)
        root = require_root(allowlist, normalized, self._normalizer)

        requested_write = mount.readonly is not True
        writable = compute_writable(requested_write, root, allowlist, group)
        if requested_write and not writable:
            logger.info(
                "Mount forced to read-only",
                group=group.folder,
                host_path=normalized,
                root=root.path,
                root_allows_write=root.allow_read_write,
            )

        return ResolvedMount(
            host_path=normalized,
            container_path=container_target(mount),
            writable=writable,
        )
