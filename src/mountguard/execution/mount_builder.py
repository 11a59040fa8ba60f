"""Mount factory: resolves, enforces and renders a group's container mounts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from mountguard.groups.types import GroupContext, GroupDesignation, RegisteredGroup
from mountguard.infrastructure.logger import logger
from mountguard.mounts.allowlist_store import AllowlistStore
from mountguard.mounts.enforcer import Enforcer
from mountguard.mounts.path_normalizer import PathNormalizer
from mountguard.mounts.requests import parse_mount_requests
from mountguard.mounts.resolver import MountResolver
from mountguard.mounts.types import MountRejection, ResolvedMount


@dataclass
class MountPlan:
    """Final mounts for one launch plus every request that was dropped, and why."""

    mounts: list[ResolvedMount] = field(default_factory=list)
    rejections: list[MountRejection] = field(default_factory=list)

    def docker_args(self) -> list[str]:
        args: list[str] = []
        for mount in self.mounts:
            ro_suffix = "" if mount.writable else ":ro"
            args.extend(["-v", f"{mount.host_path}:{mount.container_path}{ro_suffix}"])
        return args

    @property
    def warnings(self) -> list[str]:
        return [f"{r.host_path or '<unknown>'}: {r.error}" for r in self.rejections]


class MountFactory(Protocol):
    """Interface for building container mounts."""

    def build_mounts(self, group: RegisteredGroup, designation: GroupDesignation) -> MountPlan: ...


class DefaultMountFactory:
    """Runs the full pipeline: parse requests, resolve, enforce."""

    def __init__(
        self,
        store: AllowlistStore,
        resolver: MountResolver | None = None,
        enforcer: Enforcer | None = None,
    ) -> None:
        normalizer = resolver.normalizer if resolver else PathNormalizer()
        self._store = store
        self._resolver = resolver or MountResolver(normalizer)
        self._enforcer = enforcer or Enforcer(store, normalizer, self._resolver.protected_patterns)

    def build_mounts(self, group: RegisteredGroup, designation: GroupDesignation) -> MountPlan:
        context = GroupContext(folder=group.folder, designation=designation)

        # Snapshot is taken once; the Enforcer re-reads whatever is current at launch.
        allowlist = self._store.current()

        group_dir = self._resolver.workspace_host_path(group.folder)
        group_dir.mkdir(parents=True, exist_ok=True)

        requests = parse_mount_requests(group.container_config)
        resolution = self._resolver.resolve(allowlist, context, requests.mounts)
        enforced = self._enforcer.enforce(resolution.mounts, context)

        plan = MountPlan(
            mounts=enforced.mounts,
            rejections=[*requests.rejections, *resolution.rejections, *enforced.dropped],
        )
        # Enforcer drops are logged by the Enforcer itself.
        for rejection in [*requests.rejections, *resolution.rejections]:
            logger.warning(
                "Additional mount REJECTED",
                group=group.name,
                host_path=rejection.host_path,
                container_path=rejection.container_path,
                reason=rejection.reason,
                error=str(rejection.error),
            )
        logger.debug(
            "Mounts prepared",
            group=group.name,
            designation=designation.value,
            mounts=len(plan.mounts),
            rejected=len(plan.rejections),
        )
        return plan
