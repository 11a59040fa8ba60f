"""Tests for launch-time mount re-validation."""

import shutil
from dataclasses import replace

import pytest

from mountguard.errors import AllowlistUnavailableError, DenialReason, LaunchAbortedError
from mountguard.groups.types import GroupContext, GroupDesignation
from mountguard.mounts.allowlist_store import AllowlistStore
from mountguard.mounts.enforcer import Enforcer
from mountguard.mounts.resolver import MountResolver
from mountguard.mounts.types import AdditionalMount, ResolvedMount

MAIN = GroupContext(folder="main", designation=GroupDesignation.MAIN)
OTHER = GroupContext(folder="team", designation=GroupDesignation.OTHER)


def _doc(roots=None, blocked=None, non_main_read_only=False) -> dict:
    return {
        "allowedRoots": roots if roots is not None else [{"path": "~/projects", "allowReadWrite": True}],
        "blockedPatterns": blocked or [],
        "nonMainReadOnly": non_main_read_only,
    }


@pytest.fixture
def projects(home):
    (home / "projects" / "app").mkdir(parents=True)
    (home / "projects" / "lib").mkdir()
    return home / "projects"


@pytest.fixture
def store(tmp_path) -> AllowlistStore:
    store = AllowlistStore(tmp_path / "mount-allowlist.json")
    store.load(_doc())
    return store


@pytest.fixture
def resolver(normalizer, groups_dir) -> MountResolver:
    return MountResolver(normalizer, groups_dir=groups_dir, protected_patterns=())


@pytest.fixture
def enforcer(store, normalizer) -> Enforcer:
    return Enforcer(store, normalizer, protected_patterns=())


def _resolve(resolver, store, group, *host_paths):
    requests = [AdditionalMount(host_path=p) for p in host_paths]
    return resolver.resolve(store.current(), group, requests).mounts


class TestEnforcer:
    def test_unchanged_allowlist_passes_everything(self, resolver, store, enforcer, projects):
        mounts = _resolve(resolver, store, MAIN, "~/projects/app", "~/projects/lib")
        result = enforcer.enforce(mounts, MAIN)
        assert result.mounts == mounts
        assert result.dropped == []

    def test_root_removed_by_reload(self, resolver, store, enforcer, projects):
        mounts = _resolve(resolver, store, MAIN, "~/projects/app")
        store.reload(_doc(roots=[]))
        result = enforcer.enforce(mounts, MAIN)
        assert [m.container_path for m in result.mounts] == ["/workspace/group"]
        assert result.dropped[0].reason == "NotCovered"

    def test_pattern_added_by_reload(self, resolver, store, enforcer, projects):
        mounts = _resolve(resolver, store, MAIN, "~/projects/app", "~/projects/lib")
        store.reload(_doc(blocked=["**/lib"]))
        result = enforcer.enforce(mounts, MAIN)
        assert [m.container_path for m in result.mounts] == ["/workspace/group", "/workspace/extra/app"]
        assert result.dropped[0].reason == "Blocked"
        assert result.dropped[0].host_path == str(projects / "lib")

    def test_non_main_read_only_enabled_by_reload(self, resolver, store, enforcer, projects):
        mounts = _resolve(resolver, store, OTHER, "~/projects/app")
        assert all(m.writable for m in mounts)
        store.reload(_doc(non_main_read_only=True))
        result = enforcer.enforce(mounts, OTHER)
        assert len(result.mounts) == 2
        assert not any(m.writable for m in result.mounts)

    def test_root_downgraded_by_reload(self, resolver, store, enforcer, projects):
        mounts = _resolve(resolver, store, MAIN, "~/projects/app")
        store.reload(_doc(roots=[{"path": "~/projects", "allowReadWrite": False}]))
        result = enforcer.enforce(mounts, MAIN)
        assert result.mounts[1].writable is False
        assert result.mounts[0].writable is True

    def test_never_widens(self, resolver, store, enforcer, projects):
        mounts = [replace(m, writable=False) for m in _resolve(resolver, store, MAIN, "~/projects/app")]
        result = enforcer.enforce(mounts, MAIN)
        assert not any(m.writable for m in result.mounts)

    def test_path_swapped_for_symlink(self, resolver, store, enforcer, projects, tmp_path):
        mounts = _resolve(resolver, store, MAIN, "~/projects/app")
        outside = tmp_path / "outside"
        outside.mkdir()
        shutil.rmtree(projects / "app")
        (projects / "app").symlink_to(outside)
        result = enforcer.enforce(mounts, MAIN)
        assert result.dropped[0].error.denial is DenialReason.PATH_CHANGED

    def test_colon_host_path_dropped(self, store, enforcer, projects):
        (projects / "a:b").mkdir()
        mount = ResolvedMount(str(projects / "a:b"), "/workspace/extra/x", False)
        result = enforcer.enforce([mount], MAIN)
        assert result.mounts == []
        assert result.dropped[0].reason == "InvalidHostPath"

    def test_path_removed(self, resolver, store, enforcer, projects):
        mounts = _resolve(resolver, store, MAIN, "~/projects/app")
        shutil.rmtree(projects / "app")
        result = enforcer.enforce(mounts, MAIN)
        assert result.dropped[0].reason == "Unresolvable"

    def test_workspace_blocked_aborts_launch(self, resolver, store, enforcer, projects):
        mounts = _resolve(resolver, store, OTHER, "~/projects/app")
        store.reload(_doc(blocked=["team"]))
        with pytest.raises(LaunchAbortedError):
            enforcer.enforce(mounts, OTHER)

    def test_workspace_removed_aborts_launch(self, resolver, store, enforcer, groups_dir, projects):
        mounts = _resolve(resolver, store, MAIN)
        shutil.rmtree(groups_dir / "main")
        with pytest.raises(LaunchAbortedError):
            enforcer.enforce(mounts, MAIN)

    def test_workspace_not_subject_to_root_coverage(self, resolver, store, enforcer, projects):
        mounts = _resolve(resolver, store, MAIN)
        store.reload(_doc(roots=[]))
        result = enforcer.enforce(mounts, MAIN)
        assert result.mounts == mounts

    def test_requires_a_snapshot(self, normalizer, tmp_path):
        enforcer = Enforcer(AllowlistStore(tmp_path / "none.json"), normalizer)
        with pytest.raises(AllowlistUnavailableError):
            enforcer.enforce([], MAIN)
