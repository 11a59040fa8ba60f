"""Tests for host path normalization."""

import os
import time

import pytest

from mountguard.errors import NormalizationError, NormalizationTimeoutError
from mountguard.mounts import path_normalizer
from mountguard.mounts.path_normalizer import PathNormalizer, expand_home


class TestExpandHome:
    def test_expands_tilde(self, home):
        assert expand_home("~/projects") == os.path.join(os.environ["HOME"], "projects")

    def test_bare_tilde(self, home):
        assert expand_home("~") == os.environ["HOME"]

    def test_leaves_absolute_paths(self):
        assert expand_home("/srv/data") == "/srv/data"

    def test_unknown_user(self):
        with pytest.raises(NormalizationError):
            expand_home("~no-such-user-mountguard/x")


class TestPathNormalizer:
    def test_home_expansion(self, home, normalizer):
        (home / "projects").mkdir()
        assert normalizer.normalize("~/projects") == str(home / "projects")

    def test_dot_segments_resolved(self, home, normalizer):
        (home / "projects" / "app").mkdir(parents=True)
        (home / "other").mkdir()
        assert normalizer.normalize("~/projects/app/../../other/.") == str(home / "other")

    def test_symlinks_resolved(self, tmp_path, normalizer):
        target = tmp_path / "real"
        target.mkdir()
        link = tmp_path / "link"
        link.symlink_to(target)
        assert normalizer.normalize(str(link)) == str(target.resolve())

    def test_missing_path(self, tmp_path, normalizer):
        with pytest.raises(NormalizationError, match="does not exist"):
            normalizer.normalize(str(tmp_path / "missing"))

    def test_dangling_symlink(self, tmp_path, normalizer):
        link = tmp_path / "dangling"
        link.symlink_to(tmp_path / "nowhere")
        with pytest.raises(NormalizationError):
            normalizer.normalize(str(link))

    def test_symlink_loop(self, tmp_path, normalizer):
        a = tmp_path / "a"
        b = tmp_path / "b"
        a.symlink_to(b)
        b.symlink_to(a)
        with pytest.raises(NormalizationError):
            normalizer.normalize(str(a))

    @pytest.mark.parametrize("path", ["", "   ", "projects/app", "./app", "a\x00b"])
    def test_rejects_ambiguous_input(self, path, normalizer):
        with pytest.raises(NormalizationError):
            normalizer.normalize(path)

    def test_timeout_is_a_normalization_error(self, tmp_path, monkeypatch):
        def slow_resolve(path: str) -> str:
            time.sleep(0.5)
            return path

        monkeypatch.setattr(path_normalizer, "_resolve_strict", slow_resolve)
        normalizer = PathNormalizer(timeout=0.05)
        with pytest.raises(NormalizationTimeoutError) as exc_info:
            normalizer.normalize(str(tmp_path))
        assert isinstance(exc_info.value, NormalizationError)
        assert exc_info.value.timeout == 0.05
