"""Canonicalization of host paths before any allowlist decision."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path

from mountguard.errors import NormalizationError, NormalizationTimeoutError
from mountguard.infrastructure.config import PATH_RESOLVE_TIMEOUT, PATH_RESOLVE_WORKERS

# Shared by every normalizer. A resolve() stuck on a hung filesystem keeps its
# worker busy, so the pool is bounded and callers never wait past their timeout.
_executor = ThreadPoolExecutor(max_workers=PATH_RESOLVE_WORKERS, thread_name_prefix="path-normalizer")


def expand_home(path: str) -> str:
    """Expand a leading ~ or ~user. Raises NormalizationError for unknown users."""
    if not path.startswith("~"):
        return path
    expanded = os.path.expanduser(path)
    if expanded.startswith("~"):
        raise NormalizationError(path, "cannot expand home directory")
    return expanded


def _resolve_strict(path: str) -> str:
    return str(Path(path).resolve(strict=True))


class PathNormalizer:
    """Turns a user-supplied host path into a canonical absolute path.

    Symlinks, ``.`` and ``..`` are resolved against the real filesystem, so a
    path can never reach outside an allowed root by indirection.
    """

    def __init__(self, timeout: float = PATH_RESOLVE_TIMEOUT) -> None:
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        return self._timeout

    def normalize(self, path: str) -> str:
        if not isinstance(path, str) or not path.strip():
            raise NormalizationError(str(path), "empty path")
        if "\x00" in path:
            raise NormalizationError(path, "path contains a NUL byte")

        expanded = expand_home(path)
        if not os.path.isabs(expanded):
            raise NormalizationError(path, "path must be absolute or start with ~")

        future = _executor.submit(_resolve_strict, expanded)
        try:
            return future.result(timeout=self._timeout)
        except FutureTimeoutError as exc:
            future.cancel()
            raise NormalizationTimeoutError(path, self._timeout) from exc
        except FileNotFoundError as exc:
            raise NormalizationError(path, "path does not exist") from exc
        except (OSError, RuntimeError) as exc:
            # RuntimeError: symlink loop on older interpreters
            raise NormalizationError(path, str(exc)) from exc
