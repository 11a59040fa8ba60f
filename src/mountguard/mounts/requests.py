"""Parsing a group's ``container_config`` blob into mount requests."""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from pydantic import ValidationError

from mountguard.errors import MalformedMountError
from mountguard.mounts.types import AdditionalMount, MountRejection


@dataclass
class MountRequests:
    mounts: list[AdditionalMount] = field(default_factory=list)
    rejections: list[MountRejection] = field(default_factory=list)


def _reject(requests: MountRequests, message: str, host_path: str | None = None) -> MountRequests:
    requests.rejections.append(MountRejection(host_path, None, MalformedMountError(message)))
    return requests


def parse_mount_requests(container_config: str | None) -> MountRequests:
    """Extract ``additionalMounts`` from a registration row's container config.

    A null config means no extra mounts. Anything unparseable yields no mounts
    for the affected entries, never a guessed default.
    """
    requests = MountRequests()
    if container_config is None or not container_config.strip():
        return requests

    try:
        config = json.loads(container_config)
    except json.JSONDecodeError as exc:
        return _reject(requests, f"container config is not valid JSON: {exc.msg}")
    if not isinstance(config, dict):
        return _reject(requests, "container config must be a JSON object")

    entries = config.get("additionalMounts")
    if entries is None:
        return requests
    if not isinstance(entries, list):
        return _reject(requests, "additionalMounts must be a list")

    for index, entry in enumerate(entries):
        host_path = entry.get("hostPath") if isinstance(entry, dict) else None
        if not isinstance(host_path, str):
            host_path = None
        try:
            requests.mounts.append(AdditionalMount.model_validate(entry))
        except ValidationError as exc:
            err = exc.errors()[0]
            loc = ".".join(str(part) for part in err["loc"]) or "entry"
            _reject(requests, f"additionalMounts[{index}] {loc}: {err['msg']}", host_path)

    return requests
