"""Entry point: python -m mountguard"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from mountguard.errors import MountError, SchemaError
from mountguard.groups.types import GroupContext
from mountguard.infrastructure.config import MAIN_GROUP_FOLDER, MOUNT_ALLOWLIST_PATH
from mountguard.infrastructure.logger import install_exception_hooks
from mountguard.mounts.allowlist_store import (
    AllowlistStore,
    generate_allowlist_template,
    write_allowlist,
)
from mountguard.mounts.requests import parse_mount_requests
from mountguard.mounts.resolver import MountResolver
from mountguard.mounts.types import AdditionalMount


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2))


def _parse_json_arg(raw: str) -> object | None:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        print(f"Invalid JSON: {exc}", file=sys.stderr)
        return None


def cmd_validate(args: argparse.Namespace) -> int:
    store = AllowlistStore(args.path)
    try:
        allowlist = store.load()
    except SchemaError as exc:
        _print_json({"valid": False, "kind": exc.kind.value, "field": exc.field, "index": exc.index, "error": str(exc)})
        return 1
    _print_json({
        "valid": True,
        "path": str(args.path),
        "exists": args.path.exists(),
        "allowedRoots": len(allowlist.allowed_roots),
        "blockedPatterns": len(allowlist.blocked_patterns),
        "nonMainReadOnly": allowlist.non_main_read_only,
    })
    return 0


def cmd_template(_args: argparse.Namespace) -> int:
    sys.stdout.write(generate_allowlist_template())
    return 0


def cmd_write(args: argparse.Namespace) -> int:
    data = _parse_json_arg(args.json)
    if data is None:
        return 1
    try:
        write_allowlist(args.path, data)
    except SchemaError as exc:
        print(f"Allowlist rejected: {exc}", file=sys.stderr)
        return 1
    print(f"Wrote {args.path}")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    store = AllowlistStore(args.path)
    try:
        allowlist = store.load()
    except SchemaError as exc:
        print(f"Allowlist invalid: {exc}", file=sys.stderr)
        return 1

    group = GroupContext.for_folder(args.group)
    mount = AdditionalMount(
        host_path=args.host_path,
        container_path=args.container_path,
        readonly=not args.read_write,
    )
    try:
        resolved = MountResolver().resolve_mount(allowlist, group, mount)
    except MountError as exc:
        _print_json({"allowed": False, "reason": exc.reason, "error": str(exc)})
        return 2
    _print_json({"allowed": True, "designation": group.designation.value, **resolved.to_dict()})
    return 0


def cmd_set_mounts(args: argparse.Namespace) -> int:
    requests = parse_mount_requests(args.json)
    if requests.rejections:
        for rejection in requests.rejections:
            print(f"Rejected: {rejection.error}", file=sys.stderr)
        return 1

    from mountguard.infrastructure.database import AppDatabase

    db = AppDatabase()
    db.init()
    try:
        if not db.group_repo.set_container_config(args.folder, args.json):
            print(f"No registered group with folder {args.folder!r}", file=sys.stderr)
            return 1
    finally:
        db.close()
    print(f"Stored {len(requests.mounts)} additional mount(s) for {args.folder}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mountguard", description="Container mount allowlist tooling")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_path(p: argparse.ArgumentParser) -> None:
        p.add_argument("--path", type=Path, default=MOUNT_ALLOWLIST_PATH, help="Allowlist file")

    p = sub.add_parser("validate", help="Validate the allowlist file")
    add_path(p)
    p.set_defaults(func=cmd_validate)

    p = sub.add_parser("template", help="Print a template allowlist")
    p.set_defaults(func=cmd_template)

    p = sub.add_parser("write", help="Validate and write an allowlist")
    p.add_argument("--json", required=True, help="Allowlist JSON document")
    add_path(p)
    p.set_defaults(func=cmd_write)

    p = sub.add_parser("check", help="Dry-run a single mount request")
    p.add_argument("host_path")
    p.add_argument("--group", default=MAIN_GROUP_FOLDER, help="Group folder")
    p.add_argument("--container-path", default=None)
    p.add_argument("--read-write", action="store_true", help="Request write access")
    add_path(p)
    p.set_defaults(func=cmd_check)

    p = sub.add_parser("set-mounts", help="Store a group's container config")
    p.add_argument("folder")
    p.add_argument("--json", required=True, help='e.g. {"additionalMounts": [{"hostPath": "~/projects"}]}')
    p.set_defaults(func=cmd_set_mounts)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


def run() -> None:
    install_exception_hooks()
    sys.exit(main())


if __name__ == "__main__":
    run()
