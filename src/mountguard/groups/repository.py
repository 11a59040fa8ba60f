"""Registered group persistence."""

from __future__ import annotations

import json
import sqlite3

from mountguard.groups.types import RegisteredGroup


class GroupRepository:
    def __init__(self, db: sqlite3.Connection) -> None:
        self._db = db

    def get_registered_group(self, jid: str) -> RegisteredGroup | None:
        row = self._db.execute("SELECT * FROM registered_groups WHERE jid = ?", (jid,)).fetchone()
        if not row:
            return None
        return self._row_to_group(row)

    def get_by_folder(self, folder: str) -> RegisteredGroup | None:
        row = self._db.execute("SELECT * FROM registered_groups WHERE folder = ?", (folder,)).fetchone()
        if not row:
            return None
        return self._row_to_group(row)

    def set_registered_group(self, jid: str, group: RegisteredGroup) -> None:
        self._db.execute(
            """INSERT OR REPLACE INTO registered_groups
               (jid, name, folder, trigger_pattern, added_at, container_config, requires_trigger)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                jid,
                group.name,
                group.folder,
                group.trigger,
                group.added_at,
                group.container_config,
                1 if group.requires_trigger is None or group.requires_trigger else 0,
            ),
        )
        self._db.commit()

    def set_container_config(self, folder: str, config: dict | str | None) -> bool:
        """Replace a group's container config. Returns False if the folder is unknown."""
        raw = json.dumps(config) if isinstance(config, dict) else config
        cursor = self._db.execute(
            "UPDATE registered_groups SET container_config = ? WHERE folder = ?",
            (raw, folder),
        )
        self._db.commit()
        return cursor.rowcount > 0

    def get_all_registered_groups(self) -> dict[str, RegisteredGroup]:
        rows = self._db.execute("SELECT * FROM registered_groups").fetchall()
        result: dict[str, RegisteredGroup] = {}
        for row in rows:
            jid = row["jid"]
            result[jid] = self._row_to_group(row)
        return result

    def _row_to_group(self, row: sqlite3.Row) -> RegisteredGroup:
        requires_trigger: bool | None = None
        rt_val = row["requires_trigger"]
        if rt_val is not None:
            requires_trigger = rt_val == 1

        return RegisteredGroup(
            name=row["name"],
            folder=row["folder"],
            trigger=row["trigger_pattern"],
            added_at=row["added_at"],
            container_config=row["container_config"],
            requires_trigger=requires_trigger,
        )
