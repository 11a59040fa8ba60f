"""Group domain types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel

from mountguard.infrastructure.config import MAIN_GROUP_FOLDER


class GroupDesignation(str, Enum):
    MAIN = "main"
    OTHER = "other"


def designation_for(folder: str, main_folder: str = MAIN_GROUP_FOLDER) -> GroupDesignation:
    return GroupDesignation.MAIN if folder == main_folder else GroupDesignation.OTHER


@dataclass(frozen=True)
class GroupContext:
    folder: str
    designation: GroupDesignation

    @property
    def is_main(self) -> bool:
        return self.designation is GroupDesignation.MAIN

    @classmethod
    def for_folder(cls, folder: str, main_folder: str = MAIN_GROUP_FOLDER) -> GroupContext:
        return cls(folder=folder, designation=designation_for(folder, main_folder))


class RegisteredGroup(BaseModel):
    name: str
    folder: str
    trigger: str
    added_at: str
    container_config: str | None = None  # Raw JSON blob; None means no extra mounts
    requires_trigger: bool | None = True  # Default: true for groups, false for solo chats
