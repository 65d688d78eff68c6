import os
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path


class EnumEntryKind(StrEnum):
    FILE = "file"
    DIRECTORY = "directory"


class EnumDestinationKind(StrEnum):
    DIRECTORY = "directory"  # real directory on disk
    FILES = "files"  # host's in-memory file table


class EnumSyncState(StrEnum):
    IDLE = "idle"
    VALIDATING = "validating"
    WALKING = "walking"
    APPLYING = "applying"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class SpecDirEntry:
    """A discovered filesystem node below the synchronization root."""

    path_relative: str
    path_absolute: Path
    kind: EnumEntryKind

    @property
    def is_dir(self) -> bool:
        return self.kind is EnumEntryKind.DIRECTORY


@dataclass(slots=True)
class SpecVirtualFile:
    """Record stored in a virtual file table.

    Attributes:
        contents: Full file content.
        mode: Low permission bits as three octal digits, e.g. ``"644"``.
        stats: Source ``stat`` result (size, timestamps, ...).
    """

    contents: bytes
    mode: str
    stats: os.stat_result | None = None


@dataclass(frozen=True, slots=True)
class SpecSyncError:
    path: Path
    exception: Exception
