from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .report import ReportSync


class ConfigurationWarning(UserWarning):
    """Required option(s) absent; the run degrades to a no-op success."""


class StaticSyncError(Exception):
    """Base class for fatal synchronization failures."""


class FilesystemError(StaticSyncError):
    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class CopyError(StaticSyncError):
    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class UnexpectedSyncError(StaticSyncError):
    pass


class SyncCancelledError(StaticSyncError):
    def __init__(self, message: str, report: ReportSync | None = None) -> None:
        super().__init__(message)
        self.report = report
