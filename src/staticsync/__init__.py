from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .errors import (
    ConfigurationWarning,
    CopyError,
    FilesystemError,
    StaticSyncError,
    SyncCancelledError,
    UnexpectedSyncError,
)
from .options import SpecSyncOptions, normalize_options
from .pattern import (
    SpecCompiledPattern,
    SpecPatternSet,
    compile_pattern,
    matches_any_pattern,
    matches_pattern,
)
from .plugin import StaticFilesPlugin, static_files
from .report import ReportSync
from .spec import (
    EnumDestinationKind,
    EnumEntryKind,
    EnumSyncState,
    SpecDirEntry,
    SpecVirtualFile,
)
from .sync import StaticFilesSync, sync_static_files
from .target import DestinationDirectory, DestinationFileTable
from .walker import walk_tree

__all__ = [
    "__version__",
    "ConfigurationWarning",
    "CopyError",
    "DestinationDirectory",
    "DestinationFileTable",
    "EnumDestinationKind",
    "EnumEntryKind",
    "EnumSyncState",
    "FilesystemError",
    "ReportSync",
    "SpecCompiledPattern",
    "SpecDirEntry",
    "SpecPatternSet",
    "SpecSyncOptions",
    "SpecVirtualFile",
    "StaticFilesPlugin",
    "StaticFilesSync",
    "StaticSyncError",
    "SyncCancelledError",
    "UnexpectedSyncError",
    "compile_pattern",
    "matches_any_pattern",
    "matches_pattern",
    "normalize_options",
    "static_files",
    "sync_static_files",
    "walk_tree",
]

try:
    __version__ = version("staticsync")
except PackageNotFoundError:
    __version__ = "0.0.0"
