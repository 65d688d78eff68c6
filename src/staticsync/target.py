import os
import shutil
import tempfile
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, TypeAlias

from .errors import FilesystemError
from .spec import EnumDestinationKind, SpecDirEntry, SpecVirtualFile
from .util import (
    format_mode,
    is_overlap,
    join_destination_key,
    should_skip_existing,
)

################################################################################
# #region DirectoryTarget


@dataclass(slots=True)
class DestinationDirectory:
    """Real directory on disk; files are copied byte-for-byte with their mode.

    Each file is copied into a temporary sibling and moved into place with one
    ``os.replace``, so an existing destination entry is replaced rather than
    written through. Directory modes are applied by ``finalize`` once every
    file below them has been written.
    """

    kind: ClassVar[EnumDestinationKind] = EnumDestinationKind.DIRECTORY

    path_root: Path
    _l_dirs_created: list[SpecDirEntry] = field(
        default_factory=list, init=False, repr=False
    )

    def describe(self) -> str:
        return str(self.path_root)

    def locate(self, entry: SpecDirEntry) -> Path:
        return self.path_root.joinpath(*entry.path_relative.split("/"))

    def prepare(self, path_source: Path) -> None:
        if is_overlap(path_source, self.path_root):
            raise FilesystemError(
                f"Source and destination directories overlap: "
                f"{path_source} <-> {self.path_root}",
                path=self.path_root,
            )
        try:
            self.path_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(
                f"Failed to create destination directory: {self.path_root} ({e})",
                path=self.path_root,
            ) from e

    def should_skip(
        self,
        entry: SpecDirEntry,
        if_overwrite: bool,
        *,
        on_skip: Callable[[], None],
        on_error: Callable[[Exception], None],
    ) -> bool:
        return should_skip_existing(
            self.locate(entry),
            entry.kind,
            if_overwrite,
            on_skip=on_skip,
            on_error=on_error,
        )

    def ensure_directory(self, entry: SpecDirEntry) -> bool:
        self.locate(entry).mkdir(parents=True, exist_ok=True)
        self._l_dirs_created.append(entry)
        return True

    def write(self, entry: SpecDirEntry, *, if_preserve_timestamps: bool) -> None:
        path_dst = self.locate(entry)
        path_dst.parent.mkdir(parents=True, exist_ok=True)
        fd_tmp, c_path_tmp = tempfile.mkstemp(
            prefix=f".{path_dst.name}.", suffix=".tmp", dir=path_dst.parent
        )
        os.close(fd_tmp)
        path_tmp = Path(c_path_tmp)
        try:
            shutil.copyfile(entry.path_absolute, path_tmp)
            shutil.copymode(entry.path_absolute, path_tmp)
            if if_preserve_timestamps:
                stat_src = entry.path_absolute.stat()
                os.utime(path_tmp, ns=(stat_src.st_atime_ns, stat_src.st_mtime_ns))
            os.replace(path_tmp, path_dst)
        except BaseException:
            path_tmp.unlink(missing_ok=True)
            raise

    def finalize(self, *, on_error: Callable[[Path, Exception], None]) -> None:
        """Copy source directory modes, deepest first, after all files landed."""
        for _entry in reversed(self._l_dirs_created):
            try:
                shutil.copymode(_entry.path_absolute, self.locate(_entry))
            except OSError as e:
                on_error(_entry.path_absolute, e)
        self._l_dirs_created.clear()


# #endregion
################################################################################
# #region FileTableTarget


@dataclass(slots=True)
class DestinationFileTable:
    """In-memory file table keyed by ``<prefix>/<relative path>``.

    Directories have no table entry of their own. Records always carry the
    source ``stat`` result, so timestamps travel with the record whatever the
    ``preserve_timestamps`` setting.
    """

    kind: ClassVar[EnumDestinationKind] = EnumDestinationKind.FILES

    files: MutableMapping[str, SpecVirtualFile]
    prefix: str = ""

    def describe(self) -> str:
        return f"<files>/{self.prefix}" if self.prefix else "<files>"

    def locate(self, entry: SpecDirEntry) -> str:
        return join_destination_key(self.prefix, entry.path_relative)

    def prepare(self, path_source: Path) -> None:
        return None

    def should_skip(
        self,
        entry: SpecDirEntry,
        if_overwrite: bool,
        *,
        on_skip: Callable[[], None],
        on_error: Callable[[Exception], None],
    ) -> bool:
        if entry.is_dir or if_overwrite:
            return False
        if self.locate(entry) in self.files:
            on_skip()
            return True
        return False

    def ensure_directory(self, entry: SpecDirEntry) -> bool:
        return False

    def finalize(self, *, on_error: Callable[[Path, Exception], None]) -> None:
        return None

    def write(self, entry: SpecDirEntry, *, if_preserve_timestamps: bool) -> None:
        stat_src = entry.path_absolute.stat()
        bytes_contents = entry.path_absolute.read_bytes()
        self.files[self.locate(entry)] = SpecVirtualFile(
            contents=bytes_contents,
            mode=format_mode(stat_src.st_mode),
            stats=stat_src,
        )


# #endregion
################################################################################

TypeDestinationTarget: TypeAlias = DestinationDirectory | DestinationFileTable
