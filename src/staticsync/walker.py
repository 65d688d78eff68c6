import os
import stat
from collections.abc import Callable, Iterator
from pathlib import Path

from .errors import FilesystemError
from .pattern import SpecPatternSet, TypePatternInput
from .spec import EnumEntryKind, SpecDirEntry

################################################################################


def check_source_root(path_root: Path) -> None:
    """Fail early when the walk root cannot be traversed.

    Raises:
        FilesystemError: If ``path_root`` is missing, not a directory, or unreadable.
    """
    try:
        st_root = path_root.stat()
    except FileNotFoundError as e:
        raise FilesystemError(
            f"Source directory does not exist: {path_root}", path=path_root
        ) from e
    except OSError as e:
        # e.g. an ancestor that cannot be traversed
        raise FilesystemError(
            f"Cannot access source directory: {path_root} ({e})", path=path_root
        ) from e
    if not stat.S_ISDIR(st_root.st_mode):
        raise FilesystemError(f"Source is not a directory: {path_root}", path=path_root)
    if not os.access(path_root, os.R_OK | os.X_OK):
        raise FilesystemError(
            f"Source directory is not readable: {path_root}", path=path_root
        )


def _list_children(path_dir: Path, prefix: str) -> list[SpecDirEntry]:
    """List one directory level, directories first, then by name."""
    try:
        with os.scandir(path_dir) as it:
            l_raw = list(it)
    except OSError as e:
        raise FilesystemError(
            f"Failed to read directory: {path_dir} ({e})", path=path_dir
        ) from e

    l_children: list[SpecDirEntry] = []
    for _entry in l_raw:
        try:
            # follows symlinks; a dangling link reports False and is treated as a file
            b_is_dir = _entry.is_dir()
        except OSError:
            b_is_dir = False
        l_children.append(
            SpecDirEntry(
                path_relative=f"{prefix}/{_entry.name}" if prefix else _entry.name,
                path_absolute=Path(_entry.path),
                kind=EnumEntryKind.DIRECTORY if b_is_dir else EnumEntryKind.FILE,
            )
        )
    l_children.sort(key=lambda e: (not e.is_dir, e.path_relative))
    return l_children


def walk_tree(
    root: os.PathLike[str] | str,
    ignore: TypePatternInput = None,
    *,
    on_ignore: Callable[[SpecDirEntry], None] | None = None,
) -> Iterator[SpecDirEntry]:
    """Walk ``root`` depth-first, pruning ignored entries before they are opened.

    The root is validated before the iterator is returned, so a bad root fails
    immediately instead of producing an empty walk. Each call re-reads the
    filesystem. Symlinked directories are followed and cycles are not detected.

    Args:
        root: Directory to enumerate.
        ignore: Patterns matched against each entry's relative path.
        on_ignore: Called once for every pruned entry (not its descendants).

    Returns:
        Lazy iterator of SpecDirEntry in pre-order.

    Raises:
        FilesystemError: If ``root`` is missing, not a directory, or unreadable.
    """
    path_root = Path(root)
    check_source_root(path_root)
    spec_ignore = SpecPatternSet.from_raw(ignore)
    return _iter_tree(path_root, spec_ignore, on_ignore)


def _iter_tree(
    path_root: Path,
    spec_ignore: SpecPatternSet,
    on_ignore: Callable[[SpecDirEntry], None] | None,
) -> Iterator[SpecDirEntry]:
    l_stack: list[Iterator[SpecDirEntry]] = [iter(_list_children(path_root, ""))]
    while l_stack:
        spec_entry = next(l_stack[-1], None)
        if spec_entry is None:
            l_stack.pop()
            continue

        # #tag Prune
        if spec_ignore.matches_any(spec_entry.path_relative):
            if on_ignore is not None:
                on_ignore(spec_entry)
            continue

        yield spec_entry

        if spec_entry.is_dir:
            l_stack.append(
                iter(_list_children(spec_entry.path_absolute, spec_entry.path_relative))
            )
