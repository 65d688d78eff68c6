import os
import posixpath
import stat
from collections.abc import Callable
from pathlib import Path

from .spec import EnumDestinationKind, EnumEntryKind

################################################################################
# #region StrategyValidation


def validate_destination_kind(
    value: EnumDestinationKind | str,
) -> EnumDestinationKind:
    """Validate and normalize a destination kind.

    Args:
        value: Enum value or its string representation.

    Returns:
        Normalized EnumDestinationKind.

    Raises:
        ValueError: If ``value`` is invalid.
    """
    if isinstance(value, EnumDestinationKind):
        return value
    try:
        return EnumDestinationKind(value)
    except ValueError as e:
        raise ValueError(
            f"Invalid destination target: `{value}`. "
            f"Expected one of: {[s.value for s in EnumDestinationKind]}"
        ) from e


def validate_flag(name: str, value: object) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Arg `{name}` must be a bool, got {value!r}.")
    return value


def validate_optional_path(name: str, value: object) -> str | None:
    """Normalize an optional relative-path option; empty strings count as absent."""
    if value is None:
        return None
    if isinstance(value, os.PathLike):
        value = os.fspath(value)
    if not isinstance(value, str):
        raise ValueError(f"Arg `{name}` must be a path string, got {value!r}.")
    return value or None


# #endregion
################################################################################
# #region WorkerCalculation


def calculate_worker_limit(num_workers_max: int | None) -> int:
    """Calculate a safe worker limit bounded by CPU count.

    Args:
        num_workers_max: User-provided maximum workers; ``None`` uses CPU count.

    Returns:
        A positive worker count.
    """
    n_cpu = os.cpu_count() or 1
    return (
        max(1, n_cpu)
        if num_workers_max is None
        else max(1, min(num_workers_max, n_cpu))
    )


# #endregion
################################################################################
# #region Path


def _is_relative_to_base(path: Path, base: Path) -> bool:
    try:
        path.relative_to(base)
        return True
    except ValueError:
        return False


def _normalize_path(path: Path) -> Path:
    """Resolve a path, allowing non-existent targets."""
    try:
        return path.resolve()
    except FileNotFoundError:
        return path.resolve(strict=False)


def is_overlap(src: Path, dst: Path) -> bool:
    """Check whether two paths overlap or contain each other.

    Args:
        src: Source path.
        dst: Destination path.

    Returns:
        True if either path is within the other.
    """
    src_resolved = _normalize_path(src)
    dst_resolved = _normalize_path(dst)
    return _is_relative_to_base(dst_resolved, src_resolved) or _is_relative_to_base(
        src_resolved, dst_resolved
    )


def join_destination_key(prefix: str, path_relative: str) -> str:
    """Join a destination prefix and a relative path into a file-table key."""
    c_prefix = posixpath.normpath(prefix.replace("\\", "/") or ".").strip("/")
    if c_prefix in ("", "."):
        return path_relative
    return f"{c_prefix}/{path_relative}"


def format_mode(st_mode: int) -> str:
    # last three octal digits, e.g. 0o100644 -> "644"
    return f"{stat.S_IMODE(st_mode) & 0o777:03o}"


# #endregion
################################################################################
# #region ConflictHelpers


def should_skip_existing(
    path_dst: Path,
    kind_src: EnumEntryKind,
    if_overwrite: bool,
    *,
    on_skip: Callable[[], None],
    on_error: Callable[[Exception], None],
) -> bool:
    """Apply the overwrite policy to an on-disk destination entry.

    Args:
        path_dst: Destination path.
        kind_src: Kind of the source entry being applied.
        if_overwrite: Whether an existing destination file may be replaced.
        on_skip: Callback when a skip decision is made.
        on_error: Callback when a type clash is detected.

    Returns:
        True if the caller should skip further handling.
    """
    if not path_dst.exists():
        return False
    if kind_src is EnumEntryKind.FILE and path_dst.is_dir():
        on_error(
            IsADirectoryError(
                f"Cannot overwrite directory with non-directory: {path_dst}"
            )
        )
        return True
    if kind_src is EnumEntryKind.DIRECTORY:
        if not path_dst.is_dir():
            on_error(
                NotADirectoryError(
                    f"Cannot overwrite non-directory with directory: {path_dst}"
                )
            )
            return True
        # existing directories are always merged into
        return False
    if not if_overwrite:
        on_skip()
        return True
    return False


# #endregion
################################################################################
