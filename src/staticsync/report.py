from dataclasses import dataclass, field
from pathlib import Path

from .spec import EnumSyncState, SpecSyncError


@dataclass(frozen=True, slots=True)
class ReportSync:
    """
    Summary of the outcome of a synchronization run.

    Attributes:
        state:
            Final state of the run (``done``, ``failed`` or ``cancelled``).
        cnt_scanned:
            Number of entries yielded by the walk (ignored entries excluded).
        cnt_ignored:
            Number of entries pruned by ignore patterns. A pruned directory
            counts once; its descendants are never visited.
        cnt_copied:
            Number of entries written to the destination, directories included.
        cnt_skipped:
            Number of files left untouched because the destination already
            existed and overwriting was disabled.
        errors:
            Tuple of :class:`SpecSyncError` for entries that failed to apply.
        warnings:
            Non-fatal messages, e.g. missing required options.
    """

    state: EnumSyncState
    cnt_scanned: int = 0
    cnt_ignored: int = 0
    cnt_copied: int = 0
    cnt_skipped: int = 0
    errors: tuple[SpecSyncError, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def calculate_error_count(self) -> int:
        return len(self.errors)

    @property
    def calculate_warning_count(self) -> int:
        return len(self.warnings)

    def to_dict(self) -> dict[str, int | str]:
        return {
            "state": self.state.value,
            "cnt_scanned": self.cnt_scanned,
            "cnt_ignored": self.cnt_ignored,
            "cnt_copied": self.cnt_copied,
            "cnt_skipped": self.cnt_skipped,
            "cnt_errors": self.calculate_error_count,
            "cnt_warnings": self.calculate_warning_count,
        }

    def format(self, *, prefix: str = "[STATIC]") -> str:
        s = self.to_dict()
        return (
            f"{prefix} state={s['state']} scanned={s['cnt_scanned']} "
            f"ignored={s['cnt_ignored']} "
            f"copied={s['cnt_copied']} skipped={s['cnt_skipped']} "
            f"errors={s['cnt_errors']} warnings={s['cnt_warnings']}"
        )

    def __str__(self) -> str:
        return self.format()


@dataclass(slots=True)
class ReportSyncBuilder:
    """Mutable accumulator for run statistics."""

    cnt_scanned: int = 0
    cnt_ignored: int = 0
    cnt_copied: int = 0
    cnt_skipped: int = 0
    errors: list[SpecSyncError] = field(default_factory=lambda: [])
    warnings: list[str] = field(default_factory=lambda: [])

    def add_scanned(self) -> None:
        self.cnt_scanned += 1

    def add_ignored(self) -> None:
        self.cnt_ignored += 1

    def add_copied(self) -> None:
        self.cnt_copied += 1

    def add_skipped(self) -> None:
        self.cnt_skipped += 1

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)

    def add_error(self, path: Path, error: Exception) -> None:
        self.errors.append(SpecSyncError(path, error))

    def build(self, state: EnumSyncState) -> ReportSync:
        return ReportSync(
            state=state,
            cnt_scanned=self.cnt_scanned,
            cnt_ignored=self.cnt_ignored,
            cnt_copied=self.cnt_copied,
            cnt_skipped=self.cnt_skipped,
            errors=tuple(self.errors),
            warnings=tuple(self.warnings),
        )
