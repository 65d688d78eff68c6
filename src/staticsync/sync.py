import os
import threading
import warnings
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from functools import partial
from pathlib import Path
from typing import Any, TypeAlias, cast

from loguru import logger

from .errors import (
    ConfigurationWarning,
    CopyError,
    StaticSyncError,
    SyncCancelledError,
    UnexpectedSyncError,
)
from .options import SpecSyncOptions
from .report import ReportSync, ReportSyncBuilder
from .spec import EnumSyncState, SpecDirEntry
from .target import TypeDestinationTarget
from .util import calculate_worker_limit
from .walker import check_source_root, walk_tree

NAMESPACE_DEBUG = "staticsync"

TypeDebug: TypeAlias = Callable[..., None]

################################################################################
# #region DebugSink


def make_debug(namespace: str = NAMESPACE_DEBUG) -> TypeDebug:
    """Build a ``%``-style debug sink that forwards to loguru."""

    def _debug(message: str, *args: Any) -> None:
        logger.debug(f"[{namespace}] {message % args if args else message}")

    return _debug


# #endregion
################################################################################
# #region Synchronizer


class StaticFilesSync:
    """One synchronization run: IDLE -> VALIDATING -> WALKING -> APPLYING -> DONE.

    Any failure ends the run in FAILED (or CANCELLED when ``event_cancel`` is
    set while applying). Entries written before a failure are kept.

    Args:
        options: Normalized options.
        resolve_source: Maps ``options.source`` to the directory to read.
        resolve_target: Builds the destination target once per run.
        debug: ``%``-style debug sink; absent means loguru debug output.
        event_cancel: Checked between entries while applying.
    """

    def __init__(
        self,
        options: SpecSyncOptions,
        *,
        resolve_source: Callable[[str], os.PathLike[str] | str],
        resolve_target: Callable[[SpecSyncOptions], TypeDestinationTarget],
        debug: TypeDebug | None = None,
        event_cancel: threading.Event | None = None,
    ) -> None:
        self.options = options
        self.resolve_source = resolve_source
        self.resolve_target = resolve_target
        self.debug = debug or make_debug()
        self.event_cancel = event_cancel
        self.state = EnumSyncState.IDLE
        self.report: ReportSync | None = None
        self._builder = ReportSyncBuilder()

    def _transition(self, state: EnumSyncState) -> None:
        self.debug("State: %s -> %s", self.state.value, state.value)
        self.state = state

    def _finish(self, state: EnumSyncState) -> ReportSync:
        self._transition(state)
        self.report = self._builder.build(state)
        return self.report

    def run(self) -> ReportSync:
        """Execute the run.

        Returns:
            ReportSync: Report of a completed run (including the no-op case).

        Raises:
            FilesystemError: Source root missing/unreadable, or roots overlap.
            CopyError: At least one entry failed to apply.
            SyncCancelledError: ``event_cancel`` was set while applying.
            UnexpectedSyncError: Any other failure, e.g. a resolver raising.
        """
        if self.state is not EnumSyncState.IDLE:
            raise RuntimeError(f"Sync already ran (state={self.state.value}).")

        try:
            # #tag Validating
            self._transition(EnumSyncState.VALIDATING)
            tup_missing = self.options.fields_missing
            if tup_missing:
                c_msg = (
                    "Missing required option(s): "
                    f"{', '.join(f'`{c}`' for c in tup_missing)}. "
                    "Skipping static files synchronization."
                )
                logger.warning(c_msg)
                warnings.warn(c_msg, category=ConfigurationWarning, stacklevel=2)
                self._builder.add_warning(c_msg)
                return self._finish(EnumSyncState.DONE)

            path_source = Path(self.resolve_source(cast(str, self.options.source)))
            self.debug("Source directory: %s", path_source)
            check_source_root(path_source)

            target = self.resolve_target(self.options)
            self.debug("Destination: %s", target.describe())
            target.prepare(path_source)

            # #tag Walking
            self._transition(EnumSyncState.WALKING)
            l_entries = list(
                walk_tree(path_source, self.options.ignore, on_ignore=self._on_ignore)
            )
            self._builder.cnt_scanned = len(l_entries)

            # #tag Applying
            self._transition(EnumSyncState.APPLYING)
            b_cancelled = self._apply(l_entries, target)

        except StaticSyncError:
            self._finish(EnumSyncState.FAILED)
            raise
        except Exception as e:
            self._finish(EnumSyncState.FAILED)
            raise UnexpectedSyncError(str(e) or type(e).__name__) from e

        if self._builder.errors:
            self._finish(EnumSyncState.FAILED)
            raise self._build_copy_error()

        if b_cancelled:
            report = self._finish(EnumSyncState.CANCELLED)
            raise SyncCancelledError(
                f"Cancelled after {report.cnt_copied + report.cnt_skipped} "
                f"of {report.cnt_scanned} entries.",
                report=report,
            )

        report = self._finish(EnumSyncState.DONE)
        logger.success(
            f"Done: static files {path_source} -> {target.describe()} ({report})"
        )
        return report

    def _on_ignore(self, entry: SpecDirEntry) -> None:
        self.debug(
            "Ignoring %s: %s (matches ignore pattern)",
            entry.kind.value,
            entry.path_relative,
        )
        self._builder.add_ignored()

    def _on_skip(self, entry: SpecDirEntry) -> None:
        self.debug("Skipping existing destination entry: %s", entry.path_relative)
        self._builder.add_skipped()

    def _apply(
        self, entries: Sequence[SpecDirEntry], target: TypeDestinationTarget
    ) -> bool:
        """Apply entries to ``target``; returns True if cancelled part-way."""
        n_workers = calculate_worker_limit(self.options.num_workers_max)
        b_cancelled = False

        with ThreadPoolExecutor(max_workers=n_workers) as executor:
            dict_futures: dict[Future[None], SpecDirEntry] = {}

            for _entry in entries:
                if self.event_cancel is not None and self.event_cancel.is_set():
                    self.debug("Cancellation requested; stop submitting entries")
                    b_cancelled = True
                    break

                if target.should_skip(
                    _entry,
                    self.options.overwrite,
                    on_skip=partial(self._on_skip, _entry),
                    on_error=partial(self._builder.add_error, _entry.path_absolute),
                ):
                    continue

                # #tag HandleDirs
                if _entry.is_dir:
                    try:
                        if target.ensure_directory(_entry):
                            self._builder.add_copied()
                    except OSError as e:
                        self._builder.add_error(_entry.path_absolute, e)
                    continue

                # #tag HandleFiles
                dict_futures[
                    executor.submit(
                        target.write,
                        _entry,
                        if_preserve_timestamps=self.options.preserve_timestamps,
                    )
                ] = _entry

            # #tag AwaitWorkers
            for _future in as_completed(dict_futures):
                spec_entry = dict_futures[_future]
                try:
                    _future.result()
                    self._builder.add_copied()
                    self.debug(
                        "Copied %s -> %s",
                        spec_entry.path_relative,
                        target.locate(spec_entry),
                    )
                except Exception as e:
                    self._builder.add_error(spec_entry.path_absolute, e)

        # #tag DirModes
        target.finalize(on_error=self._builder.add_error)

        return b_cancelled

    def _build_copy_error(self) -> CopyError:
        l_errors = sorted(self._builder.errors, key=lambda e: str(e.path))
        spec_first = l_errors[0]
        c_more = f" (and {len(l_errors) - 1} more)" if len(l_errors) > 1 else ""
        err = CopyError(
            f"Failed to copy {spec_first.path}: {spec_first.exception}{c_more}",
            path=spec_first.path,
        )
        err.__cause__ = spec_first.exception
        return err


# #endregion
################################################################################


def sync_static_files(
    options: SpecSyncOptions | Mapping[str, Any] | None,
    target: TypeDestinationTarget,
    *,
    resolve_source: Callable[[str], os.PathLike[str] | str] = Path,
    debug: TypeDebug | None = None,
    event_cancel: threading.Event | None = None,
) -> ReportSync:
    """Synchronize ``options.source`` into an already resolved ``target``.

    Example:
        >>> from staticsync.target import DestinationDirectory
        >>> sync_static_files(
        ...     {"source": "static", "destination": "public", "ignore": ["*.tmp"]},
        ...     DestinationDirectory(Path("build/public")),
        ... )  # doctest: +SKIP
    """
    return StaticFilesSync(
        SpecSyncOptions.from_raw(options),
        resolve_source=resolve_source,
        resolve_target=lambda _: target,
        debug=debug,
        event_cancel=event_cancel,
    ).run()
