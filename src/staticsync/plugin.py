import threading
from collections.abc import Callable, Mapping, MutableMapping
from pathlib import Path
from typing import Any, Protocol, TypeAlias

from loguru import logger

from .errors import (
    CopyError,
    FilesystemError,
    SyncCancelledError,
)
from .options import SpecSyncOptions
from .spec import EnumDestinationKind, SpecVirtualFile
from .sync import NAMESPACE_DEBUG, StaticFilesSync, TypeDebug, make_debug
from .target import DestinationDirectory, DestinationFileTable, TypeDestinationTarget

PREFIX_COPY_ERROR = "An error occurred while copying the directory"
PREFIX_CANCELLED = "Static file synchronization cancelled"
PREFIX_UNEXPECTED = f"Unexpected error in {NAMESPACE_DEBUG}"

TypeFileTable: TypeAlias = MutableMapping[str, SpecVirtualFile]
TypeDone: TypeAlias = Callable[[str | None], None]


class BuildHost(Protocol):
    """What a build host must provide to run the plugin.

    ``path`` joins its parts onto the host's working directory (absolute parts
    win) and ``destination`` returns the absolute build directory. A host may
    also expose ``debug(namespace)`` returning a ``%``-style log function.
    """

    def path(self, *parts: str) -> str: ...

    def destination(self) -> str: ...


def resolve_debug(host: BuildHost) -> TypeDebug:
    factory_debug = getattr(host, "debug", None)
    if callable(factory_debug):
        debug = factory_debug(NAMESPACE_DEBUG)
        if callable(debug):
            return debug
    return make_debug()


def build_target(
    options: SpecSyncOptions,
    *,
    files: TypeFileTable | None,
    host: BuildHost,
) -> TypeDestinationTarget:
    if options.destination is None:
        raise ValueError("Option `destination` is required to build a target.")
    if options.target is EnumDestinationKind.FILES:
        if files is None:
            raise ValueError(
                "Destination target `files` requires the host to pass a file table."
            )
        return DestinationFileTable(files=files, prefix=options.destination)
    return DestinationDirectory(
        path_root=Path(host.path(host.destination(), options.destination))
    )


def format_failure(err: Exception) -> str:
    """Normalize any failure into the single message handed to the host."""
    if isinstance(err, (FilesystemError, CopyError)):
        return f"{PREFIX_COPY_ERROR}: {err}"
    if isinstance(err, SyncCancelledError):
        return f"{PREFIX_CANCELLED}: {err}"
    # UnexpectedSyncError and anything raised outside the synchronizer
    return f"{PREFIX_UNEXPECTED}: {err}"


class StaticFilesPlugin:
    """Build-pipeline step that copies a static asset directory.

    Call it with ``(files, host, done)``; ``done`` is called exactly once, with
    ``None`` on success and a message string on failure. The plugin never
    raises into the host.

    Example:
        >>> pipeline.use(static_files({"source": "assets", "destination": "assets"}))  # doctest: +SKIP
    """

    def __init__(
        self,
        options: SpecSyncOptions | Mapping[str, Any] | None = None,
        *,
        event_cancel: threading.Event | None = None,
    ) -> None:
        self.options = SpecSyncOptions.from_raw(options)
        self.event_cancel = event_cancel
        self.last_sync: StaticFilesSync | None = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.options.to_dict()!r})"

    def __call__(
        self,
        files: TypeFileTable | None,
        host: BuildHost,
        done: TypeDone,
    ) -> None:
        c_error: str | None = None
        try:
            debug = resolve_debug(host)
            debug("Running with options: %s", self.options.to_dict())

            def _resolve_target(options: SpecSyncOptions) -> TypeDestinationTarget:
                return build_target(options, files=files, host=host)

            self.last_sync = StaticFilesSync(
                self.options,
                resolve_source=host.path,
                resolve_target=_resolve_target,
                debug=debug,
                event_cancel=self.event_cancel,
            )
            self.last_sync.run()
        except Exception as e:
            c_error = format_failure(e)
            logger.error(c_error)
        done(c_error)


def static_files(
    options: SpecSyncOptions | Mapping[str, Any] | None = None,
    *,
    event_cancel: threading.Event | None = None,
) -> StaticFilesPlugin:
    return StaticFilesPlugin(options, event_cancel=event_cancel)
