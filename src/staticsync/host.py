import os
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeAlias

from loguru import logger

from .spec import SpecVirtualFile
from .sync import TypeDebug, make_debug
from .target import DestinationFileTable
from .walker import walk_tree

TypeFiles: TypeAlias = dict[str, SpecVirtualFile]
TypePipelinePlugin: TypeAlias = Callable[[TypeFiles, Any, Callable[[str | None], None]], None]


class BuildError(Exception):
    pass


class BuildPipeline:
    """Minimal build host.

    Reads ``<directory>/<source>`` into a file table, runs plugins in order and
    writes the table to ``<directory>/<destination>``. Plugins receive
    ``(files, pipeline, done)`` and must call ``done`` exactly once.
    """

    def __init__(
        self,
        directory: os.PathLike[str] | str,
        *,
        source: str = "src",
        destination: str = "build",
        if_clean: bool = True,
    ) -> None:
        self.dir_root = Path(directory).resolve()
        self.name_source = source
        self.name_destination = destination
        self.if_clean = if_clean
        self.plugins: list[TypePipelinePlugin] = []

    def path(self, *parts: str) -> str:
        return str(self.dir_root.joinpath(*parts))

    def source(self) -> str:
        return self.path(self.name_source)

    def destination(self) -> str:
        return self.path(self.name_destination)

    def debug(self, namespace: str) -> TypeDebug:
        return make_debug(namespace)

    def use(self, plugin: TypePipelinePlugin) -> "BuildPipeline":
        self.plugins.append(plugin)
        return self

    def read(self) -> TypeFiles:
        dict_files: TypeFiles = {}
        target_table = DestinationFileTable(files=dict_files)
        for _entry in walk_tree(self.source()):
            if not _entry.is_dir:
                target_table.write(_entry, if_preserve_timestamps=True)
        return dict_files

    def run(self, files: TypeFiles) -> TypeFiles:
        for _plugin in self.plugins:
            l_results: list[str | None] = []
            _plugin(files, self, l_results.append)
            if len(l_results) != 1:
                raise BuildError(
                    f"Plugin {_plugin!r} signalled completion {len(l_results)} times."
                )
            if l_results[0] is not None:
                raise BuildError(l_results[0])
        return files

    def process(self) -> TypeFiles:
        return self.run(self.read())

    def write(self, files: TypeFiles) -> None:
        path_dst_root = Path(self.destination())
        for c_key, spec_file in files.items():
            path_dst = path_dst_root.joinpath(*c_key.split("/"))
            path_dst.parent.mkdir(parents=True, exist_ok=True)
            path_dst.write_bytes(spec_file.contents)
            path_dst.chmod(int(spec_file.mode, 8))

    def build(self, done: Callable[[str | None], None] | None = None) -> TypeFiles:
        """Clean, process and write; report through ``done`` when given, else raise."""
        dict_files: TypeFiles = {}
        c_error: str | None = None
        try:
            if self.if_clean:
                shutil.rmtree(self.destination(), ignore_errors=True)
            dict_files = self.process()
            self.write(dict_files)
        except Exception as e:
            c_error = str(e)
            logger.error(f"Build failed: {c_error}")
            if done is None:
                raise
        if done is not None:
            done(c_error)
        return dict_files
