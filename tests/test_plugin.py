from __future__ import annotations

import os
import sys
import threading
from collections.abc import Iterator
from pathlib import Path

import pytest
from loguru import logger

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(SRC_DIR))

from staticsync.errors import ConfigurationWarning  # noqa: E402
from staticsync.host import BuildPipeline  # noqa: E402
from staticsync.options import SpecSyncOptions  # noqa: E402
from staticsync.plugin import (  # noqa: E402
    PREFIX_CANCELLED,
    PREFIX_COPY_ERROR,
    PREFIX_UNEXPECTED,
    StaticFilesPlugin,
    build_target,
    static_files,
)
from staticsync.spec import EnumSyncState, SpecVirtualFile  # noqa: E402


def _write_text(path: Path, text: str = "x") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


def _make_site(tmp_path: Path) -> Path:
    dir_site = tmp_path / "site"
    _write_text(dir_site / "src" / "index.md", "# hello")
    _write_text(dir_site / "assets" / "a.js", "console.log(1)")
    _write_text(dir_site / "assets" / "b.tmp", "tmp")
    _write_text(dir_site / "assets" / "styles" / "main.css", "body {}")
    return dir_site


def _files_under(root: Path) -> set[str]:
    return {p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file()}


class _Done:
    def __init__(self) -> None:
        self.calls: list[str | None] = []

    def __call__(self, error: str | None) -> None:
        self.calls.append(error)

    @property
    def error(self) -> str | None:
        assert len(self.calls) == 1, f"done called {len(self.calls)} times"
        return self.calls[0]


class _BareHost:
    """Host without a debug factory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def path(self, *parts: str) -> str:
        return str(self.root.joinpath(*parts))

    def destination(self) -> str:
        return str(self.root / "build")


@pytest.fixture
def log_warnings() -> Iterator[list[str]]:
    l_msgs: list[str] = []
    handler_id = logger.add(l_msgs.append, level="WARNING", format="{message}")
    yield l_msgs
    logger.remove(handler_id)


def test_pipeline_copies_directory_into_build(tmp_path: Path) -> None:
    dir_site = _make_site(tmp_path)
    done = _Done()

    BuildPipeline(dir_site).use(
        static_files({"source": "assets", "destination": "assets"})
    ).build(done)

    assert done.error is None
    assert _files_under(dir_site / "build") == {
        "index.md",
        "assets/a.js",
        "assets/b.tmp",
        "assets/styles/main.css",
    }


def test_pipeline_honors_ignore_patterns(tmp_path: Path) -> None:
    dir_site = _make_site(tmp_path)
    done = _Done()

    BuildPipeline(dir_site).use(
        static_files(
            {
                "source": "assets",
                "destination": "assets",
                "ignore": ["*.tmp", "styles/"],
            }
        )
    ).build(done)

    assert done.error is None
    assert _files_under(dir_site / "build" / "assets") == {"a.js"}


def test_plugin_missing_source_is_noop_success(
    tmp_path: Path, log_warnings: list[str]
) -> None:
    dir_site = _make_site(tmp_path)
    done = _Done()
    plugin = static_files({"destination": "assets"})

    with pytest.warns(ConfigurationWarning, match="`source`"):
        BuildPipeline(dir_site).use(plugin).build(done)

    assert done.error is None
    assert not (dir_site / "build" / "assets").exists()
    assert any("`source`" in c for c in log_warnings)
    assert plugin.last_sync is not None
    assert plugin.last_sync.state is EnumSyncState.DONE


def test_plugin_nonexistent_source_reports_error(tmp_path: Path) -> None:
    dir_site = _make_site(tmp_path)
    done = _Done()

    static_files({"source": "nope", "destination": "assets"})(
        {}, BuildPipeline(dir_site), done
    )

    c_error = done.error
    assert c_error is not None
    assert "error" in c_error
    assert str(dir_site.resolve() / "nope") in c_error
    assert c_error.startswith(PREFIX_COPY_ERROR)


def test_pipeline_build_surfaces_plugin_error(tmp_path: Path) -> None:
    dir_site = _make_site(tmp_path)
    done = _Done()

    BuildPipeline(dir_site).use(
        static_files({"source": "nope", "destination": "assets"})
    ).build(done)

    assert done.error is not None
    assert "Source directory does not exist" in done.error


def test_plugin_merges_into_file_table(tmp_path: Path) -> None:
    dir_site = _make_site(tmp_path)
    done = _Done()

    dict_files = BuildPipeline(dir_site).use(
        static_files(
            {
                "source": "assets",
                "destination": "static",
                "target": "files",
                "ignore": ["*.tmp"],
            }
        )
    ).build(done)

    assert done.error is None
    assert sorted(dict_files) == [
        "index.md",
        "static/a.js",
        "static/styles/main.css",
    ]
    assert isinstance(dict_files["static/a.js"], SpecVirtualFile)
    assert (dir_site / "build" / "static" / "a.js").read_text() == "console.log(1)"


def test_plugin_file_table_respects_overwrite_false(tmp_path: Path) -> None:
    dir_site = _make_site(tmp_path)
    _write_text(dir_site / "src" / "static" / "a.js", "from src")
    done = _Done()

    dict_files = BuildPipeline(dir_site).use(
        static_files(
            {
                "source": "assets",
                "destination": "static",
                "target": "files",
                "overwrite": False,
            }
        )
    ).build(done)

    assert done.error is None
    assert dict_files["static/a.js"].contents == b"from src"
    assert dict_files["static/b.tmp"].contents == b"tmp"


def test_plugin_file_table_dotted_destination_matches_host_keys(
    tmp_path: Path,
) -> None:
    dir_site = _make_site(tmp_path)
    _write_text(dir_site / "src" / "static" / "a.js", "from src")
    done = _Done()

    dict_files = BuildPipeline(dir_site).use(
        static_files(
            {
                "source": "assets",
                "destination": "./static",
                "target": "files",
                "overwrite": False,
            }
        )
    ).build(done)

    assert done.error is None
    assert [c for c in dict_files if c.endswith("a.js")] == ["static/a.js"]
    assert dict_files["static/a.js"].contents == b"from src"


def test_plugin_file_target_without_table_fails(tmp_path: Path) -> None:
    dir_site = _make_site(tmp_path)
    done = _Done()

    static_files({"source": "assets", "destination": "assets", "target": "files"})(
        None, _BareHost(dir_site), done
    )

    assert done.error is not None
    assert done.error.startswith(PREFIX_UNEXPECTED)
    assert "file table" in done.error


def test_plugin_works_without_host_debug(tmp_path: Path) -> None:
    dir_site = _make_site(tmp_path)
    done = _Done()

    static_files({"source": "assets", "destination": "assets"})(
        {}, _BareHost(dir_site), done
    )

    assert done.error is None
    assert (dir_site / "build" / "assets" / "a.js").exists()


def test_plugin_uses_host_debug_namespace(tmp_path: Path) -> None:
    dir_site = _make_site(tmp_path)
    l_namespaces: list[str] = []
    l_events: list[str] = []

    class _DebugHost(_BareHost):
        def debug(self, namespace: str):  # type: ignore[no-untyped-def]
            l_namespaces.append(namespace)
            return lambda message, *args: l_events.append(message % args)

    done = _Done()
    static_files({"source": "assets", "destination": "assets"})(
        {}, _DebugHost(dir_site), done
    )

    assert done.error is None
    assert l_namespaces == ["staticsync"]
    assert l_events[0].startswith("Running with options:")
    assert any(c.startswith("Source directory:") for c in l_events)


def test_plugin_never_raises_on_resolver_failure(tmp_path: Path) -> None:
    class _BrokenHost(_BareHost):
        def path(self, *parts: str) -> str:
            raise RuntimeError("path resolver failed")

    done = _Done()
    static_files({"source": "assets", "destination": "assets"})(
        {}, _BrokenHost(tmp_path), done
    )

    assert done.error == f"{PREFIX_UNEXPECTED}: path resolver failed"


def test_plugin_reports_cancellation(tmp_path: Path) -> None:
    dir_site = _make_site(tmp_path)
    event_cancel = threading.Event()
    event_cancel.set()
    done = _Done()

    plugin = static_files(
        {"source": "assets", "destination": "assets"}, event_cancel=event_cancel
    )
    plugin({}, _BareHost(dir_site), done)

    assert done.error is not None
    assert done.error.startswith(PREFIX_CANCELLED)
    assert plugin.last_sync is not None
    assert plugin.last_sync.state is EnumSyncState.CANCELLED


@pytest.mark.skipif(os.name != "posix", reason="permission tests require posix")
def test_plugin_copy_failure_embeds_cause(tmp_path: Path) -> None:
    dir_site = _make_site(tmp_path)
    dir_locked = dir_site / "build" / "assets"
    _write_text(dir_locked / "a.js", "locked")
    dir_locked.chmod(0o500)
    try:
        if os.access(dir_locked, os.W_OK):
            pytest.skip("running with privileges that bypass file permissions")
        done = _Done()

        static_files({"source": "assets", "destination": "assets"})(
            {}, _BareHost(dir_site), done
        )

        assert done.error is not None
        assert done.error.startswith(PREFIX_COPY_ERROR)
        assert "Permission denied" in done.error
        assert (dir_locked / "a.js").read_text() == "locked"
        assert sorted(p.name for p in dir_locked.iterdir()) == ["a.js"]
    finally:
        dir_locked.chmod(0o755)


def test_build_target_requires_destination(tmp_path: Path) -> None:
    spec_options = SpecSyncOptions.from_raw({"source": "assets"})

    with pytest.raises(ValueError, match="`destination`"):
        build_target(spec_options, files={}, host=_BareHost(tmp_path))


def test_plugin_exposes_normalized_options() -> None:
    plugin = static_files({"source": "assets", "destination": "assets"})

    assert isinstance(plugin, StaticFilesPlugin)
    assert plugin.options.overwrite is True
    assert plugin.options.preserve_timestamps is False
    assert "assets" in repr(plugin)
