from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(SRC_DIR))

from staticsync.errors import FilesystemError  # noqa: E402
from staticsync.host import BuildError, BuildPipeline  # noqa: E402


def _write_text(path: Path, text: str = "x") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


def test_pipeline_resolves_paths(tmp_path: Path) -> None:
    pipeline = BuildPipeline(tmp_path, source="content", destination="public")

    assert pipeline.source() == str(tmp_path.resolve() / "content")
    assert pipeline.destination() == str(tmp_path.resolve() / "public")
    assert pipeline.path("a", "b") == str(tmp_path.resolve() / "a" / "b")
    # absolute parts win, as with os.path.join
    assert pipeline.path(pipeline.destination(), "assets") == str(
        tmp_path.resolve() / "public" / "assets"
    )


@pytest.mark.skipif(os.name != "posix", reason="mode bits require posix")
def test_pipeline_round_trips_source_tree(tmp_path: Path) -> None:
    _write_text(tmp_path / "src" / "index.md", "# hi")
    _write_text(tmp_path / "src" / "posts" / "one.md", "one")
    (tmp_path / "src" / "posts" / "one.md").chmod(0o600)

    dict_files = BuildPipeline(tmp_path).build()

    assert sorted(dict_files) == ["index.md", "posts/one.md"]
    assert (tmp_path / "build" / "posts" / "one.md").read_text() == "one"
    assert (tmp_path / "build" / "posts" / "one.md").stat().st_mode & 0o777 == 0o600


def test_pipeline_cleans_destination(tmp_path: Path) -> None:
    _write_text(tmp_path / "src" / "index.md")
    _write_text(tmp_path / "build" / "stale.txt")

    BuildPipeline(tmp_path).build()
    assert not (tmp_path / "build" / "stale.txt").exists()

    _write_text(tmp_path / "build" / "stale.txt")
    BuildPipeline(tmp_path, if_clean=False).build()
    assert (tmp_path / "build" / "stale.txt").exists()


def test_pipeline_rejects_plugin_calling_done_twice(tmp_path: Path) -> None:
    _write_text(tmp_path / "src" / "index.md")

    def _chatty(files, pipeline, done):  # type: ignore[no-untyped-def]
        done(None)
        done(None)

    with pytest.raises(BuildError, match="2 times"):
        BuildPipeline(tmp_path).use(_chatty).build()


def test_pipeline_missing_source_raises_without_callback(tmp_path: Path) -> None:
    with pytest.raises(FilesystemError):
        BuildPipeline(tmp_path).build()

    l_errors: list[str | None] = []
    BuildPipeline(tmp_path).build(l_errors.append)
    assert len(l_errors) == 1 and "does not exist" in (l_errors[0] or "")
