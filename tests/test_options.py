from __future__ import annotations

import sys
from pathlib import Path

import pytest
from loguru import logger

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(SRC_DIR))

from staticsync.options import SpecSyncOptions, normalize_options  # noqa: E402
from staticsync.spec import EnumDestinationKind  # noqa: E402


def test_options_defaults() -> None:
    spec_options = normalize_options()

    assert spec_options.source is None
    assert spec_options.destination is None
    assert spec_options.overwrite is True
    assert spec_options.preserve_timestamps is False
    assert not spec_options.ignore
    assert spec_options.target is EnumDestinationKind.DIRECTORY
    assert spec_options.num_workers_max is None
    assert spec_options.fields_missing == ("source", "destination")


def test_options_caller_values_override_defaults() -> None:
    spec_options = SpecSyncOptions.from_raw(
        {
            "source": "static",
            "destination": "public",
            "overwrite": False,
            "preserveTimestamps": True,
            "ignore": ["*.svg", "drafts/"],
            "target": "files",
            "numWorkersMax": 2,
        }
    )

    assert spec_options.fields_missing == ()
    assert spec_options.overwrite is False
    assert spec_options.preserve_timestamps is True
    assert spec_options.ignore.raw == ("*.svg", "drafts/")
    assert spec_options.target is EnumDestinationKind.FILES
    assert spec_options.num_workers_max == 2
    assert spec_options.to_dict()["ignore"] == ["*.svg", "drafts/"]


def test_options_filter_is_an_alias_of_ignore() -> None:
    spec_options = SpecSyncOptions.from_raw({"filter": "*.tmp"})
    assert spec_options.ignore.matches_any("b.tmp")


def test_options_reject_duplicate_aliases() -> None:
    with pytest.raises(ValueError, match="more than once"):
        SpecSyncOptions.from_raw({"ignore": ["a"], "filter": ["b"]})


def test_options_empty_paths_count_as_missing() -> None:
    spec_options = SpecSyncOptions.from_raw({"source": "", "destination": Path("x")})
    assert spec_options.fields_missing == ("source",)
    assert spec_options.destination == "x"


@pytest.mark.parametrize(
    "raw",
    [
        {"overwrite": "yes"},
        {"preserve_timestamps": 1},
        {"source": 3},
        {"target": "s3"},
        {"ignore": [""]},
        {"num_workers_max": 0},
        {"num_workers_max": True},
    ],
)
def test_options_reject_invalid_values(raw: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        SpecSyncOptions.from_raw(raw)


def test_options_warn_on_unknown_keys() -> None:
    l_msgs: list[str] = []
    handler_id = logger.add(l_msgs.append, level="WARNING", format="{message}")
    try:
        spec_options = SpecSyncOptions.from_raw({"source": "a", "colour": "blue"})
    finally:
        logger.remove(handler_id)

    assert spec_options.source == "a"
    assert any("`colour`" in c for c in l_msgs)


def test_options_from_raw_passes_through_built_options() -> None:
    spec_options = SpecSyncOptions(source="a", destination="b")
    assert SpecSyncOptions.from_raw(spec_options) is spec_options
