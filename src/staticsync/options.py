from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from .pattern import SpecPatternSet
from .spec import EnumDestinationKind
from .util import validate_destination_kind, validate_flag, validate_optional_path

# raw key -> field name; camelCase keys mirror the options accepted by JS build hosts
KEYS_OPTION_ALIASES: dict[str, str] = {
    "source": "source",
    "destination": "destination",
    "overwrite": "overwrite",
    "preserve_timestamps": "preserve_timestamps",
    "preserveTimestamps": "preserve_timestamps",
    "ignore": "ignore",
    "filter": "ignore",
    "target": "target",
    "num_workers_max": "num_workers_max",
    "numWorkersMax": "num_workers_max",
}


@dataclass(frozen=True, slots=True)
class SpecSyncOptions:
    """Options for one synchronization run.

    Attributes:
        source: Source directory, relative to the host root. Required.
        destination: Destination directory (or file-table key prefix),
            relative to the build directory. Required.
        overwrite: Whether existing destination entries may be replaced.
        preserve_timestamps: Copy access/modification times from the source.
        ignore: Compiled patterns; matching entries are never written.
        target: Where synchronized files land.
        num_workers_max: Maximum copy worker threads (``None`` uses CPU count).
    """

    source: str | None = None
    destination: str | None = None
    overwrite: bool = True
    preserve_timestamps: bool = False
    ignore: SpecPatternSet = field(default_factory=SpecPatternSet)
    target: EnumDestinationKind = EnumDestinationKind.DIRECTORY
    num_workers_max: int | None = None

    @property
    def fields_missing(self) -> tuple[str, ...]:
        return tuple(
            c_name
            for c_name, c_value in (
                ("source", self.source),
                ("destination", self.destination),
            )
            if c_value is None
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "destination": self.destination,
            "overwrite": self.overwrite,
            "preserve_timestamps": self.preserve_timestamps,
            "ignore": list(self.ignore.raw),
            "target": self.target.value,
            "num_workers_max": self.num_workers_max,
        }

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any] | None = None) -> "SpecSyncOptions":
        """Build options from caller-supplied values over the defaults.

        Args:
            raw: Mapping of option names (snake_case or camelCase) to values.

        Returns:
            SpecSyncOptions: Validated options.

        Raises:
            ValueError: If a value has the wrong type or an ignore pattern is invalid.
        """
        if raw is None:
            return cls()
        if isinstance(raw, SpecSyncOptions):
            return raw

        dict_values: dict[str, Any] = {}
        for c_key, c_value in raw.items():
            c_field = KEYS_OPTION_ALIASES.get(c_key)
            if c_field is None:
                logger.warning(f"Ignoring unknown static files option: `{c_key}`")
                continue
            if c_field in dict_values:
                raise ValueError(
                    f"Option `{c_field}` given more than once (via `{c_key}`)."
                )
            dict_values[c_field] = c_value

        cls_default = cls()
        num_workers_max = dict_values.get("num_workers_max", cls_default.num_workers_max)
        if num_workers_max is not None and (
            isinstance(num_workers_max, bool)
            or not isinstance(num_workers_max, int)
            or num_workers_max < 1
        ):
            raise ValueError(
                f"Arg `num_workers_max` must be an int >= 1 or None, got {num_workers_max!r}."
            )

        return cls(
            source=validate_optional_path(
                "source", dict_values.get("source", cls_default.source)
            ),
            destination=validate_optional_path(
                "destination", dict_values.get("destination", cls_default.destination)
            ),
            overwrite=validate_flag(
                "overwrite", dict_values.get("overwrite", cls_default.overwrite)
            ),
            preserve_timestamps=validate_flag(
                "preserve_timestamps",
                dict_values.get("preserve_timestamps", cls_default.preserve_timestamps),
            ),
            ignore=SpecPatternSet.from_raw(dict_values.get("ignore")),
            target=validate_destination_kind(
                dict_values.get("target", cls_default.target)
            ),
            num_workers_max=num_workers_max,
        )


def normalize_options(raw: Mapping[str, Any] | None = None) -> SpecSyncOptions:
    return SpecSyncOptions.from_raw(raw)
