"""Constrained glob dialect used by ``ignore`` options.

Supported forms:

* plain patterns, where ``*`` matches any run of characters except ``/`` and
  ``?`` matches exactly one character except ``/``;
* ``name/``, which matches the directory ``name`` and everything beneath it;
* ``name/**``, which behaves exactly like ``name/``.

Patterns are matched against the full ``/``-separated path relative to the
synchronization root, so ``*.tmp`` matches ``b.tmp`` but not ``nested/b.tmp``.

Known limitations: character classes (``[abc]``), brace expansion (``{a,b}``)
and negation (``!pattern``) are not supported; such characters are matched
literally. ``..`` segments are not normalized and are matched literally, so
their behavior is unspecified.
"""

import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import TypeAlias

SEPARATOR = "/"
SUFFIX_DIRECTORY = "/"
SUFFIX_RECURSIVE = "/**"


class EnumPatternKind(StrEnum):
    PLAIN = "plain"
    DIRECTORY = "directory"  # name/
    RECURSIVE = "recursive"  # name/**


################################################################################
# #region Compiler


def translate_glob(pattern: str) -> str:
    """Translate a plain pattern into an (unanchored) regular expression.

    Args:
        pattern: Pattern in the constrained glob dialect.

    Returns:
        Regular expression source where only ``*`` and ``?`` are special.
    """
    l_parts: list[str] = []
    for _char in pattern:
        if _char == "*":
            l_parts.append(f"[^{SEPARATOR}]*")
        elif _char == "?":
            l_parts.append(f"[^{SEPARATOR}]")
        else:
            l_parts.append(re.escape(_char))
    return "".join(l_parts)


@dataclass(frozen=True, slots=True)
class SpecCompiledPattern:
    """A compiled pattern; ``matches`` is pure and side-effect free."""

    pattern: str
    kind: EnumPatternKind
    dir_prefix: str | None = None
    regex: re.Pattern[str] | None = None

    def matches(self, path: str) -> bool:
        if self.regex is not None:
            return self.regex.fullmatch(path) is not None
        return path == self.dir_prefix or path.startswith(
            f"{self.dir_prefix}{SEPARATOR}"
        )


def compile_pattern(pattern: str) -> SpecCompiledPattern:
    """Compile a single pattern.

    Args:
        pattern: Non-empty pattern string.

    Returns:
        SpecCompiledPattern: Predicate over relative paths.

    Raises:
        ValueError: If ``pattern`` is not a non-empty string.
    """
    if not isinstance(pattern, str) or not pattern:
        raise ValueError(f"Pattern must be a non-empty string, got {pattern!r}.")

    if pattern.endswith(SUFFIX_DIRECTORY):
        return SpecCompiledPattern(
            pattern=pattern,
            kind=EnumPatternKind.DIRECTORY,
            dir_prefix=pattern[: -len(SUFFIX_DIRECTORY)],
        )
    if pattern.endswith(SUFFIX_RECURSIVE):
        return SpecCompiledPattern(
            pattern=pattern,
            kind=EnumPatternKind.RECURSIVE,
            dir_prefix=pattern[: -len(SUFFIX_RECURSIVE)],
        )
    return SpecCompiledPattern(
        pattern=pattern,
        kind=EnumPatternKind.PLAIN,
        regex=re.compile(translate_glob(pattern)),
    )


def matches_pattern(path: str, pattern: str) -> bool:
    return compile_pattern(pattern).matches(path)


# #endregion
################################################################################
# #region PatternSet


@dataclass(frozen=True, slots=True)
class SpecPatternSet:
    """Ordered collection of compiled patterns, matched with logical OR."""

    patterns: tuple[SpecCompiledPattern, ...] = ()

    def __len__(self) -> int:
        return len(self.patterns)

    def __iter__(self) -> Iterator[SpecCompiledPattern]:
        return iter(self.patterns)

    @property
    def raw(self) -> tuple[str, ...]:
        return tuple(p.pattern for p in self.patterns)

    def matches_any(self, path: str) -> bool:
        return any(p.matches(path) for p in self.patterns)

    @classmethod
    def from_raw(cls, value: "TypePatternInput") -> "SpecPatternSet":
        """Compile raw patterns once for reuse across a walk.

        Args:
            value: A pattern set, a sequence of patterns, a single pattern, or None.

        Returns:
            SpecPatternSet: Compiled set (empty when ``value`` is None or empty).

        Raises:
            ValueError: If ``value`` is not a sequence of non-empty strings.
        """
        if isinstance(value, SpecPatternSet):
            return value
        if value is None:
            return cls()
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, Sequence):
            raise ValueError(
                f"Patterns must be a string or a sequence of strings, got {type(value).__name__}."
            )
        return cls(patterns=tuple(compile_pattern(p) for p in value))


TypePatternInput: TypeAlias = SpecPatternSet | Sequence[str] | str | None


def matches_any_pattern(path: str, patterns: TypePatternInput) -> bool:
    """Check whether ``path`` matches any pattern; empty or absent sets never match."""
    return SpecPatternSet.from_raw(patterns).matches_any(path)


# #endregion
################################################################################
