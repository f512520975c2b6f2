"""Version and version range handling for nuresolve.

NuGet versions are parsed leniently: a dotted numeric release followed by
an optional qualifier (``1.2``, ``4.0.0.0``, ``2.0.0-beta.1``,
``1.0.0-rc1+build.5``).  Missing trailing release components count as
zero, a release sorts after any of its pre-releases, and qualifier parts
compare numeric-before-alpha, numerically or case-insensitively.  Build
metadata after ``+`` never takes part in comparisons.

Version ranges use interval notation:

==================  ==========================================
``1.0``             exactly 1.0 (a bare version is *pinned*)
``[1.0]``           exactly 1.0
``[1.0,2.0)``       1.0 ≤ v < 2.0
``(1.0,)``          v > 1.0
``(,2.0]``          v ≤ 2.0
``[1.0,1.0]``       exactly 1.0 (identical bounds collapse)
==================  ==========================================

A bare version is deliberately **not** treated as "1.0 or higher".

Typical usage::

    >>> parse_range("[1.0.0,2.0.0)").contains(parse_version("1.5.0"))
    True
    >>> parse_range("1.0.0").contains(parse_version("1.5.0"))
    False
"""

from __future__ import annotations

import re
import functools
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from nuresolve.exceptions import MalformedRangeError

# Public API
__all__ = [
    "Version",
    "VersionRange",
    "parse_version",
    "parse_range",
    "normalize_version",
]

_NUMERIC_RELEASE = re.compile(r"^(\d+(?:\.\d+)*)(.*)$")
_QUALIFIER_SEPARATORS = re.compile(r"[.\-]")

_OPENERS = "[("
_CLOSERS = "])"
_RANGE_CHARS = "[]()"

# (kind, number, text): numeric parts (kind 0) sort before alphanumeric ones
_QualifierPart = Tuple[int, int, str]


def _qualifier_part(text: str) -> _QualifierPart:
    if text.isdigit():
        return (0, int(text), "")
    return (1, 0, text.lower())


def normalize_version(text: str) -> str:
    """Strip build metadata (everything after ``+``) from a version string.

    Example::

        >>> normalize_version("1.0.0+sha.abc")
        '1.0.0'
    """
    return text.split("+", 1)[0]


@functools.total_ordering
class Version:
    """A leniently parsed, comparable package version.

    ``str(version)`` returns the text the version was created from, so a
    version picked from a registry catalog keeps the registry's spelling.

    Args:
        text: Version text, e.g. ``"1.2.3-beta.1"``.
    """

    __slots__ = ("text", "release", "qualifier", "_key")

    def __init__(self, text: str) -> None:
        self.text = text.strip()

        core = normalize_version(self.text)
        match = _NUMERIC_RELEASE.match(core)
        if match:
            numbers, rest = match.groups()
            release = tuple(int(part) for part in numbers.split("."))
        else:
            release, rest = (), core

        self.release: Tuple[int, ...] = release
        self.qualifier: Tuple[_QualifierPart, ...] = tuple(
            _qualifier_part(part) for part in _QUALIFIER_SEPARATORS.split(rest) if part
        )

        trimmed = list(release)
        while trimmed and trimmed[-1] == 0:
            trimmed.pop()

        # A release (no qualifier) sorts after every qualified version of it
        self._key = (tuple(trimmed), 0 if self.qualifier else 1, self.qualifier)

    @property
    def is_prerelease(self) -> bool:
        return bool(self.qualifier)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key == other._key

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key < other._key

    def __hash__(self) -> int:
        return hash(self._key)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"Version({self.text!r})"


def parse_version(text: Union[str, Version]) -> Version:
    """Parse *text* into a :class:`Version` (instances pass through)."""
    if isinstance(text, Version):
        return text
    return Version(text)


@dataclass(frozen=True)
class VersionRange:
    """An interval of versions with optional, open or closed bounds.

    Attributes:
        lower: Lower bound, ``None`` when unbounded.
        lower_inclusive: Whether *lower* itself is contained.
        upper: Upper bound, ``None`` when unbounded.
        upper_inclusive: Whether *upper* itself is contained.
    """

    lower: Optional[Version]
    lower_inclusive: bool
    upper: Optional[Version]
    upper_inclusive: bool

    @classmethod
    def pinned(cls, version: Union[str, Version]) -> "VersionRange":
        """Create the single-point range ``[version]``."""
        parsed = parse_version(version)
        return cls(lower=parsed, lower_inclusive=True, upper=parsed, upper_inclusive=True)

    @property
    def is_pinned(self) -> bool:
        return (
            self.lower is not None
            and self.lower_inclusive
            and self.upper_inclusive
            and self.lower == self.upper
        )

    def contains(self, version: Union[str, Version]) -> bool:
        """Return True if *version* lies inside the range."""
        candidate = parse_version(version)

        if self.lower is not None:
            if candidate < self.lower:
                return False
            if candidate == self.lower and not self.lower_inclusive:
                return False

        if self.upper is not None:
            if candidate > self.upper:
                return False
            if candidate == self.upper and not self.upper_inclusive:
                return False

        return True

    def __contains__(self, version: object) -> bool:
        if not isinstance(version, (str, Version)):
            return False
        return self.contains(version)

    def __str__(self) -> str:
        if self.is_pinned:
            return f"[{self.lower}]"
        return "{}{},{}{}".format(
            "[" if self.lower_inclusive else "(",
            self.lower if self.lower is not None else "",
            self.upper if self.upper is not None else "",
            "]" if self.upper_inclusive else ")",
        )


def _pinned_from_text(spec: str, original: str) -> VersionRange:
    """Parse a comma-free range: ``1.0`` or ``[1.0]``."""
    if spec[0] in _OPENERS or spec[-1] in _CLOSERS:
        if not (spec.startswith("[") and spec.endswith("]")):
            raise MalformedRangeError(
                f"Unbalanced brackets in version range '{original}'",
                range_text=original,
            )
        spec = spec[1:-1]

    if not spec or any(char in _RANGE_CHARS for char in spec):
        raise MalformedRangeError(
            f"Invalid pinned version in range '{original}'",
            range_text=original,
        )

    return VersionRange.pinned(spec)


def parse_range(text: str) -> VersionRange:
    """Parse a version range expression.

    Whitespace is ignored.  Input without a comma is always pinned; input
    with a comma is an interval whose textually identical bounds collapse
    to the pinned form.

    Raises:
        MalformedRangeError: Unbalanced or missing brackets, empty
            bounds, more than two bounds, or bounds in the wrong order.
    """
    spec = "".join(text.split())
    if not spec:
        raise MalformedRangeError("Empty version range", range_text=text)

    if "," not in spec:
        return _pinned_from_text(spec, text)

    bounds = spec.strip(_RANGE_CHARS).split(",")
    if len(bounds) != 2:
        raise MalformedRangeError(
            f"Version range '{text}' must have exactly two bounds",
            range_text=text,
        )

    lower_text, upper_text = bounds
    if lower_text == upper_text:
        if not lower_text:
            raise MalformedRangeError(
                f"Version range '{text}' has no bounds",
                range_text=text,
            )
        return VersionRange.pinned(lower_text)

    opener, closer = spec[0], spec[-1]
    inner = spec[1:-1]
    if (
        opener not in _OPENERS
        or closer not in _CLOSERS
        or any(char in _RANGE_CHARS for char in inner)
    ):
        raise MalformedRangeError(
            f"Unbalanced brackets in version range '{text}'",
            range_text=text,
        )

    lower = parse_version(lower_text) if lower_text else None
    upper = parse_version(upper_text) if upper_text else None
    lower_inclusive = opener == "["
    upper_inclusive = closer == "]"

    if lower is not None and upper is not None:
        if lower > upper:
            raise MalformedRangeError(
                f"Version range '{text}' has its lower bound above its upper bound",
                range_text=text,
            )
        if lower == upper and not (lower_inclusive and upper_inclusive):
            raise MalformedRangeError(
                f"Version range '{text}' cannot have identical open bounds",
                range_text=text,
            )

    return VersionRange(
        lower=lower,
        lower_inclusive=lower_inclusive,
        upper=upper,
        upper_inclusive=upper_inclusive,
    )
