"""
Version Constraints.

This module parses version strings and evaluates dependency constraints.

Grammar:
- An optional operator (>=, >, <=, <, ^) followed by a version
- No operator means exact equality
- ^X.Y.Z matches >=X.Y.Z and <(X+1).0.0

Versions compare component-wise as integers; missing trailing components
count as zero, and pre-release/build suffixes are ignored.
"""

import re
from dataclasses import dataclass

from addonkit.addon.errors import ConstraintError

OPERATORS = (">=", "<=", ">", "<", "^")

_CONSTRAINT_RE = re.compile(r"^(>=|<=|>|<|\^)?\s*(\S+)$")
_COMPONENT_RE = re.compile(r"^\d+$")


def parse_version(version: str) -> tuple[int, ...]:
    """
    Parse a version string into integer components.

    Args:
        version: Version string (e.g. "1.2.3", "2.0.0-beta+7")

    Returns:
        Tuple of integer components

    Raises:
        ConstraintError: If the version is empty or not numeric
    """
    if not isinstance(version, str):
        raise ConstraintError(f"Version must be a string, got {type(version).__name__}")

    core = version.strip().split("+", 1)[0].split("-", 1)[0]
    if not core:
        raise ConstraintError(f"Invalid version: {version!r}")

    parts = core.split(".")
    for part in parts:
        if not _COMPONENT_RE.match(part):
            raise ConstraintError(
                f"Invalid version: {version!r}. "
                f"Expected dot-separated numeric components (e.g. '1.0.0')"
            )
    return tuple(int(part) for part in parts)


def compare_versions(v1: str, v2: str) -> int:
    """
    Compare two version strings.

    Returns:
        -1 if v1 < v2, 0 if v1 == v2, 1 if v1 > v2
    """
    parts1 = list(parse_version(v1))
    parts2 = list(parse_version(v2))

    max_len = max(len(parts1), len(parts2))
    parts1.extend([0] * (max_len - len(parts1)))
    parts2.extend([0] * (max_len - len(parts2)))

    for p1, p2 in zip(parts1, parts2, strict=True):
        if p1 < p2:
            return -1
        if p1 > p2:
            return 1
    return 0


@dataclass(frozen=True)
class VersionConstraint:
    """
    A parsed dependency constraint.

    Attributes:
        operator: One of "", ">=", ">", "<=", "<", "^" ("" is exact match)
        version: Version the operator applies to
    """

    operator: str
    version: str

    def matches(self, version: str) -> bool:
        """
        Check whether a concrete version satisfies this constraint.

        Raises:
            ConstraintError: If the version is malformed
        """
        cmp = compare_versions(version, self.version)

        if self.operator == "":
            return cmp == 0
        if self.operator == ">=":
            return cmp >= 0
        if self.operator == ">":
            return cmp > 0
        if self.operator == "<=":
            return cmp <= 0
        if self.operator == "<":
            return cmp < 0
        if self.operator == "^":
            return cmp >= 0 and compare_versions(version, self.upper_bound()) < 0
        raise ConstraintError(f"Unknown version operator: {self.operator!r}")

    def upper_bound(self) -> str:
        """Exclusive upper bound of a caret range."""
        major = parse_version(self.version)[0]
        return f"{major + 1}.0.0"

    def __str__(self) -> str:
        return f"{self.operator}{self.version}"


def parse_constraint(constraint: str) -> VersionConstraint:
    """
    Parse a constraint string.

    Args:
        constraint: Constraint string (e.g. ">=1.0.0", "^2.1", "1.4.0")

    Returns:
        VersionConstraint object

    Raises:
        ConstraintError: If the constraint string is malformed
    """
    if not isinstance(constraint, str):
        raise ConstraintError(
            f"Constraint must be a string, got {type(constraint).__name__}"
        )

    match = _CONSTRAINT_RE.match(constraint.strip())
    if not match:
        raise ConstraintError(
            f"Invalid version constraint: {constraint!r}. "
            f"Expected an optional operator and a version (e.g. '>=1.0.0')"
        )

    operator, version = match.groups()
    try:
        parse_version(version)
    except ConstraintError as e:
        raise ConstraintError(f"Invalid version constraint: {constraint!r}: {e}") from e

    return VersionConstraint(operator=operator or "", version=version)


def satisfies(version: str, constraint: str) -> bool:
    """
    Check whether a version satisfies a constraint string.

    Raises:
        ConstraintError: If either argument is malformed
    """
    return parse_constraint(constraint).matches(version)
