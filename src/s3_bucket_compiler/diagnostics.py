"""Violation records and the accumulator shared by every compilation stage."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ViolationCode(str, Enum):
    """Closed set of violation codes."""

    MUTUALLY_EXCLUSIVE = "MUTUALLY_EXCLUSIVE"
    REQUIRES_FIELD = "REQUIRES_FIELD"
    DUPLICATE_KEY = "DUPLICATE_KEY"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    INVALID_ENUM_VALUE = "INVALID_ENUM_VALUE"
    NON_MONOTONIC_SEQUENCE = "NON_MONOTONIC_SEQUENCE"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Violation:
    """A single problem found in a descriptor.

    ``section`` is the sub-configuration (``lifecycle_rules``,
    ``replication.rules``...), ``rule`` the rule name or destination address
    within a keyed collection, and ``field`` the remaining dotted path.
    """

    section: str
    rule: str
    field: str
    code: ViolationCode
    message: str
    severity: Severity = Severity.ERROR

    @property
    def path(self) -> str:
        return ".".join(part for part in (self.section, self.rule, self.field) if part)

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def sort_key(self) -> tuple[tuple[tuple[int, int, str], ...], ...]:
        return (_path_key(self.section), _path_key(self.rule), _path_key(self.field))

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "code": self.code.value,
            "severity": self.severity.value,
            "message": self.message,
        }


def _path_key(path: str) -> tuple[tuple[int, int, str], ...]:
    # List indices sort numerically, so cors_rules.2 precedes cors_rules.10
    return tuple((0, int(part), "") if part.isdigit() else (1, 0, part) for part in path.split(".") if part)


class DiagnosticScope:
    """Reports violations for one section (and optionally one rule)."""

    def __init__(self, sink: Diagnostics, section: str, rule: str = ""):
        self._sink = sink
        self.section = section
        self.rule = rule

    def error(self, field: str, code: ViolationCode, message: str) -> None:
        self._sink.add(Violation(self.section, self.rule, field, code, message, Severity.ERROR))

    def warning(self, field: str, code: ViolationCode, message: str) -> None:
        self._sink.add(Violation(self.section, self.rule, field, code, message, Severity.WARNING))

    def path(self, field: str) -> str:
        return ".".join(part for part in (self.section, self.rule, field) if part)

    def _label(self, field: str) -> str:
        return field or self.section

    def require(self, value: Any, field: str, message: str | None = None) -> bool:
        """Report ``REQUIRES_FIELD`` when ``value`` is unset or empty.

        Returns:
            True if the value is present
        """
        if value is None or value == "" or value == () or value == {}:
            # A value dropped for having the wrong type is already reported
            if not self._sink.has_error_at(self.path(field)):
                self.error(field, ViolationCode.REQUIRES_FIELD, message or f"{self._label(field)} is required")
            return False
        return True

    def one_of(self, value: Any, allowed: frozenset[str], field: str) -> bool:
        """Report ``INVALID_ENUM_VALUE`` when ``value`` is set but not allowed."""
        if value is not None and value not in allowed:
            choices = ", ".join(sorted(allowed))
            self.error(
                field,
                ViolationCode.INVALID_ENUM_VALUE,
                f"{self._label(field)} {value!r} is not one of: {choices}",
            )
            return False
        return True

    def in_range(self, value: int | None, field: str, minimum: int | None = None, maximum: int | None = None) -> bool:
        """Report ``OUT_OF_RANGE`` when ``value`` is set and outside [minimum, maximum]."""
        if value is None:
            return True
        if (minimum is not None and value < minimum) or (maximum is not None and value > maximum):
            if maximum is None:
                bounds = f"at least {minimum}"
            elif minimum is None:
                bounds = f"at most {maximum}"
            else:
                bounds = f"between {minimum} and {maximum}"
            self.error(field, ViolationCode.OUT_OF_RANGE, f"{self._label(field)} must be {bounds}, got {value}")
            return False
        return True


class Diagnostics:
    """Collects violations from every stage without stopping at the first one."""

    def __init__(self) -> None:
        self._violations: list[Violation] = []

    def add(self, violation: Violation) -> None:
        self._violations.append(violation)

    def scope(self, section: str, rule: str = "") -> DiagnosticScope:
        return DiagnosticScope(self, section, rule)

    def has_errors(self, warnings_as_errors: bool = False) -> bool:
        if warnings_as_errors:
            return bool(self._violations)
        return any(violation.is_error for violation in self._violations)

    def has_error_at(self, path: str) -> bool:
        return any(violation.is_error and violation.path == path for violation in self._violations)

    def __len__(self) -> int:
        return len(self._violations)

    def sorted(self) -> tuple[Violation, ...]:
        """Return violations ordered by section, rule and field path.

        The sort is stable, so violations sharing a path keep the order in
        which they were reported.
        """
        return tuple(sorted(self._violations, key=Violation.sort_key))
