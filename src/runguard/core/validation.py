"""Input validation rules checked before a command runs.

Manifesto:
    Commands must validate inputs before executing.  Rules are declared once
    (a pattern, an integer range, a path requirement) and reused across
    calls, so validation is consistent and never mixed into the operation.

Rules are immutable and validated when they are built: an invalid regular
expression or an inverted range raises ``ConfigError`` immediately rather
than at first use.

Examples:
    >>> from runguard.core.validation import ValidationRule, validate
    >>> validate("42", ValidationRule.integer_range(0, 100)).is_ok()
    True
    >>> validate("abc", ValidationRule.integer_range(0, 100)).unwrap_err()
    NotAnInteger("'abc' is not a base-10 integer", category=VALIDATION)

Tags:
    runguard, validation, rules, paths
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum, IntFlag
from pathlib import Path
from typing import Any

from runguard.core.errors import (
    ConfigError,
    NotAnInteger,
    OutOfRange,
    PathNotFound,
    PatternMismatch,
    PermissionDenied,
    ValidationError,
    WrongType,
)
from runguard.core.result import Err, Ok, Result

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


class RuleKind(str, Enum):
    """Kind of check a ``ValidationRule`` performs."""

    STRING_PATTERN = "string_pattern"
    INTEGER_RANGE = "integer_range"
    PATH_EXISTENCE = "path_existence"


class PathType(str, Enum):
    """Required type of an existing path."""

    FILE = "file"
    DIRECTORY = "directory"


class Permission(IntFlag):
    """Permission bits a path must grant to the current process."""

    NONE = 0
    EXECUTE = os.X_OK
    WRITE = os.W_OK
    READ = os.R_OK


_PERMISSION_NAMES = {
    Permission.READ: "readable",
    Permission.WRITE: "writable",
    Permission.EXECUTE: "executable",
}


@dataclass(frozen=True)
class ValidationRule:
    """
    Definition of a single input check.

    Use the ``pattern_rule``, ``integer_range`` and ``path`` constructors rather
    than building the dataclass directly; they check the parameters.
    """

    kind: RuleKind
    pattern: str | None = None
    minimum: int | None = None
    maximum: int | None = None
    path_type: PathType | None = None
    permission: Permission = Permission.NONE
    description: str | None = None
    _compiled: re.Pattern[str] | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.kind == RuleKind.STRING_PATTERN:
            if self.pattern is None:
                raise ConfigError("STRING_PATTERN rule requires a pattern")
            try:
                object.__setattr__(self, "_compiled", re.compile(self.pattern))
            except re.error as e:
                raise ConfigError(f"invalid pattern {self.pattern!r}: {e}", cause=e) from e
        elif self.kind == RuleKind.INTEGER_RANGE:
            if (
                self.minimum is not None
                and self.maximum is not None
                and self.minimum > self.maximum
            ):
                raise ConfigError(f"minimum {self.minimum} is greater than maximum {self.maximum}")

    @classmethod
    def pattern_rule(cls, pattern: str, description: str | None = None) -> ValidationRule:
        """Value must fully match ``pattern``."""
        return cls(kind=RuleKind.STRING_PATTERN, pattern=pattern, description=description)

    @classmethod
    def integer_range(
        cls,
        minimum: int | None = None,
        maximum: int | None = None,
        description: str | None = None,
    ) -> ValidationRule:
        """Value must be a base-10 integer within ``[minimum, maximum]``."""
        return cls(
            kind=RuleKind.INTEGER_RANGE,
            minimum=minimum,
            maximum=maximum,
            description=description,
        )

    @classmethod
    def path(
        cls,
        path_type: PathType | str | None = None,
        permission: Permission = Permission.NONE,
        description: str | None = None,
    ) -> ValidationRule:
        """Value must name an existing path, optionally of a type and with permissions."""
        return cls(
            kind=RuleKind.PATH_EXISTENCE,
            path_type=PathType(path_type) if path_type is not None else None,
            permission=Permission(permission),
            description=description,
        )

    @property
    def compiled(self) -> re.Pattern[str]:
        """Compiled expression of a STRING_PATTERN rule."""
        if self._compiled is None:
            raise ConfigError(f"{self.kind.value} rule has no pattern")
        return self._compiled


# =============================================================================
# Checks
# =============================================================================


def _check_pattern(value: Any, rule: ValidationRule) -> Result[None]:
    text = str(value)
    if rule.compiled.fullmatch(text) is None:
        return Err(PatternMismatch(text, rule.pattern or ""))
    return Ok(None)


def parse_integer(value: Any) -> int | None:
    """Parse ``value`` as a base-10 integer, or return None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if not isinstance(value, str) or _INTEGER_RE.fullmatch(value) is None:
        return None
    try:
        return int(value, 10)
    except ValueError:
        # more digits than the interpreter converts
        return None


def _check_integer_range(value: Any, rule: ValidationRule) -> Result[None]:
    number = parse_integer(value)
    if number is None:
        return Err(NotAnInteger(value))
    if rule.minimum is not None and number < rule.minimum:
        return Err(OutOfRange(number, rule.minimum, rule.maximum))
    if rule.maximum is not None and number > rule.maximum:
        return Err(OutOfRange(number, rule.minimum, rule.maximum))
    return Ok(None)


def _describe(path: Path) -> str:
    if path.is_dir():
        return "directory"
    if path.is_file():
        return "file"
    return "special file"


def _check_path(value: Any, rule: ValidationRule) -> Result[None]:
    raw = os.fspath(value) if isinstance(value, (str, os.PathLike)) else str(value)
    try:
        resolved = Path(raw).expanduser().resolve()
    except (OSError, RuntimeError):
        # Symlink loops cannot be resolved
        return Err(PathNotFound(raw))

    try:
        if not resolved.exists():
            return Err(PathNotFound(raw))

        if rule.path_type == PathType.FILE and not resolved.is_file():
            return Err(WrongType(raw, expected="file", actual=_describe(resolved)))
        if rule.path_type == PathType.DIRECTORY and not resolved.is_dir():
            return Err(WrongType(raw, expected="directory", actual=_describe(resolved)))
    except PermissionError:
        # a parent directory denies search permission
        return Err(PermissionDenied(raw, missing="reachable"))
    except OSError:
        return Err(PathNotFound(raw))

    for flag, name in _PERMISSION_NAMES.items():
        if flag in rule.permission and not os.access(resolved, flag.value):
            return Err(PermissionDenied(raw, missing=name))

    return Ok(None)


_CHECKS = {
    RuleKind.STRING_PATTERN: _check_pattern,
    RuleKind.INTEGER_RANGE: _check_integer_range,
    RuleKind.PATH_EXISTENCE: _check_path,
}


def validate(value: Any, rule: ValidationRule) -> Result[None]:
    """
    Check ``value`` against ``rule``.

    Returns:
        ``Ok(None)`` when the value passes, otherwise ``Err`` carrying a
        ``ValidationError`` subclass.
    """
    if value is None:
        return Err(ValidationError("value is missing"))
    return _CHECKS[rule.kind](value, rule)


class Validator:
    """
    Stateless validator.

    Holds no configuration of its own; it exists so the command runner can
    be given an alternative implementation.
    """

    def validate(self, value: Any, rule: ValidationRule) -> Result[None]:
        """Check one value against one rule."""
        return validate(value, rule)

    def validate_all(self, checks: Iterable[tuple[str, Any, ValidationRule]]) -> Result[None]:
        """
        Check ``(name, value, rule)`` triples in order.

        Stops at the first failure; the returned error carries the input name
        in its context.
        """
        for name, value, rule in checks:
            result = self.validate(value, rule)
            if result.is_err():
                error = result.unwrap_err()
                if isinstance(error, ValidationError):
                    error.with_context(input_name=name)
                return result
        return Ok(None)


__all__ = [
    "RuleKind",
    "PathType",
    "Permission",
    "ValidationRule",
    "Validator",
    "validate",
    "parse_integer",
]
