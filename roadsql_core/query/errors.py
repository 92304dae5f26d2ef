"""RoadSQL parse errors.

Every failure raised by the clause parsers derives from SQLParseError so that
callers can reject a statement with a single ``except`` clause, while still
telling structural problems apart from parameter-contract violations.

    SQLParseError
    ├── StructuralError
    │   ├── MultipleStatementsError
    │   ├── MissingFromError
    │   ├── UnbalancedParenthesesError
    │   ├── NestingTooDeepError
    │   └── ConditionSyntaxError
    └── ParameterFormatError
        ├── ParameterMismatchError
        └── InvalidLimitError

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from typing import Optional


class SQLParseError(Exception):
    """Base class for all statement parsing failures."""

    def __init__(self, message: str, fragment: Optional[str] = None, position: Optional[int] = None):
        """Initialize error.

        Args:
            message: Human readable description
            fragment: Offending piece of SQL, if known
            position: Character offset of the problem, if known
        """
        self.message = message
        self.fragment = fragment
        self.position = position
        super().__init__(message)


# =============================================================================
# Structural errors
# =============================================================================


class StructuralError(SQLParseError):
    """The statement's shape is unacceptable."""


class MultipleStatementsError(StructuralError):
    """More than one statement was supplied."""

    def __init__(self, position: Optional[int] = None):
        super().__init__(
            "Only single statements are allowed. Multiple statements detected.",
            position=position,
        )


class MissingFromError(StructuralError):
    """A statement that must name a table does not."""

    def __init__(self, detail: Optional[str] = None):
        message = "FROM clause is required."
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)


class UnbalancedParenthesesError(StructuralError):
    """Parentheses do not pair up."""

    def __init__(self, position: int):
        super().__init__(f"Unbalanced parentheses at position {position}", position=position)


class NestingTooDeepError(StructuralError):
    """Parentheses nest deeper than the configured maximum."""

    def __init__(self, limit: int, position: int):
        self.limit = limit
        super().__init__(
            f"Parentheses nested deeper than {limit} levels at position {position}",
            position=position,
        )


class ConditionSyntaxError(StructuralError):
    """A condition has no recognizable comparison operator or operand."""


# =============================================================================
# Parameter contract errors
# =============================================================================


class ParameterFormatError(SQLParseError):
    """A value slot does not use the ``@name`` placeholder form."""


class ParameterMismatchError(ParameterFormatError):
    """A placeholder does not reference the column it is bound to."""

    def __init__(self, fragment: str):
        super().__init__(f"Parameter value must reference the key: {fragment}", fragment=fragment)


class InvalidLimitError(ParameterFormatError):
    """LIMIT or OFFSET is not an unsigned integer."""

    def __init__(self, clause: str, value: str):
        self.clause = clause
        super().__init__(
            f"Invalid {clause} value: {value}. Expected an unsigned integer",
            fragment=value,
        )


__all__ = [
    "SQLParseError",
    "StructuralError",
    "MultipleStatementsError",
    "MissingFromError",
    "UnbalancedParenthesesError",
    "NestingTooDeepError",
    "ConditionSyntaxError",
    "ParameterFormatError",
    "ParameterMismatchError",
    "InvalidLimitError",
]
