"""RoadSQL Parameters - the named placeholder contract.

Every value slot in a statement is an ``@name`` placeholder, and the name must
be the column the slot is bound to:

    UPDATE users SET email = @email WHERE id = @id      -- accepted
    UPDATE users SET email = @mail WHERE id = @id       -- mismatch
    UPDATE users SET email = 'x'   WHERE id = @id       -- bad format

For dotted columns the last segment is the key, so ``users.id = @id`` is
accepted.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from roadsql_core.query.clauses import parse_condition
from roadsql_core.query.errors import ParameterFormatError, ParameterMismatchError
from roadsql_core.query.scanner import ClauseScanner, unwrap
from roadsql_core.query.tokens import TokenType, tokenize

logger = logging.getLogger(__name__)


PLACEHOLDER_PATTERN = re.compile(r"^@([A-Za-z_][A-Za-z0-9_]*)$")
_SEGMENT = r'(?:[A-Za-z_][\w$]*|"[^"]+"|`[^`]+`)'
COLUMN_PATTERN = re.compile(rf"^{_SEGMENT}(?:\s*\.\s*{_SEGMENT})*$")
CALL_PATTERN = re.compile(r"^[A-Za-z_][\w$]*\s*\(", re.DOTALL)
_SUBQUERY_START = re.compile(r"^(SELECT|WITH)\b", re.IGNORECASE)
_NOT_PREFIX = re.compile(r"^NOT\s+", re.IGNORECASE)

ASSIGNMENT_FORMAT = "key = @value"
VALUE_FORMAT = "@value"


def placeholder_name(text: str) -> Optional[str]:
    """Name of the placeholder, or None when text is not exactly ``@name``."""
    match = PLACEHOLDER_PATTERN.match(text.strip())
    return match.group(1) if match else None


def column_key(expression: str) -> Optional[str]:
    """Key a placeholder must use for this column expression.

    ``users.id`` gives ``id``; a single-column call such as ``LOWER(email)``
    gives ``email``. Anything else has no key.
    """
    text = expression.strip()

    if CALL_PATTERN.match(text):
        scanner = ClauseScanner(text)
        if not scanner.is_balanced():
            return None
        open_index = text.index("(")
        if scanner.matching_paren(open_index) != len(text) - 1:
            return None
        text = re.sub(r"^DISTINCT\s+", "", text[open_index + 1 : -1].strip(), flags=re.IGNORECASE)

    if not COLUMN_PATTERN.match(text):
        return None

    last = re.findall(_SEGMENT, text)[-1]
    return last.strip('"`')


def is_subquery(text: str) -> bool:
    """Whether text is a parenthesized SELECT."""
    text = text.strip()
    return text.startswith("(") and bool(_SUBQUERY_START.match(unwrap(text)))


# =============================================================================
# Validators
# =============================================================================


def validate_value(value: str) -> str:
    """Validate one INSERT VALUES entry.

    Returns:
        The placeholder name

    Raises:
        ParameterFormatError: Entry is not ``@name``
    """
    name = placeholder_name(value)
    if name is None:
        raise ParameterFormatError(
            f"Invalid value format: {value.strip()}. Expected format: {VALUE_FORMAT}",
            fragment=value.strip(),
        )
    return name


def validate_values(values: Sequence[str], columns: Optional[Sequence[str]] = None) -> None:
    """Validate VALUES entries, positionally against the column list if given.

    Raises:
        ParameterFormatError: Bad entry, or entry count differs from column count
        ParameterMismatchError: Entry does not name its column
    """
    names = [validate_value(value) for value in values]
    if not columns:
        return

    if len(names) != len(columns):
        raise ParameterFormatError(
            f"VALUES count ({len(names)}) does not match column count ({len(columns)})"
        )

    for column, value, name in zip(columns, values, names):
        key = column_key(column)
        if key is not None and key != name:
            raise ParameterMismatchError(f"{column} = {value.strip()}")


def validate_assignment(assignment: str) -> str:
    """Validate one ``key = @key`` assignment.

    Returns:
        The placeholder name

    Raises:
        ParameterFormatError: Assignment is not ``key = @value``
        ParameterMismatchError: Placeholder does not name the key
    """
    assignment = assignment.strip()
    bad_format = ParameterFormatError(
        f"Invalid parameter format: {assignment}. Expected format: {ASSIGNMENT_FORMAT}",
        fragment=assignment,
    )

    match = ClauseScanner(assignment).find(("=", "<=", ">=", "!=", "<>", "=="))
    if match is None or match.keyword != "=":
        raise bad_format

    key = column_key(assignment[: match.start])
    name = placeholder_name(assignment[match.end :])
    if key is None or name is None:
        raise bad_format

    if key != name:
        raise ParameterMismatchError(assignment)
    return name


def validate_condition(condition: str, strict: bool = True, clause: str = "WHERE") -> None:
    """Validate the placeholders of a condition.

    Args:
        condition: Condition text, possibly a parenthesized AND/OR group
        strict: Require placeholders in every comparison (WHERE). When
            False only placeholders that are present are checked (ON, HAVING).
        clause: Clause name used in error messages

    Raises:
        ParameterFormatError: A value slot is not a placeholder
        ParameterMismatchError: A placeholder does not name its column
    """
    text = unwrap(condition)
    if _NOT_PREFIX.match(text):
        validate_condition(_NOT_PREFIX.sub("", text, count=1), strict, clause)
        return

    parts = ClauseScanner(text).split_keyword(("AND", "OR"))
    if len(parts) > 1:
        for part in parts:
            validate_condition(part, strict, clause)
        return

    parsed = parse_condition(text, clause)
    if parsed.condition in ("IS NULL", "IS NOT NULL", "EXISTS"):
        return

    search_value = parsed.search_value or ""
    if is_subquery(search_value):
        return

    if parsed.condition in ("IN", "NOT IN", "BETWEEN", "NOT BETWEEN"):
        if parsed.condition.endswith("IN"):
            items = ClauseScanner(unwrap(search_value)).split(",")
        else:
            items = ClauseScanner(search_value).split_keyword("AND")
        if strict and any(placeholder_name(item) is None for item in items):
            raise ParameterFormatError(
                f"Invalid parameter format: {text}. Expected format: {ASSIGNMENT_FORMAT}",
                fragment=text,
            )
        return

    name = placeholder_name(search_value)
    if name is None:
        if strict:
            raise ParameterFormatError(
                f"Invalid parameter format: {text}. Expected format: {ASSIGNMENT_FORMAT}",
                fragment=text,
            )
        return

    key = column_key(parsed.value)
    if key is not None and key != name:
        raise ParameterMismatchError(text)


def placeholders(sql: str) -> List[str]:
    """Names of the placeholders used in sql, in first-use order."""
    names: List[str] = []
    for token in tokenize(sql):
        if token.type == TokenType.PARAMETER and token.value[1:] not in names:
            names.append(token.value[1:])
    logger.debug(f"Found {len(names)} placeholders")
    return names


__all__ = [
    "column_key",
    "is_subquery",
    "placeholder_name",
    "placeholders",
    "validate_assignment",
    "validate_condition",
    "validate_value",
    "validate_values",
]
