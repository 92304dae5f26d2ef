"""RoadSQL Clauses - structured views of FROM, JOIN and WHERE.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from roadsql_core.config import DEFAULT_SETTINGS, ParserSettings
from roadsql_core.query.errors import ConditionSyntaxError, MissingFromError
from roadsql_core.query.scanner import ClauseScanner, normalize, unwrap
from roadsql_core.query.tokens import TokenType, tokenize

logger = logging.getLogger(__name__)


# =============================================================================
# Keyword sets
# =============================================================================


JOIN_KEYWORDS: Tuple[str, ...] = (
    "JOIN",
    "INNER JOIN",
    "CROSS JOIN",
    "LEFT JOIN",
    "LEFT OUTER JOIN",
    "RIGHT JOIN",
    "RIGHT OUTER JOIN",
    "FULL JOIN",
    "FULL OUTER JOIN",
    "NATURAL JOIN",
    "NATURAL INNER JOIN",
    "NATURAL LEFT JOIN",
    "NATURAL LEFT OUTER JOIN",
    "NATURAL RIGHT JOIN",
    "NATURAL RIGHT OUTER JOIN",
    "NATURAL FULL JOIN",
    "NATURAL FULL OUTER JOIN",
)

SET_OPERATORS: Tuple[str, ...] = ("UNION", "INTERSECT", "EXCEPT")

# Clauses that may follow the FROM/JOIN region of a SELECT
CLAUSE_KEYWORDS: Tuple[str, ...] = (
    "WHERE",
    "GROUP BY",
    "HAVING",
    "WINDOW",
    "ORDER BY",
    "LIMIT",
    "OFFSET",
    "RETURNING",
) + SET_OPERATORS

WHERE_TERMINATORS: Tuple[str, ...] = (
    "GROUP BY",
    "HAVING",
    "WINDOW",
    "ORDER BY",
    "LIMIT",
    "OFFSET",
    "RETURNING",
) + SET_OPERATORS

COMPARISON_OPERATORS: Tuple[str, ...] = (
    "IS NOT NULL",
    "IS NULL",
    "NOT BETWEEN",
    "BETWEEN",
    "NOT LIKE",
    "LIKE",
    "NOT IN",
    "IN",
    "<=",
    ">=",
    "<>",
    "!=",
    "=",
    "<",
    ">",
)

NULL_OPERATORS = ("IS NULL", "IS NOT NULL")

_NOT_PREFIX = re.compile(r"^NOT\s+", re.IGNORECASE)
_EXISTS_PREFIX = re.compile(r"^EXISTS\s*(?=\()", re.IGNORECASE)


# =============================================================================
# Value types
# =============================================================================


@dataclass(frozen=True)
class Condition:
    """One comparison: ``value condition search_value``.

    ``condition`` is the upper-cased operator (``=``, ``LIKE``,
    ``IS NOT NULL``, ``EXISTS``...). ``search_value`` is None for the
    IS NULL forms.
    """

    value: str
    condition: str
    search_value: Optional[str]
    negated: bool = False


@dataclass(frozen=True)
class TableReference:
    """A table named in a FROM or JOIN position, with its optional alias."""

    table_name: str
    alias: Optional[str] = None


@dataclass(frozen=True)
class JoinClause:
    """One JOIN of a SELECT statement."""

    join_type: str
    table_name: str
    alias: Optional[str] = None
    on_condition: Optional[str] = None
    using: Tuple[str, ...] = ()


# =============================================================================
# Fragment parsers
# =============================================================================


def parse_condition(text: str, clause: str = "WHERE") -> Condition:
    """Parse a single comparison into a Condition.

    Args:
        text: Condition text such as ``age >= @age``
        clause: Clause name used in error messages

    Returns:
        Condition

    Raises:
        ConditionSyntaxError: No operator, or an operator missing an operand
    """
    original = text.strip()
    text = unwrap(original)

    negated = False
    if _NOT_PREFIX.match(text):
        negated = True
        text = unwrap(_NOT_PREFIX.sub("", text, count=1))

    if _EXISTS_PREFIX.match(text):
        return Condition("", "EXISTS", _EXISTS_PREFIX.sub("", text, count=1).strip(), negated)

    match = ClauseScanner(text).find(COMPARISON_OPERATORS)
    if match is None or match.start == 0:
        raise ConditionSyntaxError(f"Invalid condition in {clause} clause: {original}", fragment=original)

    value = text[: match.start].strip()
    operator = " ".join(text[match.start : match.end].upper().split())
    search_value: Optional[str] = text[match.end :].strip()

    if operator in NULL_OPERATORS:
        if search_value:
            raise ConditionSyntaxError(f"Invalid condition in {clause} clause: {original}", fragment=original)
        search_value = None
    elif not search_value:
        raise ConditionSyntaxError(f"Invalid condition in {clause} clause: {original}", fragment=original)

    return Condition(value, operator, search_value, negated)


def parse_table_reference(text: str, settings: ParserSettings = DEFAULT_SETTINGS) -> Optional[TableReference]:
    """Parse ``name [AS] [alias]`` into a TableReference.

    A parenthesized derived table keeps its full text as the name. Returns
    None when the text does not start with a table name.
    """
    text = text.strip()
    if not text:
        return None

    if text.startswith("("):
        close = ClauseScanner(text).matching_paren(0)
        name = text[: close + 1]
        rest = tokenize(text[close + 1 :], settings.keywords)
    else:
        tokens = tokenize(text, settings.keywords)
        names = (TokenType.IDENTIFIER, TokenType.QUOTED_IDENTIFIER)
        if not tokens or tokens[0].type not in names:
            return None
        index = 1
        while (
            index + 1 < len(tokens)
            and tokens[index].type == TokenType.DOT
            and tokens[index + 1].type in names
        ):
            index += 2
        name = text[: tokens[index - 1].end]
        rest = tokens[index:]

    if rest and rest[0].is_keyword("AS"):
        rest = rest[1:]

    alias = None
    if rest and rest[0].type in (TokenType.IDENTIFIER, TokenType.QUOTED_IDENTIFIER):
        alias = rest[0].value

    return TableReference(name, alias)


# =============================================================================
# Clause parsers
# =============================================================================


class FromParser:
    """Tables listed in the top-level FROM clause."""

    def __init__(self, sql: str, settings: Optional[ParserSettings] = None):
        self.sql = normalize(sql)
        self.settings = settings or DEFAULT_SETTINGS
        self._scanner = ClauseScanner(self.sql, max_depth=self.settings.max_nesting_depth)

    @property
    def tables(self) -> List[TableReference]:
        """Parse comma-separated FROM targets.

        Raises:
            MissingFromError: The statement has no top-level FROM
        """
        from_match = self._scanner.find("FROM")
        if from_match is None:
            raise MissingFromError()

        end = self._scanner.boundary(JOIN_KEYWORDS + CLAUSE_KEYWORDS, from_match.end)
        tables = []
        for target in self._scanner.split(",", from_match.end, end):
            reference = parse_table_reference(target, self.settings)
            if reference is not None:
                tables.append(reference)

        logger.debug(f"FROM targets: {tables}")
        return tables


class WhereParser:
    """Structured conditions of the top-level WHERE clause."""

    def __init__(self, sql: str, settings: Optional[ParserSettings] = None):
        self.sql = normalize(sql)
        self.settings = settings or DEFAULT_SETTINGS
        self._scanner = ClauseScanner(self.sql, max_depth=self.settings.max_nesting_depth)

    @property
    def conditions(self) -> List[Condition]:
        """Conditions joined by top-level AND/OR; parenthesized groups are flattened."""
        where = self._scanner.find("WHERE")
        if where is None:
            return []

        end = self._scanner.boundary(WHERE_TERMINATORS, where.end)
        conditions: List[Condition] = []
        for piece in self._scanner.split_keyword(("AND", "OR"), where.end, end):
            conditions.extend(self._flatten(piece))
        return conditions

    def _flatten(self, piece: str) -> List[Condition]:
        inner = unwrap(piece)
        if _NOT_PREFIX.match(inner):
            negated = unwrap(_NOT_PREFIX.sub("", inner, count=1))
            if len(ClauseScanner(negated).split_keyword(("AND", "OR"))) > 1:
                return [replace(condition, negated=True) for condition in self._flatten(negated)]

        parts = ClauseScanner(inner).split_keyword(("AND", "OR"))
        if len(parts) == 1:
            return [parse_condition(inner, "WHERE")]

        conditions = []
        for part in parts:
            conditions.extend(self._flatten(part))
        return conditions


class JoinParser:
    """JOIN clauses of the top-level SELECT."""

    def __init__(self, sql: str, settings: Optional[ParserSettings] = None):
        self.sql = normalize(sql)
        self.settings = settings or DEFAULT_SETTINGS
        self._scanner = ClauseScanner(self.sql, max_depth=self.settings.max_nesting_depth)

    @property
    def joins(self) -> List[JoinClause]:
        from_match = self._scanner.find("FROM")
        if from_match is None:
            return []
        return [join for join, _ in iter_joins(self._scanner, from_match.end, self.settings)]


def iter_joins(scanner: ClauseScanner, start: int, settings: ParserSettings = DEFAULT_SETTINGS):
    """Yield ``(JoinClause, on_text_span)`` for every top-level JOIN after start.

    ``on_text_span`` is the ``(start, end)`` offsets of the ON condition in the
    scanned text, or None for USING / cross joins.
    """
    text = scanner.text
    region_end = scanner.boundary(CLAUSE_KEYWORDS, start)
    matches = scanner.find_all(JOIN_KEYWORDS, start, region_end)

    for index, match in enumerate(matches):
        segment_end = matches[index + 1].start if index + 1 < len(matches) else region_end
        on = scanner.find("ON", match.end, segment_end)
        using = scanner.find("USING", match.end, segment_end)
        stops = [m.start for m in (on, using) if m is not None]
        target_end = min(stops) if stops else segment_end

        reference = parse_table_reference(text[match.end : target_end], settings)
        if reference is None:
            raise ConditionSyntaxError(
                f"Invalid JOIN target: {text[match.start : segment_end].strip()}",
                fragment=text[match.start : segment_end].strip(),
            )

        on_condition = None
        span = None
        columns: Tuple[str, ...] = ()
        if on is not None:
            on_condition = text[on.end : segment_end].strip()
            span = (on.end, segment_end)
        elif using is not None:
            columns = tuple(ClauseScanner(unwrap(text[using.end : segment_end])).split(","))

        join = JoinClause(
            join_type=match.keyword,
            table_name=reference.table_name,
            alias=reference.alias,
            on_condition=on_condition,
            using=columns,
        )
        logger.debug(f"Parsed {join.join_type} on {join.table_name}")
        yield join, span


__all__ = [
    "CLAUSE_KEYWORDS",
    "COMPARISON_OPERATORS",
    "JOIN_KEYWORDS",
    "SET_OPERATORS",
    "WHERE_TERMINATORS",
    "Condition",
    "FromParser",
    "JoinClause",
    "JoinParser",
    "TableReference",
    "WhereParser",
    "iter_joins",
    "parse_condition",
    "parse_table_reference",
]
