"""RoadSQL Subqueries - nested SELECTs and the tables a statement touches.

The extractor makes one pass over the statement with a stack of open
parentheses. When a parenthesis closes and its content starts with SELECT or
WITH (or it is the body of a common table expression) the whole
parenthesized text is recorded. Inner subqueries close first, so they are
listed before the queries that contain them.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from roadsql_core.config import DEFAULT_SETTINGS, ParserSettings
from roadsql_core.query.clauses import TableReference
from roadsql_core.query.scanner import ClauseScanner

logger = logging.getLogger(__name__)


_QUERY_START = re.compile(r"(?:SELECT|WITH)\b", re.IGNORECASE)
_NAME = r'(?:"[^"]+"|`[^`]+`|[A-Za-z_][\w$]*)'
_TABLE_KEYWORD = re.compile(r"(?<![\w$@.])(FROM|JOIN)(?![\w$])", re.IGNORECASE)
_TARGET = re.compile(rf"\s*(?P<name>{_NAME}(?:\s*\.\s*{_NAME})*)")
_ALIAS = re.compile(rf"\s+(?:AS\s+)?(?P<alias>{_NAME})", re.IGNORECASE)
_COMMA = re.compile(r"\s*,")
_PRECEDING_WORD = re.compile(r"([A-Za-z_][\w$]*)\s*$")
_RECURSIVE = re.compile(r"\s*RECURSIVE\b", re.IGNORECASE)
_CTE_HEAD = re.compile(
    rf"\s*(?P<name>{_NAME})\s*(?:\([^()]*\))?\s*AS\s*(?:NOT\s+)?(?:MATERIALIZED\s+)?\(",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class SubQueryValues:
    """Nested queries and table references of one statement."""

    queries: Tuple[str, ...]
    tables_used: Tuple[TableReference, ...]
    cte_names: Tuple[str, ...] = ()


class SubqueryExtractor:
    """Find nested SELECTs, CTE bodies and FROM/JOIN tables."""

    def __init__(self, sql: str, settings: Optional[ParserSettings] = None):
        """Initialize extractor.

        Args:
            sql: Statement text; offsets and query texts refer to it unchanged
            settings: Parser settings

        Raises:
            UnbalancedParenthesesError: Parentheses do not pair up
            StructuralError: Unterminated literal or comment
        """
        self.sql = sql
        self.settings = settings or DEFAULT_SETTINGS
        self._scanner = ClauseScanner(sql, max_depth=self.settings.max_nesting_depth)
        self._scanner.validate()
        self._values: Optional[SubQueryValues] = None

    @property
    def sub_query_values(self) -> SubQueryValues:
        if self._values is None:
            self._values = self.extract()
        return self._values

    def extract(self) -> SubQueryValues:
        """Scan the statement.

        Returns:
            SubQueryValues with queries inner-first and tables in discovery order
        """
        ctes = self._cte_bodies()
        values = SubQueryValues(
            queries=tuple(self._queries(set(ctes.values()))),
            tables_used=tuple(self._tables()),
            cte_names=tuple(ctes),
        )
        logger.debug(f"Extracted {len(values.queries)} subqueries over {len(values.tables_used)} tables")
        return values

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def _queries(self, cte_bodies: Set[int]) -> List[str]:
        sql = self.sql
        stack: List[int] = []
        found: Dict[str, None] = {}

        for index, char in enumerate(sql):
            if not self._scanner.is_code(index):
                continue
            if char == "(":
                stack.append(index)
            elif char == ")":
                open_index = stack.pop()
                if open_index in cte_bodies or self._starts_query(open_index + 1, index):
                    found.setdefault(sql[open_index : index + 1], None)

        return list(found)

    def _starts_query(self, start: int, end: int) -> bool:
        """Whether the first significant token in [start, end) is SELECT or WITH."""
        while start < end and (self.sql[start].isspace() or self._scanner.in_comment(start)):
            start += 1
        return _QUERY_START.match(self.sql, start, end) is not None

    def _cte_bodies(self) -> Dict[str, int]:
        """Map each CTE name in the top-level WITH list to its body's ``(``."""
        bodies: Dict[str, int] = {}
        with_match = self._scanner.find("WITH")
        if with_match is None or self.sql[: with_match.start].strip():
            return bodies

        position = with_match.end
        recursive = _RECURSIVE.match(self.sql, position)
        if recursive:
            position = recursive.end()

        while True:
            head = _CTE_HEAD.match(self.sql, position)
            if head is None:
                break
            open_index = head.end() - 1
            bodies[head.group("name").strip('"`')] = open_index

            comma = _COMMA.match(self.sql, self._scanner.matching_paren(open_index) + 1)
            if comma is None:
                break
            position = comma.end()

        return bodies

    # -------------------------------------------------------------------------
    # Tables
    # -------------------------------------------------------------------------

    def _tables(self) -> List[TableReference]:
        sql = self.sql
        tables: Dict[TableReference, None] = {}

        for keyword in _TABLE_KEYWORD.finditer(sql):
            if not self._scanner.is_code(keyword.start()):
                continue
            is_from = keyword.group(1).upper() == "FROM"
            if is_from and self._is_syntax_from(keyword.start()):
                continue

            position = keyword.end()
            while True:
                target = _TARGET.match(sql, position)
                if target is None or self.settings.is_keyword(target.group("name")):
                    break
                position = target.end()

                alias = None
                alias_match = _ALIAS.match(sql, position)
                if alias_match and not self.settings.is_keyword(alias_match.group("alias")):
                    alias = alias_match.group("alias").strip('"`')
                    position = alias_match.end()

                tables.setdefault(TableReference(target.group("name"), alias), None)

                comma = _COMMA.match(sql, position)
                if not (is_from and comma and self._scanner.is_code(comma.end() - 1)):
                    break
                position = comma.end()

        return list(tables)

    def _is_syntax_from(self, position: int) -> bool:
        """FROM that is function syntax or ``IS DISTINCT FROM``, not a table source."""
        preceding = _PRECEDING_WORD.search(self.sql, 0, position)
        if preceding and preceding.group(1).upper() == "DISTINCT":
            return True

        open_index = self._scanner.enclosing_paren(position)
        if open_index is None:
            return False
        caller = _PRECEDING_WORD.search(self.sql, 0, open_index)
        return caller is not None and not self.settings.is_keyword(caller.group(1))


__all__ = [
    "SubQueryValues",
    "SubqueryExtractor",
]
