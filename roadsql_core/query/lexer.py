"""RoadSQL Statement Lexer - split one statement into its clauses.

The lexer does not build an AST. It locates the top-level clause keywords of a
single statement with the ClauseScanner and cuts the text between them into
QueryParts, validating every value slot against the named placeholder
contract on the way.

Architecture:
    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Statement Lexer                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐                 │
    │  │  Statement  │──│   Clause    │──│  Parameter  │                 │
    │  │  Guard (;)  │  │   Cutter    │  │  Contract   │                 │
    │  └─────────────┘  └─────────────┘  └─────────────┘                 │
    │                          │                                          │
    │                   ┌─────────────┐                                   │
    │                   │ QueryParts  │                                   │
    │                   └─────────────┘                                   │
    └─────────────────────────────────────────────────────────────────────┘

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from roadsql_core.config import DEFAULT_SETTINGS, ParserSettings
from roadsql_core.query.clauses import (
    CLAUSE_KEYWORDS,
    JOIN_KEYWORDS,
    SET_OPERATORS,
    WHERE_TERMINATORS,
    TableReference,
    iter_joins,
    parse_table_reference,
)
from roadsql_core.query.errors import (
    InvalidLimitError,
    MissingFromError,
    MultipleStatementsError,
    StructuralError,
)
from roadsql_core.query.group_by import GroupByParser, GroupByValues
from roadsql_core.query.parameters import validate_assignment, validate_condition, validate_values
from roadsql_core.query.scanner import ClauseScanner, normalize

logger = logging.getLogger(__name__)


# =============================================================================
# Statement Types
# =============================================================================


class StatementType(Enum):
    """Kinds of statement the lexer understands."""

    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CREATE = "CREATE"
    DROP = "DROP"
    ALTER = "ALTER"


@dataclass(frozen=True)
class QueryParts:
    """Clause fragments of one statement.

    Fields are None when the statement has no such clause.
    """

    statement_type: StatementType
    table: Optional[str] = None
    selector: Optional[Tuple[str, ...]] = None
    distinct: bool = False
    columns: Optional[Tuple[str, ...]] = None
    where: Optional[Tuple[str, ...]] = None
    values: Optional[Tuple[str, ...]] = None
    set: Optional[Tuple[str, ...]] = None
    order_by: Optional[str] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    on: Optional[Tuple[str, ...]] = None
    group_by: Tuple[GroupByValues, ...] = ()


# =============================================================================
# Lexer
# =============================================================================


_LEADING_WORD = re.compile(r"^([A-Za-z]+)")
_SELECT_QUANTIFIER = re.compile(r"^(DISTINCT|ALL)\b\s*", re.IGNORECASE)
_ORDER_SUFFIX = re.compile(r"(?:\s+(?:ASC|DESC))?(?:\s+NULLS\s+(?:FIRST|LAST))?\s*$", re.IGNORECASE)
_UPDATE_CONFLICT = re.compile(r"^\s*OR\s+[A-Za-z]+\s+", re.IGNORECASE)
_UNSIGNED = re.compile(r"^\d+$")

_CREATE_TABLE = re.compile(
    r"^CREATE\s+(?:(?:TEMP|TEMPORARY)\s+)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?", re.IGNORECASE
)
_DROP_TABLE = re.compile(r"^DROP\s+TABLE\s+(?:IF\s+EXISTS\s+)?", re.IGNORECASE)
_ALTER_TABLE = re.compile(r"^ALTER\s+TABLE\s+(?:IF\s+EXISTS\s+)?(?:ONLY\s+)?", re.IGNORECASE)

TABLE_CONSTRAINTS = ("PRIMARY", "FOREIGN", "UNIQUE", "CHECK", "CONSTRAINT")
DML_KEYWORDS = ("SELECT", "INSERT", "UPDATE", "DELETE")


class StatementLexer:
    """Split a single SQL statement into QueryParts."""

    def __init__(self, sql: str, settings: Optional[ParserSettings] = None):
        """Initialize lexer.

        Args:
            sql: One SQL statement, optionally ending with a semicolon
            settings: Parser settings

        Raises:
            MultipleStatementsError: More than one statement supplied
            StructuralError: Empty statement or unterminated literal
            UnbalancedParenthesesError: Parentheses do not pair up
        """
        self.settings = settings or DEFAULT_SETTINGS
        self.sql = self._single_statement(normalize(sql))
        if not self.sql:
            raise StructuralError("Empty statement")

        self._scanner = ClauseScanner(self.sql, max_depth=self.settings.max_nesting_depth)
        self._scanner.validate()
        self._parts: Optional[QueryParts] = None

    @staticmethod
    def _single_statement(sql: str) -> str:
        """Strip one trailing semicolon; reject anything after it."""
        scanner = ClauseScanner(sql)
        for i, char in enumerate(sql):
            if char == ";" and scanner.is_code(i):
                if sql[i + 1 :].strip():
                    raise MultipleStatementsError(i)
                return sql[:i].rstrip()
        return sql

    @property
    def query_parts(self) -> QueryParts:
        """Parsed clauses, computed on first access."""
        if self._parts is None:
            self._parts = self.parse()
        return self._parts

    def parse(self) -> QueryParts:
        """Split the statement into clauses.

        Returns:
            QueryParts

        Raises:
            SQLParseError: Any structural or parameter contract violation
        """
        match = _LEADING_WORD.match(self.sql)
        keyword = match.group(1).upper() if match else ""
        start = 0

        if keyword == "WITH":
            main = self._scanner.find(DML_KEYWORDS)
            if main is None:
                raise StructuralError("WITH clause must be followed by a statement")
            keyword = main.keyword
            start = main.start

        if keyword == "SELECT":
            parts = self._parse_select(start)
        elif keyword == "INSERT":
            parts = self._parse_insert(start)
        elif keyword == "UPDATE":
            parts = self._parse_update(start)
        elif keyword == "DELETE":
            parts = self._parse_delete(start)
        elif keyword in ("CREATE", "DROP", "ALTER"):
            parts = self._parse_table_statement(keyword)
        else:
            raise StructuralError(f"Unsupported statement: {self.sql[:40]}", fragment=self.sql)

        logger.debug(f"Lexed {parts.statement_type.value} statement on {parts.table}")
        return parts

    # -------------------------------------------------------------------------
    # Statement kinds
    # -------------------------------------------------------------------------

    def _parse_select(self, start: int) -> QueryParts:
        scanner = self._scanner
        select = scanner.find("SELECT", start)
        compound_end = scanner.boundary(SET_OPERATORS, select.end)

        from_match = scanner.find("FROM", select.end, compound_end)
        if from_match is None:
            raise MissingFromError()

        select_list = self.sql[select.end : from_match.start].strip()
        quantifier = _SELECT_QUANTIFIER.match(select_list)
        distinct = bool(quantifier) and quantifier.group(1).upper() == "DISTINCT"
        if quantifier:
            select_list = select_list[quantifier.end() :]
        selector = tuple(ClauseScanner(select_list).split(","))
        if not selector:
            raise StructuralError("SELECT list is empty")

        from_end = scanner.boundary(JOIN_KEYWORDS + CLAUSE_KEYWORDS, from_match.end, compound_end)
        reference = self._subject_table(self.sql[from_match.end : from_end], "No table follows FROM.")

        on: List[str] = []
        for _, span in iter_joins(scanner, from_match.end, self.settings):
            if span is None:
                continue
            for condition in scanner.split_keyword("AND", *span):
                validate_condition(condition, strict=False, clause="ON")
                on.append(condition)

        order_by, limit, offset = self._parse_tail(select.end)

        return QueryParts(
            statement_type=StatementType.SELECT,
            table=reference.table_name,
            selector=selector,
            distinct=distinct,
            where=self._parse_where(from_match.end, compound_end),
            order_by=order_by,
            limit=limit,
            offset=offset,
            on=tuple(on) or None,
            group_by=tuple(GroupByParser(self.sql[select.start : compound_end], self.settings).parse()),
        )

    def _parse_insert(self, start: int) -> QueryParts:
        scanner = self._scanner
        into = scanner.find("INTO", start)
        if into is None:
            raise MissingFromError("INSERT statements must name a table after INTO.")

        source = scanner.find(("VALUES", "DEFAULT VALUES", "SELECT"), into.end)
        target_end = source.start if source else len(self.sql)
        reference = self._subject_table(
            self.sql[into.end : target_end], "INSERT statements must name a table after INTO."
        )

        columns = None
        open_index = self.sql.find("(", into.end, target_end)
        if open_index >= 0 and scanner.is_code(open_index):
            close_index = scanner.matching_paren(open_index)
            columns = tuple(ClauseScanner(self.sql[open_index + 1 : close_index]).split(","))

        values: Optional[Tuple[str, ...]] = None
        if source is None:
            raise StructuralError("INSERT statements require VALUES or SELECT")
        if source.keyword == "DEFAULT VALUES":
            values = ()
        elif source.keyword == "VALUES":
            values = self._parse_values(source.end, columns)

        return QueryParts(
            statement_type=StatementType.INSERT,
            table=reference.table_name,
            columns=columns,
            values=values,
        )

    def _parse_values(self, start: int, columns: Optional[Tuple[str, ...]]) -> Tuple[str, ...]:
        scanner = self._scanner
        end = scanner.boundary(("RETURNING", "ON CONFLICT"), start)
        rows = scanner.split(",", start, end)
        if not rows:
            raise StructuralError("VALUES requires at least one row")

        values: List[str] = []
        for row in rows:
            if not ClauseScanner(row).is_wrapped():
                raise StructuralError(f"VALUES rows must be parenthesized: {row}", fragment=row)
            items = ClauseScanner(row[1:-1]).split(",")
            validate_values(items, columns)
            values.extend(items)
        return tuple(values)

    def _parse_update(self, start: int) -> QueryParts:
        scanner = self._scanner
        update = scanner.find("UPDATE", start)
        set_match = scanner.find("SET", update.end)
        if set_match is None:
            raise StructuralError("UPDATE statements require a SET clause")

        target = _UPDATE_CONFLICT.sub("", self.sql[update.end : set_match.start], count=1)
        reference = self._subject_table(target, "UPDATE statements must name a table.")

        set_end = scanner.boundary(("FROM", "WHERE", "RETURNING", "ORDER BY", "LIMIT"), set_match.end)
        assignments = tuple(scanner.split(",", set_match.end, set_end))
        if not assignments:
            raise StructuralError("SET clause is empty")
        for assignment in assignments:
            validate_assignment(assignment)

        order_by, limit, offset = self._parse_tail(set_end)

        return QueryParts(
            statement_type=StatementType.UPDATE,
            table=reference.table_name,
            set=assignments,
            where=self._parse_where(set_end),
            order_by=order_by,
            limit=limit,
            offset=offset,
        )

    def _parse_delete(self, start: int) -> QueryParts:
        scanner = self._scanner
        from_match = scanner.find("FROM", start)
        if from_match is None:
            raise MissingFromError()

        end = scanner.boundary(("WHERE", "USING", "RETURNING", "ORDER BY", "LIMIT"), from_match.end)
        reference = self._subject_table(self.sql[from_match.end : end], "No table follows FROM.")
        order_by, limit, offset = self._parse_tail(from_match.end)

        return QueryParts(
            statement_type=StatementType.DELETE,
            table=reference.table_name,
            where=self._parse_where(from_match.end),
            order_by=order_by,
            limit=limit,
            offset=offset,
        )

    def _parse_table_statement(self, keyword: str) -> QueryParts:
        pattern = {"CREATE": _CREATE_TABLE, "DROP": _DROP_TABLE, "ALTER": _ALTER_TABLE}[keyword]
        prefix = pattern.match(self.sql)
        if prefix is None:
            raise StructuralError(f"Only {keyword} TABLE statements are supported", fragment=self.sql)

        detail = f"{keyword} TABLE statements must name a table."
        reference = self._subject_table(self.sql[prefix.end() :], detail)

        columns = None
        rest = self.sql[prefix.end() + len(reference.table_name) :]
        if keyword == "CREATE" and rest.lstrip().startswith("("):
            open_index = len(self.sql) - len(rest.lstrip())
            close_index = self._scanner.matching_paren(open_index)
            definitions = ClauseScanner(self.sql[open_index + 1 : close_index]).split(",")
            columns = tuple(
                definition.split()[0]
                for definition in definitions
                if definition.split()[0].upper() not in TABLE_CONSTRAINTS
            )

        return QueryParts(
            statement_type=StatementType(keyword),
            table=reference.table_name,
            columns=columns,
        )

    # -------------------------------------------------------------------------
    # Shared clauses
    # -------------------------------------------------------------------------

    def _subject_table(self, text: str, detail: str) -> TableReference:
        targets = ClauseScanner(text).split(",")
        reference = parse_table_reference(targets[0], self.settings) if targets else None
        if reference is None:
            raise MissingFromError(detail)
        return reference

    def _parse_where(self, start: int, end: Optional[int] = None) -> Optional[Tuple[str, ...]]:
        scanner = self._scanner
        where = scanner.find("WHERE", start, end)
        if where is None:
            return None

        where_end = scanner.boundary(WHERE_TERMINATORS, where.end, end)
        conditions = tuple(scanner.split_keyword("AND", where.end, where_end))
        if not conditions:
            raise StructuralError("WHERE clause is empty", position=where.start)
        for condition in conditions:
            validate_condition(condition, strict=True, clause="WHERE")
        return conditions

    def _parse_tail(self, start: int) -> Tuple[Optional[str], Optional[int], Optional[int]]:
        """ORDER BY text, LIMIT and OFFSET.

        The ORDER BY text drops each key's ASC/DESC and NULLS FIRST/LAST
        suffix: ``ORDER BY created_at DESC`` gives ``created_at`` and
        ``ORDER BY a DESC, b`` gives ``a, b``.
        """
        scanner = self._scanner

        order_by = None
        order = scanner.find("ORDER BY", start)
        if order is not None:
            order_end = scanner.boundary(("LIMIT", "OFFSET", "RETURNING"), order.end)
            keys = [_ORDER_SUFFIX.sub("", key, count=1) for key in scanner.split(",", order.end, order_end)]
            order_by = ", ".join(keys) or None

        limit = self._parse_count("LIMIT", ("OFFSET", "RETURNING"), start)
        offset = self._parse_count("OFFSET", ("LIMIT", "RETURNING"), start)
        return order_by, limit, offset

    def _parse_count(self, keyword: str, terminators: Tuple[str, ...], start: int) -> Optional[int]:
        scanner = self._scanner
        match = scanner.find(keyword, start)
        if match is None:
            return None

        value = self.sql[match.end : scanner.boundary(terminators, match.end)].strip()
        if not _UNSIGNED.match(value):
            raise InvalidLimitError(keyword, value)
        return int(value)


__all__ = [
    "QueryParts",
    "StatementLexer",
    "StatementType",
]
