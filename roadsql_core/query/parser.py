"""RoadSQL Query Parser - one entry point over every clause parser.

Provides:
- Single-statement enforcement and clause splitting (StatementLexer)
- Select list columns and expressions (SelectListParser)
- Subqueries, CTEs and referenced tables (SubqueryExtractor)
- GROUP BY / HAVING (GroupByParser)
- Structured FROM, JOIN and WHERE views
- A fluent builder that writes statements in the ``@name`` placeholder style

Architecture:
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          Query Parser                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐                 │
    │  │  Clause     │──│  Statement  │──│   Query     │                 │
    │  │  Scanner    │  │   Lexer     │  │   Parts     │                 │
    │  └─────────────┘  └─────────────┘  └─────────────┘                 │
    │         │               │               │                           │
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐                 │
    │  │  Select     │  │  Subquery   │  │  Group By   │                 │
    │  │  List       │──│  Extractor  │──│  Parser     │                 │
    │  └─────────────┘  └─────────────┘  └─────────────┘                 │
    └─────────────────────────────────────────────────────────────────────┘

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from roadsql_core.config import DEFAULT_SETTINGS, ParserSettings
from roadsql_core.query.clauses import (
    Condition,
    FromParser,
    JoinClause,
    JoinParser,
    TableReference,
    WhereParser,
)
from roadsql_core.query.group_by import GroupByValues
from roadsql_core.query.lexer import QueryParts, StatementLexer, StatementType
from roadsql_core.query.parameters import column_key, is_subquery, placeholders
from roadsql_core.query.scanner import unwrap
from roadsql_core.query.select import SelectListParser, SelectValues
from roadsql_core.query.subquery import SubQueryValues, SubqueryExtractor

logger = logging.getLogger(__name__)


# =============================================================================
# Query
# =============================================================================


class Query:
    """High-level parsing interface over a single statement."""

    def __init__(self, sql: str, settings: Optional[ParserSettings] = None):
        """Initialize query.

        Args:
            sql: One SQL statement
            settings: Parser settings

        Raises:
            MultipleStatementsError: More than one statement supplied
            UnbalancedParenthesesError: Parentheses do not pair up
        """
        self.sql = sql
        self.settings = settings or DEFAULT_SETTINGS
        self._lexer = StatementLexer(sql, self.settings)
        self._subqueries: Optional[SubQueryValues] = None

    def parse(self) -> QueryParts:
        """Split the statement into clauses."""
        return self._lexer.query_parts

    @property
    def parts(self) -> QueryParts:
        return self.parse()

    @property
    def statement_type(self) -> StatementType:
        return self.parts.statement_type

    @property
    def select_values(self) -> Optional[SelectValues]:
        """Columns and expressions of the main SELECT; None for other statements."""
        if self.statement_type != StatementType.SELECT:
            return None
        return SelectListParser.from_statement(self._lexer.sql, self.settings).select_values

    @property
    def group_by(self) -> List[GroupByValues]:
        return list(self.parts.group_by)

    @property
    def subqueries(self) -> SubQueryValues:
        if self._subqueries is None:
            self._subqueries = SubqueryExtractor(self.sql, self.settings).sub_query_values
        return self._subqueries

    @property
    def where_conditions(self) -> List[Condition]:
        self.parse()
        return WhereParser(self._lexer.sql, self.settings).conditions

    @property
    def joins(self) -> List[JoinClause]:
        if self.statement_type != StatementType.SELECT:
            return []
        return JoinParser(self._lexer.sql, self.settings).joins

    @property
    def tables(self) -> List[TableReference]:
        """Tables the statement reads from or writes to, at the top level."""
        parts = self.parts
        if parts.statement_type in (StatementType.SELECT, StatementType.DELETE):
            return FromParser(self._lexer.sql, self.settings).tables
        return [TableReference(parts.table)]

    @property
    def parameters(self) -> List[str]:
        """Placeholder names, in first-use order."""
        self.parse()
        return placeholders(self._lexer.sql)

    def select_values_per_subquery(self) -> List[SelectValues]:
        """SelectValues of every nested SELECT, or of the statement itself when it has none."""
        queries = [query for query in self.subqueries.queries if is_subquery(query)]
        if not queries:
            values = self.select_values
            return [values] if values is not None else []

        logger.debug(f"Analyzing select lists of {len(queries)} subqueries")
        return [SelectListParser.from_statement(unwrap(query), self.settings).select_values for query in queries]

    @classmethod
    def select(cls, *columns: str) -> QueryBuilder:
        """Start building a SELECT query."""
        return QueryBuilder().select(*columns)

    @classmethod
    def insert_into(cls, table: str) -> QueryBuilder:
        """Start building an INSERT query."""
        return QueryBuilder().insert_into(table)

    @classmethod
    def update(cls, table: str) -> QueryBuilder:
        """Start building an UPDATE query."""
        return QueryBuilder().update(table)

    @classmethod
    def delete_from(cls, table: str) -> QueryBuilder:
        """Start building a DELETE query."""
        return QueryBuilder().delete_from(table)


def parse_query(sql: str, settings: Optional[ParserSettings] = None) -> QueryParts:
    """Split one statement into QueryParts."""
    return StatementLexer(sql, settings).query_parts


# =============================================================================
# Query Builder
# =============================================================================


def _placeholder(column: str) -> str:
    key = column_key(column)
    if key is None:
        raise ValueError(f"Cannot derive a parameter name from {column!r}")
    return f"@{key}"


class QueryBuilder:
    """Fluent builder for statements that bind every value as ``@column``."""

    def __init__(self):
        self._type: Optional[str] = None
        self._columns: List[str] = []
        self._table: Optional[str] = None
        self._joins: List[str] = []
        self._where: List[str] = []
        self._group_by: List[str] = []
        self._having: Optional[str] = None
        self._order_by: List[str] = []
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None
        self._insert_columns: List[str] = []
        self._set: List[str] = []

    def select(self, *columns: str) -> QueryBuilder:
        self._type = "SELECT"
        self._columns = list(columns) if columns else ["*"]
        return self

    def count(self, table: str) -> QueryBuilder:
        self._type = "SELECT"
        self._columns = ["COUNT(*) AS count"]
        self._table = table
        return self

    def from_(self, table: str) -> QueryBuilder:
        self._table = table
        return self

    def join(self, table: str, on: str, type: str = "INNER") -> QueryBuilder:
        self._joins.append(f"{type} JOIN {table} ON {on}")
        return self

    def left_join(self, table: str, on: str) -> QueryBuilder:
        return self.join(table, on, "LEFT")

    def where(self, *columns: str, operator: str = "=") -> QueryBuilder:
        """Add ``column <operator> @column`` conditions joined by AND."""
        operator = operator.upper()
        for column in columns:
            if operator in ("IS NULL", "IS NOT NULL"):
                self._where.append(f"{column} {operator}")
            else:
                self._where.append(f"{column} {operator} {_placeholder(column)}")
        return self

    def group_by(self, *columns: str) -> QueryBuilder:
        self._group_by.extend(columns)
        return self

    def having(self, condition: str) -> QueryBuilder:
        self._having = condition
        return self

    def order_by(self, column: str, direction: str = "ASC") -> QueryBuilder:
        direction = direction.upper()
        if direction not in ("ASC", "DESC"):
            raise ValueError(f"Invalid sort direction: {direction}")
        self._order_by.append(f"{column} {direction}")
        return self

    def limit(self, count: int) -> QueryBuilder:
        if count < 0:
            raise ValueError("LIMIT must not be negative")
        self._limit = count
        return self

    def offset(self, count: int) -> QueryBuilder:
        if count < 0:
            raise ValueError("OFFSET must not be negative")
        self._offset = count
        return self

    def insert_into(self, table: str) -> QueryBuilder:
        self._type = "INSERT"
        self._table = table
        return self

    def values(self, *columns: str) -> QueryBuilder:
        self._insert_columns.extend(columns)
        return self

    def update(self, table: str) -> QueryBuilder:
        self._type = "UPDATE"
        self._table = table
        return self

    def set(self, *columns: str) -> QueryBuilder:
        self._set.extend(f"{column} = {_placeholder(column)}" for column in columns)
        return self

    def delete_from(self, table: str) -> QueryBuilder:
        self._type = "DELETE"
        self._table = table
        return self

    def build(self) -> str:
        """Build SQL string."""
        if not self._table:
            raise ValueError("Table not set")
        if self._type == "SELECT":
            return self._build_select()
        elif self._type == "INSERT":
            return self._build_insert()
        elif self._type == "UPDATE":
            return self._build_update()
        elif self._type == "DELETE":
            return self._build_delete()
        else:
            raise ValueError("Query type not set")

    def _build_select(self) -> str:
        parts = ["SELECT", ", ".join(self._columns), "FROM", self._table]
        parts.extend(self._joins)
        self._append_where(parts)

        if self._group_by:
            parts.extend(["GROUP BY", ", ".join(self._group_by)])
            if self._having:
                parts.extend(["HAVING", self._having])

        if self._order_by:
            parts.extend(["ORDER BY", ", ".join(self._order_by)])

        if self._limit is not None:
            parts.extend(["LIMIT", str(self._limit)])

        if self._offset is not None:
            parts.extend(["OFFSET", str(self._offset)])

        return " ".join(parts)

    def _build_insert(self) -> str:
        if not self._insert_columns:
            raise ValueError("No values to insert")

        placeholders_list = ", ".join(_placeholder(column) for column in self._insert_columns)
        return f"INSERT INTO {self._table} ({', '.join(self._insert_columns)}) VALUES ({placeholders_list})"

    def _build_update(self) -> str:
        if not self._set:
            raise ValueError("No values to update")

        parts = [f"UPDATE {self._table} SET {', '.join(self._set)}"]
        self._append_where(parts)
        return " ".join(parts)

    def _build_delete(self) -> str:
        parts = [f"DELETE FROM {self._table}"]
        self._append_where(parts)
        return " ".join(parts)

    def _append_where(self, parts: List[str]) -> None:
        if self._where:
            parts.extend(["WHERE", " AND ".join(self._where)])


__all__ = [
    "Query",
    "QueryBuilder",
    "parse_query",
]
