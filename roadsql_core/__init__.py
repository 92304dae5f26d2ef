"""RoadSQL - Clause-level SQL parsing for BlackRoad OS.

RoadSQL splits single SQL statements into their clauses without building a
full AST. It provides:
- Clause fragments of SELECT, INSERT, UPDATE, DELETE and basic table DDL
- Column references and expressions of a select list
- Nested subqueries, CTE bodies and the tables a statement reads
- GROUP BY columns and HAVING conditions
- Enforcement of the ``@name`` placeholder contract for every value slot

Architecture:
    ┌─────────────────────────────────────────────────────────────────┐
    │                           RoadSQL                              │
    ├─────────────────────────────────────────────────────────────────┤
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐             │
    │  │   Clause    │  │  Statement  │  │   Select    │             │
    │  │   Scanner   │──│   Lexer     │──│   List      │             │
    │  └─────────────┘  └─────────────┘  └─────────────┘             │
    │         │               │               │                       │
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐             │
    │  │  Subquery   │  │  Group By   │  │  Parameter  │             │
    │  │  Extractor  │──│  Parser     │──│  Contract   │             │
    │  └─────────────┘  └─────────────┘  └─────────────┘             │
    └─────────────────────────────────────────────────────────────────┘

Usage:
    from roadsql_core import Query

    query = Query("SELECT name, email FROM users WHERE id = @id")
    query.parts.table            # 'users'
    query.parts.where            # ('id = @id',)
    query.select_values.columns  # ('name', 'email')

    Query.update("users").set("email").where("id").build()
    # 'UPDATE users SET email = @email WHERE id = @id'

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

__version__ = "1.0.0"
__author__ = "BlackRoad OS, Inc."
__email__ = "engineering@blackroad.io"

# Query exports
from roadsql_core.query.parser import Query, QueryBuilder, parse_query
from roadsql_core.query.lexer import QueryParts, StatementLexer, StatementType
from roadsql_core.query.select import ItemShape, SelectItem, SelectListParser, SelectValues
from roadsql_core.query.subquery import SubQueryValues, SubqueryExtractor
from roadsql_core.query.group_by import GroupByParser, GroupByValues
from roadsql_core.query.clauses import Condition, JoinClause, TableReference
from roadsql_core.query.scanner import ClauseScanner

# Error exports
from roadsql_core.query.errors import (
    MissingFromError,
    MultipleStatementsError,
    ParameterFormatError,
    ParameterMismatchError,
    SQLParseError,
    StructuralError,
)

# Configuration exports
from roadsql_core.config import ParserSettings, load_settings

__all__ = [
    # Version
    "__version__",

    # Query
    "Query",
    "QueryBuilder",
    "parse_query",
    "QueryParts",
    "StatementLexer",
    "StatementType",
    "ClauseScanner",

    # Select list
    "ItemShape",
    "SelectItem",
    "SelectListParser",
    "SelectValues",

    # Subqueries
    "SubQueryValues",
    "SubqueryExtractor",

    # Group by
    "GroupByParser",
    "GroupByValues",

    # Clauses
    "Condition",
    "JoinClause",
    "TableReference",

    # Errors
    "SQLParseError",
    "StructuralError",
    "MultipleStatementsError",
    "MissingFromError",
    "ParameterFormatError",
    "ParameterMismatchError",

    # Configuration
    "ParserSettings",
    "load_settings",
]
