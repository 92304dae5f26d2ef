"""RoadSQL query parsing package.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from roadsql_core.query.errors import SQLParseError
from roadsql_core.query.tokens import Lexer, Token, TokenType
from roadsql_core.query.scanner import ClauseScanner, KeywordMatch, normalize
from roadsql_core.query.lexer import QueryParts, StatementLexer, StatementType
from roadsql_core.query.parser import Query, QueryBuilder, parse_query

__all__ = [
    "ClauseScanner",
    "KeywordMatch",
    "Lexer",
    "Query",
    "QueryBuilder",
    "QueryParts",
    "SQLParseError",
    "StatementLexer",
    "StatementType",
    "Token",
    "TokenType",
    "normalize",
    "parse_query",
]
