"""RoadSQL Tokens - lexical analysis of SQL fragments.

Turns a fragment of SQL (usually one select item or one condition) into a flat
token list. Token values are the raw source text, so callers can slice the
original fragment with ``position``/``end`` and keep it verbatim.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import FrozenSet, Iterable, List, Optional

from roadsql_core.query.errors import StructuralError


# =============================================================================
# Token Types
# =============================================================================


class TokenType(Enum):
    """SQL token types."""

    # Literals
    NUMBER = auto()
    STRING = auto()
    IDENTIFIER = auto()
    QUOTED_IDENTIFIER = auto()
    PARAMETER = auto()

    # Words with grammatical meaning
    KEYWORD = auto()

    # Operators and punctuation
    OPERATOR = auto()
    STAR = auto()
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()
    DOT = auto()
    SEMICOLON = auto()

    # Special
    EOF = auto()


KEYWORDS: FrozenSet[str] = frozenset(
    {
        "SELECT", "FROM", "WHERE", "AND", "OR", "NOT", "IN", "LIKE", "ILIKE",
        "GLOB", "REGEXP", "BETWEEN", "IS", "NULL", "TRUE", "FALSE", "AS", "ON",
        "JOIN", "LEFT", "RIGHT", "INNER", "OUTER", "FULL", "CROSS", "NATURAL",
        "USING", "ORDER", "BY", "ASC", "DESC", "LIMIT", "OFFSET", "GROUP",
        "HAVING", "DISTINCT", "ALL", "UNION", "INTERSECT", "EXCEPT", "INSERT",
        "INTO", "VALUES", "UPDATE", "SET", "DELETE", "CREATE", "TABLE", "DROP",
        "ALTER", "CASE", "WHEN", "THEN", "ELSE", "END", "CAST", "EXISTS",
        "ANY", "SOME", "WITH", "RECURSIVE", "OVER", "PARTITION", "ROWS",
        "RANGE", "UNBOUNDED", "PRECEDING", "FOLLOWING", "CURRENT", "ROW",
        "NULLS", "INTERVAL", "ESCAPE", "COLLATE", "FILTER", "WINDOW",
        "RETURNING", "LATERAL", "CURRENT_DATE", "CURRENT_TIME", "CURRENT_TIMESTAMP",
    }
)

DATE_PARTS: FrozenSet[str] = frozenset(
    {"YEAR", "QUARTER", "MONTH", "WEEK", "DAY", "HOUR", "MINUTE", "SECOND", "EPOCH"}
)


@dataclass
class Token:
    """Lexical token."""

    type: TokenType
    value: str
    position: int
    end: int

    @property
    def upper(self) -> str:
        return self.value.upper()

    def is_keyword(self, *words: str) -> bool:
        """Check whether this token is one of the given keywords."""
        return self.type == TokenType.KEYWORD and self.upper in words

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r})"


# =============================================================================
# Lexer
# =============================================================================


class Lexer:
    """SQL fragment lexer (tokenizer)."""

    TWO_CHAR_OPERATORS = ("!=", "<>", "<=", ">=", "||", "::", "==")

    def __init__(self, sql: str, keywords: Optional[Iterable[str]] = None):
        """Initialize lexer.

        Args:
            sql: SQL fragment to tokenize
            keywords: Reserved words; defaults to KEYWORDS
        """
        self.sql = sql
        self.keywords = frozenset(keywords) if keywords is not None else KEYWORDS
        self.pos = 0

    def tokenize(self) -> List[Token]:
        """Tokenize the SQL fragment.

        Returns:
            List of tokens, terminated by an EOF token
        """
        tokens = []
        while self.pos < len(self.sql):
            token = self._next_token()
            if token:
                tokens.append(token)

        tokens.append(Token(TokenType.EOF, "", len(self.sql), len(self.sql)))
        return tokens

    def _next_token(self) -> Optional[Token]:
        """Get the next token."""
        self._skip_whitespace()
        while self._skip_comments():
            self._skip_whitespace()

        if self.pos >= len(self.sql):
            return None

        start = self.pos
        char = self.sql[self.pos]

        if char == "'":
            return self._read_quoted(TokenType.STRING, "'", start)

        if char == '"':
            return self._read_quoted(TokenType.QUOTED_IDENTIFIER, '"', start)

        if char == "`":
            return self._read_quoted(TokenType.QUOTED_IDENTIFIER, "`", start)

        if char.isdigit() or (char == "." and self._peek(1).isdigit()):
            return self._read_number(start)

        if char.isalpha() or char == "_":
            return self._read_identifier(start)

        if char == "@" and (self._peek(1).isalpha() or self._peek(1) == "_"):
            return self._read_parameter(start)

        return self._read_operator(start)

    def _skip_whitespace(self) -> None:
        """Skip whitespace characters."""
        while self.pos < len(self.sql) and self.sql[self.pos].isspace():
            self.pos += 1

    def _skip_comments(self) -> bool:
        """Skip one SQL comment. Returns True if a comment was skipped."""
        pair = self.sql[self.pos : self.pos + 2]

        if pair == "--":
            while self.pos < len(self.sql) and self.sql[self.pos] != "\n":
                self.pos += 1
            return True

        if pair == "/*":
            end = self.sql.find("*/", self.pos + 2)
            if end < 0:
                raise StructuralError(f"Unterminated comment at position {self.pos}", position=self.pos)
            self.pos = end + 2
            return True

        return False

    def _peek(self, offset: int = 0) -> str:
        """Peek at character at offset."""
        pos = self.pos + offset
        if pos < len(self.sql):
            return self.sql[pos]
        return ""

    def _read_quoted(self, token_type: TokenType, quote: str, start: int) -> Token:
        """Read a quoted literal or identifier; a doubled quote is an escape."""
        self.pos += 1

        while self.pos < len(self.sql):
            if self.sql[self.pos] == quote:
                if self._peek(1) == quote:
                    self.pos += 2
                    continue
                self.pos += 1
                return Token(token_type, self.sql[start : self.pos], start, self.pos)
            self.pos += 1

        raise StructuralError(f"Unterminated string literal at position {start}", position=start)

    def _read_number(self, start: int) -> Token:
        """Read a numeric literal."""
        has_dot = False
        has_e = False

        while self.pos < len(self.sql):
            char = self.sql[self.pos]

            if char.isdigit():
                pass
            elif char == "." and not has_dot and not has_e:
                has_dot = True
            elif char.lower() == "e" and not has_e and (self._peek(1).isdigit() or self._peek(1) in ("+", "-")):
                has_e = True
                if self._peek(1) in ("+", "-"):
                    self.pos += 1
            else:
                break

            self.pos += 1

        return Token(TokenType.NUMBER, self.sql[start : self.pos], start, self.pos)

    def _read_identifier(self, start: int) -> Token:
        """Read an identifier or keyword."""
        while self.pos < len(self.sql) and (self.sql[self.pos].isalnum() or self.sql[self.pos] in "_$"):
            self.pos += 1

        value = self.sql[start : self.pos]
        if value.upper() in self.keywords:
            return Token(TokenType.KEYWORD, value, start, self.pos)

        return Token(TokenType.IDENTIFIER, value, start, self.pos)

    def _read_parameter(self, start: int) -> Token:
        """Read an ``@name`` placeholder."""
        self.pos += 1
        while self.pos < len(self.sql) and (self.sql[self.pos].isalnum() or self.sql[self.pos] == "_"):
            self.pos += 1

        return Token(TokenType.PARAMETER, self.sql[start : self.pos], start, self.pos)

    def _read_operator(self, start: int) -> Token:
        """Read an operator or punctuation."""
        two_char = self.sql[self.pos : self.pos + 2]
        if two_char in self.TWO_CHAR_OPERATORS:
            self.pos += 2
            return Token(TokenType.OPERATOR, two_char, start, self.pos)

        char = self.sql[self.pos]
        self.pos += 1

        punctuation = {
            "*": TokenType.STAR,
            "(": TokenType.LPAREN,
            ")": TokenType.RPAREN,
            ",": TokenType.COMMA,
            ".": TokenType.DOT,
            ";": TokenType.SEMICOLON,
        }

        return Token(punctuation.get(char, TokenType.OPERATOR), char, start, self.pos)


def tokenize(sql: str, keywords: Optional[Iterable[str]] = None) -> List[Token]:
    """Tokenize a fragment, dropping the EOF marker."""
    return Lexer(sql, keywords).tokenize()[:-1]


__all__ = [
    "DATE_PARTS",
    "KEYWORDS",
    "Lexer",
    "Token",
    "TokenType",
    "tokenize",
]
