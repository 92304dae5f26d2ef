"""RoadSQL Select List - column references and expressions of a SELECT.

Each top-level select item is classified by its shape:

    name, users.name, *          BARE_REFERENCE
    COUNT(*), MAX(age)           SINGLE_COLUMN_CALL
    ROUND(AVG(price)), IF(a, b)  MULTI_ARG_OR_NESTED_CALL
    price * quantity             ARITHMETIC_EXPRESSION
    CASE WHEN ... END            CASE_EXPRESSION
    'x', 42, @flag               LITERAL
    (SELECT ...)                 SCALAR_SUBQUERY

References and single-column calls contribute their column directly. The
three expression shapes contribute every column identifier they mention and
are reported as expressions.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional, Sequence, Tuple

from roadsql_core.config import DEFAULT_SETTINGS, ParserSettings
from roadsql_core.query.clauses import CLAUSE_KEYWORDS, SET_OPERATORS
from roadsql_core.query.errors import StructuralError
from roadsql_core.query.scanner import ClauseScanner, normalize
from roadsql_core.query.tokens import DATE_PARTS, Token, TokenType, tokenize

logger = logging.getLogger(__name__)


# =============================================================================
# Item shapes
# =============================================================================


class ItemShape(Enum):
    """Syntactic shape of a select item."""

    BARE_REFERENCE = auto()
    SINGLE_COLUMN_CALL = auto()
    MULTI_ARG_OR_NESTED_CALL = auto()
    ARITHMETIC_EXPRESSION = auto()
    CASE_EXPRESSION = auto()
    LITERAL = auto()
    SCALAR_SUBQUERY = auto()


EXPRESSION_SHAPES = frozenset(
    {
        ItemShape.MULTI_ARG_OR_NESTED_CALL,
        ItemShape.ARITHMETIC_EXPRESSION,
        ItemShape.CASE_EXPRESSION,
    }
)

NAME_TYPES = (TokenType.IDENTIFIER, TokenType.QUOTED_IDENTIFIER)
LITERAL_TYPES = (TokenType.NUMBER, TokenType.STRING, TokenType.PARAMETER)
LITERAL_KEYWORDS = ("NULL", "TRUE", "FALSE", "CURRENT_DATE", "CURRENT_TIME", "CURRENT_TIMESTAMP")
ARITHMETIC_OPERATORS = ("+", "-", "/", "%", "||")
CALLABLE_KEYWORDS = ("LEFT", "RIGHT", "CAST", "FILTER")


@dataclass(frozen=True)
class SelectItem:
    """One top-level select item."""

    text: str
    expression: str
    alias: Optional[str]
    shape: ItemShape
    columns: Tuple[str, ...]

    @property
    def is_expression(self) -> bool:
        return self.shape in EXPRESSION_SHAPES


@dataclass(frozen=True)
class SelectValues:
    """Columns and expressions of a select list."""

    columns: Tuple[str, ...]
    expressions: Tuple[str, ...]
    items: Tuple[SelectItem, ...] = ()


# =============================================================================
# Token helpers
# =============================================================================


def _is_call(tokens: Sequence[Token], index: int) -> bool:
    """Whether tokens[index] is a function name followed by ``(``."""
    token = tokens[index]
    if index + 1 >= len(tokens) or tokens[index + 1].type != TokenType.LPAREN:
        return False
    return token.type == TokenType.IDENTIFIER or token.is_keyword(*CALLABLE_KEYWORDS)


def _matching(tokens: Sequence[Token], open_index: int) -> int:
    """Index of the RPAREN closing the LPAREN at open_index."""
    depth = 0
    for index in range(open_index, len(tokens)):
        if tokens[index].type == TokenType.LPAREN:
            depth += 1
        elif tokens[index].type == TokenType.RPAREN:
            depth -= 1
            if depth == 0:
                return index
    return -1


def _reference_text(tokens: Sequence[Token]) -> Optional[str]:
    """``a``, ``t.a``, ``s.t.a``, ``*`` or ``t.*`` joined without spaces; else None."""
    if len(tokens) == 1 and tokens[0].type == TokenType.STAR:
        return "*"
    if not tokens or tokens[0].type not in NAME_TYPES:
        return None

    index = 1
    while index < len(tokens):
        if tokens[index].type != TokenType.DOT or index + 1 >= len(tokens):
            return None
        following = tokens[index + 1]
        if following.type == TokenType.STAR and index + 2 == len(tokens):
            break
        if following.type not in NAME_TYPES:
            return None
        index += 2

    return "".join(token.value for token in tokens)


def _split_arguments(tokens: Sequence[Token]) -> List[List[Token]]:
    """Split call arguments on depth-zero commas."""
    arguments: List[List[Token]] = [[]]
    depth = 0
    for token in tokens:
        if token.type == TokenType.LPAREN:
            depth += 1
        elif token.type == TokenType.RPAREN:
            depth -= 1
        elif token.type == TokenType.COMMA and depth == 0:
            arguments.append([])
            continue
        arguments[-1].append(token)
    return [argument for argument in arguments if argument]


def _is_unit_word(tokens: Sequence[Token], index: int) -> bool:
    """Date part used as syntax: ``EXTRACT(YEAR FROM d)``, ``INTERVAL 2 DAY``."""
    if tokens[index].upper not in DATE_PARTS:
        return False
    if index + 1 < len(tokens) and tokens[index + 1].is_keyword("FROM"):
        return True
    return (
        index >= 2
        and tokens[index - 1].type in (TokenType.NUMBER, TokenType.STRING)
        and tokens[index - 2].is_keyword("INTERVAL")
    )


def collect_columns(tokens: Sequence[Token]) -> Tuple[str, ...]:
    """Column identifiers mentioned anywhere in an expression, in order, repeats included."""
    columns: List[str] = []
    index = 0

    while index < len(tokens):
        token = tokens[index]

        if (
            token.type == TokenType.STAR
            and 0 < index < len(tokens) - 1
            and tokens[index - 1].type == TokenType.LPAREN
            and tokens[index + 1].type == TokenType.RPAREN
        ):
            columns.append("*")

        if token.type not in NAME_TYPES or _is_call(tokens, index):
            index += 1
            continue

        previous = tokens[index - 1] if index > 0 else None
        if previous is not None and (previous.is_keyword("AS") or previous.value == "::"):
            index += 1
            continue
        if _is_unit_word(tokens, index):
            index += 1
            continue

        end = index + 1
        while (
            end + 1 < len(tokens)
            and tokens[end].type == TokenType.DOT
            and tokens[end + 1].type in NAME_TYPES + (TokenType.STAR,)
        ):
            end += 2
        columns.append("".join(t.value for t in tokens[index:end]))
        index = end

    return tuple(columns)


# =============================================================================
# Select List Parser
# =============================================================================


class SelectListParser:
    """Classify the items of a SELECT list."""

    def __init__(self, select_list: str, settings: Optional[ParserSettings] = None):
        """Initialize parser.

        Args:
            select_list: Text between SELECT and FROM
            settings: Parser settings
        """
        self.settings = settings or DEFAULT_SETTINGS
        text = normalize(select_list).strip()

        scanner = ClauseScanner(text, max_depth=self.settings.max_nesting_depth)
        scanner.validate()
        quantifier = scanner.find(("DISTINCT", "ALL"))
        if quantifier is not None and quantifier.start == 0:
            text = text[quantifier.end :].strip()
            scanner = ClauseScanner(text)

        self.select_list = text
        self._item_texts = scanner.split(",")
        self._items: Optional[Tuple[SelectItem, ...]] = None

    @classmethod
    def from_statement(cls, sql: str, settings: Optional[ParserSettings] = None) -> SelectListParser:
        """Build a parser over the top-level select list of a statement.

        Raises:
            StructuralError: The statement has no top-level SELECT
        """
        text = normalize(sql)
        scanner = ClauseScanner(text)
        scanner.validate()

        select = scanner.find("SELECT")
        if select is None:
            raise StructuralError("Invalid SQL query: SELECT clause not found.", fragment=text)

        compound_end = scanner.boundary(SET_OPERATORS, select.end)
        end = scanner.boundary(("FROM",) + CLAUSE_KEYWORDS, select.end, compound_end)
        return cls(text[select.end : end], settings)

    @property
    def items(self) -> Tuple[SelectItem, ...]:
        if self._items is None:
            self._items = tuple(self._parse_item(text) for text in self._item_texts)
        return self._items

    def parse_columns(self) -> List[str]:
        """Base column identifiers referenced by the select list, in item order, repeats included."""
        columns: List[str] = []
        for item in self.items:
            columns.extend(item.columns)
        return columns

    def parse_expressions(self) -> List[str]:
        """Items that are expressions rather than plain column references."""
        return [item.text for item in self.items if item.is_expression]

    @property
    def select_values(self) -> SelectValues:
        return SelectValues(
            columns=tuple(self.parse_columns()),
            expressions=tuple(self.parse_expressions()),
            items=self.items,
        )

    # -------------------------------------------------------------------------
    # Item classification
    # -------------------------------------------------------------------------

    def _parse_item(self, text: str) -> SelectItem:
        tokens = tokenize(text, self.settings.keywords)
        body, alias = self._split_alias(tokens)
        if not body:
            raise StructuralError(f"Invalid select item: {text}", fragment=text)

        expression = text[: body[-1].end].strip()
        shape, columns = self._classify(body)
        logger.debug(f"Select item {text!r} classified as {shape.name}")

        return SelectItem(text=text, expression=expression, alias=alias, shape=shape, columns=columns)

    @staticmethod
    def _split_alias(tokens: List[Token]) -> Tuple[List[Token], Optional[str]]:
        """Separate a trailing ``AS alias`` or bare alias from the item body."""
        if len(tokens) >= 3 and tokens[-2].is_keyword("AS") and tokens[-1].type in NAME_TYPES + (TokenType.STRING,):
            return tokens[:-2], tokens[-1].value.strip("\"`'")

        if len(tokens) >= 2 and tokens[-1].type in NAME_TYPES:
            previous = tokens[-2]
            if previous.type in NAME_TYPES + (TokenType.RPAREN, TokenType.NUMBER, TokenType.STRING) or previous.is_keyword(
                "END"
            ):
                return tokens[:-1], tokens[-1].value.strip('"`')

        return tokens, None

    def _classify(self, body: List[Token]) -> Tuple[ItemShape, Tuple[str, ...]]:
        reference = _reference_text(body)
        if reference is not None:
            return ItemShape.BARE_REFERENCE, (reference,)

        if self._is_literal(body):
            return ItemShape.LITERAL, ()

        if (
            body[0].type == TokenType.LPAREN
            and len(body) > 1
            and body[1].is_keyword("SELECT", "WITH")
            and _matching(body, 0) == len(body) - 1
        ):
            return ItemShape.SCALAR_SUBQUERY, ()

        if body[0].is_keyword("CASE") and self._is_single_case(body):
            return ItemShape.CASE_EXPRESSION, collect_columns(body)

        if _is_call(body, 0) and _matching(body, 1) == len(body) - 1:
            arguments = _split_arguments(body[2:-1])
            if len(arguments) == 1:
                argument = arguments[0]
                if argument[0].is_keyword("DISTINCT", "ALL"):
                    argument = argument[1:]
                column = _reference_text(argument)
                if column is not None:
                    return ItemShape.SINGLE_COLUMN_CALL, (column,)
            return ItemShape.MULTI_ARG_OR_NESTED_CALL, collect_columns(body)

        if self._has_top_level_arithmetic(body):
            return ItemShape.ARITHMETIC_EXPRESSION, collect_columns(body)

        if any(_is_call(body, index) for index in range(len(body))):
            return ItemShape.MULTI_ARG_OR_NESTED_CALL, collect_columns(body)

        return ItemShape.ARITHMETIC_EXPRESSION, collect_columns(body)

    @staticmethod
    def _is_literal(body: List[Token]) -> bool:
        if len(body) == 2 and body[0].value in ("-", "+") and body[1].type == TokenType.NUMBER:
            return True
        return len(body) == 1 and (body[0].type in LITERAL_TYPES or body[0].is_keyword(*LITERAL_KEYWORDS))

    @staticmethod
    def _is_single_case(body: List[Token]) -> bool:
        """Whether the CASE at body[0] is closed by the END at body[-1]."""
        level = 0
        for index, token in enumerate(body):
            if token.is_keyword("CASE"):
                level += 1
            elif token.is_keyword("END"):
                level -= 1
                if level == 0:
                    return index == len(body) - 1
        return False

    @staticmethod
    def _has_top_level_arithmetic(body: List[Token]) -> bool:
        depth = 0
        for token in body:
            if token.type == TokenType.LPAREN:
                depth += 1
            elif token.type == TokenType.RPAREN:
                depth -= 1
            elif depth == 0 and (token.type == TokenType.STAR or token.value in ARITHMETIC_OPERATORS):
                return True
        return False


__all__ = [
    "EXPRESSION_SHAPES",
    "ItemShape",
    "SelectItem",
    "SelectListParser",
    "SelectValues",
    "collect_columns",
]
