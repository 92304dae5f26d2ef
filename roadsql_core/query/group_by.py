"""RoadSQL Group By - GROUP BY columns and HAVING conditions.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from roadsql_core.config import DEFAULT_SETTINGS, ParserSettings
from roadsql_core.query.clauses import SET_OPERATORS, Condition, parse_condition
from roadsql_core.query.errors import ConditionSyntaxError, StructuralError
from roadsql_core.query.parameters import validate_condition
from roadsql_core.query.scanner import ClauseScanner, normalize

logger = logging.getLogger(__name__)


_IDENTIFIER = re.compile(r"^[A-Za-z_][\w$]*(?:\.[A-Za-z_][\w$]*)*$")
_CALL = re.compile(r"^[A-Za-z_][\w$]*\s*\(")

HAVING_TERMINATORS: Tuple[str, ...] = ("WINDOW", "ORDER BY", "LIMIT", "OFFSET", "RETURNING") + SET_OPERATORS
GROUP_BY_TERMINATORS: Tuple[str, ...] = ("HAVING",) + HAVING_TERMINATORS


@dataclass(frozen=True)
class GroupByValues:
    """Grouping columns and the HAVING filter of one statement.

    ``having_conditions`` is the first HAVING comparison; ``having`` holds
    every comparison joined by top-level AND/OR.
    """

    columns: Tuple[str, ...]
    having_conditions: Optional[Condition] = None
    having: Tuple[Condition, ...] = ()


class GroupByParser:
    """Extract GROUP BY and HAVING from a statement."""

    def __init__(self, sql: str, settings: Optional[ParserSettings] = None):
        """Initialize parser.

        Args:
            sql: Statement text
            settings: Parser settings
        """
        self.sql = normalize(sql)
        self.settings = settings or DEFAULT_SETTINGS
        self._scanner = ClauseScanner(self.sql, max_depth=self.settings.max_nesting_depth)
        self._scanner.validate()

    def parse(self) -> List[GroupByValues]:
        """Parse the top-level GROUP BY.

        Returns:
            An empty list when there is no GROUP BY, otherwise one GroupByValues

        Raises:
            StructuralError: Empty GROUP BY list
            ConditionSyntaxError: HAVING condition without operand or operator
            ParameterMismatchError: HAVING placeholder not naming its column
        """
        scanner = self._scanner
        group = scanner.find("GROUP BY")
        if group is None:
            return []

        end = scanner.boundary(GROUP_BY_TERMINATORS, group.end)
        columns = tuple(scanner.split(",", group.end, end))
        if not columns:
            raise StructuralError("GROUP BY requires at least one column", position=group.start)

        conditions: List[Condition] = []
        having = scanner.find("HAVING", end)
        if having is not None and having.start == end:
            having_end = scanner.boundary(HAVING_TERMINATORS, having.end)
            for piece in scanner.split_keyword(("AND", "OR"), having.end, having_end):
                conditions.append(self._parse_having(piece))
            if not conditions:
                raise ConditionSyntaxError("HAVING requires a condition", position=having.start)

        logger.debug(f"GROUP BY {len(columns)} columns, {len(conditions)} HAVING conditions")
        return [
            GroupByValues(
                columns=columns,
                having_conditions=conditions[0] if conditions else None,
                having=tuple(conditions),
            )
        ]

    def _parse_having(self, text: str) -> Condition:
        """Parse one HAVING comparison; the operand is a column or a call."""
        condition = parse_condition(text, "HAVING")
        if not self._is_operand(condition.value):
            raise ConditionSyntaxError(f"Invalid condition in HAVING clause: {text}", fragment=text)

        validate_condition(text, strict=False, clause="HAVING")
        return condition

    @staticmethod
    def _is_operand(value: str) -> bool:
        if _IDENTIFIER.match(value):
            return True
        if not _CALL.match(value):
            return False
        scanner = ClauseScanner(value)
        return scanner.is_balanced() and scanner.matching_paren(value.index("(")) == len(value) - 1


__all__ = [
    "GROUP_BY_TERMINATORS",
    "HAVING_TERMINATORS",
    "GroupByParser",
    "GroupByValues",
]
