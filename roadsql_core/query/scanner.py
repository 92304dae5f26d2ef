"""RoadSQL Clause Scanner - depth-aware keyword location.

Every clause parser in RoadSQL works on raw statement text rather than on an
AST. The scanner makes that safe: it walks the text once, marks which offsets
are code (as opposed to string literals, quoted identifiers and comments) and
records the parenthesis depth at every offset. Keyword searches and top-level
splits then only ever consider code at depth zero.

Architecture:
    ┌─────────────────────────────────────────────────────────────────────┐
    │                         Clause Scanner                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐                 │
    │  │   State     │──│   Depth /   │──│  Keyword    │                 │
    │  │  Machine    │  │  Code Map   │  │  Search     │                 │
    │  └─────────────┘  └─────────────┘  └─────────────┘                 │
    │                          │                                          │
    │                   ┌─────────────┐                                   │
    │                   │  Top-level  │                                   │
    │                   │   Splits    │                                   │
    │                   └─────────────┘                                   │
    └─────────────────────────────────────────────────────────────────────┘

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum, auto
from functools import lru_cache
from typing import List, Optional, Pattern, Sequence, Tuple, Union

from roadsql_core.query.errors import (
    NestingTooDeepError,
    StructuralError,
    UnbalancedParenthesesError,
)

logger = logging.getLogger(__name__)

Keywords = Union[str, Sequence[str]]


# =============================================================================
# Scanner State
# =============================================================================


class ScanState(Enum):
    """Lexical context of the character being scanned."""

    CODE = auto()
    SINGLE_QUOTED = auto()
    DOUBLE_QUOTED = auto()
    BACKTICKED = auto()
    LINE_COMMENT = auto()
    BLOCK_COMMENT = auto()


QUOTE_STATES = {
    "'": ScanState.SINGLE_QUOTED,
    '"': ScanState.DOUBLE_QUOTED,
    "`": ScanState.BACKTICKED,
}


@dataclass(frozen=True)
class KeywordMatch:
    """A keyword occurrence found by the scanner."""

    keyword: str
    start: int
    end: int


@lru_cache(maxsize=512)
def _keyword_pattern(keyword: str) -> Pattern:
    """Compile a case-insensitive pattern for a (possibly multi-word) keyword."""
    body = r"\s+".join(re.escape(word) for word in keyword.split())
    if keyword[0].isalnum() or keyword[0] == "_":
        body = r"(?<![\w$@.])" + body
    if keyword[-1].isalnum() or keyword[-1] == "_":
        body = body + r"(?![\w$])"
    return re.compile(body, re.IGNORECASE)


def _alternatives(keywords: Keywords) -> Tuple[str, ...]:
    if isinstance(keywords, str):
        return (keywords,)
    return tuple(keywords)


# =============================================================================
# Clause Scanner
# =============================================================================


class ClauseScanner:
    """Depth- and literal-aware view over one piece of SQL text."""

    def __init__(self, text: str, starting_depth: int = 0, max_depth: Optional[int] = None):
        """Initialize scanner.

        Args:
            text: SQL text to scan
            starting_depth: Depth the text begins at, for fragments cut out of
                a larger statement
            max_depth: Maximum parenthesis nesting accepted by validate()
        """
        self.text = text
        self.starting_depth = starting_depth
        self.max_depth = max_depth

        self._depth: List[int] = [0] * len(text)
        self._code: List[bool] = [False] * len(text)
        self._comment: List[bool] = [False] * len(text)

        self._stray_close: Optional[int] = None
        self._unclosed: List[int] = []
        self._too_deep: Optional[int] = None
        self._unterminated: Optional[Tuple[ScanState, int]] = None

        self._scan()

    def _scan(self) -> None:
        """Walk the text once, filling the depth, code and comment maps."""
        text = self.text
        state = ScanState.CODE
        depth = 0
        opened_at = 0
        opens: List[int] = []
        i = 0

        while i < len(text):
            char = text[i]
            self._depth[i] = depth

            if state == ScanState.CODE:
                if char in QUOTE_STATES:
                    state = QUOTE_STATES[char]
                    opened_at = i
                elif text.startswith("--", i):
                    state = ScanState.LINE_COMMENT
                    opened_at = i
                    self._comment[i] = True
                elif text.startswith("/*", i):
                    state = ScanState.BLOCK_COMMENT
                    opened_at = i
                    self._comment[i] = self._comment[i + 1] = True
                    self._depth[i + 1] = depth
                    i += 2
                    continue
                elif char == "(":
                    self._code[i] = True
                    opens.append(i)
                    depth += 1
                    if self.max_depth is not None and depth > self.max_depth and self._too_deep is None:
                        self._too_deep = i
                elif char == ")":
                    if opens:
                        opens.pop()
                    elif self._stray_close is None:
                        self._stray_close = i
                    depth -= 1
                    self._depth[i] = depth
                    self._code[i] = True
                else:
                    self._code[i] = True

            elif state == ScanState.LINE_COMMENT:
                if char == "\n":
                    state = ScanState.CODE
                    self._code[i] = True
                else:
                    self._comment[i] = True

            elif state == ScanState.BLOCK_COMMENT:
                self._comment[i] = True
                if text.startswith("*/", i):
                    self._comment[i + 1] = True
                    self._depth[i + 1] = depth
                    state = ScanState.CODE
                    i += 2
                    continue

            else:
                quote = text[opened_at]
                if char == quote:
                    if text.startswith(quote, i + 1):
                        self._depth[i + 1] = depth
                        i += 2
                        continue
                    state = ScanState.CODE

            i += 1

        if state not in (ScanState.CODE, ScanState.LINE_COMMENT):
            self._unterminated = (state, opened_at)
        self._unclosed = opens

    # -------------------------------------------------------------------------
    # Position queries
    # -------------------------------------------------------------------------

    def is_code(self, index: int) -> bool:
        """Whether the character at index is outside literals and comments."""
        return self._code[index]

    def in_comment(self, index: int) -> bool:
        return self._comment[index]

    def depth_at(self, index: int) -> int:
        """Running parenthesis depth at index, including the starting depth.

        An opening parenthesis and its matching closing parenthesis report the
        same depth as the text surrounding them.
        """
        return self.starting_depth + self._depth[index]

    def is_top_level(self, index: int) -> bool:
        return self._code[index] and self.depth_at(index) == 0

    def is_balanced(self) -> bool:
        return self._stray_close is None and not self._unclosed

    def validate(self) -> None:
        """Raise if the text cannot be scanned reliably.

        Raises:
            StructuralError: Unterminated string literal, identifier or comment
            UnbalancedParenthesesError: Stray ``)`` or unclosed ``(``
            NestingTooDeepError: Nesting beyond ``max_depth``
        """
        if self._unterminated is not None:
            state, position = self._unterminated
            what = "comment" if state == ScanState.BLOCK_COMMENT else "string literal"
            raise StructuralError(f"Unterminated {what} at position {position}", position=position)

        if self._stray_close is not None:
            raise UnbalancedParenthesesError(self._stray_close)

        if self._unclosed:
            raise UnbalancedParenthesesError(self._unclosed[0])

        if self._too_deep is not None:
            raise NestingTooDeepError(self.max_depth, self._too_deep)

    # -------------------------------------------------------------------------
    # Keyword search
    # -------------------------------------------------------------------------

    def find(self, keywords: Keywords, start: int = 0, end: Optional[int] = None) -> Optional[KeywordMatch]:
        """Find the first top-level occurrence of any of the keywords.

        Args:
            keywords: One keyword or a sequence of alternatives. Multi-word
                keywords such as ``"GROUP BY"`` match any whitespace between
                their words.
            start: Offset to start searching from
            end: Offset to stop searching at

        Returns:
            The earliest match (longest alternative on ties), or None
        """
        end = len(self.text) if end is None else end
        best: Optional[KeywordMatch] = None

        for keyword in _alternatives(keywords):
            for match in _keyword_pattern(keyword).finditer(self.text, start, end):
                if not self.is_top_level(match.start()):
                    continue
                if (
                    best is None
                    or match.start() < best.start
                    or (match.start() == best.start and match.end() > best.end)
                ):
                    best = KeywordMatch(keyword, match.start(), match.end())
                break

        return best

    def find_all(self, keywords: Keywords, start: int = 0, end: Optional[int] = None) -> List[KeywordMatch]:
        """Find every non-overlapping top-level occurrence, in text order."""
        matches = []
        position = start
        while True:
            match = self.find(keywords, position, end)
            if match is None:
                return matches
            matches.append(match)
            position = match.end

    def boundary(self, keywords: Keywords, start: int = 0, end: Optional[int] = None) -> int:
        """Offset of the next top-level keyword, or ``end`` when there is none."""
        end = len(self.text) if end is None else end
        match = self.find(keywords, start, end)
        return match.start if match else end

    # -------------------------------------------------------------------------
    # Top-level splitting
    # -------------------------------------------------------------------------

    def split(self, separator: str = ",", start: int = 0, end: Optional[int] = None) -> List[str]:
        """Split on a single-character separator at depth zero.

        Returns:
            Stripped, non-empty pieces
        """
        end = len(self.text) if end is None else end
        pieces = []
        last = start

        for i in range(start, end):
            if self.text[i] == separator and self.is_top_level(i):
                pieces.append(self.text[last:i])
                last = i + 1
        pieces.append(self.text[last:end])

        return [piece.strip() for piece in pieces if piece.strip()]

    def split_keyword(self, keywords: Keywords, start: int = 0, end: Optional[int] = None) -> List[str]:
        """Split on top-level connective keywords such as AND / OR.

        The AND of a ``BETWEEN x AND y`` range is part of its condition and is
        not treated as a split point.
        """
        end = len(self.text) if end is None else end
        betweens = [match.start for match in self.find_all("BETWEEN", start, end)]
        pending_betweens = 0
        next_between = 0

        pieces = []
        last = start
        for match in self.find_all(keywords, start, end):
            if match.keyword.upper() == "AND":
                while next_between < len(betweens) and betweens[next_between] < match.start:
                    pending_betweens += 1
                    next_between += 1
                if pending_betweens:
                    pending_betweens -= 1
                    continue
            pieces.append(self.text[last : match.start])
            last = match.end
        pieces.append(self.text[last:end])

        return [piece.strip() for piece in pieces if piece.strip()]

    # -------------------------------------------------------------------------
    # Parentheses
    # -------------------------------------------------------------------------

    def matching_paren(self, open_index: int) -> int:
        """Offset of the ``)`` closing the ``(`` at open_index."""
        target = self._depth[open_index]
        for i in range(open_index + 1, len(self.text)):
            if self.text[i] == ")" and self._code[i] and self._depth[i] == target:
                return i
        raise UnbalancedParenthesesError(open_index)

    def enclosing_paren(self, index: int) -> Optional[int]:
        """Offset of the innermost ``(`` that contains index, if any."""
        nested = 0
        for i in range(index - 1, -1, -1):
            if not self._code[i]:
                continue
            if self.text[i] == ")":
                nested += 1
            elif self.text[i] == "(":
                if nested == 0:
                    return i
                nested -= 1
        return None

    def is_wrapped(self) -> bool:
        """Whether the whole (stripped) text is one parenthesized group."""
        stripped = self.text.rstrip()
        offset = len(self.text) - len(self.text.lstrip())
        if not stripped or self.text[offset] != "(" or not self.is_balanced():
            return False
        return self.matching_paren(offset) == len(stripped) - 1


# =============================================================================
# Helpers
# =============================================================================


def normalize(text: str) -> str:
    """Collapse whitespace and comments outside literals into single spaces."""
    scanner = ClauseScanner(text)
    out: List[str] = []
    pending_space = False

    for i, char in enumerate(text):
        if scanner.in_comment(i) or (scanner.is_code(i) and char.isspace()):
            pending_space = True
            continue
        if pending_space and out:
            out.append(" ")
        pending_space = False
        out.append(char)

    return "".join(out)


def unwrap(text: str) -> str:
    """Strip redundant outer parentheses: ``((a = @a))`` becomes ``a = @a``."""
    text = text.strip()
    while ClauseScanner(text).is_wrapped():
        text = text[1:-1].strip()
    return text


__all__ = [
    "ClauseScanner",
    "KeywordMatch",
    "ScanState",
    "normalize",
    "unwrap",
]
