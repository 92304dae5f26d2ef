"""Unit tests for roadsql_core.query.scanner."""

from __future__ import annotations

import pytest

from roadsql_core.query.errors import (
    NestingTooDeepError,
    StructuralError,
    UnbalancedParenthesesError,
)
from roadsql_core.query.scanner import ClauseScanner, normalize, unwrap

# ---------------------------------------------------------------------------
# find
# ---------------------------------------------------------------------------


class TestFind:
    def test_finds_top_level_keyword(self):
        match = ClauseScanner("SELECT a FROM t WHERE x = @x").find("WHERE")
        assert match.start == 16
        assert match.end == 21

    def test_skips_keyword_inside_parentheses(self):
        scanner = ClauseScanner("SELECT (SELECT b FROM u) FROM t")
        assert scanner.find("FROM").start == 25

    def test_skips_keyword_inside_string_literal(self):
        assert ClauseScanner("SELECT 'FROM' FROM t").find("FROM").start == 14

    def test_skips_keyword_inside_comment(self):
        assert ClauseScanner("SELECT a -- FROM\nFROM t").find("FROM").start == 17

    def test_requires_identifier_boundary(self):
        assert ClauseScanner("SELECT from_date FROM t").find("FROM").start == 17

    def test_is_case_insensitive(self):
        assert ClauseScanner("select a from t").find("FROM").start == 9

    def test_multi_word_keyword_spans_whitespace(self):
        match = ClauseScanner("SELECT a FROM t GROUP\n   BY a").find("GROUP BY")
        assert match is not None
        assert match.keyword == "GROUP BY"

    def test_returns_none_when_absent(self):
        assert ClauseScanner("SELECT a FROM t").find("WHERE") is None

    def test_prefers_longest_alternative_at_same_offset(self):
        match = ClauseScanner("a LEFT OUTER JOIN b").find(("JOIN", "LEFT OUTER JOIN"))
        assert match.keyword == "LEFT OUTER JOIN"
        assert match.start == 2

    def test_starting_depth_shifts_top_level(self):
        scanner = ClauseScanner("a FROM b) FROM c", starting_depth=1)
        assert scanner.find("FROM").start == 10

    def test_find_all_in_order(self):
        scanner = ClauseScanner("a AND b AND (c AND d) AND e")
        assert [m.start for m in scanner.find_all("AND")] == [2, 8, 22]


# ---------------------------------------------------------------------------
# split / split_keyword
# ---------------------------------------------------------------------------


class TestSplit:
    def test_split_on_top_level_commas(self):
        assert ClauseScanner("a, f(b, c), 'x,y'").split(",") == ["a", "f(b, c)", "'x,y'"]

    def test_split_keyword_respects_parentheses(self):
        scanner = ClauseScanner("a = @a AND (b = @b OR c = @c) AND d = @d")
        assert scanner.split_keyword("AND") == ["a = @a", "(b = @b OR c = @c)", "d = @d"]

    def test_between_and_is_not_a_split_point(self):
        scanner = ClauseScanner("age BETWEEN @min AND @max AND name = @name")
        assert scanner.split_keyword("AND") == ["age BETWEEN @min AND @max", "name = @name"]

    def test_split_on_either_connective(self):
        scanner = ClauseScanner("a = @a OR b = @b AND c = @c")
        assert scanner.split_keyword(("AND", "OR")) == ["a = @a", "b = @b", "c = @c"]


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


class TestValidate:
    def test_balanced_text_passes(self):
        ClauseScanner("SELECT f(a, (b)) FROM t").validate()

    def test_unclosed_parenthesis(self):
        with pytest.raises(UnbalancedParenthesesError):
            ClauseScanner("SELECT (a FROM t").validate()

    def test_stray_closing_parenthesis(self):
        with pytest.raises(UnbalancedParenthesesError):
            ClauseScanner("SELECT a) FROM t").validate()

    def test_unterminated_string(self):
        with pytest.raises(StructuralError, match="Unterminated string literal"):
            ClauseScanner("SELECT 'abc FROM t").validate()

    def test_nesting_limit(self):
        with pytest.raises(NestingTooDeepError):
            ClauseScanner("((((a))))", max_depth=3).validate()

    def test_doubled_quote_stays_inside_literal(self):
        scanner = ClauseScanner("SELECT 'it''s (' FROM t")
        scanner.validate()
        assert scanner.find("FROM") is not None


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_normalize_collapses_whitespace_and_comments(self):
        sql = "SELECT  a,\n\tb  -- note\nFROM t /* x */ WHERE c = 'a  b'"
        assert normalize(sql) == "SELECT a, b FROM t WHERE c = 'a  b'"

    def test_unwrap_strips_redundant_parentheses(self):
        assert unwrap("((a = @a))") == "a = @a"

    def test_unwrap_keeps_separate_groups(self):
        assert unwrap("(a) + (b)") == "(a) + (b)"

    def test_matching_paren(self):
        assert ClauseScanner("f(a, (b)) + 1").matching_paren(1) == 8

    def test_enclosing_paren(self):
        text = "EXTRACT(YEAR FROM d)"
        assert ClauseScanner(text).enclosing_paren(text.index("FROM")) == 7

    def test_enclosing_paren_at_top_level(self):
        assert ClauseScanner("a FROM t").enclosing_paren(2) is None
