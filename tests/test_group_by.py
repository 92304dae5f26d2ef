"""Unit tests for roadsql_core.query.group_by."""

from __future__ import annotations

import pytest

from roadsql_core.query.clauses import Condition
from roadsql_core.query.errors import ConditionSyntaxError, ParameterMismatchError
from roadsql_core.query.group_by import GroupByParser


def group_by(sql):
    return GroupByParser(sql).parse()


# ---------------------------------------------------------------------------
# GROUP BY columns
# ---------------------------------------------------------------------------


class TestGroupByColumns:
    def test_no_group_by(self):
        assert group_by("SELECT * FROM users") == []

    def test_columns_and_calls(self):
        result = group_by(
            "SELECT DATE(created_at), status, COUNT(*) FROM orders GROUP BY DATE(created_at), status"
        )
        assert len(result) == 1
        assert result[0].columns == ("DATE(created_at)", "status")
        assert result[0].having_conditions is None
        assert result[0].having == ()

    def test_nested_group_by_ignored(self):
        assert group_by("SELECT * FROM (SELECT status FROM t GROUP BY status) s") == []

    def test_stops_at_order_by(self):
        result = group_by("SELECT status FROM t GROUP BY status ORDER BY status")
        assert result[0].columns == ("status",)


# ---------------------------------------------------------------------------
# HAVING
# ---------------------------------------------------------------------------


class TestHaving:
    def test_count_distinct(self):
        result = group_by(
            "SELECT user_id, COUNT(DISTINCT order_id) FROM orders "
            "GROUP BY user_id HAVING COUNT(DISTINCT order_id) > 5"
        )
        assert result[0].having_conditions == Condition("COUNT(DISTINCT order_id)", ">", "5")

    def test_decimal_search_value(self):
        result = group_by("SELECT category FROM products GROUP BY category HAVING AVG(price) >= 25.00")
        assert result[0].having_conditions == Condition("AVG(price)", ">=", "25.00")

    def test_followed_by_order_by_and_limit(self):
        result = group_by("SELECT status FROM t GROUP BY status HAVING COUNT(*) > 5 ORDER BY status LIMIT 10")
        assert result[0].having_conditions.search_value == "5"

    def test_multiple_conditions(self):
        result = group_by("SELECT status FROM t GROUP BY status HAVING COUNT(*) > 5 AND SUM(total) < 1000")
        assert result[0].having == (
            Condition("COUNT(*)", ">", "5"),
            Condition("SUM(total)", "<", "1000"),
        )
        assert result[0].having_conditions == result[0].having[0]

    def test_is_not_null(self):
        result = group_by("SELECT status FROM t GROUP BY status HAVING MAX(closed_at) IS NOT NULL")
        assert result[0].having_conditions == Condition("MAX(closed_at)", "IS NOT NULL", None)

    def test_placeholder_naming_column(self):
        result = group_by("SELECT status FROM t GROUP BY status HAVING SUM(total) > @total")
        assert result[0].having_conditions.search_value == "@total"

    def test_placeholder_mismatch(self):
        with pytest.raises(ParameterMismatchError):
            group_by("SELECT status FROM t GROUP BY status HAVING SUM(total) > @amount")

    def test_expression_operand_rejected(self):
        with pytest.raises(ConditionSyntaxError, match="Invalid condition in HAVING clause"):
            group_by("SELECT a FROM t GROUP BY a HAVING a + b > 3")

    def test_missing_operator(self):
        with pytest.raises(ConditionSyntaxError):
            group_by("SELECT a FROM t GROUP BY a HAVING a")
