"""Unit tests for roadsql_core.query.clauses."""

from __future__ import annotations

import pytest

from roadsql_core.query.clauses import (
    Condition,
    FromParser,
    JoinClause,
    JoinParser,
    TableReference,
    WhereParser,
    parse_condition,
    parse_table_reference,
)
from roadsql_core.query.errors import ConditionSyntaxError, MissingFromError

# ---------------------------------------------------------------------------
# parse_condition
# ---------------------------------------------------------------------------


class TestParseCondition:
    def test_comparison(self):
        assert parse_condition("age >= @age") == Condition("age", ">=", "@age")

    def test_operator_is_upper_cased(self):
        assert parse_condition("name not like @name") == Condition("name", "NOT LIKE", "@name")

    def test_is_null_has_no_search_value(self):
        assert parse_condition("deleted_at is null") == Condition("deleted_at", "IS NULL", None)

    def test_not_prefix(self):
        condition = parse_condition("NOT status = @status")
        assert condition == Condition("status", "=", "@status", negated=True)

    def test_redundant_parentheses(self):
        assert parse_condition("((id = @id))") == Condition("id", "=", "@id")

    def test_exists(self):
        condition = parse_condition("EXISTS (SELECT 1 FROM t)")
        assert condition.condition == "EXISTS"
        assert condition.search_value == "(SELECT 1 FROM t)"

    def test_in_with_subquery(self):
        condition = parse_condition("id IN (SELECT user_id FROM orders WHERE total > 100)")
        assert condition.value == "id"
        assert condition.condition == "IN"

    def test_no_operator(self):
        with pytest.raises(ConditionSyntaxError, match="Invalid condition in WHERE clause: age"):
            parse_condition("age")

    def test_missing_operand(self):
        with pytest.raises(ConditionSyntaxError):
            parse_condition("= @id")

    def test_clause_name_in_message(self):
        with pytest.raises(ConditionSyntaxError, match="in HAVING clause"):
            parse_condition("total", "HAVING")


# ---------------------------------------------------------------------------
# parse_table_reference
# ---------------------------------------------------------------------------


class TestParseTableReference:
    def test_plain_name(self):
        assert parse_table_reference("users") == TableReference("users")

    def test_as_alias(self):
        assert parse_table_reference("users AS u") == TableReference("users", "u")

    def test_schema_qualified(self):
        assert parse_table_reference("main.users") == TableReference("main.users")

    def test_derived_table(self):
        assert parse_table_reference("(SELECT 1) t") == TableReference("(SELECT 1)", "t")

    def test_keyword_is_not_a_table(self):
        assert parse_table_reference("WHERE") is None

    def test_empty(self):
        assert parse_table_reference("   ") is None


# ---------------------------------------------------------------------------
# FromParser
# ---------------------------------------------------------------------------


class TestFromParser:
    def test_comma_separated_tables(self):
        tables = FromParser("SELECT * FROM users u, orders AS o WHERE u.id = o.user_id").tables
        assert tables == [TableReference("users", "u"), TableReference("orders", "o")]

    def test_stops_at_join(self):
        tables = FromParser("SELECT * FROM users u JOIN orders o ON o.user_id = u.id").tables
        assert tables == [TableReference("users", "u")]

    def test_missing_from(self):
        with pytest.raises(MissingFromError):
            FromParser("SELECT 1").tables


# ---------------------------------------------------------------------------
# WhereParser
# ---------------------------------------------------------------------------


class TestWhereParser:
    def test_groups_are_flattened(self):
        sql = "SELECT * FROM users WHERE age > @age AND (role = @role OR status = @status) ORDER BY name"
        assert WhereParser(sql).conditions == [
            Condition("age", ">", "@age"),
            Condition("role", "=", "@role"),
            Condition("status", "=", "@status"),
        ]

    def test_negated_group(self):
        sql = "SELECT * FROM users WHERE NOT (role = @role OR status = @status)"
        conditions = WhereParser(sql).conditions
        assert [c.value for c in conditions] == ["role", "status"]
        assert all(c.negated for c in conditions)

    def test_no_where(self):
        assert WhereParser("SELECT * FROM users").conditions == []

    def test_invalid_condition(self):
        with pytest.raises(ConditionSyntaxError, match="Invalid condition in WHERE clause"):
            WhereParser("SELECT * FROM users WHERE active").conditions


# ---------------------------------------------------------------------------
# JoinParser
# ---------------------------------------------------------------------------


class TestJoinParser:
    def test_join_types_and_conditions(self):
        sql = (
            "SELECT * FROM users u "
            "INNER JOIN orders o ON u.id = o.user_id "
            "LEFT OUTER JOIN payments p ON p.order_id = o.id AND p.status = @status "
            "WHERE u.id = @id"
        )
        assert JoinParser(sql).joins == [
            JoinClause("INNER JOIN", "orders", "o", "u.id = o.user_id"),
            JoinClause("LEFT OUTER JOIN", "payments", "p", "p.order_id = o.id AND p.status = @status"),
        ]

    def test_using(self):
        joins = JoinParser("SELECT * FROM a JOIN b USING (id, tenant_id)").joins
        assert joins == [JoinClause("JOIN", "b", None, None, ("id", "tenant_id"))]

    def test_no_joins(self):
        assert JoinParser("SELECT * FROM users").joins == []

    def test_join_inside_subquery_ignored(self):
        sql = "SELECT * FROM (SELECT * FROM a JOIN b ON a.id = b.id) t"
        assert JoinParser(sql).joins == []
