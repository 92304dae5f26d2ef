"""Unit tests for roadsql_core.query.parser (Query facade and QueryBuilder)."""

from __future__ import annotations

import pytest

from roadsql_core.query.clauses import Condition, JoinClause, TableReference
from roadsql_core.query.errors import MultipleStatementsError
from roadsql_core.query.lexer import QueryParts, StatementType
from roadsql_core.query.parser import Query, QueryBuilder, parse_query

# ---------------------------------------------------------------------------
# Query facade
# ---------------------------------------------------------------------------


class TestQuery:
    def test_select_views(self):
        query = Query("SELECT name, email FROM users WHERE id = @id")
        assert query.statement_type == StatementType.SELECT
        assert query.parts.table == "users"
        assert query.select_values.columns == ("name", "email")
        assert query.parameters == ["id"]
        assert query.tables == [TableReference("users")]
        assert query.where_conditions == [Condition("id", "=", "@id")]

    def test_rejects_multiple_statements_on_construction(self):
        with pytest.raises(MultipleStatementsError):
            Query("SELECT 1; SELECT 2")

    def test_insert_views(self):
        query = Query("INSERT INTO users (name, email) VALUES (@name, @email)")
        assert query.statement_type == StatementType.INSERT
        assert query.select_values is None
        assert query.tables == [TableReference("users")]
        assert query.parameters == ["name", "email"]
        assert query.joins == []

    def test_joins(self):
        query = Query("SELECT * FROM users u LEFT JOIN orders o ON o.user_id = u.id")
        assert query.joins == [JoinClause("LEFT JOIN", "orders", "o", "o.user_id = u.id")]

    def test_group_by(self):
        query = Query("SELECT status, COUNT(*) FROM orders GROUP BY status")
        assert query.group_by[0].columns == ("status",)

    def test_subqueries(self, nested_sql):
        query = Query(nested_sql)
        assert len(query.subqueries.queries) == 2
        assert TableReference("logins") in query.subqueries.tables_used

    def test_select_values_per_subquery(self, nested_sql):
        values = Query(nested_sql).select_values_per_subquery()
        assert [v.columns for v in values] == [("*",), ("user_id",)]

    def test_select_values_without_subqueries(self):
        values = Query("SELECT name FROM users").select_values_per_subquery()
        assert len(values) == 1
        assert values[0].columns == ("name",)

    def test_parse_query(self):
        result = parse_query("DELETE FROM users WHERE id = @id")
        assert isinstance(result, QueryParts)
        assert result.statement_type == StatementType.DELETE


# ---------------------------------------------------------------------------
# QueryBuilder
# ---------------------------------------------------------------------------


class TestQueryBuilder:
    def test_select(self):
        sql = Query.select("name", "email").from_("users").where("id").order_by("name").limit(10).build()
        assert sql == "SELECT name, email FROM users WHERE id = @id ORDER BY name ASC LIMIT 10"

    def test_select_output_parses(self):
        sql = Query.select("name", "email").from_("users").where("id").order_by("name").limit(10).build()
        result = parse_query(sql)
        assert result.where == ("id = @id",)
        assert result.order_by == "name"
        assert result.limit == 10

    def test_select_all_by_default(self):
        assert Query.select().from_("users").build() == "SELECT * FROM users"

    def test_dotted_where_column(self):
        assert Query.select().from_("users u").where("u.id").build() == "SELECT * FROM users u WHERE u.id = @id"

    def test_null_operator(self):
        sql = Query.select().from_("users").where("deleted_at", operator="is null").build()
        assert sql == "SELECT * FROM users WHERE deleted_at IS NULL"

    def test_count(self):
        sql = QueryBuilder().count("users").where("status").build()
        assert sql == "SELECT COUNT(*) AS count FROM users WHERE status = @status"

    def test_group_by_having(self):
        sql = (
            Query.select("status", "COUNT(*)")
            .from_("orders")
            .group_by("status")
            .having("COUNT(*) > 5")
            .build()
        )
        assert sql == "SELECT status, COUNT(*) FROM orders GROUP BY status HAVING COUNT(*) > 5"

    def test_left_join(self):
        sql = Query.select("u.name").from_("users u").left_join("orders o", "o.user_id = u.id").build()
        assert sql == "SELECT u.name FROM users u LEFT JOIN orders o ON o.user_id = u.id"

    def test_offset(self):
        assert Query.select().from_("users").limit(5).offset(10).build() == "SELECT * FROM users LIMIT 5 OFFSET 10"

    def test_insert(self):
        sql = Query.insert_into("users").values("name", "email").build()
        assert sql == "INSERT INTO users (name, email) VALUES (@name, @email)"
        assert parse_query(sql).values == ("@name", "@email")

    def test_update(self):
        sql = Query.update("users").set("name", "email").where("id").build()
        assert sql == "UPDATE users SET name = @name, email = @email WHERE id = @id"
        assert parse_query(sql).set == ("name = @name", "email = @email")

    def test_delete(self):
        assert Query.delete_from("users").where("id").build() == "DELETE FROM users WHERE id = @id"


class TestQueryBuilderErrors:
    def test_table_not_set(self):
        with pytest.raises(ValueError, match="Table not set"):
            QueryBuilder().select("a").build()

    def test_type_not_set(self):
        with pytest.raises(ValueError, match="Query type not set"):
            QueryBuilder().from_("users").build()

    def test_bad_direction(self):
        with pytest.raises(ValueError, match="Invalid sort direction"):
            Query.select().from_("users").order_by("name", "sideways")

    def test_negative_limit(self):
        with pytest.raises(ValueError):
            Query.select().from_("users").limit(-1)

    def test_underivable_placeholder(self):
        with pytest.raises(ValueError, match="Cannot derive a parameter name"):
            Query.select().from_("users").where("a + b")

    def test_insert_without_values(self):
        with pytest.raises(ValueError, match="No values to insert"):
            Query.insert_into("users").build()

    def test_update_without_set(self):
        with pytest.raises(ValueError, match="No values to update"):
            Query.update("users").build()
