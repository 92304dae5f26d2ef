"""Unit tests for roadsql_core.query.parameters."""

from __future__ import annotations

import re

import pytest

from roadsql_core.query.errors import ConditionSyntaxError, ParameterFormatError, ParameterMismatchError
from roadsql_core.query.parameters import (
    column_key,
    is_subquery,
    placeholder_name,
    placeholders,
    validate_assignment,
    validate_condition,
    validate_value,
    validate_values,
)

# ---------------------------------------------------------------------------
# Names and keys
# ---------------------------------------------------------------------------


class TestPlaceholderName:
    def test_valid(self):
        assert placeholder_name("@user_id") == "user_id"
        assert placeholder_name("  @id ") == "id"

    def test_invalid(self):
        assert placeholder_name("id") is None
        assert placeholder_name("@ id") is None
        assert placeholder_name("@1st") is None
        assert placeholder_name("'@id'") is None


class TestColumnKey:
    def test_plain(self):
        assert column_key("email") == "email"

    def test_dotted_uses_last_segment(self):
        assert column_key("users.id") == "id"
        assert column_key("main.users.id") == "id"

    def test_quoted_segments(self):
        assert column_key('"Users"."Name"') == "Name"

    def test_single_column_call(self):
        assert column_key("LOWER(email)") == "email"
        assert column_key("COUNT(DISTINCT order_id)") == "order_id"

    def test_no_key(self):
        assert column_key("COUNT(*)") is None
        assert column_key("a + b") is None
        assert column_key("COALESCE(a, b)") is None


class TestIsSubquery:
    def test_subquery(self):
        assert is_subquery("(SELECT id FROM users)")
        assert is_subquery("((SELECT id FROM users))")

    def test_not_subquery(self):
        assert not is_subquery("(@a, @b)")
        assert not is_subquery("SELECT id FROM users")


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


class TestValidateValues:
    def test_value(self):
        assert validate_value("@name") == "name"

    def test_bad_value(self):
        with pytest.raises(ParameterFormatError, match=re.escape("Invalid value format: 'x'. Expected format: @value")):
            validate_value("'x'")

    def test_values_match_columns(self):
        validate_values(["@a", "@b"], ["a", "b"])

    def test_values_without_columns(self):
        validate_values(["@anything"])

    def test_positional_mismatch(self):
        with pytest.raises(ParameterMismatchError):
            validate_values(["@b"], ["a"])


class TestValidateAssignment:
    def test_valid(self):
        assert validate_assignment("email = @email") == "email"

    def test_dotted_key(self):
        assert validate_assignment("users.email = @email") == "email"

    def test_mismatch(self):
        with pytest.raises(ParameterMismatchError, match="Parameter value must reference the key: email = @mail"):
            validate_assignment("email = @mail")

    def test_literal(self):
        with pytest.raises(ParameterFormatError, match="Expected format: key = @value"):
            validate_assignment("email = 'x'")

    def test_not_an_assignment(self):
        with pytest.raises(ParameterFormatError):
            validate_assignment("email >= @email")


class TestValidateCondition:
    def test_literal_in_strict_mode(self):
        message = "Invalid parameter format: id = id. Expected format: key = @value"
        with pytest.raises(ParameterFormatError, match=re.escape(message)):
            validate_condition("id = id")

    def test_column_comparison_in_lenient_mode(self):
        validate_condition("users.id = orders.user_id", strict=False)

    def test_lenient_mode_still_checks_names(self):
        with pytest.raises(ParameterMismatchError):
            validate_condition("name = @email", strict=False)

    def test_in_list(self):
        validate_condition("role IN (@admin, @editor)")

    def test_in_list_with_literal(self):
        with pytest.raises(ParameterFormatError):
            validate_condition("role IN ('admin', @editor)")

    def test_between(self):
        validate_condition("total BETWEEN @min AND @max")

    def test_null_checks(self):
        validate_condition("created_at IS NOT NULL")
        validate_condition("created_at IS NULL")

    def test_subquery_value(self):
        validate_condition("id IN (SELECT user_id FROM orders)")

    def test_group(self):
        validate_condition("(a = @a OR b = @b)")

    def test_negated_group_mismatch(self):
        with pytest.raises(ParameterMismatchError):
            validate_condition("NOT (a = @a OR b = @c)")

    def test_no_operator(self):
        with pytest.raises(ConditionSyntaxError):
            validate_condition("active")


# ---------------------------------------------------------------------------
# placeholders
# ---------------------------------------------------------------------------


class TestPlaceholders:
    def test_first_use_order_without_literals(self):
        sql = "SELECT * FROM t WHERE a = @a AND b = @b OR c = @a AND d = '@x'"
        assert placeholders(sql) == ["a", "b"]
