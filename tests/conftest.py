"""Shared fixtures for roadsql_core tests."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture
def nested_sql() -> str:
    return (
        "SELECT u.name, (SELECT COUNT(*) FROM orders o WHERE o.user_id = u.id) AS order_count\n"
        "FROM users u\n"
        "WHERE u.id IN (SELECT user_id FROM logins WHERE created_at > @since)"
    )


@pytest.fixture
def cte_sql() -> str:
    return (
        "WITH recent AS (SELECT * FROM orders WHERE created_at > @since),\n"
        "     totals AS (SELECT user_id, SUM(total) AS amount FROM recent GROUP BY user_id)\n"
        "SELECT u.name, t.amount\n"
        "FROM users u\n"
        "JOIN totals t ON t.user_id = u.id"
    )


@pytest.fixture
def nested_analytics_sql() -> str:
    return (Path(__file__).parent / "data" / "nested_analytics.sql").read_text()
