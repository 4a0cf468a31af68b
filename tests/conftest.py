"""Shared pytest fixtures."""

import datetime as dt
from dataclasses import replace

import pytest

from playground_seed.config import DateRange, ErrorConfig, GenerationConfig, ItemsPerOrder
from playground_seed.executor import DbApiExecutor, Err, Ok, SqlExecutor, is_select
from playground_seed.schema import POSTGRES

TODAY = dt.date(2026, 6, 15)
SEED = 1234


class RecordingExecutor(SqlExecutor):
    """Accepts everything, remembers every statement, fails on demand."""

    def __init__(self, fail_when=None, dialect=POSTGRES):
        self.statements = []
        self.fail_when = fail_when
        self.dialect = dialect

    def execute(self, sql):
        self.statements.append(sql)
        if self.fail_when is not None and self.fail_when(sql):
            return Err("sql", "boom", "XX000")
        if is_select(sql):
            return Ok([{"count": 0}])
        return Ok([])


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def sqlite_executor():
    executor = DbApiExecutor.sqlite(":memory:")
    yield executor
    executor.close()


@pytest.fixture
def small_config():
    return GenerationConfig(
        countries=5,
        cities=10,
        users=20,
        products=15,
        orders=30,
        order_items_per_order=ItemsPerOrder(1, 3),
        date_range=DateRange(dt.date(2025, 6, 15), TODAY),
    )


@pytest.fixture
def email_errors_config(small_config):
    return replace(small_config, error_config=ErrorConfig(enabled=True, email_errors=100))
