from decimal import Decimal

import pytest

from playground_seed.errors import BulkInsertError
from playground_seed.loader import BulkLoader, batched
from playground_seed.schema import COUNTRIES, PRODUCTS, SQLITE, create_table_sql

from conftest import RecordingExecutor


def country_rows(n):
    return [(f"Country {i}", f"C{i}", "Europe") for i in range(n)]


def test_batched():
    assert [len(b) for b in batched(range(7), 3)] == [3, 3, 1]
    assert list(batched([], 3)) == []


def test_one_statement_per_batch():
    ex = RecordingExecutor()
    loaded = BulkLoader(ex, batch_size=100).load(COUNTRIES, country_rows(250))
    assert loaded == 250
    assert len(ex.statements) == 3
    assert all(s.startswith("INSERT INTO countries (name, code, continent) VALUES") for s in ex.statements)


def test_empty_table_sends_nothing():
    ex = RecordingExecutor()
    assert BulkLoader(ex).load(COUNTRIES, []) == 0
    assert ex.statements == []


def test_failure_carries_batch_context():
    calls = []

    def fail_second(sql):
        calls.append(sql)
        return len(calls) == 2

    ex = RecordingExecutor(fail_when=fail_second)
    with pytest.raises(BulkInsertError) as info:
        BulkLoader(ex, batch_size=10).load(COUNTRIES, country_rows(35))
    err = info.value
    assert err.table == "countries"
    assert err.batch == 2
    assert (err.first_row, err.last_row) == (11, 20)
    assert err.message == "boom"
    assert len(ex.statements) == 2


def test_rows_land_in_sqlite(sqlite_executor):
    assert sqlite_executor.execute(create_table_sql(PRODUCTS, SQLITE)).ok
    rows = [(f"Thing {i}", "desc", Decimal("9.99"), "Toys", i) for i in range(5)]
    assert BulkLoader(sqlite_executor, batch_size=2, progress=True).load(PRODUCTS, rows) == 5
    res = sqlite_executor.execute("SELECT COUNT(*) AS count, MIN(id) AS lo, MAX(id) AS hi FROM products")
    assert res.rows == [{"count": 5, "lo": 1, "hi": 5}]


def test_batch_size_must_be_positive():
    with pytest.raises(ValueError):
        BulkLoader(RecordingExecutor(), batch_size=0)
