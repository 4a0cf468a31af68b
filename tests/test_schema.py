import datetime as dt
from decimal import Decimal

import numpy as np
import pytest

from playground_seed.schema import (
    ORDER_ITEMS,
    POSTGRES,
    SQLITE,
    TABLE_NAMES,
    USERS,
    create_table_sql,
    drop_table_sql,
    get_dialect,
    insert_sql,
    sql_literal,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, "NULL"),
        (True, "TRUE"),
        (42, "42"),
        (np.int64(7), "7"),
        (Decimal("12.50"), "12.50"),
        (Decimal("-3.00"), "-3.00"),
        (dt.date(2025, 3, 9), "'2025-03-09'"),
        ("O'Brien", "'O''Brien'"),
        (float("nan"), "NULL"),
    ],
)
def test_sql_literal(value, expected):
    assert sql_literal(value) == expected


def test_table_order_follows_foreign_keys():
    assert TABLE_NAMES == ("countries", "cities", "users", "products", "orders", "order_items")


def test_create_table_per_dialect():
    pg = create_table_sql(USERS, POSTGRES)
    lite = create_table_sql(USERS, SQLITE)
    assert "id SERIAL PRIMARY KEY" in pg
    assert "id INTEGER PRIMARY KEY AUTOINCREMENT" in lite
    assert "email TEXT UNIQUE NOT NULL" in pg
    assert "country_id INTEGER REFERENCES countries(id)" in pg


def test_drop_table_cascade_only_on_postgres():
    assert drop_table_sql(USERS, POSTGRES) == "DROP TABLE IF EXISTS users CASCADE"
    assert drop_table_sql(USERS, SQLITE) == "DROP TABLE IF EXISTS users"


def test_insert_omits_id():
    sql = insert_sql(ORDER_ITEMS, [(1, 2, 3, Decimal("4.50")), (1, 3, 1, Decimal("10.00"))])
    assert sql.startswith("INSERT INTO order_items (order_id, product_id, quantity, price) VALUES")
    assert "(1, 2, 3, 4.50)" in sql
    assert "(1, 3, 1, 10.00)" in sql


def test_insert_rejects_wrong_width():
    with pytest.raises(ValueError):
        insert_sql(ORDER_ITEMS, [(1, 2)])


def test_unknown_dialect():
    with pytest.raises(ValueError):
        get_dialect("mysql")
