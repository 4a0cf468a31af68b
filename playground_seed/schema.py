"""Table layout of the playground schema and SQL text rendering.

Two dialects are understood: ``postgres`` (Supabase and direct DSN targets) and
``sqlite`` (local files and tests). Only the pieces that differ between them
live in ``Dialect``; everything else is plain ANSI SQL.
"""

from __future__ import annotations

import datetime as dt
import math
import numbers
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class ColumnMeta:
    table_name: str
    column_name: str
    data_type: str
    ordinal_position: int
    references: Optional[str] = None


@dataclass(frozen=True)
class TableMeta:
    name: str
    columns: Tuple[ColumnMeta, ...]

    @property
    def column_names(self) -> List[str]:
        return [c.column_name for c in sorted(self.columns, key=lambda x: x.ordinal_position)]

    @property
    def insert_columns(self) -> List[str]:
        return [c for c in self.column_names if c != "id"]

    @property
    def foreign_keys(self) -> List[Tuple[str, str]]:
        return [(c.column_name, c.references) for c in self.columns if c.references]


def _table(name: str, *cols: Tuple[str, str, Optional[str]]) -> TableMeta:
    metas = [ColumnMeta(name, "id", "ID", 1)]
    for pos, (col, dtype, ref) in enumerate(cols, start=2):
        metas.append(ColumnMeta(name, col, dtype, pos, ref))
    return TableMeta(name, tuple(metas))


COUNTRIES = _table(
    "countries",
    ("name", "TEXT NOT NULL", None),
    ("code", "TEXT NOT NULL UNIQUE", None),
    ("continent", "TEXT NOT NULL", None),
)
CITIES = _table(
    "cities",
    ("name", "TEXT NOT NULL", None),
    ("country_id", "INTEGER", "countries"),
    ("population", "INTEGER", None),
)
USERS = _table(
    "users",
    ("first_name", "TEXT NOT NULL", None),
    ("last_name", "TEXT NOT NULL", None),
    ("email", "TEXT UNIQUE NOT NULL", None),
    ("country_id", "INTEGER", "countries"),
    ("city_id", "INTEGER", "cities"),
)
PRODUCTS = _table(
    "products",
    ("name", "TEXT NOT NULL", None),
    ("description", "TEXT", None),
    ("price", "DECIMAL(10, 2) NOT NULL", None),
    ("category", "TEXT", None),
    ("stock", "INTEGER DEFAULT 0", None),
)
ORDERS = _table(
    "orders",
    ("user_id", "INTEGER", "users"),
    ("total_amount", "DECIMAL(10, 2) NOT NULL", None),
    ("status", "TEXT DEFAULT 'pending'", None),
    ("order_date", "DATE DEFAULT CURRENT_DATE", None),
    ("estimated_delivery", "DATE", None),
    ("delivery_date", "DATE", None),
)
ORDER_ITEMS = _table(
    "order_items",
    ("order_id", "INTEGER", "orders"),
    ("product_id", "INTEGER", "products"),
    ("quantity", "INTEGER NOT NULL", None),
    ("price", "DECIMAL(10, 2) NOT NULL", None),
)

# FK dependency order; drops run in reverse.
TABLES: Tuple[TableMeta, ...] = (COUNTRIES, CITIES, USERS, PRODUCTS, ORDERS, ORDER_ITEMS)
TABLE_NAMES: Tuple[str, ...] = tuple(t.name for t in TABLES)


@dataclass(frozen=True)
class Dialect:
    name: str
    id_type: str
    drop_suffix: str
    regex_mismatch: str
    day_diff: str
    supports_functions: bool

    def not_matching(self, column: str, pattern: str) -> str:
        return self.regex_mismatch.format(col=column, pattern=sql_literal(pattern))

    def days_between(self, later: str, earlier: str) -> str:
        return self.day_diff.format(a=later, b=earlier)


POSTGRES = Dialect(
    name="postgres",
    id_type="SERIAL PRIMARY KEY",
    drop_suffix=" CASCADE",
    regex_mismatch="{col} !~ {pattern}",
    day_diff="({a}::date - {b}::date)",
    supports_functions=True,
)
SQLITE = Dialect(
    name="sqlite",
    id_type="INTEGER PRIMARY KEY AUTOINCREMENT",
    drop_suffix="",
    regex_mismatch="NOT ({col} REGEXP {pattern})",
    day_diff="CAST(julianday({a}) - julianday({b}) AS INTEGER)",
    supports_functions=False,
)
DIALECTS: Dict[str, Dialect] = {d.name: d for d in (POSTGRES, SQLITE)}


def get_dialect(name: str) -> Dialect:
    try:
        return DIALECTS[name]
    except KeyError:
        raise ValueError(f"unsupported SQL dialect {name!r}") from None


def qident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def sql_literal(value) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, dt.datetime):
        return "'" + value.strftime("%Y-%m-%d %H:%M:%S") + "'"
    if isinstance(value, dt.date):
        return "'" + value.strftime("%Y-%m-%d") + "'"
    if isinstance(value, Decimal):
        if not value.is_finite():
            return "NULL"
        return format(value, "f")
    if isinstance(value, (numbers.Integral, np.integer)):
        return str(int(value))
    if isinstance(value, (numbers.Real, np.floating)):
        v = float(value)
        if not math.isfinite(v):
            return "NULL"
        return repr(v)
    s = str(value).replace("'", "''")
    return "'" + s + "'"


def create_table_sql(table: TableMeta, dialect: Dialect) -> str:
    parts = []
    for col in sorted(table.columns, key=lambda c: c.ordinal_position):
        if col.column_name == "id":
            parts.append(f"id {dialect.id_type}")
            continue
        line = f"{col.column_name} {col.data_type}"
        if col.references:
            line += f" REFERENCES {col.references}(id)"
        parts.append(line)
    body = ",\n  ".join(parts)
    return f"CREATE TABLE IF NOT EXISTS {table.name} (\n  {body}\n)"


def drop_table_sql(table: TableMeta, dialect: Dialect) -> str:
    return f"DROP TABLE IF EXISTS {table.name}{dialect.drop_suffix}"


def insert_sql(table: TableMeta, rows: Sequence[Sequence]) -> str:
    cols = table.insert_columns
    values_sql = []
    for row in rows:
        if len(row) != len(cols):
            raise ValueError(f"{table.name}: expected {len(cols)} values per row, got {len(row)}")
        values_sql.append("(" + ", ".join(sql_literal(v) for v in row) + ")")
    return f"INSERT INTO {table.name} ({', '.join(cols)}) VALUES\n  " + ",\n  ".join(values_sql)


RUN_QUERY_FUNCTION_SQL = """
CREATE OR REPLACE FUNCTION run_query(query_text TEXT)
RETURNS JSONB
LANGUAGE plpgsql
SECURITY DEFINER
AS $$
DECLARE
  rec RECORD;
  results JSONB := '[]'::JSONB;
BEGIN
  IF UPPER(TRIM(query_text)) LIKE 'SELECT%' THEN
    FOR rec IN EXECUTE query_text LOOP
      results := results || to_jsonb(rec);
    END LOOP;
    RETURN results;
  ELSE
    EXECUTE query_text;
    RETURN '{"success": true, "message": "Query executed successfully"}'::JSONB;
  END IF;
EXCEPTION WHEN OTHERS THEN
  RETURN json_build_object(
    'error', true,
    'message', SQLERRM,
    'detail', SQLSTATE
  )::JSONB;
END;
$$
""".strip()
