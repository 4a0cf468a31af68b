"""Post-load checks run through the same executor that loaded the data.

``verify_counts`` confirms every generated row landed. ``audit_database``
counts rows that break a data-quality rule; on a clean load every count is 0,
with injection enabled the counts show what a learner is expected to find.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Dict, Iterable, Optional

from .catalogs import ORDER_STATUSES
from .config import today_utc
from .errors import BulkInsertError, QueryError
from .executor import SqlExecutor
from .primitives import EMAIL_PATTERN
from .schema import TABLE_NAMES, TABLES, sql_literal

PRICE_CEILING = 10000
TOTAL_TOLERANCE = "0.005"


def scalar_count(executor: SqlExecutor, sql: str) -> int:
    res = executor.execute(sql)
    if not res.ok:
        raise QueryError(res.message, res.detail)
    if not res.rows:
        raise QueryError(f"no rows returned for: {sql}")
    return int(res.rows[0]["count"])


def count_rows(executor: SqlExecutor, tables: Iterable[str] = TABLE_NAMES) -> Dict[str, int]:
    return {t: scalar_count(executor, f"SELECT COUNT(*) AS count FROM {t}") for t in tables}


def verify_counts(executor: SqlExecutor, expected: Dict[str, int]) -> Dict[str, int]:
    actual = count_rows(executor, expected)
    for table, want in expected.items():
        if actual[table] != want:
            raise BulkInsertError(
                table=table,
                batch=0,
                first_row=1,
                last_row=want,
                message=f"expected {want} rows after load, found {actual[table]}",
            )
    logging.info("Row counts verified for %d tables", len(expected))
    return actual


def audit_queries(dialect, today: dt.date) -> Dict[str, str]:
    now = sql_literal(today)
    days = dialect.days_between
    q: Dict[str, str] = {}

    for table in TABLES:
        for col, parent in table.foreign_keys:
            q[f"orphan_{table.name}_{col}"] = (
                f"SELECT COUNT(*) AS count FROM {table.name} c "
                f"LEFT JOIN {parent} p ON c.{col} = p.id "
                f"WHERE c.{col} IS NOT NULL AND p.id IS NULL"
            )

    q["status_date_mismatch"] = (
        "SELECT COUNT(*) AS count FROM orders WHERE "
        f"status NOT IN ({', '.join(sql_literal(s) for s in ORDER_STATUSES)}) "
        "OR (status = 'pending' AND (estimated_delivery IS NULL OR delivery_date IS NOT NULL)) "
        "OR (status = 'delivered' AND estimated_delivery IS NULL) "
        "OR (status = 'cancelled' AND (estimated_delivery IS NOT NULL OR delivery_date IS NOT NULL))"
    )
    # a delivered order may lack a date only while estimate + 5 days is still ahead
    q["delivered_without_date"] = (
        "SELECT COUNT(*) AS count FROM orders WHERE status = 'delivered' "
        "AND delivery_date IS NULL AND estimated_delivery IS NOT NULL "
        f"AND {days(now, 'estimated_delivery')} >= 5"
    )
    q["estimate_out_of_window"] = (
        "SELECT COUNT(*) AS count FROM orders WHERE estimated_delivery IS NOT NULL "
        f"AND ({days('estimated_delivery', 'order_date')} < 3 "
        f"OR {days('estimated_delivery', 'order_date')} > 14)"
    )
    q["delivery_out_of_window"] = (
        "SELECT COUNT(*) AS count FROM orders WHERE status = 'delivered' "
        "AND delivery_date IS NOT NULL AND estimated_delivery IS NOT NULL "
        f"AND ({days('delivery_date', 'estimated_delivery')} < -2 "
        f"OR {days('delivery_date', 'estimated_delivery')} > 5)"
    )
    q["future_delivery"] = f"SELECT COUNT(*) AS count FROM orders WHERE delivery_date > {now}"
    q["total_mismatch"] = (
        "SELECT COUNT(*) AS count FROM orders o WHERE ABS(o.total_amount - COALESCE("
        "(SELECT SUM(i.price * i.quantity) FROM order_items i WHERE i.order_id = o.id), 0)) "
        f"> {TOTAL_TOLERANCE}"
    )
    q["location_mismatch"] = (
        "SELECT COUNT(*) AS count FROM users u JOIN cities c ON u.city_id = c.id "
        "WHERE u.country_id <> c.country_id"
    )
    q["invalid_email"] = (
        "SELECT COUNT(*) AS count FROM users WHERE email IS NULL "
        f"OR {dialect.not_matching('email', EMAIL_PATTERN)}"
    )
    q["duplicate_email"] = (
        "SELECT COUNT(*) AS count FROM "
        "(SELECT email FROM users GROUP BY email HAVING COUNT(*) > 1) d"
    )
    q["bad_product_price"] = (
        f"SELECT COUNT(*) AS count FROM products WHERE price <= 0 OR price > {PRICE_CEILING}"
    )
    q["bad_item_price"] = (
        f"SELECT COUNT(*) AS count FROM order_items WHERE price <= 0 OR price > {PRICE_CEILING}"
    )
    q["bad_quantity"] = "SELECT COUNT(*) AS count FROM order_items WHERE quantity < 1"
    return q


def audit_database(executor: SqlExecutor, today: Optional[dt.date] = None) -> Dict[str, int]:
    today = today or today_utc()
    results: Dict[str, int] = {}
    for name, sql in audit_queries(executor.dialect, today).items():
        results[name] = scalar_count(executor, sql)
        if results[name]:
            logging.warning("Audit %s: %d rows", name, results[name])
    if not any(results.values()):
        logging.info("Audit clean: %d checks, 0 violations", len(results))
    return results
