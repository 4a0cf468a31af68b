from __future__ import annotations

import datetime as dt
import logging
import time
import warnings
from typing import Any, Dict, List, Optional

from .builders import SyntheticGenerator
from .config import GenerationConfig, size_preset, today_utc
from .errors import QueryError, SchemaError
from .executor import SqlExecutor
from .loader import DEFAULT_BATCH_SIZE, BulkLoader
from .schema import RUN_QUERY_FUNCTION_SQL, TABLE_NAMES, TABLES, create_table_sql, drop_table_sql
from .validation import verify_counts


def _run_ddl(executor: SqlExecutor, phase: str, sql: str) -> None:
    res = executor.execute(sql)
    if not res.ok:
        raise SchemaError(phase, sql, res.message, res.detail)


def drop_all_tables(executor: SqlExecutor) -> None:
    logging.info("Dropping existing tables")
    for table in reversed(TABLES):
        _run_ddl(executor, "drop", drop_table_sql(table, executor.dialect))


def fix_run_query_function(executor: SqlExecutor) -> bool:
    """(Re)create the run_query helper; returns False where the target has no stored functions."""
    if not executor.dialect.supports_functions:
        logging.info("Skipping run_query function for dialect=%s", executor.dialect.name)
        return False
    logging.info("Ensuring run_query function")
    _run_ddl(executor, "run_query function", RUN_QUERY_FUNCTION_SQL)
    return True


def create_tables(executor: SqlExecutor) -> None:
    logging.info("Creating tables")
    for table in TABLES:
        _run_ddl(executor, "create", create_table_sql(table, executor.dialect))


def insert_sample_data(
    executor: SqlExecutor,
    config: Optional[GenerationConfig] = None,
    seed: Optional[int] = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    progress: bool = False,
    today: Optional[dt.date] = None,
) -> Dict[str, int]:
    gen = SyntheticGenerator(config or GenerationConfig(), seed=seed, today=today)
    data = gen.generate()
    loader = BulkLoader(executor, batch_size=batch_size, progress=progress)
    inserted: Dict[str, int] = {}
    for table in TABLES:
        rows = list(data.rows_for(table.name))
        logging.info("Loading table %s target_rows=%d", table.name, len(rows))
        inserted[table.name] = loader.load(table, rows)
    return inserted


def setup_database(
    executor: SqlExecutor,
    config: Optional[GenerationConfig] = None,
    seed: Optional[int] = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    verify: bool = True,
    progress: bool = False,
    today: Optional[dt.date] = None,
) -> Dict[str, int]:
    """Drop, recreate and repopulate the playground schema.

    The configuration is validated before any statement runs. Every phase
    aborts the run on its first failure; nothing is rolled back, the next
    setup starts by dropping whatever is left.
    """
    today = today or today_utc()
    config = (config or GenerationConfig()).validate(today)
    start = time.time()
    logging.info("Setting up database dialect=%s", executor.dialect.name)

    drop_all_tables(executor)
    fix_run_query_function(executor)
    create_tables(executor)
    inserted = insert_sample_data(
        executor, config, seed=seed, batch_size=batch_size, progress=progress, today=today
    )

    if verify and executor.can_read:
        verify_counts(executor, inserted)
    elif verify:
        logging.info("Skipping row count verification, target cannot answer SELECT")

    logging.info("Database setup finished in %.2fs", time.time() - start)
    return inserted


def setup_large_database(executor: SqlExecutor, **kwargs) -> Dict[str, int]:
    return setup_database(executor, size_preset("large"), **kwargs)


def reset_database(executor: SqlExecutor, **kwargs) -> Dict[str, int]:
    warnings.warn(
        "reset_database() is deprecated; call setup_database() instead",
        DeprecationWarning,
        stacklevel=2,
    )
    logging.warning("reset_database() is deprecated, running setup_database() with defaults")
    return setup_database(executor, None, **kwargs)


def get_database_info(executor: SqlExecutor) -> Dict[str, Dict[str, Any]]:
    info: Dict[str, Dict[str, Any]] = {}
    for table in TABLE_NAMES:
        res = executor.execute(f"SELECT COUNT(*) AS count FROM {table}")
        if not res.ok:
            info[table] = {"error": "Table does not exist or query failed"}
        else:
            info[table] = {"count": int(res.rows[0]["count"]) if res.rows else 0}
    return info


def execute_query(executor: SqlExecutor, sql: str) -> List[Dict[str, Any]]:
    logging.info("Executing custom query")
    res = executor.execute(sql)
    if not res.ok:
        raise QueryError(f"Query execution failed: {res.message}", res.detail)
    return res.rows
