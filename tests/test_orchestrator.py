"""
End-to-end tests for the setup lifecycle against an in-memory SQLite database,
plus failure handling with a scripted executor.
"""

import io
from dataclasses import replace

import pytest

from playground_seed.config import ErrorConfig, GenerationConfig
from playground_seed.errors import BulkInsertError, ConfigurationError, QueryError, SchemaError
from playground_seed.executor import SqlScriptExecutor
from playground_seed.orchestrator import (
    execute_query,
    get_database_info,
    reset_database,
    setup_database,
    setup_large_database,
)
from playground_seed.schema import TABLE_NAMES
from playground_seed.validation import audit_database, count_rows

from conftest import SEED, RecordingExecutor


def run_setup(executor, config, today, **kwargs):
    return setup_database(executor, config, seed=SEED, today=today, **kwargs)


class TestSetupDatabase:
    def test_loads_every_table(self, sqlite_executor, small_config, today):
        counts = run_setup(sqlite_executor, small_config, today)
        assert list(counts) == list(TABLE_NAMES)
        assert counts["countries"] == 5
        assert counts["cities"] == 10
        assert counts["users"] == 20
        assert counts["products"] == 15
        assert counts["orders"] == 30
        assert count_rows(sqlite_executor) == counts

    def test_clean_data_passes_every_audit_rule(self, sqlite_executor, small_config, today):
        run_setup(sqlite_executor, small_config, today)
        findings = audit_database(sqlite_executor, today)
        assert findings
        assert all(v == 0 for v in findings.values()), findings

    def test_email_errors_only_break_emails(self, sqlite_executor, email_errors_config, today):
        run_setup(sqlite_executor, email_errors_config, today)
        findings = audit_database(sqlite_executor, today)
        assert findings.pop("invalid_email") == 20
        assert all(v == 0 for v in findings.values()), findings

    def test_pricing_errors_are_visible(self, sqlite_executor, small_config, today):
        cfg = replace(small_config, error_config=ErrorConfig(True, pricing_errors=100, quantity_errors=100))
        counts = run_setup(sqlite_executor, cfg, today)
        findings = audit_database(sqlite_executor, today)
        assert findings["bad_product_price"] == 15
        assert findings["bad_item_price"] == counts["order_items"]
        assert findings["bad_quantity"] == counts["order_items"]
        assert findings["total_mismatch"] == 0

    def test_location_and_delivery_errors_are_visible(self, sqlite_executor, small_config, today):
        cfg = replace(small_config, error_config=ErrorConfig(True, location_errors=100, delivery_errors=100))
        run_setup(sqlite_executor, cfg, today)
        findings = audit_database(sqlite_executor, today)
        assert findings["location_mismatch"] == 20
        assert findings["status_date_mismatch"] > 0

    def test_setup_is_idempotent(self, sqlite_executor, small_config, today):
        first = run_setup(sqlite_executor, small_config, today)
        second = run_setup(sqlite_executor, small_config, today)
        assert first == second
        info = get_database_info(sqlite_executor)
        assert {t: v["count"] for t, v in info.items()} == second
        assert execute_query(sqlite_executor, "SELECT MIN(id) AS lo FROM users") == [{"lo": 1}]

    def test_statement_order(self, small_config, today):
        ex = RecordingExecutor()
        run_setup(ex, small_config, today, verify=False)
        drops = [s for s in ex.statements if s.startswith("DROP")]
        creates = [s for s in ex.statements if s.startswith("CREATE TABLE")]
        assert [s.split()[4] for s in drops] == list(reversed(TABLE_NAMES))
        assert [s.split()[5] for s in creates] == list(TABLE_NAMES)
        first_create = ex.statements.index(creates[0])
        function_at = next(i for i, s in enumerate(ex.statements) if "FUNCTION run_query" in s)
        assert ex.statements.index(drops[-1]) < function_at < first_create
        assert ex.statements[-1].startswith("INSERT INTO order_items")

    def test_sqlite_skips_run_query_function(self, sqlite_executor, small_config, today):
        run_setup(sqlite_executor, small_config, today)
        res = sqlite_executor.execute("SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'orders'")
        assert res.rows == [{"name": "orders"}]

    def test_script_output(self, small_config, today):
        buf = io.StringIO()
        counts = run_setup(SqlScriptExecutor(buf), small_config, today)
        text = buf.getvalue()
        assert counts["orders"] == 30
        assert "DROP TABLE IF EXISTS order_items CASCADE;" in text
        assert "CREATE OR REPLACE FUNCTION run_query" in text
        assert text.count("INSERT INTO orders ") == 1


class TestSetupFailures:
    def test_config_error_before_any_statement(self, today):
        ex = RecordingExecutor()
        with pytest.raises(ConfigurationError):
            setup_database(ex, GenerationConfig(users=-5), today=today)
        assert ex.statements == []

    def test_create_failure(self, small_config, today):
        ex = RecordingExecutor(fail_when=lambda s: s.startswith("CREATE TABLE IF NOT EXISTS users"))
        with pytest.raises(SchemaError) as info:
            run_setup(ex, small_config, today)
        assert info.value.phase == "create"
        assert info.value.message == "boom"
        assert not any(s.startswith("INSERT") for s in ex.statements)

    def test_function_failure(self, small_config, today):
        ex = RecordingExecutor(fail_when=lambda s: "FUNCTION run_query" in s)
        with pytest.raises(SchemaError) as info:
            run_setup(ex, small_config, today)
        assert info.value.phase == "run_query function"

    def test_insert_failure_stops_the_run(self, small_config, today):
        ex = RecordingExecutor(fail_when=lambda s: s.startswith("INSERT INTO users"))
        with pytest.raises(BulkInsertError) as info:
            run_setup(ex, small_config, today)
        assert info.value.table == "users"
        assert info.value.batch == 1
        assert not any(s.startswith("INSERT INTO orders") for s in ex.statements)

    def test_count_mismatch_after_load(self, small_config, today):
        # the recording executor answers every COUNT with 0
        with pytest.raises(BulkInsertError, match="expected 5 rows"):
            run_setup(RecordingExecutor(), small_config, today)

    def test_verification_can_be_skipped(self, small_config, today):
        counts = run_setup(RecordingExecutor(), small_config, today, verify=False)
        assert counts["users"] == 20


class TestManagerOperations:
    def test_info_on_empty_database(self, sqlite_executor):
        info = get_database_info(sqlite_executor)
        assert set(info) == set(TABLE_NAMES)
        assert all(v == {"error": "Table does not exist or query failed"} for v in info.values())

    def test_execute_query_error(self, sqlite_executor):
        with pytest.raises(QueryError, match="Query execution failed"):
            execute_query(sqlite_executor, "SELECT * FROM nowhere")

    def test_execute_query_non_select(self, sqlite_executor):
        assert execute_query(sqlite_executor, "CREATE TABLE scratch (id INTEGER)") == []

    def test_reset_is_deprecated(self, today):
        ex = RecordingExecutor()
        with pytest.warns(DeprecationWarning):
            counts = reset_database(ex, seed=SEED, today=today, verify=False)
        assert counts["orders"] == 500

    def test_large_preset(self, today):
        counts = setup_large_database(RecordingExecutor(), seed=SEED, today=today, verify=False)
        assert counts["users"] == 1000
        assert counts["orders"] == 2000
        assert counts["countries"] == 30

    def test_audit_requires_tables(self, sqlite_executor, today):
        with pytest.raises(QueryError):
            audit_database(sqlite_executor, today)
