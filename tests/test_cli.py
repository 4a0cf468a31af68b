import json

import pytest

import generate_data
from playground_seed.config import DEFAULT_CHALLENGE_RATES
from playground_seed.errors import ConfigurationError

SMALL = ["--countries", "5", "--cities", "10", "--users", "20", "--products", "15", "--orders", "30"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY", "PG_DSN", "SQLITE_PATH"):
        monkeypatch.delenv(name, raising=False)


def cli(*argv):
    return generate_data.main(list(argv))


class TestResolveConfig:
    def test_preset_with_overrides(self):
        args = generate_data.build_args(["--preset", "small", "--users", "7", "--items-max", "2"])
        cfg = generate_data.resolve_config(args)
        assert cfg.users == 7
        assert cfg.orders == 100
        assert (cfg.order_items_per_order.min, cfg.order_items_per_order.max) == (1, 2)

    def test_conflicting_sources(self):
        args = generate_data.build_args(["--preset", "small", "--challenge", "light"])
        with pytest.raises(ConfigurationError):
            generate_data.resolve_config(args)

    def test_with_errors_uses_dialog_defaults(self):
        cfg = generate_data.resolve_config(generate_data.build_args(["--with-errors"]))
        assert cfg.error_config == DEFAULT_CHALLENGE_RATES

    def test_error_rate(self):
        cfg = generate_data.resolve_config(generate_data.build_args(["--error-rate", "10"]))
        assert cfg.error_config.email_errors == 10
        assert cfg.error_config.delivery_errors == 7

    def test_config_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"users": 3, "errorConfig": {"enabled": True, "emailErrors": 100}}))
        cfg = generate_data.resolve_config(generate_data.build_args(["--config", str(path)]))
        assert cfg.users == 3
        assert cfg.error_config.email_errors == 100

    def test_config_file_not_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{nope")
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            generate_data.resolve_config(generate_data.build_args(["--config", str(path)]))

    def test_date_overrides(self):
        cfg = generate_data.resolve_config(generate_data.build_args(["--start", "2025-01-01", "--end", "2025-03-01"]))
        cfg = cfg.validate()
        assert cfg.date_range.start.isoformat() == "2025-01-01"
        assert cfg.date_range.end.isoformat() == "2025-03-01"

    def test_end_only_override_keeps_default_start(self):
        cfg = generate_data.resolve_config(generate_data.build_args(["--end", "2026-01-01"]))
        assert cfg.date_range.start is None
        cfg = cfg.validate()
        assert cfg.date_range.end.isoformat() == "2026-01-01"
        assert cfg.date_range.start < cfg.date_range.end


def test_setup_into_sqlite_file(tmp_path, capsys):
    db = tmp_path / "playground.db"
    assert cli("setup", "--target", "sqlite", "--sqlite-path", str(db), "--seed", "3", "--no-progress", *SMALL) == 0
    out = capsys.readouterr().out
    assert "=== TABLE ROW COUNTS ===" in out
    assert "users: 20" in out
    assert "orders: 30" in out

    assert cli("info", "--target", "sqlite", "--sqlite-path", str(db)) == 0
    info = json.loads(capsys.readouterr().out)
    assert info["countries"] == {"count": 5}

    assert cli("query", "--target", "sqlite", "--sqlite-path", str(db), "--sql", "SELECT COUNT(*) AS n FROM products") == 0
    assert json.loads(capsys.readouterr().out) == [{"n": 15}]

    assert cli("audit", "--target", "sqlite", "--sqlite-path", str(db)) == 0
    findings = json.loads(capsys.readouterr().out)
    assert set(findings.values()) == {0}


def test_output_sql(tmp_path, capsys):
    out_file = tmp_path / "sql" / "setup.sql"
    assert cli("--output-sql", str(out_file), "--seed", "3", "--no-progress", *SMALL) == 0
    text = out_file.read_text(encoding="utf-8")
    assert "CREATE TABLE IF NOT EXISTS users" in text
    assert "INSERT INTO order_items" in text
    assert "users: 20" in capsys.readouterr().out


def test_missing_supabase_credentials_exit_code():
    assert cli("setup", *SMALL) == 1


def test_invalid_config_exit_code(tmp_path):
    db = tmp_path / "never.db"
    assert cli("setup", "--target", "sqlite", "--sqlite-path", str(db), "--users", "-1") == 1
    assert not db.exists()


def test_query_needs_sql():
    assert cli("query", "--target", "sqlite") == 1


def test_query_error_exit_code():
    assert cli("query", "--target", "sqlite", "--sql", "SELECT * FROM missing") == 1


def test_unopenable_sqlite_path_exit_code(tmp_path, caplog):
    db = tmp_path / "missing" / "playground.db"
    assert cli("info", "--target", "sqlite", "--sqlite-path", str(db)) == 1
    assert "cannot open SQLite database" in caplog.text
