"""Ways of running one SQL statement against a target.

Every executor answers ``execute(sql)`` with ``Ok(rows)`` or ``Err(kind,
message, detail)``. SELECT statements return rows as dicts; anything else
returns ``Ok([])`` on success. Executors never raise for statement failures,
callers decide what an ``Err`` means in their phase.
"""

from __future__ import annotations

import datetime as dt
import logging
import re
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO, Union

import psycopg
import requests

from .errors import ConfigurationError, SetupError
from .schema import POSTGRES, SQLITE, Dialect

Row = Dict[str, Any]


@dataclass
class Ok:
    rows: List[Row] = field(default_factory=list)
    ok = True


@dataclass
class Err:
    kind: str
    message: str
    detail: Optional[str] = None
    ok = False

    def __str__(self) -> str:
        if self.detail:
            return f"{self.kind}: {self.message} ({self.detail})"
        return f"{self.kind}: {self.message}"


Result = Union[Ok, Err]


def is_select(sql: str) -> bool:
    return sql.lstrip().upper().startswith("SELECT")


class SqlExecutor:
    dialect: Dialect = POSTGRES
    can_read = True

    def execute(self, sql: str) -> Result:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class RunQueryRpcExecutor(SqlExecutor):
    """Supabase target: statements go through the ``run_query`` RPC."""

    def __init__(
        self,
        url: str,
        service_role_key: str,
        session: Optional[requests.Session] = None,
        timeout: float = 60.0,
    ):
        if not url:
            raise ConfigurationError("Supabase URL is required via --supabase-url or SUPABASE_URL env var")
        if not service_role_key:
            raise ConfigurationError(
                "Service role key is required via --service-role-key or SUPABASE_SERVICE_ROLE_KEY env var"
            )
        self.endpoint = url.rstrip("/") + "/rest/v1/rpc/run_query"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": service_role_key,
                "Authorization": f"Bearer {service_role_key}",
                "Content-Type": "application/json",
            }
        )

    def execute(self, sql: str) -> Result:
        try:
            r = self.session.post(self.endpoint, json={"query_text": sql}, timeout=self.timeout)
        except requests.RequestException as exc:
            return Err("transport", str(exc))

        if r.status_code >= 400:
            try:
                body = r.json()
            except ValueError:
                return Err("http", f"HTTP {r.status_code}", r.text[:500] or None)
            message = body.get("message") if isinstance(body, dict) else None
            detail = body.get("details") or body.get("hint") if isinstance(body, dict) else None
            return Err("http", message or f"HTTP {r.status_code}", detail)

        try:
            body = r.json()
        except ValueError:
            return Err("protocol", "run_query returned a non-JSON body", r.text[:500] or None)

        if isinstance(body, dict) and body.get("error"):
            return Err("sql", body.get("message") or "query failed", body.get("detail"))
        if isinstance(body, list):
            return Ok([row for row in body if isinstance(row, dict)])
        return Ok([])

    def close(self) -> None:
        self.session.close()


def _regexp(pattern: str, value) -> bool:
    if value is None:
        return False
    return re.search(pattern, str(value)) is not None


class DbApiExecutor(SqlExecutor):
    """Wraps a DB-API connection; driver exceptions become ``Err``."""

    def __init__(self, conn, dialect: Dialect, errors: tuple = (Exception,), commit: bool = False):
        self.conn = conn
        self.dialect = dialect
        self.errors = errors
        self.commit = commit

    @classmethod
    def sqlite(cls, path: Union[str, Path] = ":memory:") -> "DbApiExecutor":
        try:
            conn = sqlite3.connect(str(path))
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as exc:
            raise SetupError(f"cannot open SQLite database {path}: {exc}") from exc
        conn.create_function("REGEXP", 2, _regexp)
        return cls(conn, SQLITE, errors=(sqlite3.Error,), commit=True)

    @classmethod
    def postgres(cls, dsn: str) -> "DbApiExecutor":
        if not dsn:
            raise ConfigurationError("Postgres DSN is required via --pg-dsn or PG_DSN env var")
        try:
            conn = psycopg.connect(dsn, autocommit=True)
        except psycopg.OperationalError as exc:
            raise SetupError(f"cannot connect to Postgres: {exc}") from exc
        return cls(conn, POSTGRES, errors=(psycopg.Error,))

    def execute(self, sql: str) -> Result:
        cur = self.conn.cursor()
        try:
            cur.execute(sql)
            rows: List[Row] = []
            if cur.description is not None:
                names = [d[0] for d in cur.description]
                rows = [dict(zip(names, r)) for r in cur.fetchall()]
            if self.commit:
                self.conn.commit()
        except self.errors as exc:
            if self.commit:
                self.conn.rollback()
            detail = getattr(exc, "sqlstate", None) or getattr(exc, "sqlite_errorname", None)
            return Err("sql", str(exc).strip(), detail)
        finally:
            cur.close()
        return Ok(rows if is_select(sql) else [])

    def close(self) -> None:
        self.conn.close()


class SqlScriptExecutor(SqlExecutor):
    """Appends statements to a .sql file instead of running them."""

    can_read = False

    def __init__(self, target: Union[str, Path, TextIO], dialect: Dialect = POSTGRES):
        self.dialect = dialect
        if isinstance(target, (str, Path)):
            self.path: Optional[Path] = Path(target)
            self.fh = self.path.open("w", encoding="utf-8")
            self.owns_fh = True
        else:
            self.path = None
            self.fh = target
            self.owns_fh = False
        self.statements = 0
        self.fh.write("-- Auto-generated by generate_data.py\n")
        self.fh.write(f"-- Generated at: {dt.datetime.now().isoformat(timespec='seconds')}\n")
        self.fh.write(f"-- Dialect: {dialect.name}\n\n")

    def execute(self, sql: str) -> Result:
        if is_select(sql):
            return Err("unsupported", "SQL script output cannot answer SELECT statements")
        self.fh.write(sql.rstrip().rstrip(";") + ";\n\n")
        self.statements += 1
        return Ok([])

    def close(self) -> None:
        if self.owns_fh and not self.fh.closed:
            self.fh.close()
            logging.info("SQL file written: %s (%d statements)", self.path, self.statements)
