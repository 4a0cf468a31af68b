from __future__ import annotations

from typing import Optional


class SetupError(RuntimeError):
    """Base class for every failure raised while seeding the playground."""


class ConfigurationError(SetupError, ValueError):
    pass


class SchemaError(SetupError):
    def __init__(self, phase: str, statement: str, message: str, detail: Optional[str] = None):
        self.phase = phase
        self.statement = statement
        self.message = message
        self.detail = detail
        head = statement.strip().splitlines()[0][:80] if statement.strip() else ""
        super().__init__(f"{phase} failed on '{head}': {message}" + (f" ({detail})" if detail else ""))


class BulkInsertError(SetupError):
    def __init__(self, table: str, batch: int, first_row: int, last_row: int, message: str, detail: Optional[str] = None):
        self.table = table
        self.batch = batch
        self.first_row = first_row
        self.last_row = last_row
        self.message = message
        self.detail = detail
        super().__init__(
            f"insert into {table} failed at batch {batch} (rows {first_row}-{last_row}): {message}"
            + (f" ({detail})" if detail else "")
        )


class UniquenessExhaustedError(SetupError):
    def __init__(self, kind: str, attempts: int, fallback: str):
        self.kind = kind
        self.attempts = attempts
        self.fallback = fallback
        super().__init__(f"could not find a unique {kind} after {attempts} attempts; fallback '{fallback}' also taken")


class QueryError(SetupError):
    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(message + (f" ({detail})" if detail else ""))
