"""Synthetic e-commerce dataset for the SQL playground."""

from .builders import SyntheticGenerator, resolve_order_status
from .config import (
    ConnectionSettings,
    DateRange,
    ErrorConfig,
    GenerationConfig,
    ItemsPerOrder,
    challenge_config,
    challenge_preset,
    scaled_config,
    size_preset,
)
from .errors import (
    BulkInsertError,
    ConfigurationError,
    QueryError,
    SchemaError,
    SetupError,
    UniquenessExhaustedError,
)
from .executor import DbApiExecutor, Err, Ok, RunQueryRpcExecutor, SqlExecutor, SqlScriptExecutor
from .orchestrator import (
    create_tables,
    drop_all_tables,
    execute_query,
    fix_run_query_function,
    get_database_info,
    insert_sample_data,
    reset_database,
    setup_database,
    setup_large_database,
)
from .validation import audit_database, verify_counts

__version__ = "0.1.0"
