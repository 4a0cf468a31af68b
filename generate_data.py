#!/usr/bin/env python3
"""
Seed the SQL playground database with a synthetic e-commerce dataset.

Features:
- Drops and recreates countries, cities, users, products, orders, order_items
- (Re)creates the run_query helper function on Postgres/Supabase targets
- Generates referentially valid, date-coherent rows with optional data-quality defects
- Loads rows as batched multi-row INSERTs through Supabase RPC, a Postgres DSN or SQLite
- Can write the whole setup to a .sql file instead of executing it
- Verifies row counts and audits data-quality rules after loading
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from playground_seed.config import (
    CHALLENGE_PRESETS,
    DEFAULT_CHALLENGE_RATES,
    SIZE_PRESETS,
    ConnectionSettings,
    DateRange,
    GenerationConfig,
    ItemsPerOrder,
    challenge_config,
    challenge_preset,
    scaled_config,
    size_preset,
)
from playground_seed.errors import ConfigurationError, SetupError
from playground_seed.executor import DbApiExecutor, RunQueryRpcExecutor, SqlExecutor, SqlScriptExecutor
from playground_seed.loader import DEFAULT_BATCH_SIZE
from playground_seed.orchestrator import (
    execute_query,
    fix_run_query_function,
    get_database_info,
    reset_database,
    setup_database,
    setup_large_database,
)
from playground_seed.schema import DIALECTS, get_dialect
from playground_seed.validation import audit_database

COMMANDS = ("setup", "reset", "large", "info", "fix", "query", "audit")
COUNT_FIELDS = ("countries", "cities", "users", "products", "orders")


def build_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    env = ConnectionSettings.from_env()
    p = argparse.ArgumentParser(description="Generate and load the SQL playground sample database")
    p.add_argument("command", nargs="?", choices=COMMANDS, default="setup")
    p.add_argument("--target", choices=("supabase", "postgres", "sqlite"), default="supabase")
    p.add_argument("--supabase-url", default=env.supabase_url)
    p.add_argument("--service-role-key", default=env.service_role_key)
    p.add_argument("--pg-dsn", default=env.pg_dsn)
    p.add_argument("--sqlite-path", default=env.sqlite_path)
    p.add_argument("--output-sql", help="Write the setup SQL to this file instead of executing it")
    p.add_argument("--dialect", choices=sorted(DIALECTS), default="postgres", help="Dialect for --output-sql")

    p.add_argument("--config", help="JSON file with a generation config (camelCase or snake_case keys)")
    p.add_argument("--preset", choices=sorted(SIZE_PRESETS))
    p.add_argument("--challenge", choices=sorted(CHALLENGE_PRESETS))
    p.add_argument("--multiplier", type=int)
    p.add_argument("--error-rate", type=int, help="Custom challenge mode with this base error percentage")
    p.add_argument("--with-errors", action="store_true", help="Enable data-quality errors at the default challenge rates")
    for name in COUNT_FIELDS:
        p.add_argument(f"--{name}", type=int)
    p.add_argument("--items-min", type=int)
    p.add_argument("--items-max", type=int)
    p.add_argument("--start", help="First order date, YYYY-MM-DD")
    p.add_argument("--end", help="Last order date, YYYY-MM-DD")
    p.add_argument("--seed", type=int, default=None)

    p.add_argument("--sql", help="Statement for the query command")
    p.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE)
    p.add_argument("--skip-validation", action="store_true")
    p.add_argument("--no-progress", action="store_true")
    p.add_argument("--log-level", default="INFO")
    return p.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )


def load_config_file(path: Path) -> GenerationConfig:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"cannot read config file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"config file {path} is not valid JSON: {exc}") from exc
    return GenerationConfig.from_dict(data)


def resolve_config(args: argparse.Namespace) -> GenerationConfig:
    chosen = [n for n in ("config", "preset", "challenge", "multiplier", "error_rate") if getattr(args, n) is not None]
    if len(chosen) > 1:
        raise ConfigurationError("choose only one of --config, --preset, --challenge, --multiplier, --error-rate")

    if args.config:
        cfg = load_config_file(Path(args.config))
    elif args.preset:
        cfg = size_preset(args.preset)
    elif args.challenge:
        cfg = challenge_preset(args.challenge)
    elif args.multiplier is not None:
        cfg = scaled_config(args.multiplier)
    elif args.error_rate is not None:
        cfg = challenge_config(args.error_rate)
    else:
        cfg = GenerationConfig()

    overrides = {n: getattr(args, n) for n in COUNT_FIELDS if getattr(args, n) is not None}
    if args.items_min is not None or args.items_max is not None:
        items = cfg.order_items_per_order
        overrides["order_items_per_order"] = ItemsPerOrder(
            args.items_min if args.items_min is not None else items.min,
            args.items_max if args.items_max is not None else items.max,
        )
    if args.start or args.end:
        rng = cfg.date_range
        overrides["date_range"] = DateRange(
            args.start or (rng.start if rng else None),
            args.end or (rng.end if rng else None),
        )
    if args.with_errors and not cfg.error_config.enabled:
        overrides["error_config"] = DEFAULT_CHALLENGE_RATES
    return dataclasses.replace(cfg, **overrides)


def build_executor(args: argparse.Namespace) -> SqlExecutor:
    if args.output_sql:
        out_path = Path(args.output_sql)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        return SqlScriptExecutor(out_path, get_dialect(args.dialect))
    if args.target == "supabase":
        return RunQueryRpcExecutor(args.supabase_url, args.service_role_key)
    if args.target == "postgres":
        return DbApiExecutor.postgres(args.pg_dsn)
    return DbApiExecutor.sqlite(args.sqlite_path)


def print_counts(counts: Dict[str, int]) -> None:
    print("\n=== TABLE ROW COUNTS ===")
    for t, n in counts.items():
        print(f"{t}: {n}")


def run(args: argparse.Namespace) -> None:
    t0 = time.time()
    # validate before touching the target
    config = resolve_config(args).validate() if args.command == "setup" else None

    with build_executor(args) as executor:
        load_opts = dict(
            seed=args.seed,
            batch_size=args.batch_size,
            verify=not args.skip_validation,
            progress=not args.no_progress,
        )
        if args.command == "setup":
            inserted = setup_database(executor, config, **load_opts)
        elif args.command == "reset":
            inserted = reset_database(executor, **load_opts)
        elif args.command == "large":
            inserted = setup_large_database(executor, **load_opts)
        elif args.command == "info":
            print(json.dumps(get_database_info(executor), indent=2))
            return
        elif args.command == "fix":
            if fix_run_query_function(executor):
                print("run_query function updated")
            return
        elif args.command == "query":
            if not args.sql:
                raise ConfigurationError("the query command needs --sql")
            rows: List[dict] = execute_query(executor, args.sql)
            print(json.dumps(rows, indent=2, default=str))
            return
        else:
            print(json.dumps(audit_database(executor), indent=2))
            return

        if not args.skip_validation and executor.can_read:
            logging.info("Running data-quality audit...")
            findings = audit_database(executor)
            flagged = {k: v for k, v in findings.items() if v}
            if flagged:
                logging.warning("Audit found %d rule(s) with violating rows", len(flagged))

    logging.info("Generation completed in %.2fs", time.time() - t0)
    print_counts(inserted)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_args(argv)
    configure_logging(args.log_level)
    try:
        run(args)
    except SetupError as exc:
        logging.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
