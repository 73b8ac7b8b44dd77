#!/usr/bin/env python
"""
Run the MentorMind API server.

Usage:
    uv run python run_api.py
    uv run python run_api.py --reload            # Development mode
    uv run python run_api.py --workers 4         # Production
    uv run python run_api.py --require-migrated  # Refuse to start on a stale schema
"""

import argparse
import sys
from typing import Any

import uvicorn
from rich.console import Console

from shared.config import Settings, get_settings

console = Console()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run MentorMind API server")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--host", type=str, help="Host to bind to")
    parser.add_argument("--port", type=int, help="Port to bind to")
    parser.add_argument("--workers", type=int, help="Number of worker processes")
    parser.add_argument(
        "--require-migrated",
        action="store_true",
        help="Exit if database migrations are pending",
    )
    return parser.parse_args(argv)


def server_options(args: argparse.Namespace, settings: Settings) -> dict[str, Any]:
    """Keyword arguments for uvicorn.run; command line flags win over settings."""
    reload = args.reload or settings.reload
    options: dict[str, Any] = {
        "host": args.host or settings.host,
        "port": args.port or settings.port,
        "reload": reload,
        "log_level": settings.log_level.lower(),
        "proxy_headers": True,
        "forwarded_allow_ips": settings.forwarded_allow_ips,
    }
    # uvicorn runs a single process when reloading
    if not reload:
        options["workers"] = args.workers or settings.workers
    return options


def pending_migration_names() -> list[str]:
    import run_migrations

    conn = run_migrations.connect()
    try:
        run_migrations.ensure_migrations_table(conn)
        return [m.name for m in run_migrations.pending_migrations(conn)]
    finally:
        conn.close()


def main(argv=None):
    args = parse_args(argv)
    settings = get_settings()

    if args.require_migrated:
        pending = pending_migration_names()
        if pending:
            console.print(f"[red]Pending migrations:[/red] {', '.join(pending)}")
            console.print("Run [bold]python run_migrations.py[/bold] first.")
            sys.exit(1)

    uvicorn.run("api.app:app", **server_options(args, settings))


if __name__ == "__main__":
    main()
