#!/usr/bin/env python3
"""Prepare and launch the Protocol timeline engine with one command.

Loads `.env` the same way `manage.py` does, optionally wipes the local SQLite
database, applies migrations, seeds the demo timeline and starts the Django
development server.

Examples
--------
python scripts/dev_bootstrap_and_run.py
python scripts/dev_bootstrap_and_run.py --keep-db --founder 4611686018467000001
python scripts/dev_bootstrap_and_run.py --no-server --no-seed
"""
from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path
from typing import Iterable, List

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]
MANAGE_DIR = ROOT / "protocol_hub"
PYTHON = sys.executable

DEFAULT_RESET = os.getenv("PROTOCOL_RESET", "0").lower() not in {"0", "false", "no"}
DEFAULT_RUNSERVER_ADDR = os.getenv("RUNSERVER_ADDR")


def load_env_file() -> None:
    env_path = ROOT / ".env"
    if env_path.exists():
        load_dotenv(env_path)


def db_path() -> Path:
    return Path(os.getenv("PROTOCOL_DB_PATH") or MANAGE_DIR / "db.sqlite3")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Reset, migrate, seed the demo timeline, and launch the dev server."
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete the SQLite database before migrating (env PROTOCOL_RESET=1).",
    )
    parser.add_argument(
        "--keep-db",
        action="store_true",
        help="Never reset, even when PROTOCOL_RESET is set.",
    )
    parser.add_argument(
        "--no-seed",
        action="store_true",
        help="Skip the seed_demo_timeline command.",
    )
    parser.add_argument("--founder", help="Bungie id of a founder agent to seed.")
    parser.add_argument("--agent", help="Bungie id of a regular agent to seed.")
    parser.add_argument(
        "--no-server",
        action="store_true",
        help="Perform setup tasks but do not launch the Django development server.",
    )
    parser.add_argument(
        "--runserver-addr",
        default=DEFAULT_RUNSERVER_ADDR,
        help="Host:port passed to runserver (defaults to Django's 127.0.0.1:8000).",
    )
    return parser.parse_args()


def build_commands(args: argparse.Namespace) -> List[List[str]]:
    commands: List[List[str]] = [[PYTHON, "manage.py", "migrate"]]

    if not args.no_seed:
        seed_cmd = [PYTHON, "manage.py", "seed_demo_timeline"]
        if args.founder:
            seed_cmd.extend(["--founder", args.founder])
        if args.agent:
            seed_cmd.extend(["--agent", args.agent])
        commands.append(seed_cmd)
    else:
        print(">>> Skipping demo seed (--no-seed).", flush=True)

    if not args.no_server:
        runserver: List[str] = [PYTHON, "manage.py", "runserver"]
        if args.runserver_addr:
            runserver.append(args.runserver_addr)
        commands.append(runserver)
    return commands


def run_command(cmd: Iterable[str]) -> None:
    command_list = list(cmd)
    print(f"\n=== Running: {' '.join(command_list)}\n", flush=True)
    subprocess.run(command_list, cwd=MANAGE_DIR, check=True)


def reset_datastore() -> None:
    path = db_path()
    if not path.exists():
        print(f">>> No SQLite file at {path}; nothing to reset.", flush=True)
        return
    print(f"\n=== Removing {path} for a clean reset\n", flush=True)
    for candidate in (path, path.with_name(path.name + "-journal")):
        try:
            candidate.unlink()
        except FileNotFoundError:
            pass


def main() -> None:
    load_env_file()

    if not MANAGE_DIR.exists():
        raise SystemExit(f"Expected manage.py directory at {MANAGE_DIR}")

    args = parse_args()
    commands = build_commands(args)

    if (args.reset or DEFAULT_RESET) and not args.keep_db:
        reset_datastore()

    for cmd in commands:
        try:
            run_command(cmd)
        except subprocess.CalledProcessError as exc:
            print(
                f"Command failed (exit {exc.returncode}): {' '.join(cmd)}",
                file=sys.stderr,
                flush=True,
            )
            raise SystemExit(exc.returncode) from exc


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nAborted by user.\n", flush=True)
