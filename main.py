"""Command-line interface for the alumni portal service."""

from __future__ import annotations
import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Tuple

import yaml

from app.config import Settings, load_settings
from app.errors import StorageError
from app.storage import RecordStore, open_store

logger = logging.getLogger("alumni.main")

_REQUIRED_JOB_FIELDS = ("title", "company", "location", "posted_date")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Alumni portal utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Create the record store and its tables")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for the HTTP API (default: 8000)",
    )

    seed_parser = subparsers.add_parser(
        "seed", help="Load job postings and alumni records from a YAML or JSON file"
    )
    seed_parser.add_argument("path", type=Path, help="File with 'jobs' and/or 'alumni' lists")

    subparsers.add_parser("list-users", help="List registered accounts")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "seed", "list-users"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _as_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def _optional_year(value: Any) -> int | None:
    if value is None or str(value).strip() == "":
        return None
    return int(value)


def _load_seed_file(path: Path) -> Dict[str, List[Mapping[str, Any]]]:
    """Read seed data; YAML parsing also accepts plain JSON documents."""

    with path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Seed file {path} must contain a mapping")

    data: Dict[str, List[Mapping[str, Any]]] = {}
    for key in ("jobs", "alumni"):
        entries = raw.get(key) or []
        if not isinstance(entries, list) or not all(isinstance(item, dict) for item in entries):
            raise ValueError(f"'{key}' in {path} must be a list of mappings")
        data[key] = entries
    return data


def _seed(store: RecordStore, data: Mapping[str, List[Mapping[str, Any]]]) -> Tuple[int, int]:
    """Validate every entry first so a bad file inserts nothing."""

    jobs: List[Dict[str, Any]] = []
    for index, entry in enumerate(data.get("jobs", [])):
        missing = [field for field in _REQUIRED_JOB_FIELDS if not entry.get(field)]
        if missing:
            raise ValueError(f"Job entry #{index + 1} is missing: {', '.join(missing)}")
        try:
            posted_date = _as_date(entry["posted_date"])
        except ValueError as exc:
            raise ValueError(f"Job entry #{index + 1} has an invalid posted_date") from exc
        jobs.append(
            {
                "title": str(entry["title"]),
                "company": str(entry["company"]),
                "location": str(entry["location"]),
                "posted_date": posted_date,
            }
        )

    alumni: List[Dict[str, Any]] = []
    for index, entry in enumerate(data.get("alumni", [])):
        if not entry.get("name"):
            raise ValueError(f"Alumni entry #{index + 1} is missing: name")
        try:
            graduation_year = _optional_year(entry.get("graduation_year"))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Alumni entry #{index + 1} has an invalid graduation_year") from exc
        alumni.append(
            {
                "name": str(entry["name"]),
                "graduation_year": graduation_year,
                "major": str(entry["major"]) if entry.get("major") else None,
            }
        )

    for job in jobs:
        store.insert_job(**job)
    for record in alumni:
        store.insert_alumni(**record)

    return len(jobs), len(alumni)


def _list_users(store: RecordStore) -> None:
    accounts = store.list_accounts()
    if not accounts:
        print("No users are currently registered.")
        return

    print(f"{len(accounts)} user(s) found:")
    print(f"{'ID':>4}  {'Name':<24}  {'Email':<32}  Created")
    print("-" * 80)
    for account in accounts:
        created = account.created_at.strftime("%Y-%m-%d %H:%M:%S %Z")
        print(f"{account.id:>4}  {account.name:<24}  {account.email:<32}  {created}")


def _serve(*, settings: Settings, store: RecordStore, host: str, port: int) -> None:
    from app.service import create_app
    import uvicorn

    logger.info("Starting alumni portal API on http://%s:%s", host, port)
    app = create_app(settings=settings, store=store)
    uvicorn.run(app, host=host, port=port, log_level="info")


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    try:
        settings = load_settings()
        store = open_store(settings)
    except (OSError, ValueError, yaml.YAMLError, StorageError) as exc:
        raise SystemExit(f"Unable to start: {exc}") from exc

    try:
        if args.command == "serve":
            _serve(settings=settings, store=store, host=args.host, port=args.port)
        elif args.command == "init-db":
            print(f"Record store ready ({settings.storage_backend}).")
        elif args.command == "seed":
            try:
                jobs, alumni = _seed(store, _load_seed_file(args.path))
            except (OSError, ValueError) as exc:
                raise SystemExit(f"Failed to seed records: {exc}") from exc
            print(f"Inserted {jobs} job posting(s) and {alumni} alumni record(s).")
        elif args.command == "list-users":
            _list_users(store)
    finally:
        store.close()


if __name__ == "__main__":
    main()
