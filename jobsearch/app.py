import argparse
import json
from pathlib import Path

from . import __version__
from .config import load_settings
from .errors import AlreadyExistsError, NotFoundError, ValidationError
from .logger import get_logger
from .schema import EntityKind, describe, validate
from .seed import bulk_load, coerce_document, load_seed_directory
from .store import open_store

COLLECTIONS = [kind.value for kind in EntityKind]


def _read_json(path: Path):
    if not path.exists():
        raise SystemExit(f"Input file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    return data if isinstance(data, list) else [data]


def _open(args: argparse.Namespace):
    return open_store(args.db, connect_retries=args.settings.connect_retries)


def cmd_init(args: argparse.Namespace) -> None:
    seed_dir = Path(args.seed_dir) if args.seed_dir else args.settings.seed_dir
    with _open(args) as store:
        loaded = load_seed_directory(store, seed_dir)
    print(f"Database ready: {args.db}")
    if loaded:
        for collection, count in loaded.items():
            print(f"  seeded {collection}: {count}")
    else:
        print("  no seed data loaded")


def cmd_load(args: argparse.Namespace) -> None:
    documents = _read_json(Path(args.input))
    with _open(args) as store:
        try:
            count = bulk_load(store, args.collection, documents)
        except ValidationError as e:
            print(f"Invalid: {e}")
            print("Nothing was loaded.")
            raise SystemExit(2)
        except AlreadyExistsError as e:
            print(f"Rejected: {e}")
            print("Nothing was loaded.")
            raise SystemExit(1)
    print(f"Loaded {count} document(s) into {args.collection}")


def cmd_validate(args: argparse.Namespace) -> None:
    kind = EntityKind(args.kind)
    documents = _read_json(Path(args.input))
    for index, document in enumerate(documents):
        try:
            validate(kind, coerce_document(kind, document))
        except ValidationError as e:
            print("Invalid:")
            print(f" - document {index}: {e}")
            raise SystemExit(2)
    print(f"Valid ({len(documents)} document(s))")


def cmd_schema(args: argparse.Namespace) -> None:
    kinds = [EntityKind(args.kind)] if args.kind else list(EntityKind)
    for kind in kinds:
        print(f"{kind.value}:")
        for line in describe(kind):
            print(f"  {line}")


def cmd_search(args: argparse.Namespace) -> None:
    with _open(args) as store:
        jobs = store.jobs.search_jobs_by_title(args.title, limit=args.limit)
    if not jobs:
        print("No matching jobs.")
        return
    print(f"Found {len(jobs)} job(s) for {args.title!r}:\n")
    for job in jobs:
        print(f"ID: {job.id}")
        print(f"  Title: {job.title}")
        print(f"  URL: {job.url}")
        print()


def cmd_results(args: argparse.Namespace) -> None:
    with _open(args) as store:
        try:
            user = store.users.get_by_email(args.email)
            results = store.job_results.load_latest_page_results(user.id)
        except NotFoundError as e:
            raise SystemExit(str(e))
    if not results:
        print("Latest result has no jobs.")
        return
    for r in results:
        print(f"{r['business_name']}: {r['url']}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jobsearch", description="Job search data store")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", help="SQLAlchemy database URL (default: JOBSEARCH_DATABASE_URL)")

    subparsers = parser.add_subparsers(dest="command")

    ini = subparsers.add_parser("init", help="Create collections and indexes, then load seed data if present")
    ini.add_argument("--seed-dir", help="Directory with <collection>.json seed files (default: JOBSEARCH_SEED_DIR)")
    ini.set_defaults(func=cmd_init)

    lod = subparsers.add_parser("load", help="Bulk load a JSON array of documents into one collection")
    lod.add_argument("--collection", required=True, choices=COLLECTIONS, help="Target collection")
    lod.add_argument("--input", required=True, help="Path to JSON file")
    lod.set_defaults(func=cmd_load)

    val = subparsers.add_parser("validate", help="Validate documents against a collection schema")
    val.add_argument("--kind", required=True, choices=COLLECTIONS, help="Collection schema to check against")
    val.add_argument("--input", required=True, help="Path to JSON file")
    val.set_defaults(func=cmd_validate)

    sch = subparsers.add_parser("schema", help="Print collection schemas")
    sch.add_argument("--kind", choices=COLLECTIONS, help="Only this collection")
    sch.set_defaults(func=cmd_schema)

    sea = subparsers.add_parser("search", help="Full-text search over job titles")
    sea.add_argument("--title", required=True, help="Search text, e.g. \"backend engineer\"")
    sea.add_argument("--limit", type=int, help="Maximum number of jobs to show")
    sea.set_defaults(func=cmd_search)

    res = subparsers.add_parser("results", help="Show the latest search results of a user")
    res.add_argument("--email", required=True, help="User email")
    res.set_defaults(func=cmd_results)

    return parser


def main(argv=None):
    settings = load_settings()
    get_logger().set_level(settings.log_level)
    parser = build_parser()
    args = parser.parse_args(argv)
    args.settings = settings
    if args.db is None:
        args.db = settings.database_url

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
