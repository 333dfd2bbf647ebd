"""Command line entry point."""

import argparse
import asyncio
import importlib
import sys
from typing import List, Optional

from .api_clients import AiohttpTransport, SwiftypeAPI
from .config.loader import load_indices_from_env, ConfigLoader
from .config.settings import get_settings
from .core import SyncEngine, SyncResult
from .database import DatabaseManager, SqlAlchemyRecordStore
from .exceptions import IndexSyncError
from .export import BaseRecordStore, LinkEnricher
from .utils.logging import setup_logging, get_logger


logger = get_logger("main")


def load_record_store(reference: Optional[str]) -> BaseRecordStore:
    """Build the record store named by a ``module:factory`` reference.

    Without a reference, an empty SQLAlchemy store over the configured
    database is returned.
    """
    if not reference:
        database = DatabaseManager()
        return SqlAlchemyRecordStore(database.get_session(), database=database)

    module_name, _, factory_name = reference.partition(":")
    if not module_name or not factory_name:
        raise ValueError(f"Record store reference must look like module:factory, got {reference!r}")

    module = importlib.import_module(module_name)
    store = getattr(module, factory_name)()
    if not isinstance(store, BaseRecordStore):
        raise TypeError(f"{reference} did not return a record store")
    return store


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="indexsync", description="Synchronize records with a search index")
    parser.add_argument("--config", help="Index definitions file (yaml or json)")
    parser.add_argument("--store", help="Record store factory as module:factory")
    parser.add_argument("--log-level", help="Override the configured log level")

    commands = parser.add_subparsers(dest="command", required=True)

    create_index = commands.add_parser("create-index", help="Provision an engine and a fresh document type")
    create_index.add_argument("index")

    delete_record = commands.add_parser("delete-record", help="Remove a record's document from an index")
    delete_record.add_argument("index")
    delete_record.add_argument("class_name")
    delete_record.add_argument("record_id", type=int)

    export_record = commands.add_parser("export-record", help="Create or update a single record's document")
    export_record.add_argument("index")
    export_record.add_argument("class_name")
    export_record.add_argument("record_id", type=int)

    plan = commands.add_parser("plan", help="List the bulk export units of a class")
    plan.add_argument("index")
    plan.add_argument("class_name", nargs="?")

    bulk_export = commands.add_parser("bulk-export", help="Export a class in batches")
    bulk_export.add_argument("index")
    bulk_export.add_argument("class_name", nargs="?")
    bulk_export.add_argument("--offset", type=int, help="Run only the batch starting at this offset")

    return parser


async def run_command(args: argparse.Namespace) -> List[SyncResult]:
    settings = get_settings()
    indices = ConfigLoader().load_from_file(args.config) if args.config else load_indices_from_env()
    record_store = load_record_store(args.store)

    enrichers = []
    if settings.export.link_base:
        enrichers.append(LinkEnricher(settings.export.link_base))

    async with AiohttpTransport(
        verify_ssl=settings.swiftype.verify_ssl,
        timeout=settings.swiftype.request_timeout
    ) as transport:
        api = SwiftypeAPI(transport, base_url=settings.swiftype.base_url)
        engine = SyncEngine(api, record_store, indices, settings=settings, enrichers=enrichers)

        try:
            if args.command == "create-index":
                return [await engine.create_index(args.index)]

            if args.command == "delete-record":
                return [await engine.delete_record(args.index, args.class_name, args.record_id)]

            if args.command == "export-record":
                return [await engine.export_record(args.index, args.class_name, args.record_id)]

            jobs = engine.plan_bulk_export(args.index, args.class_name)
            if args.command == "plan":
                for job in jobs:
                    print(job.job_id)
                return []

            if args.offset is not None:
                jobs = [job for job in jobs if job.offset == args.offset]
                if not jobs:
                    raise IndexSyncError(
                        "No export batch starts at the given offset",
                        index=args.index,
                        offset=args.offset
                    )

            results = []
            for job in jobs:
                results.append(await engine.run_bulk_export(job))
            return results
        finally:
            record_store.close()


def cli(argv: Optional[List[str]] = None) -> int:
    """Run the command line interface and return the exit code."""
    args = build_parser().parse_args(argv)
    setup_logging(log_level=args.log_level)

    try:
        results = asyncio.run(run_command(args))
    except (IndexSyncError, LookupError, ValueError, TypeError, ImportError) as e:
        logger.error("Command failed", command=args.command, error=str(e))
        return 1

    failed = [result for result in results if not result.success]
    for result in failed:
        logger.error(
            "Unit of work failed",
            operation=result.operation,
            index=result.index_name,
            offset=result.offset,
            record_id=result.record_id,
            error=result.error_message
        )
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(cli())
