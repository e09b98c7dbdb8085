"""Command-line interface for SheetSync."""

import argparse
import asyncio
import logging
import sys

import uvicorn

from .config import settings


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="SheetSync - Brokerage data to Google Sheets with stable, renamable columns"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Server command
    server_parser = subparsers.add_parser("serve", help="Start the web server")
    server_parser.add_argument(
        "--host", default=settings.host, help=f"Host to bind to (default: {settings.host})"
    )
    server_parser.add_argument(
        "--port", type=int, default=settings.port, help=f"Port to bind to (default: {settings.port})"
    )
    server_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    # Sync command
    sync_parser = subparsers.add_parser(
        "sync", help="Fetch resources from the API and write them to the spreadsheet"
    )
    sync_parser.add_argument(
        "resources",
        nargs="*",
        metavar="RESOURCE",
        help="Resource ids to sync, e.g. DIVIDENDS PIES (default: all)",
    )
    sync_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Keep rows and mappings in memory; touch neither the spreadsheet nor the mapping database",
    )

    # Auth command
    subparsers.add_parser("auth", help="Authenticate with Google Sheets API")

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        run_server(args.host, args.port, args.reload)
    elif args.command == "sync":
        ok = asyncio.run(run_sync(args.resources, args.dry_run))
        sys.exit(0 if ok else 1)
    elif args.command == "auth":
        run_auth()
    else:
        parser.print_help()
        sys.exit(1)


def run_server(host: str, port: int, reload: bool):
    """Run the web server."""
    uvicorn.run(
        "sheetsync.api.app:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


async def run_sync(resource_ids: list[str], dry_run: bool = False) -> bool:
    """Sync the given resources (all when empty). Returns True if all succeeded."""
    from .entities import ENTITY_TYPES
    from .mapping import FieldMappingStore, SqliteMappingTable
    from .mapping.storage import IN_MEMORY
    from .sheets import MemorySink
    from .sync import SyncService

    unknown = [rid for rid in resource_ids if rid.upper() not in ENTITY_TYPES]
    if unknown:
        print(f"Unknown resources: {', '.join(unknown)}")
        print(f"Available: {', '.join(ENTITY_TYPES)}")
        return False

    if dry_run:
        sink = MemorySink()
        store = FieldMappingStore(SqliteMappingTable(IN_MEMORY))
        service = SyncService(sink=sink, store=store)
    else:
        service = SyncService()

    try:
        results = await service.sync([rid.upper() for rid in resource_ids] or None)
    finally:
        await service.shutdown()

    for result in results:
        status = "ok" if result.success else "FAILED"
        print(
            f"{result.resource_id:<18} {status:<7} fetched={result.fetched} "
            f"written={result.written} skipped={result.skipped}"
        )
        if result.changes.added:
            print(f"  new fields: {', '.join(result.changes.added)}")
        if result.changes.removed:
            print(f"  missing fields: {', '.join(result.changes.removed)}")
        for error in result.errors:
            print(f"  error: {error}")

    return all(result.success for result in results)


def run_auth():
    """Run the Google authentication flow."""
    from .sheets import GoogleSheetsClient

    print("Authenticating with Google Sheets API...")
    try:
        client = GoogleSheetsClient()
        # Accessing the service property triggers auth
        _ = client.service
        print("Authentication successful!")
        print("Token saved. You can now sync to Google Sheets.")
    except Exception as e:
        print(f"Authentication failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
