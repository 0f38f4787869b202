"""Command-line interface for the record migrator."""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .clients.webapi_client import WebAPIClient
from .engine import MigrationEngine
from .exceptions import MigrationError
from .models.migration import Operation
from .models.record import AutoMappingResult, MigrationProgress
from .services.auto_mapper import summarize
from .services.mapping_builder import build_default_config
from .settings import EnvironmentSettings, load_config, load_records, save_config

logger = logging.getLogger(__name__)


def create_client(role: str, args: argparse.Namespace) -> WebAPIClient:
    """Create a Web API client for "source" or "target"."""
    settings = EnvironmentSettings.from_env(
        role,
        url=getattr(args, f"{role}_url", None),
        token=getattr(args, f"{role}_token", None),
        rate_limit=getattr(args, "rate_limit", None),
    )
    return WebAPIClient(
        base_url=settings.url,
        token=settings.token,
        environment="primary" if role == "source" else "secondary",
        api_version=settings.api_version,
        rate_limit=settings.rate_limit,
        timeout=settings.timeout,
    )


def create_engine(args: argparse.Namespace) -> MigrationEngine:
    return MigrationEngine(create_client("source", args), create_client("target", args))


class ProgressPrinter:
    """Prints a line per batch and per failed record."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self._batch = 0
        self._reported = 0

    def __call__(self, progress: MigrationProgress):
        if progress.current_batch != self._batch:
            self._batch = progress.current_batch
            print(f"Batch {progress.current_batch}/{progress.total_batches}", file=self.stream)

        for record in progress.records[self._reported:]:
            if not record.status.is_terminal:
                break
            if record.error_message:
                print(f"  [{record.status.value}] {record.display_name}: {record.error_message}", file=self.stream)
            self._reported += 1


def print_auto_mapping(label: str, results: List[AutoMappingResult]):
    counts = summarize(results)
    print(f"\n{label}: {len(results)} matched "
          f"(high: {counts['high']}, medium: {counts['medium']}, low: {counts['low']})")
    for result in results:
        print(f"  {result.display_name}: {result.source_id} -> {result.target_id} "
              f"[{result.match_criteria}, {result.confidence.value}]")


def print_summary(progress: MigrationProgress):
    print("\n" + "=" * 60)
    print("MIGRATION COMPLETE")
    print("=" * 60)
    print(f"Records: {progress.total}")
    print(f"Processed: {progress.processed}")
    print(f"Succeeded: {progress.successful}")
    print(f"Failed: {progress.failed}")
    print(f"Skipped: {progress.skipped}")


def run_migrate(args: argparse.Namespace) -> int:
    """Run a migration from a config file and an approved records file."""
    config = load_config(args.config)
    engine = create_engine(args)

    if args.records:
        records = load_records(args.records)
    else:
        records = engine.fetch_source_records(config, top=args.top)
        logger.info(f"Fetched {len(records)} {config.entity_logical_name} records from source")

    if args.auto_map:
        for label, results in engine.auto_map_all().items():
            print_auto_mapping(label, results)

    progress = engine.migrate_records(config, records, ProgressPrinter())
    print_summary(progress)

    if args.report:
        _write_json(args.report, progress.to_dict())
        print(f"Report saved to {args.report}")

    return 0 if progress.failed == 0 else 1


def run_automap(args: argparse.Namespace) -> int:
    """Auto-map system entities and print or save the results."""
    engine = create_engine(args)
    results = engine.auto_map_all()

    for label, items in results.items():
        print_auto_mapping(label, items)

    if args.output:
        _write_json(args.output, {label: [r.to_dict() for r in items] for label, items in results.items()})
        print(f"\nAuto-mapping saved to {args.output}")
    return 0


def run_preview(args: argparse.Namespace) -> int:
    """Show target payloads without writing anything."""
    config = load_config(args.config)
    records = load_records(args.records)
    engine = create_engine(args)

    if args.auto_map:
        engine.auto_map_all()

    for payload in engine.preview_records(config, records):
        print(json.dumps(payload, indent=2, default=str))
        print("-" * 40)
    return 0


def run_init_config(args: argparse.Namespace) -> int:
    """Write a default config built from the source entity's fields."""
    client = create_client("source", args)
    fields = client.fetch_entity_fields(args.entity)
    config = build_default_config(
        args.entity,
        fields,
        operations=[Operation(op) for op in args.operations],
        batch_size=args.batch_size,
    )

    if args.output:
        save_config(config, args.output)
        print(f"Config saved to {args.output}")
    else:
        print(json.dumps(config.to_dict(), indent=2))
    return 0


def _write_json(path: str, data: Dict[str, Any]):
    with open(path, 'w') as f:
        json.dump(data, f, indent=2, default=str)


def _add_connection_args(parser: argparse.ArgumentParser):
    parser.add_argument("--source-url", help="Source environment URL")
    parser.add_argument("--source-token", help="Source environment bearer token")
    parser.add_argument("--target-url", help="Target environment URL")
    parser.add_argument("--target-token", help="Target environment bearer token")
    parser.add_argument("--rate-limit", type=float, help="Max requests per second")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Record Migrator - Migrate records between environments"
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    migrate_parser = subparsers.add_parser("migrate", help="Run a migration")
    migrate_parser.add_argument("--config", required=True, help="Path to migration config file")
    migrate_parser.add_argument("--records", help="Path to approved records JSON file (default: query source)")
    migrate_parser.add_argument("--top", type=int, help="Max records to query when --records is not given")
    migrate_parser.add_argument("--auto-map", action="store_true", help="Auto-map users, teams and business units first")
    migrate_parser.add_argument("--report", help="Write the final progress to this JSON file")
    _add_connection_args(migrate_parser)

    automap_parser = subparsers.add_parser("automap", help="Auto-map users, teams and business units")
    automap_parser.add_argument("--output", help="Output file path")
    _add_connection_args(automap_parser)

    preview_parser = subparsers.add_parser("preview", help="Preview target payloads")
    preview_parser.add_argument("--config", required=True, help="Path to migration config file")
    preview_parser.add_argument("--records", required=True, help="Path to records JSON file")
    preview_parser.add_argument("--auto-map", action="store_true", help="Apply auto-mapping to lookups")
    _add_connection_args(preview_parser)

    init_parser = subparsers.add_parser("init-config", help="Create a default config for an entity")
    init_parser.add_argument("--entity", required=True, help="Entity logical name")
    init_parser.add_argument("--operations", nargs="+", default=["create"],
                             choices=[op.value for op in Operation], help="Operations to run")
    init_parser.add_argument("--batch-size", type=int, default=10, help="Records per batch")
    init_parser.add_argument("--output", help="Output file path")
    _add_connection_args(init_parser)

    return parser


COMMANDS = {
    "migrate": run_migrate,
    "automap": run_automap,
    "preview": run_preview,
    "init-config": run_init_config,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    log_level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        return 2

    try:
        return command(args)
    except MigrationError as e:
        logger.error(e.message)
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
