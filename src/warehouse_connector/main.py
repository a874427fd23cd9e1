"""Command line entry point for the warehouse connector."""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from .config.loader import ConfigLoader, ConfigurationError
from .config.schema import FieldDefinition
from .config.settings import get_settings
from .core.provisioner import Provisioner
from .utils.logging import setup_logging, get_logger
from .warehouse import (
    AuthenticationError,
    BigQueryConnector,
    TableSchema,
    WarehouseError,
    create_connector
)


EXIT_OK = 0
EXIT_FATAL = 1
EXIT_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one sub-command per connector operation."""
    parser = argparse.ArgumentParser(
        prog="warehouse-connector",
        description="Manage BigQuery datasets, tables and data movement jobs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s add-dataset testdataset
  %(prog)s create-table testdataset test_table --sample '{"name": "n1", "num": 12}'
  %(prog)s insert testdataset test_table rows.json
  %(prog)s export-gcs testdataset test_table gs://bucket/exports/test_table.csv
  %(prog)s provision config/warehouse.yaml
        """
    )
    parser.add_argument("--credentials-path", help="Directory holding the service account key file")
    parser.add_argument("--project-id", help="Google Cloud project id")
    parser.add_argument("--log-level", help="Log level (default from LOG_LEVEL)")
    parser.add_argument("--log-format", choices=["json", "console"], help="Log renderer")

    commands = parser.add_subparsers(dest="command", required=True)

    p = commands.add_parser("add-dataset", help="Create a dataset")
    p.add_argument("dataset_id")
    p.add_argument("--fail-if-exists", action="store_true", help="Error out if the dataset exists")

    commands.add_parser("list-datasets", help="List dataset ids")

    p = commands.add_parser("create-table", help="Create a partitioned table unless it exists")
    p.add_argument("dataset_id")
    p.add_argument("table_id")
    schema_source = p.add_mutually_exclusive_group(required=True)
    schema_source.add_argument("--schema-file", help="JSON file with a list of field definitions")
    schema_source.add_argument("--sample", help="JSON object whose values decide the column types")
    p.add_argument("--expiration-seconds", type=int, default=0, help="Partition expiration (0 = never)")

    p = commands.add_parser("list-tables", help="List table ids in a dataset")
    p.add_argument("dataset_id")

    p = commands.add_parser("browse-table", help="Read every row and print the count")
    p.add_argument("dataset_id")
    p.add_argument("table_id")

    p = commands.add_parser("copy-table", help="Copy a table, truncating the destination")
    p.add_argument("dataset_id")
    p.add_argument("src_id")
    p.add_argument("dst_id")

    p = commands.add_parser("delete-table", help="Delete a table")
    p.add_argument("dataset_id")
    p.add_argument("table_id")

    p = commands.add_parser("insert", help="Stream rows from a JSON array or JSON-lines file")
    p.add_argument("dataset_id")
    p.add_argument("table_id")
    p.add_argument("rows_file")
    p.add_argument("--strict", action="store_true", help="Fail when any row is rejected")

    for name, help_text in (
        ("import-file", "Load a local file into an existing table"),
        ("import-gcs", "Load a gs:// object into an existing table"),
    ):
        p = commands.add_parser(name, help=help_text)
        p.add_argument("dataset_id")
        p.add_argument("table_id")
        p.add_argument("source")
        p.add_argument("--source-format", type=str.upper, default="CSV", help="CSV, NEWLINE_DELIMITED_JSON, PARQUET, ...")

    p = commands.add_parser("export-gcs", help="Extract a table to a gs:// URI as headerless CSV")
    p.add_argument("dataset_id")
    p.add_argument("table_id")
    p.add_argument("gcs_uri")

    p = commands.add_parser("provision", help="Create every dataset and table in a layout file")
    p.add_argument("layout_file")

    return parser


def load_rows(rows_file: str) -> List[Any]:
    """Read rows from a JSON array file or a JSON-lines file."""
    text = Path(rows_file).read_text(encoding="utf-8").strip()
    if not text:
        return []
    if text.startswith("["):
        return json.loads(text)
    return [json.loads(line) for line in text.splitlines() if line.strip()]


def load_schema(args: argparse.Namespace) -> TableSchema:
    if args.sample:
        return TableSchema.from_sample(json.loads(args.sample))

    definitions = json.loads(Path(args.schema_file).read_text(encoding="utf-8"))
    return TableSchema(tuple(FieldDefinition(**d).to_field_spec() for d in definitions))


def dispatch(connector: BigQueryConnector, args: argparse.Namespace) -> int:
    """Run one sub-command against a connector and print its result."""
    command = args.command

    if command == "add-dataset":
        connector.add_dataset(args.dataset_id, exists_ok=not args.fail_if_exists)
        print(args.dataset_id)
    elif command == "list-datasets":
        print(json.dumps(connector.list_datasets()))
    elif command == "create-table":
        created = connector.create_table_if_not_exists(
            args.dataset_id,
            args.table_id,
            load_schema(args),
            expiration_seconds=args.expiration_seconds
        )
        print("created" if created else "exists")
    elif command == "list-tables":
        print(json.dumps(connector.list_tables(args.dataset_id)))
    elif command == "browse-table":
        print(connector.browse_table(args.dataset_id, args.table_id))
    elif command == "copy-table":
        print(connector.copy_table(args.dataset_id, args.src_id, args.dst_id).job_id)
    elif command == "delete-table":
        connector.delete_table(args.dataset_id, args.table_id)
    elif command == "insert":
        errors = connector.save_events(
            args.dataset_id,
            args.table_id,
            load_rows(args.rows_file),
            raise_on_error=args.strict
        )
        if errors:
            print(json.dumps([{"index": e.index, "errors": e.errors} for e in errors]))
            return EXIT_FAILED
    elif command == "import-file":
        print(connector.import_from_file(
            args.dataset_id, args.table_id, args.source, source_format=args.source_format
        ).job_id)
    elif command == "import-gcs":
        print(connector.import_from_gcs(
            args.dataset_id, args.table_id, args.source, source_format=args.source_format
        ).job_id)
    elif command == "export-gcs":
        print(connector.export_to_gcs(args.dataset_id, args.table_id, args.gcs_uri).job_id)
    elif command == "provision":
        layout = ConfigLoader().load_from_file(args.layout_file)
        result = Provisioner(connector).apply(layout)
        print(json.dumps({
            "datasets_ensured": result.datasets_ensured,
            "tables_created": result.tables_created,
            "tables_existing": result.tables_existing,
            "failures": result.failures
        }))
        if not result.success:
            return EXIT_FAILED

    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, build the connector and run the requested command."""
    args = build_parser().parse_args(argv)

    setup_logging(log_level=args.log_level, log_format=args.log_format)
    logger = get_logger("main")

    settings = get_settings()
    logger.info("Starting warehouse connector", version=settings.version, command=args.command)

    try:
        connector = create_connector(
            credentials_path=args.credentials_path,
            project_id=args.project_id
        )
    except AuthenticationError as e:
        logger.critical("Connector initialization failed", error=str(e))
        return EXIT_FATAL

    try:
        return dispatch(connector, args)
    except (WarehouseError, ConfigurationError, ValueError, TypeError, OSError) as e:
        logger.error("Command failed", command=args.command, error=str(e))
        return EXIT_FAILED


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
