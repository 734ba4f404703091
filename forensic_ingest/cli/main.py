"""CLI commands for importing forensic evidence.

This module provides the Typer-based ``forensic-ingest`` command.

Usage:
    forensic-ingest import /mnt/evidence --case-number CASE-17 --exhibit-name "Laptop"
    forensic-ingest show
    forensic-ingest drop-schema --yes
"""

from pathlib import Path
from typing import Annotated

import typer

from forensic_ingest.core.config import (
    Config,
    ConfigurationError,
    load_config,
    validate_config,
)
from forensic_ingest.core.logging import setup_logging
from forensic_ingest.ingest.importer import (
    ImportRequest,
    ImportSetupError,
    drop_schema,
    run_import,
    show_cases,
)

app = typer.Typer(
    name="forensic-ingest",
    help="Import forensic evidence directories into a row-store and blob-store.",
    no_args_is_help=True,
)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to forensic-ingest.yaml"),
]
RowStoreConfigOption = Annotated[
    Path | None,
    typer.Option("--row-store-config", "-x", help="YAML file with the row_store section"),
]


def _load(
    config_path: Path | None,
    row_store_config: Path | None = None,
    blob_store_config: Path | None = None,
    verbose: bool = False,
) -> Config:
    """Load configuration, set up logging and show config warnings."""
    try:
        config = load_config(config_path, row_store_config, blob_store_config)
    except ConfigurationError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from None

    setup_logging(config, verbose=verbose)
    for warning in validate_config(config):
        typer.secho(f"Warning: {warning}", fg=typer.colors.YELLOW, err=True)
    return config


@app.command("import")
def import_evidence(
    input_dir: Annotated[Path, typer.Argument(help="Directory to import (e.g. a mounted image)")],
    base_path: Annotated[
        str | None,
        typer.Option("--base-path", "-o", help="Blob-store base directory (default /data/)"),
    ] = None,
    config_path: ConfigOption = None,
    row_store_config: RowStoreConfigOption = None,
    blob_store_config: Annotated[
        Path | None,
        typer.Option("--blob-store-config", "-y", help="YAML file with the blob_store section"),
    ] = None,
    case_number: Annotated[
        str | None,
        typer.Option("--case-number", "-c", help="Case number (generated when omitted)"),
    ] = None,
    case_name: Annotated[
        str | None,
        typer.Option("--case-name", "-d", help="Descriptive name of the case"),
    ] = None,
    examiner: Annotated[
        str | None,
        typer.Option("--examiner", "-e", help="Name of the examiner"),
    ] = None,
    exhibit_name: Annotated[
        str | None,
        typer.Option("--exhibit-name", "-f", help="Name of the exhibit"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log at DEBUG level"),
    ] = False,
):
    """Import a directory as a new exhibit.

    Every entry gets a row with its metadata. Files up to the inline
    threshold are stored in the row, larger files are copied to the
    blob-store. Files that fail to upload are reported but do not stop
    the import.

    Examples:
        # Import into a new case with a generated case number
        forensic-ingest import /mnt/evidence

        # Add a second exhibit to an existing case
        forensic-ingest import /mnt/usb -c CASE-17 -f "USB stick"
    """
    config = _load(config_path, row_store_config, blob_store_config, verbose)
    request = ImportRequest(
        input_directory=input_dir,
        base_path=base_path,
        case_number=case_number,
        case_name=case_name,
        examiner=examiner,
        exhibit_name=exhibit_name,
    )

    try:
        report = run_import(config, request)
    except ImportSetupError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from None

    summary = report.summary
    stats = summary.stats
    typer.secho(
        f"Imported exhibit {report.exhibit.exhibit_id} (case number {report.case_number})",
        fg=typer.colors.GREEN,
    )
    typer.echo(f"  Rows written:    {stats.rows_written}")
    typer.echo(f"  Inline files:    {stats.inline_files} ({stats.inline_bytes} bytes)")
    typer.echo(f"  Blob-store files: {stats.external_files} ({stats.external_bytes} bytes)")
    typer.echo(f"  Skipped:         {summary.skipped}")
    if summary.failed:
        typer.secho(f"  Failed:          {summary.failed}", fg=typer.colors.YELLOW)
        for failure in summary.failures:
            typer.echo(f"    - {failure.relative_path}: {failure.error}")


@app.command("show")
def show(
    config_path: ConfigOption = None,
    row_store_config: RowStoreConfigOption = None,
):
    """List all cases and their exhibits."""
    config = _load(config_path, row_store_config)

    try:
        listing = show_cases(config)
    except ImportSetupError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from None

    if not listing:
        typer.echo("No cases found.")
        return

    for case, exhibits in listing:
        typer.secho(f"Case {case.case_id}: {case.case_number}", fg=typer.colors.CYAN, bold=True)
        if case.name:
            typer.echo(f"  Name:     {case.name}")
        if case.examiner:
            typer.echo(f"  Examiner: {case.examiner}")
        for exhibit in exhibits:
            typer.echo(
                f"  Exhibit {exhibit.exhibit_id:8} {exhibit.name or '-':20} "
                f"{exhibit.import_date or '-'}  {exhibit.base_path}"
            )


@app.command("drop-schema")
def drop(
    config_path: ConfigOption = None,
    row_store_config: RowStoreConfigOption = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", help="Do not ask for confirmation"),
    ] = False,
):
    """Delete the case, exhibit and data tables with all imported rows.

    Files in the blob-store are not removed.
    """
    config = _load(config_path, row_store_config)
    if not yes:
        typer.confirm("Delete all imported cases, exhibits and files?", abort=True)

    try:
        drop_schema(config)
    except ImportSetupError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from None

    typer.secho("Schema dropped.", fg=typer.colors.GREEN)


def main():
    """Entry point for the forensic-ingest CLI."""
    app()


if __name__ == "__main__":
    main()
