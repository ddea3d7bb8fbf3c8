"""
Command-line interface for the fee payment reconciliation tool.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional
import logging
import sys

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import load_config, generate_default_config
from .models.transaction import ImportReport
from .parsers.bank_csv_parser import BankCsvParser
from .parsers.roster_parser import RosterParser
from .matching.engine import ReconciliationEngine
from .reports.excel_generator import ExcelReportGenerator
from .utils.exceptions import FeeReconError
from .utils.logging_config import format_skip_summary, setup_logging

console = Console()


@click.group()
@click.version_option(version=__version__)
def main():
    """Bank Statement to Fee Obligation Reconciliation Tool."""
    pass


@main.command()
@click.argument("bank_file", type=click.Path(exists=True, path_type=Path))
@click.argument("roster_file", type=click.Path(exists=True, path_type=Path))
@click.argument("obligations_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option(
    "-k",
    "--known-accounts",
    type=click.Path(exists=True, path_type=Path),
    help="CSV of trusted and blocked payer accounts",
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
@click.option(
    "--threshold",
    type=click.FloatRange(0.0, 1.0),
    default=None,
    help="Override the name match acceptance threshold",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option(
    "--dry-run", is_flag=True, help="Reconcile and show summary without generating report"
)
def reconcile(
    bank_file: Path,
    roster_file: Path,
    obligations_file: Path,
    config: Optional[Path],
    known_accounts: Optional[Path],
    output: Optional[Path],
    threshold: Optional[float],
    verbose: bool,
    dry_run: bool,
):
    """
    Reconcile a bank export against open fee obligations.

    BANK_FILE: Path to the bank CSV export
    ROSTER_FILE: Path to the children/parents roster CSV
    OBLIGATIONS_FILE: Path to the fee obligations CSV
    """
    log_level = logging.DEBUG if verbose else logging.INFO
    setup_logging(log_level)

    try:
        recon_config = load_config(config)
        setup_logging(
            log_level if verbose else recon_config.logging.level,
            log_format=recon_config.logging.format,
        )

        if threshold is not None:
            recon_config.matching.acceptance_threshold = threshold

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Parsing bank file...", total=None)
            parse_result = BankCsvParser(recon_config).parse_file(bank_file)
            progress.update(task, completed=True)

            task = progress.add_task("Loading roster...", total=None)
            roster_parser = RosterParser(recon_config)
            children = roster_parser.parse_children(roster_file)
            obligations = roster_parser.parse_obligations(obligations_file)
            accounts = (
                roster_parser.parse_known_accounts(known_accounts) if known_accounts else []
            )
            progress.update(task, completed=True)

            task = progress.add_task("Running reconciliation...", total=None)
            start_time = datetime.now()

            engine = ReconciliationEngine(recon_config)
            outcome = engine.reconcile(
                parse_result.transactions,
                children,
                obligations,
                known_accounts=accounts,
            )

            processing_time = (datetime.now() - start_time).total_seconds()
            progress.update(task, completed=True)

            report = engine.generate_report(outcome, parse_result, processing_time)

        _display_summary(report)

        if dry_run:
            console.print("\n[yellow]Dry run - no report generated[/yellow]")
            return

        if output is None:
            now = datetime.now()
            output = Path(
                recon_config.output.excel.filename_template.format(
                    date=now.strftime("%Y%m%d"), time=now.strftime("%H%M%S")
                )
            )

        report_path = ExcelReportGenerator(recon_config).generate_report(report, output)
        console.print(f"\n[green]Report generated: {report_path}[/green]")

    except FeeReconError as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command("parse-bank")
@click.argument("bank_file", type=click.Path(exists=True, path_type=Path))
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
def parse_bank(bank_file: Path, config: Optional[Path]):
    """
    Parse a bank export and display a transaction summary.

    BANK_FILE: Path to the bank CSV export
    """
    try:
        recon_config = load_config(config)
        result = BankCsvParser(recon_config).parse_file(bank_file)
    except FeeReconError as e:
        console.print(f"[red]Error parsing file: {e}[/red]")
        sys.exit(1)

    table = Table(title=f"Bank Transactions: {bank_file.name}")
    table.add_column("Booking Date")
    table.add_column("Payer")
    table.add_column("Amount", justify="right")
    table.add_column("Currency")
    table.add_column("Description")

    transactions = result.transactions
    for txn in transactions[:20]:  # Show first 20
        description = txn.description or ""
        table.add_row(
            str(txn.booking_date),
            txn.payer_name or "-",
            f"{txn.amount:,.2f}",
            txn.currency,
            description[:40] + "..." if len(description) > 40 else description,
        )

    console.print(table)

    if len(transactions) > 20:
        console.print(f"\n... and {len(transactions) - 20} more transactions")

    console.print(f"\nTotal transactions: {len(transactions)}")
    if result.skipped_count:
        console.print(
            f"[yellow]Skipped rows: {result.skipped_count} "
            f"({format_skip_summary(result.skipped)})[/yellow]"
        )


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _display_summary(report: ImportReport) -> None:
    """Display reconciliation summary in console."""
    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Imported Transactions", str(len(report.transactions)))
    table.add_row("Skipped Rows", str(report.skipped_row_count))
    table.add_row("Matched Transactions", str(report.matched_count))
    table.add_row("Payment Matches", str(len(report.matches)))
    table.add_row("Settled Obligations", str(report.settled_obligation_count))
    table.add_row("Late Payments", str(len(report.late_matches)))
    for reason, count in report.unresolved_by_reason.items():
        table.add_row(f"Unresolved ({reason})", str(count))
    table.add_row("Unapplied Credits", str(len(report.unapplied_credits)))
    table.add_row("Ignored", str(len(report.ignored)))
    table.add_row("Match Rate", f"{report.match_rate:.1f}%")
    table.add_row("Total Applied", f"{report.total_applied:,.2f}")
    table.add_row("Processing Time", f"{report.processing_time_seconds:.2f}s")

    console.print(table)


if __name__ == "__main__":
    main()
