"""
Command-line interface for the YNAB account reconciliation tool.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional
import asyncio
import sys

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import LedgerCredentials, ReconConfig, generate_default_config, load_config
from .ledger.client import YNABClient
from .models.report import ReconciliationReport
from .models.transaction import ColumnHints
from .parsers.statement_parser import NormalizationResult, StatementNormalizer
from .reconciler import AccountReconciler, ReconcileRequest
from .reports.excel_generator import ExcelReportGenerator
from .reports.formatter import ReportFormatter
from .utils.currency import format_currency
from .utils.exceptions import ReconciliationError, StatementParseError
from .utils.logging_config import configure_logging

console = Console()

PREVIEW_ROWS = 20


def _hint_options(func):
    """Attach the three column hint options to a command."""
    func = click.option(
        "--amount-column", default=None, help="Header of the amount column"
    )(func)
    func = click.option(
        "--description-column", default=None, help="Header of the description column"
    )(func)
    func = click.option("--date-column", default=None, help="Header of the date column")(
        func
    )
    return func


def _configure(config: Optional[Path], verbose: bool) -> ReconConfig:
    """Load configuration and set up logging from it."""
    recon_config = load_config(config)
    configure_logging(recon_config.logging, verbose)
    return recon_config


@click.group()
@click.version_option(version=__version__)
def main():
    """YNAB Account Reconciliation Tool."""
    pass


@main.command()
@click.argument("statement_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-b", "--balance", "statement_balance", required=True, help="Statement ending balance"
)
@click.option(
    "-d",
    "--date",
    "statement_date",
    required=True,
    type=click.DateTime(formats=["%Y-%m-%d"]),
    help="Statement date (YYYY-MM-DD)",
)
@click.option("--account-name", default=None, help="Account name (partial match allowed)")
@click.option("--account-id", default=None, help="Account id")
@click.option("--budget-id", default=None, help="Budget id (defaults to YNAB_BUDGET_ID)")
@_hint_options
@click.option("--tolerance", default="0.01", show_default=True, help="Amount tolerance")
@click.option(
    "--lookback-months",
    type=int,
    default=None,
    help="Months of ledger history before the statement date",
)
@click.option(
    "--format",
    "response_format",
    type=click.Choice(["markdown", "json"]),
    default="markdown",
    show_default=True,
)
@click.option("--excel", type=click.Path(path_type=Path), help="Also write an Excel workbook")
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def reconcile(
    statement_file: Path,
    statement_balance: str,
    statement_date: datetime,
    account_name: Optional[str],
    account_id: Optional[str],
    budget_id: Optional[str],
    date_column: Optional[str],
    description_column: Optional[str],
    amount_column: Optional[str],
    tolerance: str,
    lookback_months: Optional[int],
    response_format: str,
    excel: Optional[Path],
    config: Optional[Path],
    verbose: bool,
):
    """
    Reconcile a YNAB account against a bank statement export.

    STATEMENT_FILE: Path to the delimited bank statement export
    """
    try:
        recon_config = _configure(config, verbose)

        request = ReconcileRequest.parse(
            budget_id=budget_id,
            account_id=account_id,
            account_name=account_name,
            statement_data=StatementNormalizer(recon_config.statement).read_statement(
                statement_file
            ),
            statement_balance=statement_balance,
            statement_date=statement_date.date(),
            tolerance=tolerance,
            column_hints=ColumnHints(date_column, description_column, amount_column),
            response_format=response_format,
            lookback_months=lookback_months,
        )

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Reconciling account...", total=None)
            report = asyncio.run(_reconcile(recon_config, request))
            progress.update(task, completed=True)

        text = ReportFormatter(recon_config.report).render(report, response_format)
        if response_format == "json":
            click.echo(text)
        else:
            console.print(Markdown(text))

        if excel:
            report_path = ExcelReportGenerator(
                recon_config.report.currency_symbol
            ).generate_report(report, excel)
            console.print(f"\n[green]Report generated: {report_path}[/green]")

    except StatementParseError as e:
        console.print("[red]Error reconciling account:[/red]")
        console.print(e.diagnostic(), markup=False)
        sys.exit(1)
    except ReconciliationError as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


async def _reconcile(config: ReconConfig, request: ReconcileRequest) -> ReconciliationReport:
    credentials = LedgerCredentials()
    async with YNABClient.from_config(credentials, config.ledger) as client:
        reconciler = AccountReconciler(client, config, credentials.budget_id)
        return await reconciler.reconcile(request)


@main.command("parse-statement")
@click.argument("statement_file", type=click.Path(exists=True, path_type=Path))
@_hint_options
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def parse_statement(
    statement_file: Path,
    date_column: Optional[str],
    description_column: Optional[str],
    amount_column: Optional[str],
    config: Optional[Path],
    verbose: bool,
):
    """
    Normalize a bank statement export and display the result.

    STATEMENT_FILE: Path to the delimited bank statement export
    """
    try:
        recon_config = _configure(config, verbose)
        normalizer = StatementNormalizer(recon_config.statement)
        result = normalizer.parse_file(
            statement_file, ColumnHints(date_column, description_column, amount_column)
        )
    except StatementParseError as e:
        console.print(e.diagnostic(), markup=False)
        sys.exit(1)
    except (ReconciliationError, OSError) as e:
        console.print(f"[red]Error parsing file: {e}[/red]")
        sys.exit(1)

    _display_columns(result)

    table = Table(title=f"Statement Transactions: {statement_file.name}")
    table.add_column("Date")
    table.add_column("Description")
    table.add_column("Amount", justify="right")

    for txn in result.transactions[:PREVIEW_ROWS]:
        table.add_row(
            txn.date.isoformat(),
            (
                txn.description[:40] + "..."
                if len(txn.description) > 40
                else txn.description
            ),
            format_currency(txn.amount, recon_config.report.currency_symbol),
        )

    console.print(table)

    if len(result.transactions) > PREVIEW_ROWS:
        console.print(f"\n... and {len(result.transactions) - PREVIEW_ROWS} more transactions")

    console.print(
        f"\nTotal transactions: {result.parsed_rows}/{result.total_rows} "
        f"({result.success_rate:.1%})"
    )
    for error in result.errors:
        console.print(f"[yellow]{error}[/yellow]")


@main.command()
@click.option("--budget-id", default=None, help="Budget id (defaults to YNAB_BUDGET_ID)")
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def accounts(budget_id: Optional[str], config: Optional[Path], verbose: bool):
    """
    List the open accounts of a budget.

    Without a budget id, lists the budgets the token can see.
    """
    try:
        recon_config = _configure(config, verbose)
        credentials = LedgerCredentials()
        budget_id = budget_id or credentials.budget_id
        rows = asyncio.run(_fetch_listing(recon_config, credentials, budget_id))
    except ReconciliationError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if budget_id is None:
        table = Table(title="Budgets")
        table.add_column("Name", style="cyan")
        table.add_column("ID")
        for budget in rows:
            table.add_row(budget["name"], budget["id"])
        console.print(table)
        console.print("\nPass --budget-id or set YNAB_BUDGET_ID to list accounts.")
        return

    table = Table(title="Accounts")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Balance", justify="right")
    table.add_column("ID")
    for account in rows:
        if account.closed or account.deleted:
            continue
        table.add_row(
            account.name,
            account.type,
            format_currency(account.balance_value, recon_config.report.currency_symbol),
            account.id,
        )
    console.print(table)


async def _fetch_listing(
    config: ReconConfig, credentials: LedgerCredentials, budget_id: Optional[str]
) -> list:
    async with YNABClient.from_config(credentials, config.ledger) as client:
        if budget_id is None:
            return await client.list_budgets()
        return await client.get_accounts(budget_id)


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _display_columns(result: NormalizationResult) -> None:
    """Display detected statement columns in console."""
    used = set(result.column_indexes.values())

    table = Table(title="Column Analysis")
    table.add_column("Column", style="cyan")
    table.add_column("Detected Type")
    table.add_column("Confidence", justify="right")
    table.add_column("Used", justify="center")

    for i, detection in enumerate(result.column_analysis):
        table.add_row(
            detection.column_name,
            detection.type.value,
            f"{detection.confidence:.0%}",
            "✓" if i in used else "",
        )

    console.print(table)


if __name__ == "__main__":
    main()
