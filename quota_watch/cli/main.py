"""
CLI interface for Quota Watch.

Builds a one-off usage report in the terminal or serves the HTTP API.
"""

import asyncio
import json
import logging
import sys

import httpx
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from quota_watch.config.loader import Credentials, MissingCredentialsError, get_monitor_config
from quota_watch.core.report import build_report

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

RISK_STYLES = {"ok": "green", "warn": "yellow", "danger": "red"}


async def _run_report(credentials: Credentials) -> dict:
    config = get_monitor_config()
    async with httpx.AsyncClient(timeout=config.request_timeout) as client:
        return await build_report(credentials, config, client)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    log_level: str = typer.Option("WARNING", "--log-level", "-l", help="Logging level"),
):
    """Quota Watch CLI."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    if ctx.invoked_subcommand is None:
        console.print("Quota Watch - Use --help to see available commands")


@app.command()
def report(
    as_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Print the raw JSON report"
    )
):
    """Build a usage report from the environment and print it."""
    try:
        credentials = Credentials.from_env()
        credentials.require_primary()
        data = asyncio.run(_run_report(credentials))
    except MissingCredentialsError as e:
        console.print(f"[red]Configuration error:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if as_json:
        console.print_json(json.dumps(data))
    else:
        _display_report(data)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8080, "--port", "-p", help="Bind port"),
):
    """Serve the report API with uvicorn."""
    import uvicorn

    uvicorn.run("quota_watch.api.app:app", host=host, port=port)


def _format_quantity(amount: float) -> str:
    return f"{amount:,.3f}".rstrip("0").rstrip(".")


def _display_report(data: dict) -> None:
    """Display the report as tables."""
    period = data["period"]
    console.print(
        f"\n[bold]Billing cycle[/bold] {period['from']} → {period['reset']}  "
        f"({period['daysElapsed']} days elapsed, {period['daysRemaining']} remaining)"
    )

    quotas = Table(title="Vercel quotas")
    quotas.add_column("Service", no_wrap=True)
    for column in ("Used", "Limit", "Proj.", "%", "Days", "Risk"):
        quotas.add_column(column)
    for name, proj in data["vercel"]["proj"].items():
        style = RISK_STYLES.get(proj["risk"], "white")
        quotas.add_row(
            name,
            f"{_format_quantity(proj['used'])} {proj['unit']}",
            f"{_format_quantity(proj['limit'])} {proj['unit']}",
            _format_quantity(proj["projected"]),
            f"{proj['projPct']:.1f}%",
            str(proj["daysUntil"]),
            f"[{style}]{proj['risk'].upper()}[/]",
        )
    console.print(quotas)

    deploys = Table(title="Deployments")
    deploys.add_column("Project")
    deploys.add_column("State")
    deploys.add_column("Last deployed")
    for short, status in data["vercel"]["deploys"].items():
        deploys.add_row(short, status["state"], status["lastDate"])
    console.print(deploys)

    openai = data["openai"]
    console.print("\n[bold]OpenAI[/bold]")
    console.print(f"Total cost: ${openai['totalCost']:,.2f}")
    console.print(f"Requests: {openai['requests']:,}")
    console.print(f"Cost/request: ${openai['costPerPrompt']:,.4f}")
    console.print(f"Projected monthly cost: ${openai['monthlyProjected']:,.2f}")


if __name__ == "__main__":
    app()
