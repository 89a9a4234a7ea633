"""Crosspay CLI - Command line interface."""

from __future__ import annotations

import contextlib
import json
import logging
import sys
from collections.abc import Iterator
from datetime import timedelta
from typing import Any

import click
import httpx
import structlog
from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from crosspay.client import CrosspayClient
from crosspay.config import CrosspaySettings, flatten_config, get_config, load_config_from_file
from crosspay.errors import CrosspayError
from crosspay.webhooks import VerificationContext, WebhookEnvelope, WebhookVerifier

console = Console()


def configure_logging(log_level: str) -> None:
    """Route structlog output through a level-filtering logger."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper())
        ),
    )


@contextlib.contextmanager
def _handle_errors(title: str) -> Iterator[None]:
    try:
        yield
    except (CrosspayError, httpx.HTTPError, ValueError) as e:
        console.print(Panel(f"[red]{escape(str(e))}[/red]", title=title, border_style="red"))
        sys.exit(1)


def _client(ctx: click.Context) -> CrosspayClient:
    settings: CrosspaySettings = ctx.obj
    return CrosspayClient(settings.client_config())


def _dump(value: BaseModel | None) -> Any:
    if value is None:
        return None
    return value.model_dump(mode="json", by_alias=True, exclude_none=True)


def _echo_json(value: Any) -> None:
    click.echo(json.dumps(value, indent=2))


def _print_record(title: str, value: BaseModel | None) -> None:
    if value is None:
        console.print(f"[dim]No {title.lower()}[/dim]")
        return

    table = Table(title=title, show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for key, field_value in _dump(value).items():
        table.add_row(key, escape(str(field_value)))
    console.print(table)


@click.group()
@click.option(
    "--config", "-c",
    "config_file",
    type=click.Path(exists=True),
    help="Path to YAML or TOML config file",
)
@click.option("--api-key", envvar="CROSSPAY_API_KEY", help="Tenant API key")
@click.option("--base-url", default=None, help="Crosspay API base URL")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="warning",
    help="Log level (default: warning, use --verbose for debug)",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_file: str | None,
    api_key: str | None,
    base_url: str | None,
    verbose: bool,
    log_level: str,
):
    """Crosspay - query your tenant and verify webhooks."""
    configure_logging("debug" if verbose else log_level)

    values: dict[str, Any] = {}
    if config_file:
        try:
            values = flatten_config(load_config_from_file(config_file))
        except (FileNotFoundError, ValueError) as e:
            console.print(f"[red]Failed to load config: {escape(str(e))}[/red]")
            sys.exit(1)

    if api_key:
        values["api_key"] = api_key
    if base_url:
        values["base_url"] = base_url

    try:
        ctx.obj = CrosspaySettings(**values) if values else get_config()
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {escape(str(e))}[/red]")
        sys.exit(1)


@main.command()
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def products(ctx: click.Context, json_output: bool):
    """List tenant products."""
    with _handle_errors("Request Failed"), _client(ctx) as client:
        items = client.list_products()

    if json_output:
        _echo_json([_dump(item) for item in items])
        return

    if not items:
        console.print("[dim]No products[/dim]")
        return

    table = Table(title="Products")
    table.add_column("Product ID", style="cyan")
    table.add_column("Name")
    table.add_column("Entitlement ID", style="dim")
    for item in items:
        table.add_row(item.product_id, item.name or "", item.entitlement_id or "")
    console.print(table)


@main.command()
@click.argument("environment", required=False)
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def entitlements(ctx: click.Context, environment: str | None, json_output: bool):
    """List tenant entitlements for ENVIRONMENT."""
    environment = environment or ctx.obj.environment
    with _handle_errors("Request Failed"), _client(ctx) as client:
        items = client.list_entitlements(environment)

    if json_output:
        _echo_json([_dump(item) for item in items])
        return

    if not items:
        console.print(f"[dim]No entitlements in {environment}[/dim]")
        return

    table = Table(title=f"Entitlements ({environment})")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    for item in items:
        table.add_row(item.id, item.name or "")
    console.print(table)


@main.command()
@click.argument("email")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def subscription(ctx: click.Context, email: str, json_output: bool):
    """Show the active subscription of a customer."""
    with _handle_errors("Request Failed"), _client(ctx) as client:
        result = client.get_active_subscription(email)

    if json_output:
        _echo_json(_dump(result))
    else:
        _print_record("Active subscription", result)


@main.command("active-product")
@click.argument("email")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def active_product(ctx: click.Context, email: str, json_output: bool):
    """Show the product of a customer's active subscription."""
    with _handle_errors("Request Failed"), _client(ctx) as client:
        result = client.get_active_product(email)

    if json_output:
        _echo_json(_dump(result))
    else:
        _print_record("Active product", result)


@main.command("active-entitlement")
@click.argument("email")
@click.option("--environment", "-e", default=None, help="Entitlement environment")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def active_entitlement(
    ctx: click.Context,
    email: str,
    environment: str | None,
    json_output: bool,
):
    """Show the entitlement granted to a customer."""
    environment = environment or ctx.obj.environment
    with _handle_errors("Request Failed"), _client(ctx) as client:
        result = client.get_active_entitlement(email, environment)

    if json_output:
        _echo_json(_dump(result))
    else:
        _print_record("Active entitlement", result)


@main.command()
@click.option("--limit", type=int, default=None, help="Page size")
@click.option("--cursor", default=None, help="Cursor from a previous page")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def customers(ctx: click.Context, limit: int | None, cursor: str | None, json_output: bool):
    """List customers, one page at a time."""
    with _handle_errors("Request Failed"), _client(ctx) as client:
        page = client.list_customers(limit=limit, cursor=cursor)

    if json_output:
        _echo_json(_dump(page))
        return

    if not page.data:
        console.print("[dim]No customers[/dim]")
    else:
        table = Table(title="Customers")
        table.add_column("ID", style="dim")
        table.add_column("Email", style="cyan")
        table.add_column("Name")
        for customer in page.data:
            table.add_row(customer.id or "", customer.email or "", customer.name or "")
        console.print(table)

    if page.next_cursor:
        console.print(f"\n[bold]Next cursor:[/bold] {page.next_cursor}")


@main.command()
@click.argument("email")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def customer(ctx: click.Context, email: str, json_output: bool):
    """Show extended information about a customer."""
    with _handle_errors("Request Failed"), _client(ctx) as client:
        result = client.get_customer_info(email)

    if json_output:
        _echo_json(_dump(result))
    else:
        _print_record("Customer", result)


@main.command("verify-webhook")
@click.argument("payload", type=click.File("rb"))
@click.option("--signature", "-s", required=True, help="Signature header value (base64)")
@click.option("--timestamp", "-t", required=True, help="Timestamp header value (RFC 3339)")
@click.option(
    "--public-key",
    "public_key_file",
    type=click.File("r"),
    default=None,
    help="PEM public key file (default: CROSSPAY_WEBHOOK_PUBLIC_KEY)",
)
@click.option(
    "--tolerance",
    type=float,
    default=None,
    help="Timestamp window in seconds (default: 300)",
)
@click.pass_context
def verify_webhook(
    ctx: click.Context,
    payload: Any,
    signature: str,
    timestamp: str,
    public_key_file: Any,
    tolerance: float | None,
):
    """Verify a webhook delivery stored in PAYLOAD ('-' for stdin)."""
    settings: CrosspaySettings = ctx.obj

    with _handle_errors("Configuration Error"):
        if public_key_file is not None:
            context = VerificationContext(
                public_key_pem=public_key_file.read(),
                max_clock_skew=timedelta(seconds=settings.webhook_tolerance_seconds),
            )
        else:
            context = settings.verification_context()

    if tolerance is not None:
        context = VerificationContext(
            public_key_pem=context.public_key_pem,
            max_clock_skew=timedelta(seconds=tolerance),
        )

    envelope = WebhookEnvelope(
        raw_payload=payload.read(),
        signature_header=signature,
        timestamp_header=timestamp,
    )
    result = WebhookVerifier(context).check(envelope)

    if not result:
        console.print(
            Panel(
                f"[red]{escape(result.error or '')}[/red]",
                title=f"Verification Failed ({result.status.value})",
                border_style="red",
            )
        )
        sys.exit(1)

    console.print("[green]Webhook verified[/green]", highlight=False)
    _echo_json(_dump(result.event))


@main.command("config")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def show_config(ctx: click.Context, json_output: bool):
    """Show the effective settings, with secrets masked."""
    settings: CrosspaySettings = ctx.obj
    display = settings.to_display_dict()

    if json_output:
        _echo_json(display)
        return

    table = Table(title="Configuration", show_header=False)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    for key, value in display.items():
        table.add_row(key, escape(str(value)) if value is not None else "[dim]not set[/dim]")
    console.print(table)


@main.command()
def version():
    """Show version information."""
    from crosspay import __version__

    console.print(f"[bold]Version:[/bold] {__version__}")
    console.print(f"[bold]Python:[/bold] {sys.version}")


if __name__ == "__main__":
    main()
