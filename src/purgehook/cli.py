"""purgehook command line interface."""

import asyncio
import logging

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from purgehook import __version__
from purgehook.config import Settings, get_settings
from purgehook.invalidation import (
    DeliveryError,
    InvalidationDispatcher,
    RenderedRequest,
    build_curl_command,
    close_http_client,
    interpret_pattern,
    render_body,
    render_headers,
)

app = typer.Typer(
    name="purgehook",
    help="purgehook - Cache invalidation webhook dispatcher",
    no_args_is_help=True,
)

console = Console()

MASK = "********"


def run_async(coro):
    """Run an async function synchronously."""
    return asyncio.run(coro)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_settings() -> Settings:
    """Load settings, exiting with a readable error when invalid."""
    try:
        return get_settings()
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(e))}")
        raise typer.Exit(2) from e


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind host (default from settings)"),
    port: int | None = typer.Option(None, "--port", help="Bind port (default from settings)"),
):
    """Start the purgehook API server."""
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level)

    host = host or settings.api_host
    port = port or settings.api_port
    console.print(f"[green]API server starting on {host}:{port}[/green]")
    uvicorn.run(
        "purgehook.main:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
    )


@app.command()
def preview(
    pattern: str = typer.Argument(..., help='Invalidation pattern, e.g. "/$/" or "/a, /b"'),
    show_secret: bool = typer.Option(False, "--show-secret", help="Show the secret in headers"),
):
    """Render the webhook request for a pattern without sending it."""
    settings = load_settings()
    config = settings.dispatch_config()

    intent = interpret_pattern(pattern, config.public_url)
    body = render_body(config.body_template, intent)
    # Mask before substitution so only ${secret} positions are hidden
    secret = MASK if config.secret and not show_secret else config.secret
    headers = render_headers(config.headers, secret)

    table = Table(title="Invalidation")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("pattern", escape(intent.pattern))
    table.add_row("purge_all", str(intent.purge_all))
    table.add_row("urls", escape("\n".join(intent.urls)))
    table.add_row("timestamp", intent.timestamp)
    console.print(table)

    request = RenderedRequest(
        method=config.method,
        url=config.webhook_url,
        headers=headers,
        body=body,
    )
    console.print("[bold]Equivalent curl command:[/bold]")
    console.print(Syntax(build_curl_command(request), "bash", word_wrap=True))


@app.command()
def send(
    pattern: str = typer.Argument(..., help='Invalidation pattern, e.g. "/$/" or "/a, /b"'),
):
    """Send the webhook for a pattern immediately, skipping the debounce window."""
    settings = load_settings()
    configure_logging(settings.log_level)

    async def _send() -> None:
        dispatcher = InvalidationDispatcher(
            settings.dispatch_config(),
            request_timeout=settings.request_timeout,
        )
        try:
            await dispatcher.dispatch(pattern)
        finally:
            await close_http_client()

    try:
        run_async(_send())
    except DeliveryError as e:
        console.print(
            f"[red]Delivery failed after {e.attempts} attempt(s):[/red] {escape(str(e))}"
        )
        raise typer.Exit(1) from e

    console.print("[green]Webhook delivered[/green]")


@app.command()
def version():
    """Show version information."""
    console.print(f"purgehook version {__version__}")


@app.command()
def show_config():
    """Show current configuration."""
    settings = load_settings()

    table = Table(title="purgehook Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for field_name in Settings.model_fields:
        value = getattr(settings, field_name)
        # Hide sensitive values
        if "secret" in field_name.lower() and value is not None:
            value = MASK
        table.add_row(field_name, escape(str(value)))

    console.print(table)


if __name__ == "__main__":
    app()
