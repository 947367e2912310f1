"""Command-line interface for the mail sender.

Usage:
    # Serve the HTTP API described by a JSON config
    mailsender serve --config config.json

    # Show the effective configuration (passwords masked)
    mailsender check-config --config config.json

    # Send one message directly
    mailsender send --server smtp.example.com:465 --tls \\
        --from "User Name <user@example.com>" --password secret \\
        --to "Destination <dest@example.org>" \\
        --subject "Your subject" --body "Just a test mail"
"""

from __future__ import annotations

import asyncio
import sys
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from mailsender import __version__
from mailsender.config_loader import default_config_path, load_config
from mailsender.errors import MailSenderError
from mailsender.logger import configure_logging
from mailsender.models import MailAddress, MailRequest, MailSetup, ServiceConfig
from mailsender.service import MailSenderService

console = Console()
err_console = Console(stderr=True)


def run_async(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def _mask(value: Any) -> str:
    return "********" if value else ""


@click.group()
@click.version_option(__version__)
@click.option("--log-level", default=None, help="Logging level (default: MAILSENDER_LOG_LEVEL or INFO).")
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """Send email over SMTP, directly or through a small HTTP service."""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = configure_logging(log_level)


@main.command("serve")
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False), default=None,
              help="Path to the JSON config (default: MAILSENDER_CONFIG or config.json).")
@click.option("--host", "-h", default=None, help="Host to bind to (default: servicesetup.host).")
@click.pass_context
def serve(ctx: click.Context, config_path: str | None, host: str | None) -> None:
    """Serve POST /sendmail using the JSON config."""
    from mailsender.server import run

    try:
        config = load_config(config_path)
        run(config, host=host, log_level=ctx.obj["log_level"].lower())
    except MailSenderError as exc:
        print_error(str(exc))
        sys.exit(1)


@main.command("check-config")
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False), default=None,
              help="Path to the JSON config (default: MAILSENDER_CONFIG or config.json).")
def check_config(config_path: str | None) -> None:
    """Load the JSON config and print the effective settings."""
    try:
        config = load_config(config_path)
    except MailSenderError as exc:
        print_error(str(exc))
        sys.exit(1)

    table = Table(title=f"Config: {config_path or default_config_path()}")
    table.add_column("Section", style="cyan")
    table.add_column("Key")
    table.add_column("Value")

    mail = config.mail.model_dump(by_alias=True)
    mail["defaultpassword"] = _mask(mail.get("defaultpassword"))
    for key, value in mail.items():
        table.add_row("mailsetup", key, str(value))
    for key, value in config.setup.model_dump(by_alias=True).items():
        table.add_row("servicesetup", key, str(value))
    console.print(table)
    print_success("Config is valid")


@main.command("send")
@click.option("--server", "-s", required=True, help="SMTP server as host:port.")
@click.option("--from", "from_", default="", help="Sender, e.g. 'User Name <user@example.com>'. Also the AUTH user.")
@click.option("--to", "to", required=True, help="Recipient, e.g. 'Destination <dest@example.org>'.")
@click.option("--subject", default="", help="Subject line.")
@click.option("--body", default=None, help="Message body.")
@click.option("--body-file", type=click.File("r"), default=None, help="Read the body from a file ('-' for stdin).")
@click.option("--password", envvar="MAILSENDER_PASSWORD", default="", help="SMTP password for the sender.")
@click.option("--auth/--no-auth", default=None, help="Authenticate (default: when a password is given).")
@click.option("--tls", is_flag=True, help="Connect over TLS (requires authentication).")
@click.option("--insecure", is_flag=True, help="Skip certificate verification.")
@click.option("--ca-file", type=click.Path(dir_okay=False), default="", help="PEM CA file trusted for the server.")
@click.option("--starttls", is_flag=True, help="Use STARTTLS instead of implicit TLS.")
@click.option("--timeout", type=float, default=10.0, show_default=True, help="SMTP timeout in seconds.")
def send(
    server: str,
    from_: str,
    to: str,
    subject: str,
    body: str | None,
    body_file,
    password: str,
    auth: bool | None,
    tls: bool,
    insecure: bool,
    ca_file: str,
    starttls: bool,
    timeout: float,
) -> None:
    """Send a single message and print the number of bytes written."""
    if body is not None and body_file is not None:
        raise click.UsageError("Use either --body or --body-file, not both.")
    text = body_file.read() if body_file is not None else (body or "")

    use_auth = auth if auth is not None else bool(password)
    if tls and not use_auth:
        raise click.UsageError("--tls requires authentication (--password or --auth).")

    mail_setup = MailSetup(
        server=server,
        use_auth=use_auth,
        use_tls=tls,
        use_insecure_tls=insecure,
        server_ca_file=ca_file,
        starttls=starttls,
        timeout=timeout,
    )
    request = MailRequest(
        from_addr=MailAddress.model_validate(from_),
        to=MailAddress.model_validate(to),
        subject=subject,
        body=text,
        password=password,
    )
    service = MailSenderService(ServiceConfig(mail=mail_setup))
    try:
        result = run_async(service.send(request))
    except MailSenderError as exc:
        print_error(str(exc))
        sys.exit(1)
    print_success(f"Sent {result.bytes_written} bytes")


if __name__ == "__main__":
    main()
