# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Command-line interface for mail-dispatch.

Usage:
    mail-dispatch providers
    mail-dispatch send --config mail.ini --from noreply@example.com \\
        --to user@example.com --subject "Hello" --text "Hi"
    mail-dispatch validate --config mail.ini --section gateway ...

The provider configuration is read from an INI section (``[provider]`` by
default); the optional ``[dispatch]`` section of the same file sets the
network timeouts. ``send`` and ``validate`` exit with status 0 when the
result is OK and 1 otherwise.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Callable

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config_loader import load_dispatch_settings, load_provider_config
from .dispatcher import Dispatcher
from .message import Message
from .models import GATEWAY_PROVIDER
from .results import SendResult
from .transports import supported_bindings

console = Console()
err_console = Console(stderr=True)


def run_async(coro):
    """Execute an async coroutine synchronously from CLI context."""
    return asyncio.run(coro)


def print_error(message: str) -> None:
    err_console.print(f"[red]Error:[/red] {escape(message)}")


def print_json(data: Any) -> None:
    console.print_json(json.dumps(data, indent=2, default=str))


def print_result(result: SendResult, as_json: bool) -> None:
    """Print a ``SendResult`` as JSON or as a short status block."""
    if as_json:
        print_json(result.to_dict())
        return

    if result.ok:
        console.print(f"[green]✓[/green] {escape(result.message)} [dim]({result.code})[/dim]")
    else:
        err_console.print(f"[red]✗[/red] {escape(result.message)} [dim]({result.code})[/dim]")

    extra = dict(result.extra or {})
    for error in extra.pop("errors", []):
        err_console.print(f"  [yellow]{escape(error['path'])}[/yellow]: {escape(error['message'])}")
    for key, value in extra.items():
        console.print(f"  {key}: {escape(str(value))}")


def message_options(func: Callable) -> Callable:
    """Attach the message-building options shared by ``send`` and ``validate``."""
    options = [
        click.option("--config", "-c", "config_path", required=True,
                     type=click.Path(exists=True, dir_okay=False), help="INI file with the provider section."),
        click.option("--section", "-s", default="provider", show_default=True,
                     help="INI section holding the provider configuration."),
        click.option("--from", "sender", required=True, help="Sender address."),
        click.option("--from-name", default=None, help="Sender display name."),
        click.option("--to", "to", multiple=True, help="Recipient address (repeatable)."),
        click.option("--cc", multiple=True, help="Cc address (repeatable)."),
        click.option("--bcc", multiple=True, help="Bcc address (repeatable)."),
        click.option("--reply-to", default=None, help="Reply-To address."),
        click.option("--subject", required=True, help="Message subject."),
        click.option("--text", default=None, help="Plain text body."),
        click.option("--html", default=None, help="HTML body."),
        click.option("--priority", type=click.IntRange(1, 5), default=5, show_default=True,
                     help="Priority (1=highest, 5=lowest)."),
        click.option("--attach", multiple=True, help="Attachment path or http(s) URL (repeatable)."),
        click.option("--json", "as_json", is_flag=True, help="Output the result as JSON."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_message(
    sender: str,
    from_name: str | None,
    to: tuple[str, ...],
    cc: tuple[str, ...],
    bcc: tuple[str, ...],
    reply_to: str | None,
    subject: str,
    text: str | None,
    html: str | None,
    priority: int,
    attach: tuple[str, ...],
) -> Message:
    message = Message().set_from(sender, from_name).set_subject(subject).set_priority(priority)
    message.add_recipients("to", to)
    message.add_recipients("cc", cc)
    message.add_recipients("bcc", bcc)
    if reply_to:
        message.set_reply_to(reply_to)
    if text is not None:
        message.set_text(text)
    if html is not None:
        message.set_html(html)
    message.add_attachment(list(attach))
    return message


def _load_config(config_path: str, section: str) -> dict[str, Any]:
    try:
        return load_provider_config(config_path, section)
    except (KeyError, FileNotFoundError) as e:
        print_error(str(e).strip("'\""))
        sys.exit(1)


@click.group()
@click.version_option(package_name="mail-dispatch")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """mail-dispatch: send one message through any configured provider."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command("providers")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def providers(as_json: bool) -> None:
    """List supported provider and driver combinations."""
    bindings = [(provider, driver or "-") for provider, driver in supported_bindings()]
    bindings.append((GATEWAY_PROVIDER, "-"))

    if as_json:
        print_json([{"provider": p, "driver": d} for p, d in bindings])
        return

    table = Table(title="Supported Providers")
    table.add_column("Provider", style="cyan")
    table.add_column("Driver")
    for provider, driver in bindings:
        table.add_row(provider, driver)
    console.print(table)


@main.command("send")
@message_options
def send(config_path: str, section: str, as_json: bool, **fields: Any) -> None:
    """Build a message from the options and send it."""
    config = _load_config(config_path, section)
    try:
        settings = load_dispatch_settings(config_path)
    except ValueError as e:
        print_error(str(e))
        sys.exit(1)

    message = build_message(**fields)
    result = run_async(message.send(config, Dispatcher(settings)))
    print_result(result, as_json)
    sys.exit(0 if result.ok else 1)


@main.command("validate")
@message_options
def validate(config_path: str, section: str, as_json: bool, **fields: Any) -> None:
    """Check the provider configuration and message without sending."""
    config = _load_config(config_path, section)
    result = build_message(**fields).validate(config)
    print_result(result, as_json)
    sys.exit(0 if result.ok else 1)


if __name__ == "__main__":
    main()
