#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Serafina - CLI Entry Point
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Command-line interface for Serafina.

Features:
- Structured logging (console + rotating file)
- Long-running Discord bot mode
- One-shot council report, handshake and guardian bus commands
"""

import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import click

from .config import Config
from .errors import ConfigurationError, DispatchError, SerafinaError

# ══════════════════════════════════════════════════════════════════════════════
# LOGGING SETUP
# ══════════════════════════════════════════════════════════════════════════════


def setup_logging(
    verbose: bool = False,
    log_file: Optional[Path] = None,
    quiet: bool = False,
) -> None:
    """
    Configure logging for the application.

    Args:
        verbose: Enable DEBUG level
        log_file: Path to log file
        quiet: Suppress console output
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers.clear()

    fmt = "%(asctime)s [%(levelname)-.1s] %(name)s: %(message)s"
    datefmt = "%H:%M:%S"
    formatter = logging.Formatter(fmt, datefmt)

    if not quiet:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(logging.DEBUG if verbose else logging.INFO)
        console.setFormatter(formatter)
        root.addHandler(console)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,  # 5 MB
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)

        file_fmt = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
        file_handler.setFormatter(logging.Formatter(file_fmt))
        root.addHandler(file_handler)


# ══════════════════════════════════════════════════════════════════════════════
# ONE-SHOT REPORT
# ══════════════════════════════════════════════════════════════════════════════


async def run_report_once(config: Config, dry_run: bool = False):
    """
    Compose one council report and dispatch it unless ``dry_run``.

    A channel-only destination needs an authenticated Discord client; it is
    logged in over HTTP just long enough to resolve the channel and send.
    """
    import discord

    from .github import RepoDigestFetcher
    from .report import ReportComposer, select_sink
    from .status import StatusFetcher

    timeout = config.http_timeout
    status = StatusFetcher(config.status, timeout=timeout)
    digest = RepoDigestFetcher(config.github, timeout=timeout)

    if dry_run:
        return await ReportComposer(status, digest).compose()

    if config.discord.report_webhook_url:
        composer = ReportComposer(status, digest, select_sink(config.discord, timeout=timeout))
        return await composer.compose_and_send()

    if not config.discord.has_report_sink:
        raise ConfigurationError("No report destination configured (set WH_LILYBEAR or CHN_COUNCIL)")
    if not config.discord.bot_token:
        raise ConfigurationError("CHN_COUNCIL needs DISCORD_TOKEN to resolve the council channel")

    async with discord.Client(intents=discord.Intents.none()) as client:
        try:
            await client.login(config.discord.bot_token)
        except (discord.DiscordException, OSError) as e:
            raise DispatchError(f"Discord login failed: {e}", sink="channel") from e
        composer = ReportComposer(status, digest, select_sink(config.discord, client=client, timeout=timeout))
        return await composer.compose_and_send()


# ══════════════════════════════════════════════════════════════════════════════
# CLI COMMANDS
# ══════════════════════════════════════════════════════════════════════════════


@click.group(invoke_without_command=True)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress console output",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    help="Path to log file",
)
@click.pass_context
def main(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    log_file: Optional[Path],
) -> None:
    """
    Serafina

    Nightly council reports, guardian relay and sibling handshakes.
    """
    config = Config.from_env()
    ctx.ensure_object(dict)
    ctx.obj["config"] = config

    setup_logging(verbose or config.debug, log_file or config.log_file, quiet)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """
    Run the Discord bot.

    Required: DISCORD_TOKEN and one of WH_LILYBEAR / CHN_COUNCIL.
    """
    from .discord.bot import run_discord_bot

    config: Config = ctx.obj["config"]

    if not config.discord.bot_token:
        click.echo("DISCORD_TOKEN environment variable not set", err=True)
        sys.exit(1)

    try:
        run_discord_bot(config)
    except SerafinaError as e:
        click.echo(f"Cannot start bot: {e}", err=True)
        sys.exit(1)


@main.command()
@click.option(
    "--dry-run",
    "-n",
    is_flag=True,
    help="Print the report instead of sending it",
)
@click.pass_context
def report(ctx: click.Context, dry_run: bool) -> None:
    """
    Generate the council report immediately.
    """
    from .discord.templates import plain_report_text

    config: Config = ctx.obj["config"]

    try:
        composed = asyncio.run(run_report_once(config, dry_run=dry_run))
    except SerafinaError as e:
        click.echo(f"Council report failed: {e}", err=True)
        sys.exit(1)

    if dry_run:
        click.echo(plain_report_text(composed))
    else:
        click.echo("Council report dispatched.")


@main.command()
@click.pass_context
def handshake(ctx: click.Context) -> None:
    """
    Announce this service to every sibling endpoint once.
    """
    from .handshake import HandshakeBroadcaster

    config: Config = ctx.obj["config"]
    results = HandshakeBroadcaster(config.handshake, timeout=config.http_timeout).broadcast()

    if not results:
        click.echo("No sibling endpoints configured")
        return

    for r in results:
        click.echo(f"{r.url} -> {r.status if r.ok else 'failed: ' + r.error}")


@main.command()
@click.argument("sender")
@click.argument("to")
@click.argument("message")
def say(sender: str, to: str, message: str) -> None:
    """
    Say MESSAGE from SENDER to TO ("*" for everyone) on a local guardian bus.
    """
    from .guardians import GuardianBus, build_council

    bus = GuardianBus()
    guardians = {g.name: g for g in build_council(bus)}
    bus.say(sender, to, message)

    click.echo(f"Lilybear heard: {guardians['Lilybear'].last_message or '(nothing)'}")
    if guardians["ShadowFlowers"].blessing_text:
        click.echo(guardians["ShadowFlowers"].blessing_text)


@main.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """
    Print the configuration summary and any problems found.
    """
    config: Config = ctx.obj["config"]
    click.echo(config.summary())

    issues = config.validate()
    if not issues:
        click.echo("Configuration OK")
        return

    for issue in issues:
        click.echo(f"[!] {issue}")
    sys.exit(1)


# ══════════════════════════════════════════════════════════════════════════════
# ENTRY POINT
# ══════════════════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    main()
