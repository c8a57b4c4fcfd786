#!/usr/bin/env python3
from __future__ import annotations

# ══════════════════════════════════════════════════════════════════════════════
#  Serafina - Discord Bot Core
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Discord host for Serafina.

Features:
- Nightly council report on a cron schedule (08:00 UTC by default)
- /councilreport slash command for on-demand reports
- /guardian slash command relaying into the guardian ops bus
- One-shot sibling handshake after the gateway is ready
"""

import logging
from typing import List, Optional

import discord
from discord.ext import commands

from ..background import spawn
from ..config import Config
from ..github import RepoDigestFetcher
from ..guardians import Guardian, GuardianBus, MessageRelay, build_council
from ..handshake import HandshakeBroadcaster
from ..report import Report, ReportComposer, select_sink
from ..scheduler import COUNCIL_JOB, Scheduler, start_council_schedule
from ..status import StatusFetcher

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════════
# BOT IDENTITY & PURPOSE
# ══════════════════════════════════════════════════════════════════════════════

BOT_IDENTITY = """
I am Serafina, the council's comms and routing guardian.

My Purpose:
- Deliver the nightly council report (system health and recent commits)
- Relay messages between the guardians
- Announce myself to sibling services on startup
"""


# ══════════════════════════════════════════════════════════════════════════════
# DISCORD BOT CLASS
# ══════════════════════════════════════════════════════════════════════════════


class SerafinaBot(commands.Bot):
    """
    Discord bot wiring the council report, scheduler, handshake and guardian bus.

    Every component receives its slice of the one :class:`Config` passed in.
    """

    def __init__(self, config: Config, scheduler: Optional[Scheduler] = None):
        intents = discord.Intents.default()
        intents.guilds = True

        super().__init__(
            command_prefix="!serafina ",
            intents=intents,
            description=BOT_IDENTITY,
        )

        self.config = config
        timeout = config.http_timeout

        # Council report
        self.composer = ReportComposer(
            StatusFetcher(config.status, timeout=timeout),
            RepoDigestFetcher(config.github, timeout=timeout),
            select_sink(config.discord, client=self, timeout=timeout),
        )
        self.scheduler = scheduler or Scheduler()

        # Handshake
        self.handshake = HandshakeBroadcaster(config.handshake, timeout=timeout)
        self._handshake_sent = False

        # Guardian bus
        self.bus = GuardianBus()
        self.guardians: List[Guardian] = build_council(self.bus)
        self.relay = MessageRelay(self.bus)

    def guardian(self, name: str) -> Optional[Guardian]:
        for g in self.guardians:
            if g.name == name:
                return g
        return None

    # ══════════════════════════════════════════════════════════════════════════
    # LIFECYCLE EVENTS
    # ══════════════════════════════════════════════════════════════════════════

    async def setup_hook(self) -> None:
        """Called when the bot is starting up."""
        logger.info("Setting up bot...")

        from .cogs.council import CouncilCog

        if not self.get_cog(CouncilCog.__name__):
            await self.add_cog(CouncilCog(self))

        start_council_schedule(self.scheduler, self.composer, self.config.schedule.report_cron)
        self.scheduler.start()

    async def on_ready(self) -> None:
        """Called when the bot is fully connected."""
        logger.info(f"[serafina] Logged in as {self.user}")

        try:
            if self.config.discord.guild_id:
                guild = discord.Object(id=self.config.discord.guild_id)
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                logger.info(f"Synced {len(synced)} commands to guild")
            else:
                synced = await self.tree.sync()
                logger.info(f"Synced {len(synced)} commands globally")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync commands: {e}")

        # on_ready fires again after reconnects; announce only once per process
        if not self._handshake_sent:
            self._handshake_sent = True
            spawn(self.handshake.broadcast_async(), name="handshake")

    async def close(self) -> None:
        self.scheduler.stop()
        await super().close()

    # ══════════════════════════════════════════════════════════════════════════
    # COMMAND BACKENDS
    # ══════════════════════════════════════════════════════════════════════════

    async def generate_council_report(self) -> Report:
        """Manual path: run the scheduled council job now and wait for it."""
        return await self.scheduler.trigger(COUNCIL_JOB)


# ══════════════════════════════════════════════════════════════════════════════
# CLI ENTRY POINT
# ══════════════════════════════════════════════════════════════════════════════


def run_discord_bot(config: Config) -> None:
    """
    Run the Discord bot until interrupted.

    Args:
        config: Configuration built at process start
    """
    bot = SerafinaBot(config)
    # Logging is configured by the CLI; keep discord.py from adding its own handler
    bot.run(config.discord.bot_token, log_handler=None)
