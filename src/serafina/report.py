#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Serafina - Council Report
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Nightly council report composition and dispatch.

Gathers the system health line and the commit digest, assembles an immutable
:class:`Report`, and sends it through exactly one sink: the Lilybear webhook
when configured, otherwise the council channel. Fetchers never raise; a
dispatch failure is the only error that leaves this module.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

import discord
import requests

from .config import DiscordConfig
from .discord import templates
from .errors import ConfigurationError, DispatchError
from .github import RepoDigestFetcher
from .status import StatusFetcher

logger = logging.getLogger(__name__)

REPORT_TITLE = "🌙 Nightly Council Report"
REPORT_DESCRIPTION = "Summary of the last 24h across our realm."
REPORT_COLOR = 0x9B59B6
REPORT_FOOTER = "Reported by Lilybear"
HEALTH_SECTION = "System Health (MCP)"
COMMITS_SECTION = "Recent Commits"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ReportSection:
    """A named report field. The body is truncated to the embed field limit on creation."""

    name: str
    body: str

    def __post_init__(self):
        object.__setattr__(self, "body", templates.truncate(self.body))


@dataclass(frozen=True)
class Report:
    """A composed council report; lives for one dispatch."""

    title: str
    description: str
    color: int
    sections: Tuple[ReportSection, ...] = field(default_factory=tuple)
    footer: str = ""
    timestamp: datetime = field(default_factory=_utcnow)

    def to_embed(self) -> dict:
        return templates.build_report_embed(self)


# ══════════════════════════════════════════════════════════════════════════════
# SINKS
# ══════════════════════════════════════════════════════════════════════════════


class ReportSink(ABC):
    """Destination for a composed report."""

    name = "sink"

    @abstractmethod
    async def send(self, report: Report) -> None:
        """Deliver the report or raise :class:`DispatchError`."""


class WebhookSink(ReportSink):
    """POST the report embed to a Discord webhook."""

    name = "webhook"

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    def _post(self, payload: dict) -> None:
        try:
            r = requests.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise DispatchError(f"Webhook request failed: {e}", sink=self.name) from e
        if r.status_code not in (200, 204):
            raise DispatchError(
                f"Webhook returned HTTP {r.status_code}: {r.text[:200]}", sink=self.name, status=r.status_code
            )

    async def send(self, report: Report) -> None:
        await asyncio.to_thread(self._post, templates.webhook_payload(report))
        logger.info("Council report sent via webhook")


class ChannelSink(ReportSink):
    """Send the report embed to a channel resolved through the Discord client."""

    name = "channel"

    def __init__(self, client, channel_id: int):
        self.client = client
        self.channel_id = channel_id

    async def _resolve(self):
        channel = self.client.get_channel(self.channel_id)
        if channel is None:
            try:
                channel = await self.client.fetch_channel(self.channel_id)
            except discord.HTTPException as e:
                raise DispatchError(f"Cannot resolve channel {self.channel_id}: {e}", sink=self.name) from e
        # Categories and forums resolve by ID but cannot take messages
        if not isinstance(channel, discord.abc.Messageable):
            raise DispatchError(
                f"Channel {self.channel_id} is a {type(channel).__name__}, not a text channel", sink=self.name
            )
        return channel

    async def send(self, report: Report) -> None:
        channel = await self._resolve()
        try:
            await channel.send(embed=discord.Embed.from_dict(report.to_embed()))
        except discord.HTTPException as e:
            raise DispatchError(f"Channel send failed: {e}", sink=self.name) from e
        logger.info("Council report sent to channel %s", self.channel_id)


def select_sink(config: DiscordConfig, client=None, timeout: float = 10.0) -> ReportSink:
    """
    Pick the report sink. The webhook wins when both destinations are set.

    Raises:
        ConfigurationError: when no usable destination is configured
    """
    if config.report_webhook_url:
        return WebhookSink(config.report_webhook_url, timeout=timeout)
    if config.council_channel_id:
        if client is None:
            raise ConfigurationError("CHN_COUNCIL is set but no Discord client is available to resolve it")
        return ChannelSink(client, config.council_channel_id)
    raise ConfigurationError("No report destination configured (set WH_LILYBEAR or CHN_COUNCIL)")


# ══════════════════════════════════════════════════════════════════════════════
# COMPOSER
# ══════════════════════════════════════════════════════════════════════════════


class ReportComposer:
    """
    Compose the council report and hand it to the sink.

    Runs are serialized: concurrent triggers each produce and send their own
    report, one after the other.
    """

    def __init__(
        self,
        status_fetcher: StatusFetcher,
        digest_fetcher: RepoDigestFetcher,
        sink: Optional[ReportSink] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.status_fetcher = status_fetcher
        self.digest_fetcher = digest_fetcher
        self.sink = sink
        self.clock = clock or _utcnow
        self._lock = asyncio.Lock()

    async def compose(self) -> Report:
        """Fetch both fragments concurrently and build the report."""
        status, digest = await asyncio.gather(
            asyncio.to_thread(self.status_fetcher.fetch_status),
            self.digest_fetcher.fetch_all(),
        )
        return Report(
            title=REPORT_TITLE,
            description=REPORT_DESCRIPTION,
            color=REPORT_COLOR,
            sections=(
                ReportSection(HEALTH_SECTION, status),
                ReportSection(COMMITS_SECTION, digest),
            ),
            footer=REPORT_FOOTER,
            timestamp=self.clock(),
        )

    async def compose_and_send(self) -> Report:
        """Compose and dispatch one report. Dispatch errors propagate."""
        if self.sink is None:
            raise ConfigurationError("ReportComposer has no sink to dispatch to")
        async with self._lock:
            report = await self.compose()
            logger.info("Dispatching council report via %s", self.sink.name)
            await self.sink.send(report)
            return report
