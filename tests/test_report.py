import asyncio
import dataclasses
from datetime import datetime, timezone
from types import SimpleNamespace

import discord
import pytest
import requests

from fakes import FakeClock, FakeResp, RecordingSink, StubDigest, StubStatus
from serafina.config import DiscordConfig
from serafina.discord import templates
from serafina.errors import ConfigurationError, DispatchError
from serafina.report import (
    COMMITS_SECTION,
    HEALTH_SECTION,
    REPORT_TITLE,
    ChannelSink,
    Report,
    ReportComposer,
    ReportSection,
    WebhookSink,
    select_sink,
)

NOW = datetime(2025, 1, 15, 8, 0, tzinfo=timezone.utc)


def _discord_config(webhook="", channel=None):
    return DiscordConfig(bot_token="t", guild_id=None, council_channel_id=channel, report_webhook_url=webhook)


class DummyChannel(discord.abc.Messageable):
    def __init__(self):
        self.sent = []

    async def send(self, content=None, *, embed=None):
        self.sent.append(embed)


class DummyClient:
    def __init__(self, channel=None, fetched=None, fetch_error=None):
        self._channel = channel
        self._fetched = fetched
        self._fetch_error = fetch_error
        self.fetch_calls = 0

    def get_channel(self, channel_id):
        return self._channel

    async def fetch_channel(self, channel_id):
        self.fetch_calls += 1
        if self._fetch_error is not None:
            raise self._fetch_error
        return self._fetched


# ══════════════════════════════════════════════════════════════════════════════
# DATA MODEL
# ══════════════════════════════════════════════════════════════════════════════


def test_section_body_is_truncated_not_rejected():
    section = ReportSection("Long", "x" * 5000)
    assert len(section.body) == 1024


def test_empty_section_body_renders_dash():
    assert ReportSection("Empty", "").body == "—"


def test_report_is_immutable():
    report = Report(title="t", description="d", color=1)
    with pytest.raises(dataclasses.FrozenInstanceError):
        report.title = "changed"


# ══════════════════════════════════════════════════════════════════════════════
# COMPOSER
# ══════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_compose_builds_two_sections_in_order():
    composer = ReportComposer(StubStatus("Healthy."), StubDigest("• a/b: 0 commits in last 24h"), clock=FakeClock(NOW))
    report = await composer.compose()

    assert report.title == REPORT_TITLE == "🌙 Nightly Council Report"
    assert report.description == "Summary of the last 24h across our realm."
    assert [s.name for s in report.sections] == [HEALTH_SECTION, COMMITS_SECTION]
    assert report.sections[0].body == "Healthy."
    assert report.sections[1].body == "• a/b: 0 commits in last 24h"
    assert report.footer == "Reported by Lilybear"
    assert report.timestamp == NOW


@pytest.mark.asyncio
async def test_long_fragments_truncated_in_dispatched_payload(monkeypatch):
    posted = {}

    def fake_post(url, json=None, timeout=None):
        posted["url"] = url
        posted["json"] = json
        return FakeResp(status_code=204)

    monkeypatch.setattr("requests.post", fake_post)

    sink = WebhookSink("https://discord.test/webhook")
    composer = ReportComposer(StubStatus("s" * 3000), StubDigest("d" * 2048), sink, clock=FakeClock(NOW))
    await composer.compose_and_send()

    embed = posted["json"]["embeds"][0]
    assert posted["url"] == "https://discord.test/webhook"
    assert [f["name"] for f in embed["fields"]] == [HEALTH_SECTION, COMMITS_SECTION]
    assert [len(f["value"]) for f in embed["fields"]] == [1024, 1024]
    assert embed["footer"] == {"text": "Reported by Lilybear"}
    assert embed["color"] == 0x9B59B6
    assert embed["timestamp"] == NOW.isoformat()


@pytest.mark.asyncio
async def test_dispatch_failure_propagates(monkeypatch):
    monkeypatch.setattr("requests.post", lambda *a, **k: FakeResp(status_code=500, text="server error"))
    composer = ReportComposer(StubStatus(), StubDigest(), WebhookSink("https://discord.test/webhook"))

    with pytest.raises(DispatchError) as exc:
        await composer.compose_and_send()
    assert exc.value.status == 500
    assert exc.value.sink == "webhook"


@pytest.mark.asyncio
async def test_webhook_network_error_is_dispatch_error(monkeypatch):
    def fake_post(*a, **k):
        raise requests.ConnectionError("down")

    monkeypatch.setattr("requests.post", fake_post)
    with pytest.raises(DispatchError):
        await WebhookSink("https://discord.test/webhook").send(Report(title="t", description="d", color=1))


@pytest.mark.asyncio
async def test_compose_and_send_without_sink():
    with pytest.raises(ConfigurationError):
        await ReportComposer(StubStatus(), StubDigest()).compose_and_send()


@pytest.mark.asyncio
async def test_concurrent_runs_both_dispatch():
    sink = RecordingSink()
    status = StubStatus()
    composer = ReportComposer(status, StubDigest(), sink)

    await asyncio.gather(composer.compose_and_send(), composer.compose_and_send())

    assert len(sink.reports) == 2
    assert status.calls == 2


# ══════════════════════════════════════════════════════════════════════════════
# SINK SELECTION
# ══════════════════════════════════════════════════════════════════════════════


def test_webhook_takes_priority_over_channel():
    sink = select_sink(_discord_config(webhook="https://discord.test/webhook", channel=123), client=DummyClient())
    assert isinstance(sink, WebhookSink)


def test_channel_used_when_no_webhook():
    client = DummyClient()
    sink = select_sink(_discord_config(channel=123), client=client)
    assert isinstance(sink, ChannelSink)
    assert sink.channel_id == 123


def test_channel_without_client_is_configuration_error():
    with pytest.raises(ConfigurationError):
        select_sink(_discord_config(channel=123))


def test_no_destination_is_configuration_error():
    with pytest.raises(ConfigurationError):
        select_sink(_discord_config())


@pytest.mark.asyncio
async def test_channel_sink_sends_embed():
    channel = DummyChannel()
    composer = ReportComposer(StubStatus("Fine."), StubDigest("—"), ChannelSink(DummyClient(channel=channel), 42))

    await composer.compose_and_send()

    assert len(channel.sent) == 1
    embed = channel.sent[0]
    assert isinstance(embed, discord.Embed)
    assert embed.title == REPORT_TITLE
    assert [(f.name, f.value) for f in embed.fields] == [(HEALTH_SECTION, "Fine."), (COMMITS_SECTION, "—")]


@pytest.mark.asyncio
async def test_channel_sink_falls_back_to_fetch():
    channel = DummyChannel()
    client = DummyClient(channel=None, fetched=channel)
    await ChannelSink(client, 42).send(Report(title="t", description="d", color=1))
    assert client.fetch_calls == 1
    assert len(channel.sent) == 1


@pytest.mark.asyncio
async def test_unresolvable_channel_is_dispatch_error():
    error = discord.NotFound(SimpleNamespace(status=404, reason="Not Found"), "Unknown Channel")
    sink = ChannelSink(DummyClient(channel=None, fetch_error=error), 42)
    with pytest.raises(DispatchError):
        await sink.send(Report(title="t", description="d", color=1))


@pytest.mark.asyncio
async def test_non_text_channel_is_dispatch_error():
    class DummyCategory:
        name = "council"

    sink = ChannelSink(DummyClient(channel=DummyCategory()), 42)
    with pytest.raises(DispatchError) as exc:
        await sink.send(Report(title="t", description="d", color=1))
    assert "DummyCategory" in str(exc.value)
    assert exc.value.sink == "channel"


def test_plain_text_rendering():
    report = Report(
        title="T",
        description="D",
        color=1,
        sections=(ReportSection("A", "one"), ReportSection("B", "two")),
        footer="F",
        timestamp=NOW,
    )
    text = templates.plain_report_text(report)
    assert text.startswith("T\nD\n")
    assert "A:\none" in text
    assert text.index("A:") < text.index("B:")
    assert text.endswith(f"F · {NOW.isoformat()}")
