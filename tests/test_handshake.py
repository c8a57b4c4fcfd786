import logging
from datetime import datetime, timezone

import pytest
import requests

from fakes import FakeClock, FakeResp
from serafina.config import HandshakeConfig
from serafina.handshake import HandshakeBroadcaster

NOW = datetime(2025, 1, 15, 8, 0, tzinfo=timezone.utc)


def _broadcaster(endpoints, version="1.2.3"):
    return HandshakeBroadcaster(
        HandshakeConfig(endpoints=endpoints, repo_name="GameDinVR", version=version),
        clock=FakeClock(NOW),
    )


def test_announces_to_every_sibling_in_order(monkeypatch):
    posted = []

    def fake_post(url, json=None, timeout=None):
        posted.append((url, json))
        return FakeResp(status_code=200)

    monkeypatch.setattr("requests.post", fake_post)

    results = _broadcaster(["http://a.test", "http://b.test/"]).broadcast()

    assert [u for u, _ in posted] == ["http://a.test/handshake", "http://b.test/handshake"]
    assert posted[0][1] == {"repo": "GameDinVR", "version": "1.2.3", "timestamp": NOW.isoformat()}
    assert [r.status for r in results] == [200, 200]
    assert all(r.ok for r in results)


def test_unreachable_sibling_does_not_stop_others(monkeypatch, caplog):
    def fake_post(url, json=None, timeout=None):
        if url.startswith("http://down.test"):
            raise requests.ConnectionError("refused")
        return FakeResp(status_code=204)

    monkeypatch.setattr("requests.post", fake_post)

    with caplog.at_level(logging.INFO, logger="serafina.handshake"):
        results = _broadcaster(["http://down.test", "http://up.test"]).broadcast()

    assert [r.url for r in results] == ["http://down.test", "http://up.test"]
    assert not results[0].ok and "refused" in results[0].error
    assert results[1].status == 204
    assert "[handshake] http://up.test -> 204" in caplog.text
    assert "[handshake] failed to reach http://down.test" in caplog.text


def test_non_success_status_is_still_a_delivered_handshake(monkeypatch):
    monkeypatch.setattr("requests.post", lambda *a, **k: FakeResp(status_code=503))
    [result] = _broadcaster(["http://a.test"]).broadcast()
    assert result.ok and result.status == 503


def test_blank_entries_are_skipped(monkeypatch):
    posted = []
    monkeypatch.setattr("requests.post", lambda url, **k: posted.append(url) or FakeResp())

    _broadcaster(["  http://a.test  ", "", "   "]).broadcast()

    assert posted == ["http://a.test/handshake"]


def test_no_endpoints_sends_nothing(monkeypatch):
    def fake_post(*a, **k):
        raise AssertionError("should not be called")

    monkeypatch.setattr("requests.post", fake_post)
    assert _broadcaster([]).broadcast() == []


def test_missing_version_defaults(monkeypatch):
    assert _broadcaster([], version="").payload()["version"] == "0.0.0"


@pytest.mark.asyncio
async def test_broadcast_async(monkeypatch):
    monkeypatch.setattr("requests.post", lambda *a, **k: FakeResp(status_code=200))
    results = await _broadcaster(["http://a.test"]).broadcast_async()
    assert [r.status for r in results] == [200]
