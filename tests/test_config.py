from pathlib import Path

import pytest

from serafina.config import Config, GitHubConfig, HandshakeConfig, load_env_file, split_csv


@pytest.fixture
def env(monkeypatch):
    for key in ("NAV_REPOS", "SIBLING_ENDPOINTS", "GUILD_ID", "CHN_COUNCIL", "HTTP_TIMEOUT", "REPORT_CRON",
                "SERAFINA_VERSION", "HANDSHAKE_REPO", "DISCORD_TOKEN", "WH_LILYBEAR", "MCP_URL"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_split_csv_trims_and_drops_blanks():
    assert split_csv(" a/b , ,c/d,") == ["a/b", "c/d"]
    assert split_csv("") == []


def test_lists_from_environment(env):
    env.setenv("NAV_REPOS", "orgA/repo1, orgA/repo2")
    env.setenv("SIBLING_ENDPOINTS", "http://a.test ,http://b.test")

    assert GitHubConfig().repos == ["orgA/repo1", "orgA/repo2"]
    assert HandshakeConfig().endpoints == ["http://a.test", "http://b.test"]


def test_numeric_values_fall_back_on_garbage(env):
    env.setenv("GUILD_ID", "not-a-number")
    env.setenv("HTTP_TIMEOUT", "soon")
    config = Config()
    assert config.discord.guild_id is None
    assert config.http_timeout == 10.0


def test_channel_id_parsed(env):
    env.setenv("CHN_COUNCIL", "123456789")
    config = Config()
    assert config.discord.council_channel_id == 123456789
    assert config.discord.has_report_sink


def test_handshake_defaults(env):
    config = HandshakeConfig()
    assert config.repo_name == "GameDinVR"
    assert config.version  # explicit, installed, or 0.0.0

    env.setenv("SERAFINA_VERSION", "2.0.1")
    assert HandshakeConfig().version == "2.0.1"


def test_validate_flags_bad_cron_and_missing_sink(env):
    env.setenv("REPORT_CRON", "every day at eight")
    issues = Config().validate()
    assert any("REPORT_CRON" in i for i in issues)
    assert any("WH_LILYBEAR" in i for i in issues)


def test_validate_clean(env):
    env.setenv("DISCORD_TOKEN", "t")
    env.setenv("WH_LILYBEAR", "https://discord.test/webhook")
    env.setenv("MCP_URL", "http://mcp.test/")
    config = Config()
    assert config.validate() == []
    assert config.status.base_url == "http://mcp.test"
    assert config.schedule.report_cron == "0 8 * * *"


def test_load_env_file_does_not_override(env, tmp_path: Path):
    env.setenv("NAV_REPOS", "from/process")
    # Registered so the value loaded from the file is removed again on teardown
    env.setenv("HANDSHAKE_REPO", "unset")
    env.delenv("HANDSHAKE_REPO")
    dotenv = tmp_path / ".env"
    dotenv.write_text("NAV_REPOS=from/file\nHANDSHAKE_REPO=FromFile\n", encoding="utf-8")

    assert load_env_file(dotenv)
    config = Config()
    assert config.github.repos == ["from/process"]
    assert config.handshake.repo_name == "FromFile"


def test_missing_env_file(tmp_path: Path):
    assert load_env_file(tmp_path / "nope.env") is False
