#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Serafina - Configuration Module
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Configuration management for Serafina.

Loads settings from environment variables (and a project-level ``.env``) with
sensible defaults. A single :class:`Config` is built at process start and
handed to every component; nothing reads the environment after that.
"""

import os
from dataclasses import dataclass, field
from importlib import metadata
from pathlib import Path
from typing import List, Optional

from croniter import croniter
from dotenv import load_dotenv

DEFAULT_STATUS_PROMPT = "Summarize system health in one sentence."
DEFAULT_REPORT_CRON = "0 8 * * *"
DEFAULT_VERSION = "0.0.0"


def _get_project_root() -> Path:
    """Find the project root directory."""
    current = Path(__file__).resolve().parent
    # Walk up until we find pyproject.toml
    for _ in range(10):
        if (current / "pyproject.toml").exists():
            return current
        current = current.parent
    # Fallback to 2 levels up from src/serafina
    return Path(__file__).resolve().parent.parent.parent


def load_env_file(path: Optional[Path] = None) -> bool:
    """Load a .env file into the process environment without overriding it."""
    env_path = path or _get_project_root() / ".env"
    if not env_path.exists():
        return False
    return load_dotenv(env_path, override=False)


def _env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.environ.get(key, default).strip()


def _env_int(key: str, default: int) -> int:
    """Get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    """Get float environment variable."""
    try:
        return float(os.environ.get(key, str(default)))
    except ValueError:
        return default


def _env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


def _env_list(key: str) -> List[str]:
    """Get comma-separated list environment variable, dropping blanks."""
    return split_csv(os.environ.get(key, ""))


def _env_path(key: str) -> Optional[Path]:
    """Get optional path environment variable."""
    val = os.environ.get(key, "")
    if not val:
        return None
    path = Path(val).expanduser()
    return path if path.is_absolute() else _get_project_root() / path


def split_csv(raw: str) -> List[str]:
    """Split a comma-separated string, trimming entries and dropping empties."""
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


def package_version(default: str = DEFAULT_VERSION) -> str:
    """Return the installed serafina version, or ``default`` when not installed."""
    try:
        return metadata.version("serafina")
    except metadata.PackageNotFoundError:
        return default


@dataclass
class StatusConfig:
    """Status/inference endpoint configuration."""

    base_url: str = field(default_factory=lambda: _env("MCP_URL").rstrip("/"))
    prompt: str = field(default_factory=lambda: _env("MCP_PROMPT", DEFAULT_STATUS_PROMPT))


@dataclass
class GitHubConfig:
    """Source-control hosting API configuration."""

    repos: List[str] = field(default_factory=lambda: _env_list("NAV_REPOS"))
    token: str = field(default_factory=lambda: _env("GITHUB_TOKEN"))
    api_url: str = field(default_factory=lambda: _env("GITHUB_API_URL", "https://api.github.com").rstrip("/"))
    lookback_hours: int = field(default_factory=lambda: _env_int("REPORT_LOOKBACK_HOURS", 24))
    per_page: int = 5


@dataclass
class DiscordConfig:
    """Discord bot and report destination configuration."""

    bot_token: str = field(default_factory=lambda: _env("DISCORD_TOKEN"))
    guild_id: Optional[int] = field(default_factory=lambda: _env_int("GUILD_ID", 0) or None)
    council_channel_id: Optional[int] = field(default_factory=lambda: _env_int("CHN_COUNCIL", 0) or None)
    report_webhook_url: str = field(default_factory=lambda: _env("WH_LILYBEAR"))

    @property
    def is_configured(self) -> bool:
        """Check if the bot can log in."""
        return bool(self.bot_token)

    @property
    def has_report_sink(self) -> bool:
        """Check if at least one report destination is configured."""
        return bool(self.report_webhook_url or self.council_channel_id)


@dataclass
class HandshakeConfig:
    """Sibling handshake configuration."""

    endpoints: List[str] = field(default_factory=lambda: _env_list("SIBLING_ENDPOINTS"))
    repo_name: str = field(default_factory=lambda: _env("HANDSHAKE_REPO", "GameDinVR"))
    version: str = field(default_factory=lambda: _env("SERAFINA_VERSION") or package_version())


@dataclass
class ScheduleConfig:
    """Recurring job configuration. Cron expressions are evaluated in UTC."""

    report_cron: str = field(default_factory=lambda: _env("REPORT_CRON", DEFAULT_REPORT_CRON))


@dataclass
class Config:
    """
    Master configuration for Serafina.

    Aggregates all sub-configurations and provides utility methods.
    """

    status: StatusConfig = field(default_factory=StatusConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    discord: DiscordConfig = field(default_factory=DiscordConfig)
    handshake: HandshakeConfig = field(default_factory=HandshakeConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)

    # Outbound HTTP timeout in seconds, applied to every external call
    http_timeout: float = field(default_factory=lambda: _env_float("HTTP_TIMEOUT", 10.0))

    # Runtime flags
    debug: bool = field(default_factory=lambda: _env_bool("DEBUG", False))
    log_file: Optional[Path] = field(default_factory=lambda: _env_path("SERAFINA_LOG_FILE"))

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "Config":
        """Load ``.env`` (if present) and build a configuration from the environment."""
        load_env_file(env_file)
        return cls()

    def validate(self) -> List[str]:
        """
        Validate configuration and return list of issues.

        Returns:
            List of validation error messages (empty if valid)
        """
        issues = []

        if not self.discord.bot_token:
            issues.append("DISCORD_TOKEN is not set; the bot cannot log in")

        if not self.discord.has_report_sink:
            issues.append("Neither WH_LILYBEAR nor CHN_COUNCIL is set; council reports have nowhere to go")

        if not self.status.base_url:
            issues.append("MCP_URL is not set; System Health will read '(MCP unreachable)'")

        if not croniter.is_valid(self.schedule.report_cron):
            issues.append(f"REPORT_CRON is not a valid cron expression: {self.schedule.report_cron!r}")

        if self.http_timeout <= 0:
            issues.append(f"HTTP_TIMEOUT must be positive, got {self.http_timeout}")

        return issues

    def summary(self) -> str:
        """Generate human-readable configuration summary with secrets redacted."""
        if self.discord.report_webhook_url:
            sink = "webhook"
        elif self.discord.council_channel_id:
            sink = f"channel {self.discord.council_channel_id}"
        else:
            sink = "none"

        lines = [
            "═" * 60,
            "  SERAFINA CONFIGURATION",
            "═" * 60,
            "",
            "Status Endpoint:",
            f"  URL: {self.status.base_url or '(unset)'}",
            "",
            "Repositories:",
            f"  Repos: {', '.join(self.github.repos) or '(none)'}",
            f"  Token: {'set' if self.github.token else 'unset'}",
            f"  Lookback: {self.github.lookback_hours}h",
            "",
            "Discord:",
            f"  Token: {'set' if self.discord.bot_token else 'unset'}",
            f"  Guild ID: {self.discord.guild_id or 'Auto-detect'}",
            f"  Report sink: {sink}",
            "",
            "Handshake:",
            f"  Siblings: {len(self.handshake.endpoints)}",
            f"  Identity: {self.handshake.repo_name} v{self.handshake.version}",
            "",
            "Schedule:",
            f"  Council report: {self.schedule.report_cron} (UTC)",
            "",
            "Flags:",
            f"  HTTP Timeout: {self.http_timeout}s",
            f"  Debug: {self.debug}",
            "",
            "═" * 60,
        ]

        return "\n".join(lines)
