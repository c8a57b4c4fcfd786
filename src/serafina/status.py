#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Serafina - System Health Fetcher
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
One-line system health summary from the MCP inference endpoint.

A single POST, no retries. Any failure degrades to a placeholder string so the
council report always has something to show.
"""

import logging

import requests

from .config import StatusConfig

logger = logging.getLogger(__name__)

NO_DATA = "(no data)"
UNREACHABLE = "(MCP unreachable)"


class StatusFetcher:
    """Ask the status endpoint to summarize system health."""

    def __init__(self, config: StatusConfig, timeout: float = 10.0):
        self.config = config
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return f"{self.config.base_url}/ask-gemini"

    def fetch_status(self) -> str:
        """
        Fetch the health summary.

        Returns:
            The endpoint's ``response`` text, ``"(no data)"`` when the body is
            unusable, or ``"(MCP unreachable)"`` when the request failed.
        """
        if not self.config.base_url:
            logger.warning("No status endpoint configured")
            return UNREACHABLE

        try:
            resp = requests.post(self.endpoint, json={"prompt": self.config.prompt}, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Status endpoint %s unreachable: %s", self.endpoint, e)
            return UNREACHABLE

        try:
            body = resp.json()
        except ValueError:
            logger.warning("Status endpoint returned non-JSON body (HTTP %s)", resp.status_code)
            return NO_DATA

        text = body.get("response") if isinstance(body, dict) else None
        if not isinstance(text, str) or not text:
            logger.warning("Status endpoint response had no usable 'response' field")
            return NO_DATA
        return text
