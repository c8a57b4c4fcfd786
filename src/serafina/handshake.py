"""Sibling handshake.

Announces this service's identity and version to each configured sibling once
at startup. One-way: siblings are not expected to answer with anything but a
status code, and an unreachable sibling never stops the others.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

import requests

from .config import HandshakeConfig

logger = logging.getLogger(__name__)


@dataclass
class HandshakeResult:
    url: str
    status: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class HandshakeBroadcaster:
    def __init__(
        self,
        config: HandshakeConfig,
        timeout: float = 10.0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config
        self.timeout = timeout
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def payload(self) -> dict:
        return {
            "repo": self.config.repo_name,
            "version": self.config.version or "0.0.0",
            "timestamp": self.clock().isoformat(),
        }

    def _announce(self, base_url: str) -> HandshakeResult:
        url = f"{base_url.rstrip('/')}/handshake"
        try:
            res = requests.post(url, json=self.payload(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("[handshake] failed to reach %s: %s", base_url, e)
            return HandshakeResult(url=base_url, error=str(e))
        logger.info("[handshake] %s -> %s", base_url, res.status_code)
        return HandshakeResult(url=base_url, status=res.status_code)

    def broadcast(self) -> List[HandshakeResult]:
        """Announce to every sibling in configuration order."""
        endpoints = [e.strip() for e in self.config.endpoints if e and e.strip()]
        if not endpoints:
            logger.debug("[handshake] no sibling endpoints configured")
            return []
        return [self._announce(url) for url in endpoints]

    async def broadcast_async(self) -> List[HandshakeResult]:
        return await asyncio.to_thread(self.broadcast)
