#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Serafina - Guardian Ops Bus
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
In-process relay between guardians.

The bus does no addressing: every registered participant is offered every
message, in registration order, and decides for itself whether to react.
Messages said while a fan-out is running are queued and delivered once that
fan-out has finished, so broadcasts never interleave. The outermost ``say``
returns only after the queue is drained.

Delivery is bounded: once ``max_relay_depth`` messages have been queued
within one outermost ``say``, further nested messages are dropped with a
warning and reach no participant. Every message that is not dropped is
offered to every participant exactly once.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

BROADCAST = "*"


class Participant(Protocol):
    name: str

    def receive(self, sender: str, to: str, message: str) -> None: ...


@dataclass(frozen=True)
class GuardianMessage:
    sender: str
    to: str
    content: str

    @property
    def is_broadcast(self) -> bool:
        return self.to == BROADCAST


class GuardianBus:
    """
    Synchronous publish/subscribe relay.

    Args:
        max_relay_depth: Cap on messages queued by participants within one
            outermost ``say``; further messages are dropped with a warning
    """

    def __init__(self, participants: Optional[List[Participant]] = None, max_relay_depth: int = 64):
        self._participants: List[Optional[Participant]] = list(participants or [])
        self._lock = threading.RLock()
        self._pending: Deque[GuardianMessage] = deque()
        self._dispatching = False
        self._relayed = 0
        self.max_relay_depth = max_relay_depth

    @property
    def participants(self) -> Tuple[Optional[Participant], ...]:
        with self._lock:
            return tuple(self._participants)

    def register(self, participant: Participant) -> None:
        with self._lock:
            self._participants.append(participant)
        logger.debug("Registered guardian %s", getattr(participant, "name", participant))

    def unregister(self, participant: Participant) -> None:
        with self._lock:
            self._participants.remove(participant)

    def say(self, sender: str, to: str, message: str) -> None:
        """Broadcast a message to all guardians. Each guardian decides if it should react."""
        msg = GuardianMessage(sender, to, message)
        with self._lock:
            if self._dispatching:
                if self._relayed >= self.max_relay_depth:
                    logger.warning("Relay limit reached; dropping %s -> %s: %r", sender, to, message)
                    return
                self._relayed += 1
                self._pending.append(msg)
                return
            self._dispatching = True
            self._relayed = 0

        try:
            self._fan_out(msg)
            while True:
                with self._lock:
                    if not self._pending:
                        break
                    queued = self._pending.popleft()
                self._fan_out(queued)
        finally:
            with self._lock:
                self._pending.clear()
                self._dispatching = False

    def _fan_out(self, msg: GuardianMessage) -> None:
        # Snapshot so registration changes never touch an in-flight fan-out
        for participant in self.participants:
            if participant is None:
                continue
            try:
                participant.receive(msg.sender, msg.to, msg.content)
            except Exception:
                logger.exception(
                    "Guardian %s failed handling %s -> %s",
                    getattr(participant, "name", participant),
                    msg.sender,
                    msg.to,
                )
