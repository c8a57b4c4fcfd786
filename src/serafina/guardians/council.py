"""The guardian council: rule-based responders on the ops bus.

Keyword rules are plain functions so they can be tested without a bus.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from .bus import BROADCAST, GuardianBus

logger = logging.getLogger(__name__)

ROUTE_PREFIX = "/route "
BLESSING_LINE = "🌸 May your path be protected and your heart be held."


def asks_status(message: str) -> bool:
    return "status" in message


def parse_route(message: str) -> Optional[str]:
    """Return the payload of a ``/route <payload>`` command, else ``None``."""
    if message.startswith(ROUTE_PREFIX):
        return message[len(ROUTE_PREFIX):]
    return None


def asks_blessing(message: str) -> bool:
    return message.startswith("bless")


def mentions_blessing(message: str) -> bool:
    return "blessing" in message


class Guardian:
    """
    Base class for all guardians. Provides bus integration and message filtering.

    Subclasses override :meth:`on_message`; it only runs for messages
    addressed to this guardian by name or to the broadcast address.
    """

    name = "Guardian"
    role = "Undefined"

    def __init__(self, bus: Optional[GuardianBus] = None):
        self.bus = bus

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    def is_addressed(self, to: str) -> bool:
        return to == self.name or to == BROADCAST

    def receive(self, sender: str, to: str, message: str) -> None:
        """Called by :class:`GuardianBus` when a message arrives."""
        if self.is_addressed(to):
            self.on_message(sender, message)

    def on_message(self, sender: str, message: str) -> None:
        pass

    def whisper(self, to: str, message: str) -> None:
        if self.bus is None:
            logger.warning("%s has no bus; dropping message to %s", self.name, to)
            return
        self.bus.say(self.name, to, message)


class Athena(Guardian):
    """Replies with system status checks."""

    name = "Athena"
    role = "Strategy & Intelligence"

    def on_message(self, sender: str, message: str) -> None:
        if asks_status(message):
            self.whisper("Lilybear", "Athena: All systems nominal.")


class Lilybear(Guardian):
    """Routes commands and can broadcast to all guardians."""

    name = "Lilybear"
    role = "Voice & Operations"

    def __init__(self, bus: Optional[GuardianBus] = None):
        super().__init__(bus)
        self.last_message = ""

    def on_message(self, sender: str, message: str) -> None:
        self.last_message = f"{sender}: {message}"
        payload = parse_route(message)
        if payload is not None:
            self.whisper(BROADCAST, payload)


class Serafina(Guardian):
    """Routes blessing requests to ShadowFlowers."""

    name = "Serafina"
    role = "Comms & Routing"

    def on_message(self, sender: str, message: str) -> None:
        if asks_blessing(message):
            self.whisper("ShadowFlowers", "Please deliver a blessing to the hall.")


class ShadowFlowers(Guardian):
    """Delivers blessings and ceremonial messages."""

    name = "ShadowFlowers"
    role = "Sentiment & Rituals"

    def __init__(self, bus: Optional[GuardianBus] = None):
        super().__init__(bus)
        self.blessing_text = ""

    def on_message(self, sender: str, message: str) -> None:
        if mentions_blessing(message):
            self.blessing_text = BLESSING_LINE
            self.whisper("Lilybear", "Blessing delivered.")


class MessageRelay:
    """Entry point for external bridges (Discord, CLI) to feed messages into the bus."""

    def __init__(self, bus: GuardianBus):
        self.bus = bus

    def relay(self, author: str, content: str, to: str = BROADCAST) -> None:
        self.bus.say(author, to, content)


def build_council(bus: GuardianBus) -> List[Guardian]:
    """Create the standard guardians and register them on ``bus``."""
    guardians: List[Guardian] = [Lilybear(bus), Athena(bus), Serafina(bus), ShadowFlowers(bus)]
    for g in guardians:
        bus.register(g)
    return guardians
