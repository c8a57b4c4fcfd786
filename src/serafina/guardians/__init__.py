"""
Guardian council and the in-process ops bus that connects them.
"""

from .bus import BROADCAST, GuardianBus, GuardianMessage, Participant
from .council import Athena, Guardian, Lilybear, MessageRelay, Serafina, ShadowFlowers, build_council

__all__ = [
    "BROADCAST",
    "GuardianBus",
    "GuardianMessage",
    "Participant",
    "Guardian",
    "Athena",
    "Lilybear",
    "Serafina",
    "ShadowFlowers",
    "MessageRelay",
    "build_council",
]
