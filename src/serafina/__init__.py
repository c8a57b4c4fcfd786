#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Serafina - Council Operations Bot
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Serafina: operations bot for the guardian council.

Posts a nightly council report (system health plus recent commits across the
configured repositories), relays messages between guardians on an in-process
bus, and announces itself to sibling services on startup.

Usage:
    python -m serafina run
    python -m serafina report --dry-run
    python -m serafina handshake
    python -m serafina say Lilybear '*' "status check"
    python -m serafina check
"""

__version__ = "1.0.0"
__author__ = "SIRIUS Alpha"

from .config import Config
from .errors import ConfigurationError, DispatchError, SerafinaError
from .github import RepoDigestFetcher
from .guardians import GuardianBus, MessageRelay, build_council
from .handshake import HandshakeBroadcaster, HandshakeResult
from .report import Report, ReportComposer, ReportSection
from .scheduler import Scheduler
from .status import StatusFetcher

__all__ = [
    # Version
    "__version__",
    "__author__",
    # Config
    "Config",
    # Errors
    "SerafinaError",
    "ConfigurationError",
    "DispatchError",
    # Fetchers
    "StatusFetcher",
    "RepoDigestFetcher",
    # Report
    "Report",
    "ReportSection",
    "ReportComposer",
    # Scheduling
    "Scheduler",
    # Handshake
    "HandshakeBroadcaster",
    "HandshakeResult",
    # Guardians
    "GuardianBus",
    "MessageRelay",
    "build_council",
]
