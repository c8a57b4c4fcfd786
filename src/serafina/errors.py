#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Serafina - Error Types
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Exception hierarchy for Serafina.

Fetch-side failures never surface as exceptions; they are folded into
placeholder text at the fetch boundary. Only configuration problems and the
final report dispatch raise.
"""

from typing import Optional


class SerafinaError(Exception):
    """Base exception for Serafina errors."""


class ConfigurationError(SerafinaError):
    """Raised when required configuration is missing or malformed."""


class DispatchError(SerafinaError):
    """Raised when a composed report cannot be delivered to its sink."""

    def __init__(self, message: str, sink: str, status: Optional[int] = None):
        super().__init__(message)
        self.sink = sink
        self.status = status
