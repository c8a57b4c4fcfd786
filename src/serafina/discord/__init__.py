#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Serafina - Discord Integration
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
Discord host bot, slash commands and embed templates.

The bot lives in :mod:`serafina.discord.bot`; it is not imported here so the
report module can use the templates without pulling in the bot.
"""

from . import templates

__all__ = ["templates"]
