"""Discord embed and message templates for the council report.

Small templating helpers to keep the webhook and channel renderings identical.
"""
from __future__ import annotations

from typing import Any, Dict, List

FIELD_CHAR_LIMIT = 1024  # Discord embed field value limit
EMPTY_FIELD = "—"


def truncate(text: str, limit: int = FIELD_CHAR_LIMIT) -> str:
    """Cut ``text`` down to ``limit`` characters; empty text becomes a dash."""
    if not text:
        return EMPTY_FIELD
    return text[:limit]


def build_report_embed(report) -> Dict[str, Any]:
    """Return a Discord embed dict for a composed :class:`~serafina.report.Report`."""
    fields: List[Dict[str, Any]] = [
        {"name": s.name, "value": truncate(s.body), "inline": False} for s in report.sections
    ]
    return {
        "title": report.title,
        "description": report.description,
        "color": report.color,
        "fields": fields,
        "footer": {"text": report.footer},
        "timestamp": report.timestamp.isoformat(),
    }


def webhook_payload(report) -> Dict[str, Any]:
    return {"embeds": [build_report_embed(report)]}


def plain_report_text(report) -> str:
    lines = [report.title, report.description, ""]
    for s in report.sections:
        lines.append(f"{s.name}:")
        lines.append(s.body)
        lines.append("")
    lines.append(f"{report.footer} · {report.timestamp.isoformat()}")
    return "\n".join(lines)
