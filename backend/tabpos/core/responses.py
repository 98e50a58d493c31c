"""Standardized API response helpers.

List endpoints return ``{"items": [...], "total": <int>}``; single-item
endpoints return the object directly.
"""

from typing import Optional


def list_response(items: list, total: Optional[int] = None) -> dict:
    """Wrap a list in the standard envelope."""
    return {
        "items": items,
        "total": total if total is not None else len(items),
    }


def success_response(message: str, **extra) -> dict:
    """Envelope for mutations that have no natural resource to return."""
    return {"success": True, "message": message, **extra}
