"""Structured logging helpers (PII-safe)."""

from typing import Any
from uuid import UUID


def build_log_context(
    *,
    user_id: UUID | str | None = None,
    batch_id: UUID | str | None = None,
    item_id: UUID | str | None = None,
    pipeline_id: UUID | str | None = None,
    candidate_id: UUID | str | None = None,
    request_id: str | None = None,
    route: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict (identifiers only)."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = str(user_id)
    if batch_id:
        context["batch_id"] = str(batch_id)
    if item_id:
        context["item_id"] = str(item_id)
    if pipeline_id:
        context["pipeline_id"] = str(pipeline_id)
    if candidate_id:
        context["candidate_id"] = str(candidate_id)
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    return context
