"""REST API for the recent-changes log."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request

from netwatch.export import event_to_dict

router = APIRouter(tags=["changes"])


@router.get("/changes")
async def recent_changes(
    request: Request,
    limit: int | None = Query(None, ge=0),
):
    """Most recent first; ``limit`` defaults to the configured dashboard size."""
    monitor = request.app.state.monitor
    return [event_to_dict(e) for e in monitor.get_recent_changes(limit)]
