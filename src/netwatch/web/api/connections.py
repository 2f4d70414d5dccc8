"""REST API for the live connection table."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel

from netwatch.export import connection_to_dict
from netwatch.monitor.filters import ConnectionFilter
from netwatch.risk.models import RiskLevel

router = APIRouter(tags=["connections"])


class RefreshResult(BaseModel):
    outcome: str
    state: str
    sequence: int | None = None
    error: str | None = None


@router.get("/connections")
async def list_connections(
    request: Request,
    search: str = "",
    protocol: str | None = None,
    state: str | None = None,
    risk: RiskLevel | None = None,
    hide_localhost: bool = Query(False, alias="hideLocalhost"),
    only_established: bool = Query(False, alias="onlyEstablished"),
):
    monitor = request.app.state.monitor
    filters = ConnectionFilter(
        search=search,
        protocol=protocol,
        state=state,
        risk=risk,
        hide_localhost=hide_localhost,
        only_established=only_established,
    )
    return [connection_to_dict(c) for c in monitor.get_connections(filters)]


@router.post("/refresh", response_model=RefreshResult)
def refresh(request: Request):
    """Poll now. Runs in the threadpool since the source call blocks."""
    monitor = request.app.state.monitor
    outcome = monitor.refresh()
    return RefreshResult(
        outcome=outcome.value,
        state=monitor.state.value,
        sequence=monitor.current_sequence,
        error=monitor.scheduler.last_error,
    )
