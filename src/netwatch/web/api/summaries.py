"""REST API for per-process, per-port, and headline summaries."""

from __future__ import annotations

from fastapi import APIRouter, Request

from netwatch.export import (
    port_summary_to_dict,
    process_summary_to_dict,
    stats_to_dict,
)

router = APIRouter(tags=["summaries"])


@router.get("/processes")
async def process_summaries(request: Request):
    monitor = request.app.state.monitor
    return [process_summary_to_dict(s) for s in monitor.get_process_summaries()]


@router.get("/ports")
async def port_summaries(request: Request):
    monitor = request.app.state.monitor
    return [port_summary_to_dict(s) for s in monitor.get_port_summaries()]


@router.get("/stats")
async def stats(request: Request):
    monitor = request.app.state.monitor
    return stats_to_dict(monitor.get_stats())


@router.get("/status")
async def status(request: Request):
    """Scheduler state; never fails, even before the first poll."""
    monitor = request.app.state.monitor
    scheduler = monitor.scheduler
    return {
        "state": monitor.state.value,
        "running": monitor.is_running,
        "sequence": monitor.current_sequence,
        "failures": scheduler.failures,
        "lastError": scheduler.last_error,
    }
