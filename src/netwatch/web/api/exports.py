"""REST API for snapshot export."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from netwatch.export import render_export

router = APIRouter(tags=["export"])

_MEDIA_TYPES = {
    "json": "application/json",
    "csv": "text/csv",
}


class ExportRequest(BaseModel):
    format: Literal["json", "csv"] = "json"


@router.get("/export")
async def export_view(request: Request, format: Literal["json", "csv"] = "json"):
    """Return the current snapshot serialized as JSON or CSV."""
    monitor = request.app.state.monitor
    body = render_export(monitor.snapshot(), format)
    return Response(content=body, media_type=_MEDIA_TYPES[format])


@router.post("/export")
def export_to_file(body: ExportRequest, request: Request):
    """Write the current snapshot into the data dir and return the path."""
    monitor = request.app.state.monitor
    try:
        path = monitor.export_snapshot(body.format)
    except OSError as e:
        return JSONResponse(
            status_code=500,
            content={"detail": f"Export failed: {e}"},
        )
    return {"filePath": str(path), "format": body.format}
