"""FastAPI router for property enrichment endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel

from sitedata.enrichment.models import SessionState
from sitedata.geo.models import Coordinates

router = APIRouter()


class EnrichRequest(BaseModel):
    address: str
    lat: float | None = None
    lng: float | None = None
    wait: bool = False


# --- Enrichment sessions ---


@router.post("/api/enrichment")
async def start_enrichment(body: EnrichRequest, request: Request, response: Response) -> dict[str, Any]:
    """Start an enrichment session for an address.

    With ``wait`` the session runs to completion and its report and record
    are returned; otherwise it runs in the background and 202 is returned.
    """
    orchestrator = request.app.state.orchestrator

    if (body.lat is None) != (body.lng is None):
        raise HTTPException(status_code=400, detail="Provide both lat and lng, or neither")
    coordinates = None
    if body.lat is not None and body.lng is not None:
        coordinates = Coordinates(lat=body.lat, lng=body.lng)

    try:
        if body.wait:
            report = await orchestrator.enrich(body.address, coordinates)
        else:
            orchestrator.submit(body.address, coordinates)
            response.status_code = 202
            return {
                "token": orchestrator.active_token,
                "state": orchestrator.state,
            }
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    record = None
    if report.state == SessionState.SETTLED:
        record = orchestrator.store.current().model_dump(mode="json")
    return {
        "token": report.token,
        "state": report.state,
        "report": report.model_dump(mode="json"),
        "record": record,
    }


@router.get("/api/enrichment")
async def current_enrichment(request: Request) -> dict[str, Any]:
    """Return the active session's record and failure diagnostics."""
    orchestrator = request.app.state.orchestrator
    store = orchestrator.store
    return {
        "token": store.active_token,
        "state": orchestrator.state,
        "record": store.current().model_dump(mode="json"),
        "diagnostics": [d.model_dump(mode="json") for d in store.diagnostics()],
    }


@router.get("/api/enrichment/sources")
async def list_sources(request: Request) -> list[dict[str, Any]]:
    """List registered source fetchers with health status."""
    registry = request.app.state.orchestrator.registry
    return [schema.model_dump(mode="json") for schema in registry.list_fetchers()]


# --- Solar snapshots ---


@router.get("/api/solar")
async def latest_solar(address: str, request: Request) -> dict[str, Any]:
    """Latest stored solar snapshot for an address."""
    snapshot = request.app.state.solar_store.latest(address)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"No solar data for {address!r}")
    return snapshot.model_dump(mode="json")
