"""Geocoding data models."""

from __future__ import annotations

from pydantic import BaseModel


class Coordinates(BaseModel):
    """A WGS84 latitude/longitude pair."""

    lat: float
    lng: float


class GeocodeResult(BaseModel):
    """A resolved address."""

    address: str
    coordinates: Coordinates
    state: str = ""
    formatted_address: str = ""
