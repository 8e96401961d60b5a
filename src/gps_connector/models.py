from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# ── Published sample ───────────────────────────────────────


class SatelliteView(BaseModel):
    model_config = ConfigDict(frozen=True)

    prn: int
    el: int
    az: int
    snr: int
    sys: str


class GpsSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str = Field(..., description="off, inactive, active or error")
    time: str = Field(..., description="ISO-8601 UTC, milliseconds forced to .000Z")
    lat: str = Field("", description="Decimal degrees, 9 fractional digits, or empty")
    lon: str = Field("", description="Decimal degrees, 9 fractional digits, or empty")
    alt: str = Field("", description="Metres, 3 fractional digits, or empty")
    mode: str = Field("", description='"2", "3" or empty')
    hdop: float | None = None
    satellites: tuple[SatelliteView, ...] = ()


class GpsMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["GPS"] = "GPS"
    value: GpsSample


# ── Responses ──────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str
    transport: str
    transport_connected: bool
    last_data_age_s: float
    lines_received: int
    lines_discarded: int
    uptime_s: float
