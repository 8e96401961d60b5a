import time

from fastapi import APIRouter, Request

from gps_connector.models import HealthResponse

router = APIRouter(tags=["status"])


@router.get("/health", response_model=HealthResponse)
async def get_health(request: Request) -> HealthResponse:
    engine = request.app.state.engine
    s = engine.state
    start = request.app.state.start_time

    return HealthResponse(
        status=engine.monitor.status.value,
        transport=engine.config.transport_kind,
        transport_connected=s.transport_connected,
        last_data_age_s=round(time.monotonic() - s.last_data_time, 1),
        lines_received=s.lines_received,
        lines_discarded=s.lines_discarded,
        uptime_s=round(time.monotonic() - start, 1),
    )
