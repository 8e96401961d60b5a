from fastapi import APIRouter, HTTPException, Request

from gps_connector.models import GpsSample

router = APIRouter(tags=["gps"])


@router.get("/gps", response_model=GpsSample)
async def get_gps(request: Request) -> GpsSample:
    sample = request.app.state.engine.state.last_sample
    if sample is None:
        raise HTTPException(status_code=503, detail="No GPS sample assembled yet")
    return sample
