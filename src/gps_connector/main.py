import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI

from gps_connector.config import Settings
from gps_connector.engine import GpsEngine
from gps_connector.publisher import WebSocketPublisher
from gps_connector.routes.gps import router as gps_router
from gps_connector.routes.status import router as status_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = Settings()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
    )
    logger = logging.getLogger("gps_connector")

    publisher = WebSocketPublisher(config.publish_url) if config.publish_url else None
    engine = GpsEngine(config, publisher=publisher)

    app.state.config = config
    app.state.engine = engine
    app.state.start_time = time.monotonic()

    await engine.start()
    logger.info("GPS Connector ready, transport %s", config.transport_kind)

    yield

    # Release the serial port / gpsd socket before the process exits
    await engine.stop()
    logger.info("GPS Connector stopped")


app = FastAPI(
    title="GPS Connector",
    description="Acquires and normalizes GPS fixes from serial NMEA, gpsd or a simulator",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(gps_router)
app.include_router(status_router)
