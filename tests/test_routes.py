import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.testclient import TestClient

from gps_connector.engine import GpsEngine
from gps_connector.routes.gps import router as gps_router
from gps_connector.routes.status import router as status_router
from gps_connector.simulator import Simulator

from helpers import make_settings


def _make_app(*, with_sample: bool = False, **kwargs) -> FastAPI:
    @asynccontextmanager
    async def _noop_lifespan(app: FastAPI):
        config = make_settings(**kwargs)
        engine = GpsEngine(config)
        if with_sample and isinstance(engine.supervisor, Simulator):
            engine.supervisor.step()
            engine.state.lines_received = 12
            engine.state.lines_discarded = 3
        if with_sample:
            engine.state.last_sample = engine.assembler.build_sample()

        app.state.config = config
        app.state.engine = engine
        app.state.start_time = time.monotonic()
        yield

    test_app = FastAPI(lifespan=_noop_lifespan)
    test_app.include_router(gps_router)
    test_app.include_router(status_router)
    return test_app


class TestGpsRoute:
    def test_no_sample_yet_returns_503(self):
        app = _make_app(simulate=True)
        with TestClient(app, raise_server_exceptions=False) as tc:
            resp = tc.get("/gps")
            assert resp.status_code == 503
            assert resp.json()["detail"] == "No GPS sample assembled yet"

    def test_returns_last_sample(self):
        app = _make_app(with_sample=True, simulate=True)
        with TestClient(app) as tc:
            resp = tc.get("/gps")
            assert resp.status_code == 200
            data = resp.json()
            assert data["status"] == "active"
            assert data["mode"] == "3"
            assert data["hdop"] == 1.2
            assert data["time"].endswith(".000Z")
            assert len(data["lat"].split(".")[1]) == 9
            assert len(data["alt"].split(".")[1]) == 3
            assert [s["prn"] for s in data["satellites"]] == [5, 12, 24]

    def test_off_sample_is_empty(self):
        app = _make_app(with_sample=True)
        with TestClient(app) as tc:
            data = tc.get("/gps").json()
            assert data["status"] == "off"
            assert data["lat"] == data["lon"] == data["alt"] == data["mode"] == ""
            assert data["satellites"] == []


class TestHealthRoute:
    def test_simulation(self):
        app = _make_app(with_sample=True, simulate=True)
        with TestClient(app) as tc:
            resp = tc.get("/health")
            assert resp.status_code == 200
            data = resp.json()
            assert data["status"] == "active"
            assert data["transport"] == "simulation"
            assert data["transport_connected"] is True
            assert data["lines_received"] == 12
            assert data["lines_discarded"] == 3
            assert data["last_data_age_s"] >= 0
            assert data["uptime_s"] >= 0

    def test_gps_off(self):
        app = _make_app()
        with TestClient(app) as tc:
            data = tc.get("/health").json()
            assert data["status"] == "off"
            assert data["transport"] == "off"
            assert data["transport_connected"] is False
