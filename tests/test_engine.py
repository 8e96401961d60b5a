import asyncio

import pytest

from gps_connector.connectivity import (
    ConnectivityMonitor,
    ConnectivityStatus,
    terminal_bell_hook,
)
from gps_connector.engine import GpsEngine, build_supervisor
from gps_connector.gps_state import AcquisitionState
from gps_connector.gpsd_client import GpsdClient
from gps_connector.health import health_check_loop
from gps_connector.serial_reader import SerialReader
from gps_connector.simulator import Simulator

from helpers import FakePublisher, HookRecorder, make_settings


class TestBuildSupervisor:
    @pytest.mark.parametrize(
        "kwargs, expected",
        [
            ({"simulate": True}, Simulator),
            ({"simulate": True, "port": "gpsd"}, Simulator),
            ({"port": "gpsd"}, GpsdClient),
            ({"port": "/dev/ttyUSB0"}, SerialReader),
        ],
    )
    def test_transport_selection(self, kwargs, expected):
        supervisor = build_supervisor(
            make_settings(**kwargs), AcquisitionState(), ConnectivityMonitor()
        )
        assert isinstance(supervisor, expected)

    def test_no_port_means_off(self):
        assert build_supervisor(
            make_settings(), AcquisitionState(), ConnectivityMonitor()
        ) is None


class TestEngine:
    def test_beep_control_adds_bell_hook(self):
        engine = GpsEngine(make_settings(beep_control=True))
        assert terminal_bell_hook in engine.monitor._hooks

    @pytest.mark.asyncio
    async def test_off_engine_reports_off(self):
        hook = HookRecorder()
        publisher = FakePublisher()
        engine = GpsEngine(
            make_settings(tick_interval=0.01), publisher=publisher, hooks=[hook]
        )
        await engine.start()
        try:
            await asyncio.sleep(0.05)
        finally:
            await engine.stop()

        assert engine.monitor.status == ConnectivityStatus.OFF
        assert hook.calls == [(None, ConnectivityStatus.OFF)]
        assert publisher.messages
        assert engine.state.last_sample.status == "off"

    @pytest.mark.asyncio
    async def test_reconfigure_stops_old_transport(self):
        engine = GpsEngine(make_settings(simulate=True, tick_interval=0.01))
        await engine.start()
        try:
            await asyncio.sleep(0.05)
            simulator = engine.supervisor
            assert engine.monitor.status == ConnectivityStatus.ACTIVE

            await engine.reconfigure(make_settings(tick_interval=0.01))

            assert simulator._task is None
            assert engine.supervisor is None
            assert engine.monitor.status == ConnectivityStatus.OFF
            assert engine.assembler.config.transport_kind == "off"

            received = engine.state.lines_received
            await asyncio.sleep(0.05)
            assert engine.state.lines_received == received
        finally:
            await engine.stop()

    @pytest.mark.asyncio
    async def test_reconfigure_drops_previous_satellites(self):
        engine = GpsEngine(make_settings(simulate=True, tick_interval=0.01))
        await engine.start()
        try:
            await asyncio.sleep(0.05)
            assert list(engine.state.satellites.flatten())

            await engine.reconfigure(make_settings(tick_interval=0.01))
            assert list(engine.state.satellites.flatten()) == []
            assert engine.assembler.build_sample().satellites == ()
        finally:
            await engine.stop()

class TestHealthLoop:
    @pytest.mark.asyncio
    async def test_checks_periodically_and_survives_errors(self, caplog):
        calls = []

        class FlakySupervisor:
            async def check_health(self):
                calls.append(True)
                if len(calls) == 1:
                    raise OSError("port vanished")

        task = asyncio.create_task(health_check_loop(FlakySupervisor(), 0.01))
        try:
            await asyncio.wait_for(self._until(lambda: len(calls) >= 3), 2.0)
        finally:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        assert "GPS health check failed: port vanished" in caplog.text

    @staticmethod
    async def _until(predicate):
        while not predicate():
            await asyncio.sleep(0.01)

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_loop_alive(self, caplog):
        calls = []

        class BrokenSupervisor:
            async def check_health(self):
                calls.append(True)
                raise ValueError("bad state")

        task = asyncio.create_task(health_check_loop(BrokenSupervisor(), 0.01))
        try:
            await asyncio.wait_for(self._until(lambda: len(calls) >= 3), 2.0)
            assert not task.done()
        finally:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        assert "GPS health check raised unexpectedly" in caplog.text
        assert "bad state" in caplog.text
