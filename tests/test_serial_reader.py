import asyncio
import logging
import time
from unittest.mock import MagicMock

import pytest
import serial

from gps_connector import serial_reader
from gps_connector.connectivity import ConnectivityStatus
from gps_connector.nmea_parser import parse_nmea_line
from gps_connector.serial_reader import SerialReader

from helpers import make_settings

RMC = b"$GPRMC,123519,A,4807.038,N,01131.000,E,022.4,084.4,230324,003.1,W*6A\r\n"
GGA = b"$GPGGA,123519,4807.038,N,01131.000,E,1,08,0.9,545.4,M,47.0,M,,*47\r\n"


class FakeSerial:
    def __init__(self, lines: list[bytes]) -> None:
        self._lines = list(lines)
        self.is_open = True

    def readline(self) -> bytes:
        if self._lines:
            return self._lines.pop(0)
        raise serial.SerialException("device reports readiness to read but returned no data")

    def close(self) -> None:
        self.is_open = False


def _make_reader(state, monitor, **kwargs) -> SerialReader:
    config = make_settings(port="/dev/ttyUSB0", baudrate=9600, **kwargs)
    return SerialReader(config, state, monitor)


class TestIngest:
    def test_rmc_and_gga(self, state, monitor):
        reader = _make_reader(state, monitor)
        reader._ingest(RMC.decode().strip(), parse_nmea_line)
        reader._ingest(GGA.decode().strip(), parse_nmea_line)

        assert state.lines_received == 2
        assert abs(state.latitude - 48.1173) < 0.001
        assert abs(state.longitude - 11.51667) < 0.001
        assert abs(state.altitude - 545.4) < 0.1
        assert monitor.status == ConnectivityStatus.ACTIVE

    def test_invalid_sentence(self, state, monitor):
        reader = _make_reader(state, monitor)
        reader._ingest("not an nmea sentence", parse_nmea_line)
        assert state.lines_received == 1
        assert state.lines_discarded == 1
        assert state.latitude is None
        assert monitor.status == ConnectivityStatus.INACTIVE

    def test_fixed_height_from_config(self, state, monitor):
        reader = _make_reader(state, monitor, height=160.0)
        reader._ingest(GGA.decode().strip(), parse_nmea_line)
        assert state.altitude == 160.0

    def test_source_label(self, state, monitor):
        reader = _make_reader(state, monitor)
        assert reader.source == "receiver /dev/ttyUSB0 with 9600 bps"


class TestFailureEpisodes:
    def test_error_logged_once(self, state, monitor, hook, caplog):
        reader = _make_reader(state, monitor)
        with caplog.at_level(logging.ERROR):
            reader._connection_lost("device unplugged")
            reader._connection_lost("device unplugged")
        assert caplog.text.count("GPS serial error on /dev/ttyUSB0") == 1
        assert hook.calls == [(None, ConnectivityStatus.ERROR)]

    @pytest.mark.asyncio
    async def test_read_loop_reopens_after_error(self, state, monitor, hook, caplog, monkeypatch):
        opened: list[FakeSerial] = []

        def fake_serial(port, baudrate, timeout):
            port = FakeSerial([RMC, b"\r\n", GGA] if not opened else [])
            opened.append(port)
            return port

        monkeypatch.setattr(serial_reader.serial, "Serial", fake_serial)
        monkeypatch.setattr(serial_reader, "RETRY_DELAY", 0.01)

        reader = _make_reader(state, monitor)
        with caplog.at_level(logging.ERROR):
            await reader.start()

            async def reopened():
                while len(opened) < 3:
                    await asyncio.sleep(0.01)

            await asyncio.wait_for(reopened(), 2.0)
            await reader.stop()

        assert state.lines_received == 2
        assert abs(state.altitude - 545.4) < 0.1
        assert caplog.text.count("GPS serial error on") == 1
        assert [new for _, new in hook.calls] == [
            ConnectivityStatus.ACTIVE,
            ConnectivityStatus.ERROR,
        ]
        assert not opened[0].is_open and not opened[1].is_open
        assert state.transport_connected is False


class TestHealth:
    @pytest.mark.asyncio
    async def test_open_port_is_left_alone(self, state, monitor):
        reader = _make_reader(state, monitor)
        reader._serial = MagicMock(is_open=True)
        await reader.check_health()
        assert reader._task is None

    @pytest.mark.asyncio
    async def test_closed_port_is_restarted(self, state, monitor, monkeypatch, caplog):
        reader = _make_reader(state, monitor)
        starts = []

        async def fake_start(force=False):
            starts.append(force)

        monkeypatch.setattr(reader, "start", fake_start)
        with caplog.at_level(logging.WARNING):
            await reader.check_health()
        assert starts == [True]
        assert "Attempting to reconnect" in caplog.text

    @pytest.mark.asyncio
    async def test_slow_open_is_not_restarted(self, state, monitor, monkeypatch):
        opened: list[FakeSerial] = []

        def slow_serial(port, baudrate, timeout):
            time.sleep(0.3)
            port = FakeSerial([RMC] * 1000)
            opened.append(port)
            return port

        monkeypatch.setattr(serial_reader.serial, "Serial", slow_serial)
        reader = _make_reader(state, monitor)
        await reader.start()
        try:
            await asyncio.sleep(0.05)
            await reader.check_health()

            async def open_done():
                while not opened:
                    await asyncio.sleep(0.01)

            await asyncio.wait_for(open_done(), 2.0)
            await asyncio.sleep(0.35)
        finally:
            await reader.stop()

        assert len(opened) == 1
        assert not opened[0].is_open

    @pytest.mark.asyncio
    async def test_port_opened_after_stop_is_closed(self, state, monitor, monkeypatch):
        opened: list[FakeSerial] = []

        def slow_serial(port, baudrate, timeout):
            time.sleep(0.2)
            port = FakeSerial([])
            opened.append(port)
            return port

        monkeypatch.setattr(serial_reader.serial, "Serial", slow_serial)
        reader = _make_reader(state, monitor)
        await reader.start()
        await asyncio.sleep(0.05)
        await reader.stop()

        async def abandoned_closed():
            while not opened or opened[0].is_open:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(abandoned_closed(), 2.0)
        assert len(opened) == 1
        assert reader._serial is None
