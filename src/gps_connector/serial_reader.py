import asyncio
import logging

import serial

from gps_connector.config import Settings
from gps_connector.connectivity import ConnectivityMonitor
from gps_connector.gps_state import AcquisitionState
from gps_connector.nmea_parser import parse_nmea_line
from gps_connector.supervisor import Supervisor

logger = logging.getLogger(__name__)

# Reopening a serial port is cheap, so it retries on a short fixed delay
RETRY_DELAY = 2.0


class SerialReader(Supervisor):
    """Reads NMEA sentences from a serial receiver and feeds the acquisition state."""

    def __init__(
        self,
        config: Settings,
        state: AcquisitionState,
        monitor: ConnectivityMonitor,
    ) -> None:
        super().__init__(config, state, monitor)
        self._task: asyncio.Task | None = None
        self._serial: serial.Serial | None = None
        self._failed = False
        self._retrying = False
        self._opening = False

    @property
    def source(self) -> str:
        return f"receiver {self.config.port} with {self.config.baudrate} bps"

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    # ── Lifecycle ──────────────────────────────────────────

    async def start(self, force: bool = False) -> None:
        if self._task and not self._task.done():
            if not force or self._retrying:
                return
            await self._cancel()
        self._task = asyncio.create_task(self._read_loop(), name="gps-serial")
        logger.info(
            "Serial reader started: port=%s baud=%s",
            self.config.port,
            self.config.baudrate,
        )

    async def stop(self) -> None:
        await self._cancel()
        logger.info("Serial reader stopped")

    async def check_health(self) -> None:
        if self._retrying or self._opening or self.is_open:
            return
        logger.warning("GPS lost connection to %s. Attempting to reconnect...", self.config.port)
        await self.start(force=True)

    async def _cancel(self) -> None:
        if self._task:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        self._close_port()
        self._retrying = False

    # ── Main loop ─────────────────────────────────────────

    async def _read_loop(self) -> None:
        while True:
            try:
                self._serial = await self._open_port()
                self.state.transport_connected = True
                logger.info("Serial port %s opened", self.config.port)

                while True:
                    raw = await asyncio.to_thread(self._serial.readline)
                    if not raw:
                        continue
                    line = raw.decode("ascii", errors="replace").strip()
                    if not line:
                        continue
                    self._failed = False
                    self._ingest(line, parse_nmea_line)

            except (serial.SerialException, OSError) as exc:
                self._connection_lost(str(exc))
            except Exception as exc:
                logger.error("Unexpected serial reader error: %s", exc)
                self._connection_lost(str(exc))
            finally:
                self._close_port()

            self._retrying = True
            try:
                await asyncio.sleep(RETRY_DELAY)
            finally:
                self._retrying = False

    async def _open_port(self) -> serial.Serial:
        self._opening = True
        opening = asyncio.ensure_future(
            asyncio.to_thread(
                serial.Serial, self.config.port, self.config.baudrate, timeout=2.0
            )
        )
        try:
            return await asyncio.shield(opening)
        except asyncio.CancelledError:
            # The worker thread cannot be interrupted; close whatever it opens
            opening.add_done_callback(_close_abandoned)
            raise
        finally:
            self._opening = False

    def _connection_lost(self, reason: str) -> None:
        self.state.transport_connected = False
        if self._failed:
            return
        # Log once per failure episode, not on every retry
        self._failed = True
        logger.error("GPS serial error on %s: %s", self.config.port, reason)
        self.monitor.on_transport_error()

    def _close_port(self) -> None:
        ser, self._serial = self._serial, None
        self.state.transport_connected = False
        if ser is not None:
            try:
                ser.close()
            except serial.SerialException as exc:
                logger.debug("Closing %s failed: %s", self.config.port, exc)


def _close_abandoned(opening: asyncio.Future) -> None:
    if opening.cancelled() or opening.exception() is not None:
        return
    try:
        opening.result().close()
    except serial.SerialException as exc:
        logger.debug("Closing abandoned serial handle failed: %s", exc)
