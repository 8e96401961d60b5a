import asyncio
import codecs
import logging
import time
from collections.abc import Callable

from gps_connector.backoff import BackoffState
from gps_connector.config import Settings
from gps_connector.connectivity import ConnectivityMonitor
from gps_connector.gps_state import AcquisitionState
from gps_connector.gpsd_parser import WATCH_COMMAND, parse_gpsd_line
from gps_connector.supervisor import Supervisor

logger = logging.getLogger(__name__)

STALE_TIMEOUT = 15.0
RECONNECT_MAX = 30.0
READ_SIZE = 4096


class LineBuffer:
    """Splits a byte stream into lines, bounding the unterminated tail."""

    def __init__(self, max_pending: int = 200_000, keep: int = 50_000) -> None:
        self.max_pending = max_pending
        self.keep = keep
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, chunk: bytes) -> list[str]:
        self._pending += self._decoder.decode(chunk)
        *lines, self._pending = self._pending.split("\n")
        if len(self._pending) > self.max_pending:
            self._pending = self._pending[-self.keep:]
        return [line.strip() for line in lines if line.strip()]


class GpsdClient(Supervisor):
    """TCP client for a gpsd daemon's JSON watch stream.

    Socket errors and closes go through an exponential backoff. The
    periodic health check additionally reconnects a dead or silent session.
    """

    def __init__(
        self,
        config: Settings,
        state: AcquisitionState,
        monitor: ConnectivityMonitor,
        *,
        backoff: BackoffState | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(config, state, monitor)
        self.backoff = backoff or BackoffState(initial=1.0, maximum=RECONNECT_MAX)
        self.reconnect_delay: float | None = None
        self._clock = clock
        self._session: object | None = None
        self._session_task: asyncio.Task | None = None
        self._reconnect_task: asyncio.Task | None = None

    @property
    def source(self) -> str:
        return f"gpsd at {self.config.gpsd_host}:{self.config.gpsd_port}"

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    # ── Lifecycle ──────────────────────────────────────────

    async def start(self, force: bool = False) -> None:
        if self.reconnect_pending:
            return
        if self._session_task and not self._session_task.done():
            if not force:
                return
            await self._teardown()
        self._session_task = asyncio.create_task(self._run_session(), name="gpsd-session")

    async def stop(self) -> None:
        if self._reconnect_task:
            self._reconnect_task.cancel()
            await asyncio.gather(self._reconnect_task, return_exceptions=True)
            self._reconnect_task = None
        await self._teardown()
        logger.info("gpsd client stopped")

    async def check_health(self) -> None:
        if self.reconnect_pending:
            return
        if self._session_task is None or self._session_task.done():
            logger.warning("GPS gpsd session is down. Reconnecting...")
        elif self.backoff.stale(STALE_TIMEOUT, self._clock()):
            logger.warning("GPS gpsd data timeout (stale). Reconnecting...")
        else:
            return
        self.monitor.on_transport_error()
        await self.start(force=True)

    async def _teardown(self) -> None:
        self._session = None
        if self._session_task:
            self._session_task.cancel()
            await asyncio.gather(self._session_task, return_exceptions=True)
            self._session_task = None
        self.state.transport_connected = False

    # ── Session ───────────────────────────────────────────

    async def _run_session(self) -> None:
        session = object()
        self._session = session
        buffer = LineBuffer()
        self.backoff.last_data_at = self._clock()

        try:
            reader, writer = await asyncio.open_connection(
                self.config.gpsd_host, self.config.gpsd_port
            )
        except OSError as exc:
            logger.error("GPS gpsd connection to %s failed: %s", self.source, exc)
            self._connection_lost(session, "gpsd connect failed")
            return

        self.backoff.reset()
        self.state.transport_connected = True
        logger.info(
            "GPS using gpsd for GPS data (%s:%s)",
            self.config.gpsd_host,
            self.config.gpsd_port,
        )

        try:
            writer.write(WATCH_COMMAND)
            await writer.drain()

            while True:
                chunk = await reader.read(READ_SIZE)
                if self._session is not session:
                    return
                if not chunk:
                    self._connection_lost(session, "gpsd socket closed")
                    return
                self.backoff.mark_alive(self._clock())
                for line in buffer.feed(chunk):
                    self._ingest(line, parse_gpsd_line)
        except OSError as exc:
            logger.error("GPS gpsd socket error: %s", exc)
            self._connection_lost(session, "gpsd socket error")
        finally:
            writer.close()

    def _connection_lost(self, session: object, reason: str) -> None:
        # A torn-down session must not touch its replacement
        if self._session is not session:
            return
        self.state.transport_connected = False
        self.monitor.on_transport_error()
        self._schedule_reconnect(reason)

    def _schedule_reconnect(self, reason: str) -> None:
        if self.reconnect_pending:
            return
        delay = self.backoff.next_delay()
        self.reconnect_delay = delay
        logger.warning(
            "GPS lost connection to gpsd. Reconnecting in %.0fs... (%s)", delay, reason
        )
        self._reconnect_task = asyncio.create_task(
            self._reconnect_after(delay), name="gpsd-reconnect"
        )

    async def _reconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._reconnect_task = None
        await self.start(force=True)
