import asyncio
import logging
from collections.abc import Iterable

from gps_connector.assembler import Publisher, SampleAssembler
from gps_connector.config import Settings
from gps_connector.connectivity import (
    ConnectivityMonitor,
    StatusHook,
    ring_bell,
    terminal_bell_hook,
)
from gps_connector.gps_state import AcquisitionState
from gps_connector.gpsd_client import GpsdClient
from gps_connector.health import health_check_loop
from gps_connector.map_update import MapUpdater
from gps_connector.serial_reader import SerialReader
from gps_connector.simulator import Simulator
from gps_connector.supervisor import Supervisor

logger = logging.getLogger(__name__)


def build_supervisor(
    config: Settings, state: AcquisitionState, monitor: ConnectivityMonitor
) -> Supervisor | None:
    kind = config.transport_kind
    if kind == "simulation":
        return Simulator(config, state, monitor)
    if kind == "gpsd":
        return GpsdClient(config, state, monitor)
    if kind == "serial":
        return SerialReader(config, state, monitor)
    return None


class GpsEngine:
    """Wires the acquisition state, the live transport and the periodic tasks."""

    def __init__(
        self,
        config: Settings,
        *,
        publisher: Publisher | None = None,
        hooks: Iterable[StatusHook] = (),
    ) -> None:
        self.config = config
        self.state = AcquisitionState()
        self.monitor = ConnectivityMonitor(hooks)
        if config.beep_control:
            self.monitor.add_hook(terminal_bell_hook)
        self.publisher = publisher
        self.supervisor = build_supervisor(config, self.state, self.monitor)
        self.assembler = SampleAssembler(config, self.state, self.monitor, publisher)
        self.map_updater = MapUpdater(
            config,
            self.state,
            self.monitor,
            on_success=ring_bell if config.beep_control else None,
        )
        self._health_task: asyncio.Task | None = None

    # ── Lifecycle ──────────────────────────────────────────

    async def start(self) -> None:
        if self.publisher is not None:
            await self.publisher.start()
        await self._start_transport()
        await self.assembler.start()
        await self.map_updater.start()

    async def stop(self) -> None:
        await self.map_updater.stop()
        await self.assembler.stop()
        await self._stop_transport()
        if self.publisher is not None:
            await self.publisher.stop()
        logger.info("GPS engine stopped")

    async def reconfigure(self, config: Settings) -> None:
        """Switch transports; the old session is fully released before the new one opens."""
        await self._stop_transport()
        if config.transport_kind != self.config.transport_kind:
            self.state.satellites.clear()
        self.config = config
        self.assembler.config = config
        self.map_updater.config = config
        self.supervisor = build_supervisor(config, self.state, self.monitor)
        await self._start_transport()

    async def _start_transport(self) -> None:
        if self.supervisor is None:
            logger.info("GPS transport not configured, GPS off")
            self.monitor.mark_off()
            return
        logger.info("GPS starting connection (%s)", self.config.transport_kind)
        await self.supervisor.start()
        self._health_task = asyncio.create_task(
            health_check_loop(self.supervisor, self.config.health_interval),
            name="gps-health",
        )

    async def _stop_transport(self) -> None:
        if self._health_task:
            self._health_task.cancel()
            await asyncio.gather(self._health_task, return_exceptions=True)
            self._health_task = None
        if self.supervisor is not None:
            await self.supervisor.stop()
