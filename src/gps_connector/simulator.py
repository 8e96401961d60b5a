import asyncio
import logging
import random
import time
from datetime import datetime, timezone

from gps_connector.config import Settings
from gps_connector.connectivity import ConnectivityMonitor
from gps_connector.gps_state import AcquisitionState
from gps_connector.satellites import SatelliteRecord, SatelliteSystem
from gps_connector.supervisor import Supervisor
from gps_connector.updates import FixMode, HdopUpdate, PositionUpdate, SatelliteUpdate

logger = logging.getLogger(__name__)

DEMO_SATELLITES = (
    SatelliteRecord(prn=5, elevation=45, azimuth=100, snr=35, system=SatelliteSystem.GPS),
    SatelliteRecord(prn=12, elevation=80, azimuth=180, snr=42, system=SatelliteSystem.GPS),
    SatelliteRecord(prn=24, elevation=15, azimuth=270, snr=15, system=SatelliteSystem.GPS),
)
DEMO_HDOP = 1.2


class Simulator(Supervisor):
    """Synthesizes a jittered fix around a reference point for hardware-free runs."""

    def __init__(
        self,
        config: Settings,
        state: AcquisitionState,
        monitor: ConnectivityMonitor,
        *,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(config, state, monitor)
        self._rng = rng or random.Random()
        self._task: asyncio.Task | None = None

    @property
    def source(self) -> str:
        return "simulated receiver"

    async def start(self, force: bool = False) -> None:
        if self._task and not self._task.done():
            if not force:
                return
            await self.stop()
        logger.info("GPS simulation mode enabled")
        self._task = asyncio.create_task(self._tick_loop(), name="gps-simulator")

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        self.state.transport_connected = False

    async def check_health(self) -> None:
        if self._task is None or self._task.done():
            await self.start(force=True)

    def step(self, now: datetime | None = None) -> None:
        """Produce one synthetic fix."""
        jitter = self._rng.random
        updates = (
            PositionUpdate(
                latitude=self.config.sim_lat + (jitter() - 0.5) * 0.001,
                longitude=self.config.sim_lon + (jitter() - 0.5) * 0.001,
                timestamp=now or datetime.now(timezone.utc),
                altitude=self.config.sim_alt + (jitter() - 0.5) * 5,
                fix_mode=FixMode.FIX_3D,
            ),
            HdopUpdate(hdop=DEMO_HDOP),
            SatelliteUpdate(system=SatelliteSystem.GPS, records=DEMO_SATELLITES),
        )
        self.state.transport_connected = True
        self.state.last_data_time = time.monotonic()
        for update in updates:
            self.state.apply(update, self.config.height)
        self.monitor.on_data(True, self.source)

    async def _tick_loop(self) -> None:
        while True:
            self.step()
            await asyncio.sleep(self.config.tick_interval)
