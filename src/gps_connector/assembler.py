import asyncio
import logging
from datetime import datetime
from typing import Protocol

from gps_connector.config import Settings
from gps_connector.connectivity import ConnectivityMonitor, ConnectivityStatus
from gps_connector.gps_state import AcquisitionState
from gps_connector.models import GpsMessage, GpsSample, SatelliteView
from gps_connector.policy import format_timestamp, resolve_altitude
from gps_connector.updates import FixMode

logger = logging.getLogger(__name__)


class Publisher(Protocol):
    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def publish(self, text: str) -> bool: ...


class SampleAssembler:
    """Snapshots the acquisition state into one GPS sample per tick."""

    def __init__(
        self,
        config: Settings,
        state: AcquisitionState,
        monitor: ConnectivityMonitor,
        publisher: Publisher | None = None,
    ) -> None:
        self.config = config
        self.state = state
        self.monitor = monitor
        self.publisher = publisher
        self._task: asyncio.Task | None = None

    # ── Lifecycle ──────────────────────────────────────────

    async def start(self) -> None:
        self._task = asyncio.create_task(self._tick_loop(), name="gps-assembler")

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None

    async def _tick_loop(self) -> None:
        # One tick at a time: the next sleep starts only after the publish returns
        while True:
            await self.tick()
            await asyncio.sleep(self.config.tick_interval)

    # ── Assembly ──────────────────────────────────────────

    async def tick(self, now: datetime | None = None) -> GpsSample:
        sample = self.build_sample(now)
        self.state.last_sample = sample
        if self.publisher is None:
            return sample

        ok = await self.publisher.publish(GpsMessage(value=sample).model_dump_json())
        if not ok:
            logger.warning("GPS publish channel is not open. Unable to send GPS data.")
        return sample

    def build_sample(self, now: datetime | None = None) -> GpsSample:
        s = self.state
        fixed = self.config.height
        status = self.monitor.status
        altitude, mode = resolve_altitude(fixed, s.altitude, s.fix_mode)

        lat, lon = s.latitude, s.longitude
        if lat is None or lon is None:
            lat, lon = self._station_position()

        if status == ConnectivityStatus.ACTIVE and mode in (FixMode.FIX_2D, FixMode.FIX_3D):
            mode_text = str(int(mode))
        elif fixed is not None:
            mode_text = str(int(FixMode.FIX_2D))
        else:
            mode_text = ""

        return GpsSample(
            status=status.value,
            time=format_timestamp(s.timestamp, now),
            lat=f"{lat:.9f}" if lat is not None else "",
            lon=f"{lon:.9f}" if lon is not None else "",
            alt=f"{altitude:.3f}" if altitude is not None else "",
            mode=mode_text,
            hdop=s.hdop,
            satellites=tuple(
                SatelliteView(**record.to_dict()) for record in s.satellites.flatten()
            ),
        )

    def _station_position(self) -> tuple[float | None, float | None]:
        # Static station coordinates stand in only when no receiver is configured
        if self.config.transport_kind != "off":
            return None, None
        if self.config.station_lat is None or self.config.station_lon is None:
            return None, None
        return self.config.station_lat, self.config.station_lon
