import asyncio
import logging
import platform
from collections.abc import Callable

import httpx

from gps_connector.config import Settings
from gps_connector.connectivity import ConnectivityMonitor, ConnectivityStatus
from gps_connector.gps_state import AcquisitionState

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


class MapUpdater:
    """Registers the station position with the public server map while a fix is held."""

    def __init__(
        self,
        config: Settings,
        state: AcquisitionState,
        monitor: ConnectivityMonitor,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        on_success: Callable[[], None] | None = None,
    ) -> None:
        self.config = config
        self.state = state
        self.monitor = monitor
        self._transport = transport
        self._on_success = on_success
        self._http: httpx.AsyncClient | None = None
        self._task: asyncio.Task | None = None

    # ── Lifecycle ──────────────────────────────────────────

    async def start(self) -> None:
        self._http = httpx.AsyncClient(timeout=10.0, transport=self._transport)
        self._task = asyncio.create_task(self._update_loop(), name="gps-map-update")
        logger.info(
            "GPS update interval for server map is %s seconds", self.config.map_interval_s
        )

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        if self._http:
            await self._http.aclose()
            self._http = None

    async def _update_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.map_interval_s)
            if self.should_send():
                await self.send_update()

    # ── Registration ──────────────────────────────────────

    def should_send(self) -> bool:
        return (
            self.config.update_map_pos
            and self.monitor.status == ConnectivityStatus.ACTIVE
            and self.state.latitude is not None
            and self.state.longitude is not None
        )

    def build_payload(self) -> dict:
        c = self.config
        payload = {
            "status": 2 if (c.lock_to_admin or not c.public_tuner) else 1,
            "coords": [f"{self.state.latitude:.6f}", f"{self.state.longitude:.6f}"],
            "name": c.tuner_name,
            "desc": c.tuner_desc,
            "audioChannels": c.audio_channels,
            "audioQuality": c.audio_quality,
            "contact": c.contact,
            "tuner": c.tuner_device,
            "bwLimit": "",
            "os": f"{platform.system()} {platform.release()}",
            "version": VERSION,
        }
        if c.token:
            payload["token"] = c.token
        if c.proxy_url:
            payload["url"] = c.proxy_url
        else:
            payload["port"] = c.webserver_port
        return payload

    async def send_update(self) -> bool:
        if not self._http:
            return False
        payload = self.build_payload()
        try:
            resp = await self._http.post(
                self.config.map_api_url,
                json=payload,
                headers={"Accept": "application/json"},
            )
            body = resp.json()
        except httpx.HTTPError as exc:
            logger.warning("GPS failed to send map update: %s", exc)
            return False
        except ValueError as exc:
            logger.warning("GPS failed to parse map update response: %s", exc)
            return False

        if isinstance(body, dict) and body.get("token") and body.get("success"):
            logger.info(
                "GPS update server map: %s %s successful", *payload["coords"]
            )
            if self._on_success:
                self._on_success()
            return True

        error = body.get("error") if isinstance(body, dict) else None
        logger.warning("GPS failed to update server map: %s", error or "unknown error")
        return False
