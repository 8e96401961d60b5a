import asyncio
import logging

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

logger = logging.getLogger(__name__)

RECONNECT_DELAY = 5.0


class WebSocketPublisher:
    """Keeps a WebSocket open to the data-plugins endpoint and sends one message per tick."""

    def __init__(self, url: str) -> None:
        self.url = url
        self._ws = None
        self._task: asyncio.Task | None = None

    @property
    def is_open(self) -> bool:
        return self._ws is not None

    # ── Lifecycle ──────────────────────────────────────────

    async def start(self) -> None:
        self._task = asyncio.create_task(self._connect_loop(), name="gps-publisher")

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        if self._ws is not None:
            await self._ws.close()
            self._ws = None

    async def _connect_loop(self) -> None:
        while True:
            try:
                async with websockets.connect(self.url) as ws:
                    self._ws = ws
                    logger.info("GPS WebSocket connected to %s", self.url)
                    await ws.wait_closed()
                    logger.info(
                        "GPS WebSocket connection closed. Code: %s, Reason: %s",
                        ws.close_code,
                        ws.close_reason,
                    )
            except (WebSocketException, OSError, asyncio.TimeoutError) as exc:
                logger.warning("GPS WebSocket error: %s", exc)
            finally:
                self._ws = None

            await asyncio.sleep(RECONNECT_DELAY)

    # ── Send ───────────────────────────────────────────────

    async def publish(self, text: str) -> bool:
        ws = self._ws
        if ws is None:
            return False
        try:
            await ws.send(text)
        except ConnectionClosed as exc:
            logger.debug("GPS WebSocket send failed: %s", exc)
            return False
        return True
