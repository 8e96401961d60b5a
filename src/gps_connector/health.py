import asyncio
import logging

from gps_connector.supervisor import Supervisor

logger = logging.getLogger(__name__)


async def health_check_loop(supervisor: Supervisor, interval: float) -> None:
    """Periodically let the live supervisor detect a dead or stale transport.

    Runs independently of the supervisor's own reconnect timer; a forced
    restart while a reconnect is already pending is a no-op.
    """
    while True:
        await asyncio.sleep(interval)
        try:
            await supervisor.check_health()
        except (OSError, RuntimeError) as exc:
            logger.error("GPS health check failed: %s", exc)
        except Exception:
            logger.exception("GPS health check raised unexpectedly")
