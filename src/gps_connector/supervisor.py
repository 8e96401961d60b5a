import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

from gps_connector.config import Settings
from gps_connector.connectivity import ConnectivityMonitor
from gps_connector.gps_state import AcquisitionState
from gps_connector.updates import Update

logger = logging.getLogger(__name__)


class Supervisor(ABC):
    """Owns the single live transport session and feeds its lines to a parser.

    Only one supervisor is live at a time; it is the only component that
    touches its serial port or socket.
    """

    def __init__(
        self,
        config: Settings,
        state: AcquisitionState,
        monitor: ConnectivityMonitor,
    ) -> None:
        self.config = config
        self.state = state
        self.monitor = monitor

    @property
    @abstractmethod
    def source(self) -> str:
        """Human-readable description of the transport, used in logs."""

    @abstractmethod
    async def start(self, force: bool = False) -> None:
        """Open the transport. With force, tear down the live session first."""

    @abstractmethod
    async def stop(self) -> None:
        """Release the transport and cancel every pending timer."""

    @abstractmethod
    async def check_health(self) -> None:
        """Called periodically; restarts the transport if it went dead or stale."""

    def _ingest(self, line: str, parse: Callable[[str], Update | None]) -> None:
        self.state.lines_received += 1
        self.state.last_data_time = time.monotonic()
        update = parse(line)
        if update is None:
            self.state.lines_discarded += 1
            fix = None
        else:
            fix = self.state.apply(update, self.config.height)
        self.monitor.on_data(fix, self.source)
