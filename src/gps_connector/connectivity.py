import logging
import sys
from collections.abc import Callable, Iterable
from enum import Enum

logger = logging.getLogger(__name__)


class ConnectivityStatus(str, Enum):
    OFF = "off"
    INACTIVE = "inactive"
    ACTIVE = "active"
    ERROR = "error"


StatusHook = Callable[[ConnectivityStatus | None, ConnectivityStatus], None]


class ConnectivityMonitor:
    """Derives the published connectivity status from the data stream.

    Hooks fire once per edge: the new status is compared with the last
    published one, never with the raw per-line fix validity.
    """

    def __init__(self, hooks: Iterable[StatusHook] = ()) -> None:
        self.status = ConnectivityStatus.OFF
        self._published: ConnectivityStatus | None = None
        self._hooks: list[StatusHook] = list(hooks)
        self._detected = False
        self._receiving: bool | None = None

    def add_hook(self, hook: StatusHook) -> None:
        self._hooks.append(hook)

    # ── Transitions ───────────────────────────────────────

    def set_status(self, new: ConnectivityStatus) -> bool:
        self.status = new
        if new == self._published:
            return False

        old, self._published = self._published, new
        logger.info(
            "GPS status %s -> %s", old.value if old else "none", new.value
        )
        for hook in self._hooks:
            try:
                hook(old, new)
            except Exception:
                logger.exception("GPS status hook %r failed", hook)
        return True

    def mark_off(self) -> None:
        self.set_status(ConnectivityStatus.OFF)

    # ── Inputs ────────────────────────────────────────────

    def on_data(self, fix: bool | None, source: str) -> None:
        """Record one received line; fix is the opinion carried by its update."""
        if not self._detected:
            self._detected = True
            self._receiving = None
            logger.info("GPS detected %s", source)

        if fix is None:
            if self.status in (ConnectivityStatus.OFF, ConnectivityStatus.ERROR):
                self.set_status(ConnectivityStatus.INACTIVE)
            return

        if fix and self._receiving is not True:
            logger.info("GPS received data")
        elif not fix and self._receiving is not False:
            logger.warning("GPS received no data")
        self._receiving = fix
        self.set_status(ConnectivityStatus.ACTIVE if fix else ConnectivityStatus.INACTIVE)

    def on_transport_error(self) -> None:
        """Transport failed; the next received line counts as a new detection."""
        self._detected = False
        self._receiving = None
        self.set_status(ConnectivityStatus.ERROR)


def ring_bell(count: int = 1) -> None:
    sys.stdout.write("\a" * count)
    sys.stdout.flush()


def terminal_bell_hook(old: ConnectivityStatus | None, new: ConnectivityStatus) -> None:
    """Audible cue: two bells when a fix is acquired, one when it is lost."""
    if new == ConnectivityStatus.ACTIVE:
        ring_bell(2)
    elif new in (ConnectivityStatus.INACTIVE, ConnectivityStatus.ERROR):
        ring_bell(1)
