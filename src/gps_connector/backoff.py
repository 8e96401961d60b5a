import time
from dataclasses import dataclass, field


@dataclass
class BackoffState:
    """Exponential reconnect delay, reset by any sign of life."""

    initial: float = 1.0
    maximum: float = 30.0
    current: float = field(init=False, default=1.0)
    last_data_at: float = field(default_factory=time.monotonic)

    def __post_init__(self) -> None:
        self.current = self.initial

    def next_delay(self) -> float:
        delay = self.current
        self.current = min(self.current * 2, self.maximum)
        return delay

    def reset(self) -> None:
        self.current = self.initial

    def mark_alive(self, now: float | None = None) -> None:
        self.last_data_at = time.monotonic() if now is None else now
        self.reset()

    def stale(self, timeout: float, now: float | None = None) -> bool:
        now = time.monotonic() if now is None else now
        return now - self.last_data_at > timeout
