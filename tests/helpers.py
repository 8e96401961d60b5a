from gps_connector.config import Settings


def make_settings(**kwargs) -> Settings:
    kwargs.setdefault("publish_url", "")
    return Settings(**kwargs)


class FakePublisher:
    def __init__(self, *, open_: bool = True) -> None:
        self.open = open_
        self.messages: list[str] = []
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def publish(self, text: str) -> bool:
        if not self.open:
            return False
        self.messages.append(text)
        return True


class HookRecorder:
    def __init__(self) -> None:
        self.calls = []

    def __call__(self, old, new) -> None:
        self.calls.append((old, new))
