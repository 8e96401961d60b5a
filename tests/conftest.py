import pytest

from gps_connector.connectivity import ConnectivityMonitor
from gps_connector.gps_state import AcquisitionState

from helpers import FakePublisher, HookRecorder


@pytest.fixture()
def state() -> AcquisitionState:
    return AcquisitionState()


@pytest.fixture()
def hook() -> HookRecorder:
    return HookRecorder()


@pytest.fixture()
def monitor(hook: HookRecorder) -> ConnectivityMonitor:
    return ConnectivityMonitor([hook])


@pytest.fixture()
def publisher() -> FakePublisher:
    return FakePublisher()
