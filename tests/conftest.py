"""pytest configuration and shared fakes for the device validator tests."""

from datetime import datetime, timedelta

import pytest

from src.devicevalidation.application.services import DeviceRegistry, ValidationService
from src.devicevalidation.domain.model.events import MessageKind
from src.devicevalidation.infrastructure.messaging import DeviceTopicRouter
from src.devicevalidation.infrastructure.persistence import ValidatedDeviceRepository
from src.shared.domain import OperationResult

CHANNELS = ('1', '2', '3')


class FakeTimer:
    """Timer stub that only fires when the test says so."""

    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.callback()


class FakeTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, callback):
        timer = FakeTimer(interval, callback)
        self.timers.append(timer)
        return timer

    def live(self):
        return [t for t in self.timers if t.started and not t.cancelled]


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2025, 3, 10, 14, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)
        return self.now


class FakeMqttManager:
    """Records publishes instead of talking to a broker."""

    def __init__(self, connected=True):
        self.connected = connected
        self.published = []
        self.fail_with = None

    def is_connected(self):
        return self.connected

    def publish(self, topic, payload, retain=False):
        if not self.connected:
            return OperationResult.fail('Not connected to MQTT broker', code='NOT_CONNECTED')
        if self.fail_with:
            return OperationResult.fail(self.fail_with, code='TRANSPORT_ERROR')
        self.published.append((topic, payload))
        return OperationResult.ok()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timers():
    return FakeTimerFactory()


@pytest.fixture
def registry(clock, timers):
    return DeviceRegistry(
        channels=CHANNELS,
        channel_window_seconds=1.0,
        timer_factory=timers,
        clock=clock
    )


@pytest.fixture
def storage_file(tmp_path):
    return tmp_path / 'data' / 'dbDevices.json'


@pytest.fixture
def repository(storage_file):
    return ValidatedDeviceRepository(str(storage_file))


@pytest.fixture
def validation_service(registry, repository):
    return ValidationService(registry, repository)


@pytest.fixture
def router(registry, validation_service):
    router = DeviceTopicRouter(is_validated=validation_service.is_validated)
    router.register_handler(MessageKind.LOG, registry.apply_event)
    router.register_handler(MessageKind.DATA, registry.apply_event)
    return router


@pytest.fixture
def mqtt_manager():
    return FakeMqttManager()


@pytest.fixture
def make_topic():
    def _make(device_id, kind, channel=None):
        base = f"/dev/device/register/{device_id}/{kind}"
        return f"{base}/{channel}" if channel else base
    return _make
