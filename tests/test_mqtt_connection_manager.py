from types import SimpleNamespace

import pytest
from paho.mqtt.packettypes import PacketTypes
from paho.mqtt.reasoncodes import ReasonCode

from src.shared.infrastructure.mqtt import MqttConnectionManager


@pytest.fixture
def manager():
    return MqttConnectionManager()


def message(topic, payload):
    return SimpleNamespace(topic=topic, payload=payload)


def test_publish_while_disconnected_fails(manager):
    result = manager.publish('/dev/device/register/A1/cmd', 'set.config({})')

    assert not result.success
    assert result.code == 'NOT_CONNECTED'
    assert result.error


def test_subscribe_before_connect_is_deferred(manager):
    handler = lambda topic, payload: None

    manager.subscribe('/dev/+/register/+/log', handler)

    assert manager.message_handlers == {'/dev/+/register/+/log': handler}


def test_on_message_routes_by_wildcard(manager):
    logs, data = [], []
    manager.message_handlers['/dev/+/register/+/log'] = lambda t, p: logs.append((t, p))
    manager.message_handlers['/dev/+/register/+/data/#'] = lambda t, p: data.append((t, p))

    manager._on_message(None, None, message('/dev/device/register/A1/log', b'boot ok'))
    manager._on_message(None, None, message('/dev/device/register/A1/data/2', b'1'))

    assert logs == [('/dev/device/register/A1/log', 'boot ok')]
    assert data == [('/dev/device/register/A1/data/2', '1')]


def test_on_message_drops_undecodable_payload(manager):
    received = []
    manager.message_handlers['/dev/+/register/+/log'] = lambda t, p: received.append(p)

    manager._on_message(None, None, message('/dev/device/register/A1/log', b'\xff\xfe'))

    assert received == []


def test_on_message_survives_handler_errors(manager):
    def broken(topic, payload):
        raise RuntimeError('boom')

    manager.message_handlers['/dev/+/register/+/log'] = broken

    manager._on_message(None, None, message('/dev/device/register/A1/log', b'x'))


def test_connect_and_disconnect_callbacks_track_state(manager):
    manager._on_connect(None, None, None, ReasonCode(PacketTypes.CONNACK, identifier=0))
    assert manager.is_connected()
    assert manager.wait_until_connected(timeout=0)

    manager._on_disconnect(None, None, None, ReasonCode(PacketTypes.DISCONNECT, identifier=0))
    assert not manager.is_connected()


def test_refused_connection_stays_disconnected(manager):
    manager._on_connect(None, None, None, ReasonCode(PacketTypes.CONNACK, identifier=0x87))

    assert not manager.is_connected()
