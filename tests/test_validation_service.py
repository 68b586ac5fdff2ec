import json

from src.devicevalidation.domain.model.events import DeviceMessageEvent, MessageKind
from src.shared.domain import OperationResult


def data(device_id, channel):
    return DeviceMessageEvent(device_id=device_id, kind=MessageKind.DATA, channel=channel)


def make_ready(registry, device_id='A1'):
    for channel in ('1', '2', '3'):
        registry.apply_event(data(device_id, channel))
    return registry.get(device_id)


def stored_ids(storage_file):
    return [r['id'] for r in json.loads(storage_file.read_text(encoding='utf-8'))]


def test_can_validate_requires_every_channel(registry, validation_service):
    registry.apply_event(data('A1', '1'))
    registry.apply_event(data('A1', '2'))
    device = registry.get('A1')

    assert validation_service.can_validate(device) is False

    registry.apply_event(data('A1', '3'))
    assert validation_service.can_validate(device) is True


def test_validate_moves_device_to_validated_set(registry, validation_service, storage_file, clock, timers):
    make_ready(registry)
    clock.advance(5)

    result = validation_service.validate('A1')

    assert result.success
    snapshot = result.data
    assert snapshot.id == 'A1'
    assert snapshot.validated is True
    assert snapshot.validation_date == clock.now
    assert snapshot.last_seen == clock.now
    assert registry.get('A1') is None
    assert validation_service.is_validated('A1')
    assert stored_ids(storage_file) == ['A1']
    # pending channel timers are cancelled with the device
    assert timers.live() == []


def test_snapshot_is_detached_from_live_state(registry, validation_service):
    device = make_ready(registry)

    snapshot = validation_service.validate('A1').data
    device.signals['1'].validated = False

    assert snapshot.signals['1'].validated is True


def test_validate_unknown_device_fails(validation_service):
    result = validation_service.validate('ghost')

    assert not result.success
    assert result.code == 'NOT_FOUND'


def test_validate_not_ready_device_fails(registry, validation_service, storage_file):
    registry.apply_event(data('A1', '1'))

    result = validation_service.validate('A1')

    assert result.code == 'NOT_READY'
    assert '2' in result.error and '3' in result.error
    assert registry.get('A1') is not None
    assert not storage_file.exists()


def test_validate_does_not_duplicate_stored_record(registry, validation_service, repository, storage_file):
    make_ready(registry)
    validation_service.validate('A1')

    # Dropped from memory only; the durable record stays
    validation_service._validated.clear()
    make_ready(registry)

    assert validation_service.validate('A1').success
    assert stored_ids(storage_file) == ['A1']
    assert validation_service.count() == 1


def test_failed_save_rolls_back(registry, validation_service, repository, monkeypatch):
    device = make_ready(registry)
    last_seen = device.last_seen
    monkeypatch.setattr(
        repository, 'save',
        lambda devices: OperationResult.fail('disk full', code='PERSISTENCE_FAILED')
    )

    result = validation_service.validate('A1')

    assert result.code == 'PERSISTENCE_FAILED'
    assert registry.get('A1') is device
    assert device.validated is False
    assert device.last_seen == last_seen
    assert not validation_service.is_validated('A1')


def test_unvalidate_removes_from_memory_and_store(registry, validation_service, storage_file):
    make_ready(registry)
    validation_service.validate('A1')

    result = validation_service.unvalidate('A1')

    assert result.success
    assert not validation_service.is_validated('A1')
    assert stored_ids(storage_file) == []
    # not resurrected as a live device
    assert registry.get('A1') is None


def test_unvalidate_unknown_id_is_success(validation_service):
    assert validation_service.unvalidate('ghost').success


def test_unvalidate_live_device_leaves_validated_set_alone(registry, validation_service):
    make_ready(registry, 'A1')
    make_ready(registry, 'B2')
    validation_service.validate('B2')

    assert validation_service.unvalidate('A1').success
    assert registry.get('A1') is not None
    assert [d.id for d in validation_service.get_validated_devices()] == ['B2']


def test_unvalidate_keeps_memory_when_store_fails(registry, validation_service, repository, monkeypatch):
    make_ready(registry)
    validation_service.validate('A1')
    monkeypatch.setattr(
        repository, 'remove',
        lambda device_id: OperationResult.fail('read-only', code='PERSISTENCE_FAILED')
    )

    result = validation_service.unvalidate('A1')

    assert not result.success
    assert validation_service.is_validated('A1')


def test_load_validated_devices_restores_set(registry, validation_service, repository, storage_file):
    make_ready(registry)
    validation_service.validate('A1')

    from src.devicevalidation.application.services import ValidationService
    fresh = ValidationService(registry, repository)

    assert fresh.load_validated_devices() == 1
    assert fresh.is_validated('A1')


def test_load_validated_devices_with_missing_store(validation_service):
    assert validation_service.load_validated_devices() == 0
    assert validation_service.get_validated_devices() == []
