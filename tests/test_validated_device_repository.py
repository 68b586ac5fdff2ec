import json
from datetime import datetime

from src.devicevalidation.domain.model.aggregates import DeviceState, ValidatedDevice


def make_validated(device_id, when=datetime(2025, 3, 10, 14, 2, 11)):
    device = DeviceState.create(device_id, ('1', '2', '3'), when)
    device.validated = True
    return ValidatedDevice.from_device(device, validation_date=when)


def test_load_missing_store_returns_empty(repository, storage_file):
    assert not storage_file.exists()
    assert repository.load() == []


def test_load_empty_store_returns_empty(repository, storage_file):
    storage_file.parent.mkdir(parents=True)
    storage_file.write_text('  \n', encoding='utf-8')

    assert repository.load() == []


def test_load_corrupt_store_returns_empty(repository, storage_file):
    storage_file.parent.mkdir(parents=True)
    storage_file.write_text('[{"id": ', encoding='utf-8')

    assert repository.load() == []


def test_load_non_list_store_returns_empty(repository, storage_file):
    storage_file.parent.mkdir(parents=True)
    storage_file.write_text('{"id": "A1"}', encoding='utf-8')

    assert repository.load() == []


def test_save_overwrites_whole_collection(repository, storage_file):
    repository.save([make_validated('A1'), make_validated('B2')])
    result = repository.save([make_validated('C3')])

    assert result.success
    records = json.loads(storage_file.read_text(encoding='utf-8'))
    assert [r['id'] for r in records] == ['C3']


def test_saved_record_layout(repository, storage_file):
    repository.save([make_validated('A1')])

    record = json.loads(storage_file.read_text(encoding='utf-8'))[0]
    assert record['id'] == 'A1'
    assert record['validated'] is True
    assert record['lastSeen'] == '2025-03-10T14:02:11'
    assert record['validationDate'] == '2025-03-10T14:02:11'
    assert record['signals']['2'] == {'enable': None, 'active': False, 'validated': False}


def test_load_falls_back_to_last_seen_for_validation_date(repository, storage_file):
    storage_file.parent.mkdir(parents=True)
    storage_file.write_text(json.dumps([{
        'id': 'A1',
        'validated': True,
        'lastSeen': '2025-03-10T14:02:11.512Z',
        'signals': {'1': {'active': True, 'validated': True}}
    }]), encoding='utf-8')

    device = repository.load()[0]

    assert device.validation_date == device.last_seen
    assert device.last_seen.year == 2025
    assert device.signals['1'].validated is True


def test_load_skips_records_without_id(repository, storage_file):
    storage_file.parent.mkdir(parents=True)
    storage_file.write_text(json.dumps([{'validated': True}, {'id': 'B2'}, 'junk']), encoding='utf-8')

    assert [d.id for d in repository.load()] == ['B2']


def test_remove_filters_device(repository):
    repository.save([make_validated('A1'), make_validated('B2')])

    assert repository.remove('A1').success
    assert [d.id for d in repository.load()] == ['B2']


def test_remove_unknown_id_is_success(repository):
    repository.save([make_validated('A1')])

    assert repository.remove('ZZ').success
    assert [d.id for d in repository.load()] == ['A1']


def test_remove_on_missing_store_is_success(repository):
    assert repository.remove('A1').success


def test_save_failure_is_reported(tmp_path):
    from src.devicevalidation.infrastructure.persistence import ValidatedDeviceRepository

    blocker = tmp_path / 'blocker'
    blocker.write_text('not a directory', encoding='utf-8')
    repository = ValidatedDeviceRepository(str(blocker / 'dbDevices.json'))

    result = repository.save([make_validated('A1')])

    assert not result.success
    assert result.code == 'PERSISTENCE_FAILED'
