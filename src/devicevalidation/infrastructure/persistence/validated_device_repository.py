import json
import logging
from pathlib import Path
from typing import List, Sequence

from src.devicevalidation.domain.model.aggregates import ValidatedDevice
from src.shared.domain import OperationResult

logger = logging.getLogger(__name__)


class ValidatedDeviceRepository:
    """
    Repository for validated devices, stored as a JSON array on disk

    Contract:
    - load() never fails the caller: a missing, empty or corrupt file is
      an empty collection
    - save() overwrites the whole collection
    - remove() is idempotent
    """

    def __init__(self, storage_file: str):
        """
        Args:
            storage_file: Path to the JSON store (e.g. ./data/dbDevices.json)
        """
        self.storage_file = Path(storage_file)
        logger.info(f"Validated devices store: {self.storage_file}")

    def load(self) -> List[ValidatedDevice]:
        """
        Load every stored validated device

        Returns:
            List of ValidatedDevice in stored order (empty on any problem)
        """
        if not self.storage_file.exists():
            logger.info(f"Store not found, starting empty: {self.storage_file}")
            return []

        try:
            raw = self.storage_file.read_text(encoding='utf-8')
        except OSError as e:
            logger.error(f"Error reading {self.storage_file}: {e}")
            return []

        if not raw.strip():
            return []

        try:
            records = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {self.storage_file}: {e}")
            return []

        if not isinstance(records, list):
            logger.error(f"Unexpected store layout in {self.storage_file}: expected a list")
            return []

        devices = []
        for record in records:
            if not isinstance(record, dict):
                logger.warning(f"Skipping invalid record: {record!r}")
                continue
            try:
                devices.append(ValidatedDevice.from_dict(record))
            except ValueError as e:
                logger.warning(f"Skipping invalid record {record.get('id')!r}: {e}")

        return devices

    def save(self, devices: Sequence[ValidatedDevice]) -> OperationResult:
        """
        Overwrite the store with the given collection

        Args:
            devices: Complete collection to persist

        Returns:
            OperationResult (code PERSISTENCE_FAILED on I/O errors)
        """
        try:
            self.storage_file.parent.mkdir(parents=True, exist_ok=True)
            content = json.dumps(
                [device.to_dict() for device in devices],
                indent=2,
                ensure_ascii=False
            )
            self.storage_file.write_text(content, encoding='utf-8')

            logger.info(f"{len(devices)} validated device(s) saved to {self.storage_file}")
            return OperationResult.ok()

        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error saving validated devices: {e}", exc_info=True)
            return OperationResult.fail(
                'Error saving to the validated devices store',
                code='PERSISTENCE_FAILED'
            )

    def remove(self, device_id: str) -> OperationResult:
        """
        Remove a device from the store (load, filter, save)

        Removing an id that is not stored is a success.
        """
        devices = self.load()
        remaining = [device for device in devices if device.id != device_id]

        if len(remaining) == len(devices):
            logger.debug(f"Device not stored, nothing to remove: {device_id}")
            return OperationResult.ok()

        result = self.save(remaining)
        if result.success:
            logger.info(f"Device {device_id} removed from store")
        else:
            logger.error(f"Error removing device {device_id} from store")
        return result
