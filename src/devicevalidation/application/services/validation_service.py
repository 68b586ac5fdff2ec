import logging
from typing import Callable, Dict, List, Optional
from datetime import datetime

from src.devicevalidation.domain.model.aggregates import DeviceState, ValidatedDevice
from src.devicevalidation.infrastructure.persistence import ValidatedDeviceRepository
from src.shared.domain import OperationResult
from .device_registry import DeviceRegistry

logger = logging.getLogger(__name__)


class ValidationService:
    """
    Application Service for device validation

    Responsibilities:
    - Decide whether a live device can be validated
    - Move a device from the live registry into the validated set
    - Keep the validated set and the durable store in step
    - Reload the validated set at startup

    A device id is never both live and validated: validate() removes it from
    the registry under the shared lock, and the registry drops events for
    validated ids under that same lock.
    """

    def __init__(
            self,
            registry: DeviceRegistry,
            repository: ValidatedDeviceRepository,
            clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Args:
            registry: Live device registry (its lock guards the validated set too)
            repository: Durable store of validated devices
            clock: Source of the current time (defaults to the registry's)
        """
        self.registry = registry
        self.repository = repository
        self.clock = clock or registry.clock
        self._lock = registry.lock
        self._validated: Dict[str, ValidatedDevice] = {}
        registry.set_validated_lookup(self.is_validated)

    def can_validate(self, device: DeviceState) -> bool:
        """True iff every channel of the device is validated"""
        return device.is_ready_for_validation()

    def validate(self, device_id: str) -> OperationResult:
        """
        Validate a live device

        Flow:
        1. Device must be live and every channel validated
        2. Snapshot it with validationDate = now
        3. Persist the snapshot unless the id is already stored
        4. Add to the validated set, drop from the live registry

        A failed save leaves the device live and unvalidated.

        Returns:
            OperationResult with the ValidatedDevice as data on success
        """
        with self._lock:
            device = self.registry.get(device_id)

            if device is None:
                logger.warning(f"Cannot validate unknown device: {device_id}")
                return OperationResult.fail(
                    f'Device {device_id} is not being monitored',
                    code='NOT_FOUND'
                )

            if not self.can_validate(device):
                pending = [c for c, s in device.signals.items() if not s.validated]
                logger.warning(f"Device {device_id} not ready, pending channels: {pending}")
                return OperationResult.fail(
                    f'Device {device_id} has unvalidated channels: {", ".join(pending)}',
                    code='NOT_READY'
                )

            now = self.clock()
            previous_last_seen = device.last_seen
            device.validated = True
            device.last_seen = now
            snapshot = ValidatedDevice.from_device(device, validation_date=now)

            result = self._persist(snapshot)
            if not result.success:
                device.validated = False
                device.last_seen = previous_last_seen
                logger.error(f"Validation of {device_id} rolled back: {result.error}")
                return result

            self._validated[device_id] = snapshot
            self.registry.remove(device_id)

        logger.info(f"Device {device_id} validated")
        return OperationResult.ok(snapshot)

    def unvalidate(self, device_id: str) -> OperationResult:
        """
        Remove a device from the validated set and the durable store

        The device is not put back in the live registry; it reappears there
        only when it publishes again. Unknown ids succeed.
        """
        with self._lock:
            result = self.repository.remove(device_id)
            if not result.success:
                return result

            removed = self._validated.pop(device_id, None)

        if removed is not None:
            logger.info(f"Device {device_id} unvalidated")
        return OperationResult.ok()

    def load_validated_devices(self) -> int:
        """
        Reload the validated set from the durable store

        Returns:
            Number of devices loaded
        """
        devices = self.repository.load()

        with self._lock:
            for device in devices:
                self._validated[device.id] = device
                self.registry.remove(device.id)

        logger.info(f"{len(devices)} validated device(s) loaded")
        return len(devices)

    def is_validated(self, device_id: str) -> bool:
        with self._lock:
            return device_id in self._validated

    def get_validated_devices(self) -> List[ValidatedDevice]:
        """Validated devices in the order they were loaded or validated"""
        with self._lock:
            return list(self._validated.values())

    def count(self) -> int:
        with self._lock:
            return len(self._validated)

    def _persist(self, snapshot: ValidatedDevice) -> OperationResult:
        stored = self.repository.load()

        if any(device.id == snapshot.id for device in stored):
            logger.info(f"Device {snapshot.id} already stored (idempotent operation)")
            return OperationResult.ok()

        return self.repository.save(stored + [snapshot])
