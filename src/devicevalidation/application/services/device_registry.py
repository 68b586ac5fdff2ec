import logging
import threading
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from src.devicevalidation.domain.model.aggregates import DeviceState
from src.devicevalidation.domain.model.events import DeviceMessageEvent, MessageKind
from .channel_timeout_scheduler import ChannelTimeoutScheduler, TimerFactory

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """
    In-memory registry of live (not yet validated) devices

    Responsibilities:
    - Apply log/data events to device state
    - Arm the per-channel debounce timers
    - Recompute liveness on the periodic sweep
    - Expose a sorted, serializable view for presentation

    All mutations run under one re-entrant lock, which the validation
    service shares so that moving a device out of the registry is atomic.
    """

    def __init__(
            self,
            channels: Iterable[str],
            channel_window_seconds: float,
            timer_factory: Optional[TimerFactory] = None,
            clock: Callable[[], datetime] = datetime.now
    ):
        """
        Args:
            channels: Fixed channel set every device is created with
            channel_window_seconds: Debounce window of the active flag
            timer_factory: Timer builder for the scheduler (tests inject fakes)
            clock: Source of the current time
        """
        self.channels = tuple(channels)
        self.clock = clock
        self.lock = threading.RLock()
        self.scheduler = ChannelTimeoutScheduler(
            on_expire=self.deactivate_channel,
            window_seconds=channel_window_seconds,
            timer_factory=timer_factory
        )

        self._devices: Dict[str, DeviceState] = {}
        self._revision = 0
        self._is_validated: Callable[[str], bool] = lambda device_id: False

    def set_validated_lookup(self, is_validated: Callable[[str], bool]):
        """
        Register the lookup for validated ids

        apply_event consults it under the registry lock, so an id validated
        concurrently with an inbound message is never re-created as live.
        """
        self._is_validated = is_validated

    @property
    def revision(self) -> int:
        """Incremented on every change a presentation layer should re-render"""
        return self._revision

    def apply_event(self, event: DeviceMessageEvent) -> Optional[DeviceState]:
        """
        Apply a routed device event

        Flow:
        1. Events for validated ids are dropped
        2. Create the device on first sighting, otherwise refresh last_seen/online
        3. log  → every channel's validated flag is reset
        4. data → the channel becomes active and validated, its timer is re-armed

        Args:
            event: Normalized event from the topic router

        Returns:
            The updated DeviceState, or None if the device is validated
        """
        with self.lock:
            if self._is_validated(event.device_id):
                logger.debug(f"Dropping event for validated device: {event.device_id}")
                return None

            now = self.clock()
            device = self._devices.get(event.device_id)

            if device is None:
                device = DeviceState.create(event.device_id, self.channels, now)
                self._devices[event.device_id] = device
                logger.info(f"New device discovered: {event.device_id}")
            else:
                device.touch(now)
                if event.kind is MessageKind.LOG:
                    device.reset_signal_validation()
                    logger.debug(f"Log from {event.device_id}: channel validation reset")

            if event.kind is MessageKind.DATA:
                if device.has_channel(event.channel):
                    device.mark_signal(event.channel)
                    device.touch(now)
                    self.scheduler.schedule(event.device_id, event.channel)
                    logger.info(f"Device {event.device_id}, channel {event.channel} validated")
                else:
                    logger.debug(
                        f"Ignoring data on unknown channel '{event.channel}' "
                        f"from {event.device_id}"
                    )

            self._revision += 1
            return device

    def deactivate_channel(self, device_id: str, channel: str) -> Optional[DeviceState]:
        """
        Clear a channel's active flag once its debounce window elapsed

        A device removed or validated in the meantime makes this a no-op.
        """
        with self.lock:
            device = self._devices.get(device_id)
            if device is None or not device.deactivate_signal(channel):
                logger.debug(f"Channel timer for {device_id}/{channel} expired after removal")
                return None

            self._revision += 1
            return device

    def sweep_liveness(self, now: datetime, timeout_seconds: float) -> List[DeviceState]:
        """
        Recompute online for every device: online iff now - last_seen <= timeout

        Returns:
            Devices whose online flag changed
        """
        changed = []

        with self.lock:
            for device in self._devices.values():
                if device.refresh_liveness(now, timeout_seconds):
                    changed.append(device)
                    if device.online:
                        logger.info(f"Device ONLINE: {device.id}")
                    else:
                        logger.warning(f"Device OFFLINE: {device.id}")

            self._revision += 1

        return changed

    def get(self, device_id: str) -> Optional[DeviceState]:
        with self.lock:
            return self._devices.get(device_id)

    def remove(self, device_id: str) -> Optional[DeviceState]:
        """Drop a device and cancel its pending channel timers"""
        with self.lock:
            device = self._devices.pop(device_id, None)
            if device is None:
                return None

            self.scheduler.cancel_device(device_id)
            self._revision += 1
            logger.info(f"Device removed from live registry: {device_id}")
            return device

    def all(self) -> List[DeviceState]:
        """Live devices ordered by id"""
        with self.lock:
            return sorted(self._devices.values(), key=lambda d: d.id)

    def snapshot(self) -> List[dict]:
        """Serialized copy of all() taken under the lock"""
        with self.lock:
            return [device.to_dict() for device in self.all()]

    def count(self) -> int:
        with self.lock:
            return len(self._devices)
