import logging
import threading
from typing import Callable, Dict, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

ChannelKey = Tuple[str, str]


class TimerHandle(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def thread_timer_factory(interval: float, callback: Callable[[], None]) -> TimerHandle:
    """Default timer: a daemon threading.Timer"""
    timer = threading.Timer(interval, callback)
    timer.daemon = True
    return timer


class ChannelTimeoutScheduler:
    """
    One-shot debounce timers keyed by (device_id, channel)

    Each data event re-arms the timer of its channel; when a timer fires
    without being re-armed, on_expire(device_id, channel) is called so the
    channel's active flag can be cleared.

    Re-arming replaces the pending handle instead of stacking callbacks, and a
    callback whose handle has already been replaced or cancelled does nothing.
    """

    def __init__(
            self,
            on_expire: Callable[[str, str], None],
            window_seconds: float,
            timer_factory: Optional[TimerFactory] = None
    ):
        """
        Args:
            on_expire: Called with (device_id, channel) when a window elapses
            window_seconds: How long a channel stays active after data
            timer_factory: Builds a startable/cancellable timer
        """
        self.on_expire = on_expire
        self.window_seconds = window_seconds
        self.timer_factory = timer_factory or thread_timer_factory

        self._timers: Dict[ChannelKey, TimerHandle] = {}
        self._lock = threading.Lock()

    def schedule(self, device_id: str, channel: str):
        """Arm (or re-arm) the timer for a channel"""
        key = (device_id, channel)
        timer = None

        def fire():
            self._fire(key, timer)

        timer = self.timer_factory(self.window_seconds, fire)

        with self._lock:
            previous = self._timers.get(key)
            self._timers[key] = timer

        if previous is not None:
            previous.cancel()

        timer.start()
        logger.debug(f"Channel timer armed: {device_id}/{channel}")

    def cancel(self, device_id: str, channel: str) -> bool:
        """Cancel a pending timer; returns False if none was pending"""
        with self._lock:
            timer = self._timers.pop((device_id, channel), None)

        if timer is None:
            return False

        timer.cancel()
        return True

    def cancel_device(self, device_id: str) -> int:
        """Cancel every pending timer of a device; returns how many"""
        with self._lock:
            keys = [key for key in self._timers if key[0] == device_id]
            timers = [self._timers.pop(key) for key in keys]

        for timer in timers:
            timer.cancel()

        if timers:
            logger.debug(f"Cancelled {len(timers)} channel timer(s) for {device_id}")

        return len(timers)

    def cancel_all(self):
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()

        for timer in timers:
            timer.cancel()

    def is_pending(self, device_id: str, channel: str) -> bool:
        with self._lock:
            return (device_id, channel) in self._timers

    def pending_count(self) -> int:
        with self._lock:
            return len(self._timers)

    def _fire(self, key: ChannelKey, timer: TimerHandle):
        with self._lock:
            if self._timers.get(key) is not timer:
                return
            del self._timers[key]

        device_id, channel = key

        try:
            self.on_expire(device_id, channel)
        except Exception as e:
            logger.error(
                f"Error expiring channel {device_id}/{channel}: {e}",
                exc_info=True
            )
