import logging
from datetime import datetime
from typing import Callable

from src.devicevalidation.application.services import DeviceRegistry
from src.shared.infrastructure.workers import BackgroundWorker

logger = logging.getLogger(__name__)


class LivenessSweepWorker(BackgroundWorker):
    """
    Periodically recomputes the online flag of every live device

    The timeout is kept just under the interval, so a device that misses a
    single sweep period goes offline.
    """

    def __init__(
            self,
            registry: DeviceRegistry,
            interval_seconds: float,
            timeout_seconds: float,
            clock: Callable[[], datetime] = datetime.now
    ):
        super().__init__('liveness-sweep', interval_seconds)
        self.registry = registry
        self.timeout_seconds = timeout_seconds
        self.clock = clock

    def do_work(self):
        changed = self.registry.sweep_liveness(self.clock(), self.timeout_seconds)

        if changed:
            logger.info(f"Liveness sweep: {len(changed)} device(s) changed state")
