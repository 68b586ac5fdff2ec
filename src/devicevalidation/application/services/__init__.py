from .channel_timeout_scheduler import ChannelTimeoutScheduler
from .device_registry import DeviceRegistry
from .validation_service import ValidationService

__all__ = [
    'ChannelTimeoutScheduler',
    'DeviceRegistry',
    'ValidationService'
]
