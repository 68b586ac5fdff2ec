from .device_state import DeviceState, SignalState
from .validated_device import ValidatedDevice

__all__ = ['DeviceState', 'SignalState', 'ValidatedDevice']
