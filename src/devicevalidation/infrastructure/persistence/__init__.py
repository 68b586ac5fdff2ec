from .validated_device_repository import ValidatedDeviceRepository

__all__ = ['ValidatedDeviceRepository']
