from .validated_device_exporter import ValidatedDeviceExporter

__all__ = ['ValidatedDeviceExporter']
