from .device_message_event import DeviceMessageEvent, MessageKind

__all__ = ['DeviceMessageEvent', 'MessageKind']
