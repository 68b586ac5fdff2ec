from dataclasses import dataclass
from enum import Enum
from typing import Optional


class MessageKind(str, Enum):
    """Kinds of messages a device publishes under its register topic"""
    LOG = 'log'
    DATA = 'data'


@dataclass(frozen=True)
class DeviceMessageEvent:
    """
    Domain Event: a device published a log line or channel activity

    Produced by the topic router from topics such as:
    - /dev/device/register/A1B2C3/log      → kind=LOG
    - /dev/device/register/A1B2C3/data/2   → kind=DATA, channel="2"
    """

    device_id: str
    kind: MessageKind
    channel: Optional[str] = None

    def __post_init__(self):
        if not self.device_id:
            raise ValueError("device_id cannot be empty")

        if self.kind is MessageKind.DATA and not self.channel:
            raise ValueError("data events require a channel")

    def __repr__(self) -> str:
        suffix = f", channel='{self.channel}'" if self.channel else ''
        return f"DeviceMessageEvent(device_id='{self.device_id}', kind={self.kind.value}{suffix})"
