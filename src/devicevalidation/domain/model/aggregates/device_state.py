from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Optional


@dataclass
class SignalState:
    """
    State of one monitored channel of a device

    active: a data event arrived within the channel's debounce window
    validated: a data event arrived since the last log event
    enable: not driven by any event yet, kept for forward compatibility
    """

    enable: Optional[bool] = None
    active: bool = False
    validated: bool = False

    def to_dict(self) -> dict:
        return {
            'enable': self.enable,
            'active': self.active,
            'validated': self.validated
        }

    @staticmethod
    def from_dict(data: dict) -> 'SignalState':
        return SignalState(
            enable=data.get('enable'),
            active=bool(data.get('active', False)),
            validated=bool(data.get('validated', False))
        )


@dataclass
class DeviceState:
    """
    Live state of a device that is announcing itself but is not validated yet

    The signals mapping always holds exactly the fixed channel set it was
    created with; unknown channels are never added.
    """

    id: str
    last_seen: datetime
    online: bool = True
    validated: bool = False
    signals: Dict[str, SignalState] = field(default_factory=dict)

    def __post_init__(self):
        if not self.id:
            raise ValueError("id cannot be empty")

    @staticmethod
    def create(device_id: str, channels: Iterable[str], now: datetime) -> 'DeviceState':
        """Factory method: first sighting of a device"""
        return DeviceState(
            id=device_id,
            last_seen=now,
            signals={channel: SignalState() for channel in channels}
        )

    def touch(self, now: datetime):
        """Record activity: refresh last_seen and mark online"""
        self.last_seen = now
        self.online = True

    def reset_signal_validation(self):
        """A log event invalidates every channel until data arrives again"""
        for signal in self.signals.values():
            signal.validated = False

    def has_channel(self, channel: Optional[str]) -> bool:
        return channel is not None and channel in self.signals

    def mark_signal(self, channel: str):
        signal = self.signals[channel]
        signal.active = True
        signal.validated = True

    def deactivate_signal(self, channel: str) -> bool:
        """Clear the active flag; returns False if the channel does not exist"""
        signal = self.signals.get(channel)
        if signal is None:
            return False
        signal.active = False
        return True

    def is_ready_for_validation(self) -> bool:
        """True when every channel has reported data since the last log"""
        return all(signal.validated for signal in self.signals.values())

    def refresh_liveness(self, now: datetime, timeout_seconds: float) -> bool:
        """
        Recompute online from the time elapsed since last_seen

        Returns:
            True if the online flag changed
        """
        elapsed = (now - self.last_seen).total_seconds()
        online = elapsed <= timeout_seconds
        changed = online != self.online
        self.online = online
        return changed

    def to_dict(self) -> dict:
        """Serialize for REST responses and persistence"""
        return {
            'id': self.id,
            'online': self.online,
            'validated': self.validated,
            'lastSeen': self.last_seen.isoformat(),
            'signals': {
                channel: signal.to_dict()
                for channel, signal in self.signals.items()
            }
        }

    def __repr__(self) -> str:
        status = "ONLINE" if self.online else "OFFLINE"
        validated = sum(1 for s in self.signals.values() if s.validated)
        return f"DeviceState({self.id}, {status}, {validated}/{len(self.signals)} validated)"
