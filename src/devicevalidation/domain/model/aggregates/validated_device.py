import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from .device_state import DeviceState, SignalState


@dataclass(frozen=True)
class ValidatedDevice:
    """
    Snapshot of a device at the moment an operator validated it

    Persisted as one object of the JSON array in the validated devices store:
    {
        "id": "A1B2C3",
        "online": true,
        "validated": true,
        "lastSeen": "2025-03-10T14:02:11.512000",
        "validationDate": "2025-03-10T14:02:11.512000",
        "signals": {"1": {"enable": null, "active": true, "validated": true}, ...}
    }
    """

    id: str
    validation_date: datetime
    last_seen: datetime
    online: bool = True
    validated: bool = True
    signals: Dict[str, SignalState] = field(default_factory=dict)

    @staticmethod
    def from_device(device: DeviceState, validation_date: datetime) -> 'ValidatedDevice':
        """Factory method: freeze a live device at validation time"""
        return ValidatedDevice(
            id=device.id,
            validation_date=validation_date,
            last_seen=device.last_seen,
            online=device.online,
            validated=device.validated,
            signals=copy.deepcopy(device.signals)
        )

    @staticmethod
    def from_dict(data: dict, default_date: Optional[datetime] = None) -> 'ValidatedDevice':
        """
        Rebuild from a stored record

        Records written without validationDate fall back to lastSeen,
        then to default_date (or now).

        Raises:
            ValueError: If the record has no id or carries malformed dates
        """
        device_id = data.get('id')
        if not device_id:
            raise ValueError("Stored device record has no id")

        fallback = default_date or datetime.now()
        last_seen = _parse_date(data.get('lastSeen')) or fallback
        validation_date = _parse_date(data.get('validationDate')) or last_seen

        signals = {
            str(channel): SignalState.from_dict(signal or {})
            for channel, signal in (data.get('signals') or {}).items()
        }

        return ValidatedDevice(
            id=str(device_id),
            validation_date=validation_date,
            last_seen=last_seen,
            online=bool(data.get('online', True)),
            validated=bool(data.get('validated', True)),
            signals=signals
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'online': self.online,
            'validated': self.validated,
            'lastSeen': self.last_seen.isoformat(),
            'validationDate': self.validation_date.isoformat(),
            'signals': {
                channel: signal.to_dict()
                for channel, signal in self.signals.items()
            }
        }


def _parse_date(value) -> Optional[datetime]:
    if not value:
        return None
    # JavaScript Date.toJSON() ends with "Z"
    return datetime.fromisoformat(str(value).replace('Z', '+00:00'))
