import logging
from datetime import datetime
from typing import Iterable

from src.devicevalidation.domain.model.aggregates import ValidatedDevice

logger = logging.getLogger(__name__)


class ValidatedDeviceExporter:
    """
    Renders the validated device list as plain text

    One line per device:
        A1B2C3 - Validado em: 10/03/2025, 14:02:11
    """

    LINE_TEMPLATE = '{id} - Validado em: {date}'
    DATE_FORMAT = '%d/%m/%Y, %H:%M:%S'  # pt-BR locale string

    def format_date(self, value: datetime) -> str:
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.strftime(self.DATE_FORMAT)

    def render(self, devices: Iterable[ValidatedDevice]) -> str:
        lines = [
            self.LINE_TEMPLATE.format(
                id=device.id,
                date=self.format_date(device.validation_date)
            )
            for device in devices
        ]
        logger.info(f"Exported {len(lines)} validated device(s)")
        return '\n'.join(lines)
