import json
import logging
from typing import Tuple

from config.device_config import DeviceConfig
from config.mqtt_config import MqttConfig
from src.shared.domain import OperationResult
from src.shared.infrastructure.mqtt import MqttConnectionManager

logger = logging.getLogger(__name__)


class CommandPublisher:
    """
    Publishes configuration commands to devices

    Topic: /dev/device/register/<device_id>/cmd

    Payload format (compact JSON inside a function-call string):
    set.config({"wifi":{...},"mqtt":{...},"pins":{"p1":1,"p2":1,"p3":1,...}})

    The three port pins always share the same activation value.
    """

    def __init__(
            self,
            mqtt_manager: MqttConnectionManager,
            broker_host: str = MqttConfig.BROKER_HOST,
            broker_port: int = MqttConfig.BROKER_PORT,
            username: str = MqttConfig.USERNAME,
            password: str = MqttConfig.PASSWORD,
            wifi_ssid: str = DeviceConfig.WIFI_SSID,
            wifi_password: str = DeviceConfig.WIFI_PASSWORD
    ):
        self.mqtt_manager = mqtt_manager
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.username = username
        self.password = password
        self.wifi_ssid = wifi_ssid
        self.wifi_password = wifi_password

    def build_config(self, device_id: str, activate: bool) -> dict:
        """Structured configuration pushed to a device"""
        pin = int(activate)

        return {
            'wifi': {
                'ssid': self.wifi_ssid or 'DefaultNetwork',
                'senha': self.wifi_password or '',
                'device_password': '',
                'timezone': DeviceConfig.WIFI_TIMEZONE,
                'ap': DeviceConfig.WIFI_AP,
                'il': DeviceConfig.WIFI_IL
            },
            'mqtt': {
                'painel': False,
                'id': device_id,
                'nome': device_id,
                'porta': self.broker_port or 1883,
                'client_id': DeviceConfig.COMMAND_CLIENT_ID,
                'broker': self.broker_host or 'localhost',
                'usuario': self.username or '',
                'password': self.password or ''
            },
            'pins': {
                'p1': pin,
                'p2': pin,
                'p3': pin,
                'tv': DeviceConfig.PIN_TV,
                'tc': DeviceConfig.PIN_TC,
                'vp': DeviceConfig.PIN_VP
            }
        }

    def build_command(self, device_id: str, activate: bool) -> Tuple[str, str]:
        """
        Build the command for a device

        Returns:
            Tuple of (topic, payload)
        """
        config = self.build_config(device_id, activate)
        payload = f"set.config({json.dumps(config, separators=(',', ':'))})"
        return MqttConfig.command_topic(device_id), payload

    def send_config(self, device_id: str, activate: bool) -> OperationResult:
        """
        Send the configuration command to a device

        Returns:
            OperationResult; failures come from the transport (not connected,
            publish rejected) and are reported, not raised
        """
        if not device_id:
            return OperationResult.fail('Device id is required', code='INVALID_REQUEST')

        topic, payload = self.build_command(device_id, activate)
        result = self.mqtt_manager.publish(topic, payload)

        action = 'activate' if activate else 'deactivate'
        if result.success:
            logger.info(f"Command sent to {device_id}: {action} ports")
        else:
            logger.error(f"Failed to send command to {device_id}: {result.error}")

        return result
