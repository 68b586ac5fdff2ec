from .mqtt_config import MqttConfig
from .app_config import AppConfig
from .device_config import DeviceConfig

__all__ = ['MqttConfig', 'AppConfig', 'DeviceConfig']
