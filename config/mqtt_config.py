import os
from dotenv import load_dotenv

load_dotenv()


class MqttConfig:
    """
    MQTT configuration for the link between field devices and this service

    Topics Structure:
    - /dev/+/register/+/log        → Device publishes a log line (heartbeat)
    - /dev/+/register/+/data/#     → Device publishes channel activity
    - /dev/device/register/<id>/cmd → Service publishes a configuration command
    """

    # ========================================
    # Broker Configuration
    # ========================================
    BROKER_HOST = os.getenv('MQTT_HOST', 'localhost')
    BROKER_PORT = int(os.getenv('MQTT_PORT', 1883))

    # Client ID (unique per service instance)
    CLIENT_ID = os.getenv('MQTT_CLIENT_ID', 'device-validator-001')

    # Authentication (empty for no auth)
    USERNAME = os.getenv('MQTT_USERNAME', '')
    PASSWORD = os.getenv('MQTT_PASSWORD', '')

    # TLS (the field broker is reached over mqtts with a self-signed certificate)
    USE_TLS = os.getenv('MQTT_USE_TLS', 'False').lower() == 'true'
    TLS_INSECURE = os.getenv('MQTT_TLS_INSECURE', 'True').lower() == 'true'

    # ========================================
    # Topics - SUBSCRIBE (devices → service)
    # ========================================
    TOPIC_DEVICE_LOG = '/dev/+/register/+/log'
    TOPIC_DEVICE_DATA = '/dev/+/register/+/data/#'

    # ========================================
    # Topics - PUBLISH (service → device)
    # ========================================
    TOPIC_DEVICE_COMMAND = '/dev/device/register/{device_id}/cmd'

    # ========================================
    # QoS Levels
    # ========================================
    QOS_SUBSCRIBE = 1  # At least once
    QOS_PUBLISH = 1  # At least once

    # ========================================
    # Connection Settings
    # ========================================
    KEEP_ALIVE = 60  # Seconds
    CLEAN_SESSION = True
    CONNECT_TIMEOUT = 10  # Seconds to wait for CONNACK at startup
    RECONNECT_DELAY = 5  # Seconds to retry
    RECONNECT_DELAY_MAX = 30

    @classmethod
    def has_authentication(cls) -> bool:
        """Check if MQTT authentication is configured."""
        return bool(cls.USERNAME and cls.PASSWORD)

    @classmethod
    def command_topic(cls, device_id: str) -> str:
        """Command topic addressed to a single device."""
        return cls.TOPIC_DEVICE_COMMAND.format(device_id=device_id)
