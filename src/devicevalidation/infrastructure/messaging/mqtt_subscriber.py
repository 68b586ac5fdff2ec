import logging

from config.mqtt_config import MqttConfig
from src.shared.infrastructure.mqtt import MqttConnectionManager
from .device_topic_router import DeviceTopicRouter

logger = logging.getLogger(__name__)


class MqttSubscriber:
    """
    MQTT Subscriber for device announcements

    Subscribes to topics:
    - /dev/+/register/+/log    - Device log lines (heartbeat)
    - /dev/+/register/+/data/# - Channel activity

    Both are handed to the DeviceTopicRouter, which parses and filters them.
    """

    def __init__(
            self,
            mqtt_manager: MqttConnectionManager,
            router: DeviceTopicRouter
    ):
        """
        Args:
            mqtt_manager: Shared MQTT connection manager
            router: Parses topics and routes events to the registry
        """
        self.mqtt_manager = mqtt_manager
        self.router = router
        self.subscriptions_active = False

    def subscribe_to_device_topics(self):
        """
        Register the device topic subscriptions

        Subscriptions are replayed by the connection manager on every
        (re)connect, so this is called once at startup.
        """
        try:
            logger.info("Subscribing to device topics...")

            for topic in self.get_topics():
                self.mqtt_manager.subscribe(topic=topic, handler=self.router.route)

            self.subscriptions_active = True
            logger.info("All device subscriptions registered")

        except Exception as e:
            logger.error(f"Error subscribing to device topics: {e}", exc_info=True)
            self.subscriptions_active = False

    def get_topics(self) -> list:
        return [MqttConfig.TOPIC_DEVICE_LOG, MqttConfig.TOPIC_DEVICE_DATA]

    def is_subscribed(self) -> bool:
        """True when subscriptions are registered and the broker is connected"""
        return self.subscriptions_active and self.mqtt_manager.is_connected()
