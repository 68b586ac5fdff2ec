from .command_publisher import CommandPublisher
from .device_topic_router import DeviceTopicRouter
from .mqtt_subscriber import MqttSubscriber

__all__ = [
    'CommandPublisher',
    'DeviceTopicRouter',
    'MqttSubscriber'
]
