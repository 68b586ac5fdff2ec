from .connection_manager import MqttConnectionManager

__all__ = ['MqttConnectionManager']
