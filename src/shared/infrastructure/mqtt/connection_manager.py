import json
import logging
import threading
import time
from typing import Callable, Dict, Optional, Union

import paho.mqtt.client as mqtt

from config.mqtt_config import MqttConfig
from src.shared.domain import OperationResult

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, str], None]


class MqttConnectionManager:
    """
    Manage the MQTT connection between field devices and this service

    Responsibilities:
        - Connect/disconnect from the MQTT broker (optionally over TLS)
        - Subscribe to topics (devices → service)
        - Publish messages (service → devices)
        - Reconnection if the first connection attempt fails
        - Routing messages to handlers registered per topic filter
        - Single owner of the connection state (is_connected)
    """

    def __init__(self):
        self.client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=MqttConfig.CLIENT_ID,
            clean_session=MqttConfig.CLEAN_SESSION
        )

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

        if MqttConfig.has_authentication():
            self.client.username_pw_set(
                MqttConfig.USERNAME,
                MqttConfig.PASSWORD
            )

        if MqttConfig.USE_TLS:
            self.client.tls_set()
            self.client.tls_insecure_set(MqttConfig.TLS_INSECURE)

        # paho handles reconnects once the network loop is running
        self.client.reconnect_delay_set(
            min_delay=MqttConfig.RECONNECT_DELAY,
            max_delay=MqttConfig.RECONNECT_DELAY_MAX
        )

        # Handlers keyed by topic filter (may contain + and #)
        self.message_handlers: Dict[str, MessageHandler] = {}

        self.connected = False
        self.reconnecting = False
        self._connected_event = threading.Event()

        logger.info("MQTT Connection Manager initialized")

    def connect(self):
        """
        Connect to the MQTT broker
        Note: This method starts the network loop in a background thread.
        """
        try:
            logger.info(
                f"Connecting to MQTT broker: "
                f"{MqttConfig.BROKER_HOST}:{MqttConfig.BROKER_PORT}"
                f"{' (TLS)' if MqttConfig.USE_TLS else ''}"
            )

            self.client.connect(
                MqttConfig.BROKER_HOST,
                MqttConfig.BROKER_PORT,
                MqttConfig.KEEP_ALIVE
            )

            self.client.loop_start()

        except Exception as e:
            logger.error(f"Failed to connect to MQTT broker: {e}")
            self._schedule_reconnect()

    def wait_until_connected(self, timeout: float = MqttConfig.CONNECT_TIMEOUT) -> bool:
        """Block until the broker acknowledges the connection or timeout expires"""
        return self._connected_event.wait(timeout)

    def disconnect(self):
        """Disconnect from the MQTT broker"""
        logger.info("Disconnecting from MQTT broker...")
        self.client.loop_stop()
        self.client.disconnect()
        self.connected = False
        self._connected_event.clear()
        logger.info("Disconnected from MQTT broker")

    def subscribe(self, topic: str, handler: MessageHandler):
        """
        Subscribe to an MQTT topic and register its handler

        Args:
            topic: MQTT topic filter (may include wildcards + or #)
                   Example: "/dev/+/register/+/log"
                   Example: "/dev/+/register/+/data/#"
            handler: Function to handle incoming messages for this topic
                     Signature: handler(topic: str, payload: str)
        """
        # Registered first so _on_connect re-subscribes it even when
        # the broker is not reachable yet
        self.message_handlers[topic] = handler

        if not self.connected:
            logger.info(f"Deferred subscription until connected: {topic}")
            return

        result, _ = self.client.subscribe(topic, qos=MqttConfig.QOS_SUBSCRIBE)

        if result == mqtt.MQTT_ERR_SUCCESS:
            logger.info(f"Subscribed to topic: {topic}")
        else:
            logger.error(f"Failed to subscribe to topic: {topic} (rc={result})")

    def publish(
            self,
            topic: str,
            payload: Union[str, dict],
            retain: bool = False
    ) -> OperationResult:
        """
        Publish a message to an MQTT topic

        Args:
            topic: Destination MQTT topic
            payload: Text payload, or a dict serialized to JSON
            retain: If True, the broker will keep the last message

        Returns:
            OperationResult; failures carry code NOT_CONNECTED or TRANSPORT_ERROR
        """
        if not self.connected:
            logger.warning(f"Cannot publish to {topic}: not connected to broker")
            return OperationResult.fail(
                'Not connected to MQTT broker',
                code='NOT_CONNECTED'
            )

        try:
            if isinstance(payload, dict):
                payload_str = json.dumps(payload, default=str)
            else:
                payload_str = payload

            result = self.client.publish(
                topic,
                payload_str,
                qos=MqttConfig.QOS_PUBLISH,
                retain=retain
            )

            if result.rc == mqtt.MQTT_ERR_SUCCESS:
                logger.info(f"Published to {topic}")
                logger.debug(f"   Payload: {payload_str[:200]}")
                return OperationResult.ok()

            reason = mqtt.error_string(result.rc)
            logger.error(f"Failed to publish to {topic}: rc={result.rc} ({reason})")
            return OperationResult.fail(
                f'Publish rejected by client: {reason}',
                code='TRANSPORT_ERROR'
            )

        except Exception as e:
            logger.error(f"Error publishing to {topic}: {e}", exc_info=True)
            return OperationResult.fail(str(e), code='TRANSPORT_ERROR')

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Callback when the broker answers the connection request"""
        if not reason_code.is_failure:
            self.connected = True
            self.reconnecting = False
            self._connected_event.set()
            logger.info("MQTT connection successful")

            for topic in self.message_handlers:
                self.client.subscribe(topic, qos=MqttConfig.QOS_SUBSCRIBE)
                logger.info(f"   Subscribed: {topic}")
        else:
            self.connected = False
            logger.error(f"MQTT connection refused: {reason_code}")

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties=None):
        """
        Callback when disconnecting from the broker

        Unexpected disconnects are recovered by paho's own reconnect loop.
        """
        self.connected = False
        self._connected_event.clear()

        if reason_code.is_failure:
            logger.warning(f"Unexpected MQTT disconnect ({reason_code})")
        else:
            logger.info("MQTT disconnected normally")

    def _on_message(self, client, userdata, msg):
        """
        Callback when an MQTT message arrives

        Device payloads are plain text. Anything that cannot be decoded is
        transport noise and is dropped.
        """
        topic = msg.topic

        try:
            payload_str = msg.payload.decode('utf-8')
        except UnicodeDecodeError:
            logger.debug(f"Dropping undecodable payload on {topic}")
            return

        logger.debug(f"Received message on {topic}: {payload_str[:200]}")

        handler = self._find_handler(topic)

        if handler is None:
            logger.warning(f"No handler found for topic: {topic}")
            return

        try:
            handler(topic, payload_str)
        except Exception as e:
            logger.error(
                f"Error in message handler for {topic}: {e}",
                exc_info=True
            )

    def _find_handler(self, topic: str) -> Optional[MessageHandler]:
        """Find the handler whose topic filter matches the received topic"""
        if topic in self.message_handlers:
            return self.message_handlers[topic]

        for pattern, handler in self.message_handlers.items():
            if mqtt.topic_matches_sub(pattern, topic):
                return handler

        return None

    def _schedule_reconnect(self):
        """
        Schedule a new connection attempt after RECONNECT_DELAY

        Only used when the very first connect() raises, before paho's
        network loop exists to retry on its own.
        """
        if self.reconnecting:
            return

        self.reconnecting = True
        logger.info(f"Scheduling reconnect in {MqttConfig.RECONNECT_DELAY}s...")

        def reconnect():
            time.sleep(MqttConfig.RECONNECT_DELAY)
            self.reconnecting = False
            if not self.connected:
                logger.info("Attempting to reconnect to MQTT broker...")
                self.connect()

        thread = threading.Thread(target=reconnect, daemon=True)
        thread.start()

    def is_connected(self) -> bool:
        """Returns True if connected to the broker"""
        return self.connected
