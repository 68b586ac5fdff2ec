import logging
from typing import Callable, Dict, Optional

from src.devicevalidation.domain.model.events import DeviceMessageEvent, MessageKind

logger = logging.getLogger(__name__)

EventHandler = Callable[[DeviceMessageEvent], object]


class DeviceTopicRouter:
    """
    Turns raw (topic, payload) pairs into device events and routes them by kind

    Topic layout: <prefix>/register/<device_id>/<kind>[/<channel>]

    Dropped without side effects:
    - broker acknowledgments (payload starting with the sentinel)
    - topics that do not follow the layout, unknown kinds, data without channel
    - devices that are already validated
    """

    REGISTER_SEGMENT = 'register'

    def __init__(
            self,
            is_validated: Callable[[str], bool],
            ack_sentinel: str = 'C'
    ):
        """
        Args:
            is_validated: Lookup telling whether a device id is already validated
            ack_sentinel: Leading character of broker acknowledgment payloads
        """
        self.is_validated = is_validated
        self.ack_sentinel = ack_sentinel
        self.handlers: Dict[MessageKind, EventHandler] = {}
        logger.info("Device Topic Router initialized")

    def register_handler(self, kind: MessageKind, handler: EventHandler):
        """
        Register the handler for a message kind

        Args:
            kind: MessageKind.LOG or MessageKind.DATA
            handler: Called with the parsed DeviceMessageEvent
        """
        self.handlers[kind] = handler
        logger.info(f"Registered handler for kind: {kind.value}")

    def parse(self, topic: str) -> Optional[DeviceMessageEvent]:
        """
        Parse a topic into a DeviceMessageEvent

        The prefix may itself contain a 'register' segment, and so may the
        device id, so candidates are tried from the rightmost one.

        Returns:
            The event, or None when the topic is malformed
        """
        parts = topic.split('/')

        for index in range(len(parts) - 1, -1, -1):
            if parts[index] != self.REGISTER_SEGMENT:
                continue
            event = self._parse_tail(parts[index + 1:])
            if event is not None:
                return event

        return None

    def _parse_tail(self, tail) -> Optional[DeviceMessageEvent]:
        """Parse the segments after 'register': <device_id>/<kind>[/<channel>]"""
        if len(tail) < 2 or not tail[0]:
            return None

        device_id, kind_name = tail[0], tail[1]

        try:
            kind = MessageKind(kind_name)
        except ValueError:
            return None

        if kind is MessageKind.LOG:
            return DeviceMessageEvent(device_id=device_id, kind=kind)

        channel = tail[2] if len(tail) > 2 else ''
        if not channel:
            return None

        return DeviceMessageEvent(device_id=device_id, kind=kind, channel=channel)

    def route(self, topic: str, payload: str) -> Optional[DeviceMessageEvent]:
        """
        Parse, filter and dispatch one inbound message

        Signature matches MqttConnectionManager handlers: handler(topic, payload)

        Returns:
            The dispatched event, or None if the message was dropped
        """
        if self.ack_sentinel and payload.startswith(self.ack_sentinel):
            logger.debug(f"Ignoring broker acknowledgment on {topic}")
            return None

        event = self.parse(topic)
        if event is None:
            logger.debug(f"Ignoring malformed topic: {topic}")
            return None

        if self.is_validated(event.device_id):
            logger.debug(f"Ignoring message from validated device: {event.device_id}")
            return None

        handler = self.handlers.get(event.kind)
        if handler is None:
            logger.warning(f"No handler registered for kind: {event.kind.value}")
            return None

        try:
            handler(event)
        except Exception as e:
            logger.error(
                f"Error in handler for {event}: {e}",
                exc_info=True
            )
            return None

        return event
