import logging

from config.device_config import DeviceConfig
from src.devicevalidation.application.services import DeviceRegistry, ValidationService
from src.devicevalidation.application.workers import LivenessSweepWorker
from src.devicevalidation.domain.model.events import MessageKind
from src.devicevalidation.infrastructure.export import ValidatedDeviceExporter
from src.devicevalidation.infrastructure.messaging import (
    CommandPublisher,
    DeviceTopicRouter,
    MqttSubscriber
)
from src.devicevalidation.infrastructure.persistence import ValidatedDeviceRepository
from src.devicevalidation.interfaces.rest import DeviceController
from src.shared.infrastructure.mqtt import MqttConnectionManager
from src.shared.interfaces.health_controller import HealthController

logger = logging.getLogger(__name__)


class Container:
    """
    Dependency Injection Container

    Manages all application dependencies and their lifecycle.
    """

    def __init__(self, storage_file: str = DeviceConfig.STORAGE_FILE):
        logger.info("Initializing application container...")

        # Infrastructure - MQTT
        self.mqtt_manager = MqttConnectionManager()

        # Repositories
        self.validated_device_repository = ValidatedDeviceRepository(storage_file)

        # Application Services
        self.device_registry = DeviceRegistry(
            channels=DeviceConfig.CHANNELS,
            channel_window_seconds=DeviceConfig.CHANNEL_ACTIVE_WINDOW
        )
        self.validation_service = ValidationService(
            self.device_registry,
            self.validated_device_repository
        )

        # Messaging
        self.device_topic_router = DeviceTopicRouter(
            is_validated=self.validation_service.is_validated,
            ack_sentinel=DeviceConfig.ACK_SENTINEL
        )
        self._register_router_handlers()

        self.mqtt_subscriber = MqttSubscriber(self.mqtt_manager, self.device_topic_router)
        self.command_publisher = CommandPublisher(self.mqtt_manager)

        # Export
        self.validated_device_exporter = ValidatedDeviceExporter()

        # REST Controllers
        self.device_controller = DeviceController(
            self.device_registry,
            self.validation_service,
            self.command_publisher,
            self.validated_device_exporter
        )
        self.health_controller = HealthController(self)

        # Background Workers
        self.liveness_worker = LivenessSweepWorker(
            self.device_registry,
            interval_seconds=DeviceConfig.LIVENESS_SWEEP_INTERVAL,
            timeout_seconds=DeviceConfig.LIVENESS_TIMEOUT
        )

        logger.info("Application container initialized")

    def _register_router_handlers(self):
        """Both message kinds go to the registry"""
        self.device_topic_router.register_handler(
            MessageKind.LOG,
            self.device_registry.apply_event
        )
        self.device_topic_router.register_handler(
            MessageKind.DATA,
            self.device_registry.apply_event
        )

        logger.info("Device message handlers registered")

    def load_validated_devices(self):
        """Reload validated devices before any message is routed"""
        self.validation_service.load_validated_devices()

    def start_mqtt(self):
        """Start MQTT connection and subscriptions"""
        logger.info("Starting MQTT...")

        self.mqtt_subscriber.subscribe_to_device_topics()
        self.mqtt_manager.connect()

        if not self.mqtt_manager.wait_until_connected():
            logger.error("Failed to connect to MQTT broker")
            raise RuntimeError("MQTT connection failed")

        logger.info("MQTT started and subscribed")

    def start_liveness_worker(self):
        """Start the periodic liveness sweep"""
        logger.info("Starting liveness sweep worker...")
        self.liveness_worker.start()

    def shutdown(self):
        """Gracefully shutdown all components"""
        logger.info("Shutting down application...")

        if self.liveness_worker.is_running():
            logger.info("Stopping liveness sweep worker...")
            self.liveness_worker.stop()

        logger.info("Disconnecting MQTT...")
        self.mqtt_manager.disconnect()

        logger.info("Cancelling channel timers...")
        self.device_registry.scheduler.cancel_all()

        logger.info("Application shutdown complete")
