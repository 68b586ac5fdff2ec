import logging
import signal
import sys

from flask import Flask
from flask_cors import CORS

from config.app_config import AppConfig
from config.device_config import DeviceConfig
from config.mqtt_config import MqttConfig
from src.container import Container
from src.shared.infrastructure.logging import install_exception_hooks, setup_logging

# Setup logging first
setup_logging()
install_exception_hooks()
logger = logging.getLogger(__name__)


def create_flask_app(container: Container) -> Flask:
    """
    Create and configure Flask application

    Args:
        container: Dependency injection container

    Returns:
        Configured Flask app
    """
    app = Flask(__name__)

    # Enable CORS
    CORS(app)

    # Register blueprints
    app.register_blueprint(container.health_controller.get_blueprint())
    app.register_blueprint(container.device_controller.get_blueprint())

    logger.info("Flask app created")
    return app


def main():
    """Main application entry point"""
    logger.info("=" * 80)
    logger.info("DEVICE VALIDATOR - SIGNAL MONITORING (MQTT)")
    logger.info("=" * 80)

    container = Container()
    container.load_validated_devices()

    app = create_flask_app(container)

    def signal_handler(sig, frame):
        logger.info(f"Received signal {sig}, initiating shutdown...")
        container.shutdown()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        container.start_mqtt()
    except Exception as e:
        logger.error(f"Failed to start MQTT: {e}")
        logger.warning("Continuing without MQTT (degraded mode), reconnecting in background")

    container.start_liveness_worker()

    logger.info("=" * 80)
    logger.info(f"Starting Flask server on {AppConfig.FLASK_HOST}:{AppConfig.FLASK_PORT}")
    logger.info(f"Debug mode: {AppConfig.FLASK_DEBUG}")
    logger.info("")
    logger.info("Subscriptions:")
    logger.info(f"  - {MqttConfig.TOPIC_DEVICE_LOG}")
    logger.info(f"  - {MqttConfig.TOPIC_DEVICE_DATA}")
    logger.info("")
    logger.info("Timing:")
    logger.info(f"  - Channel active window: {DeviceConfig.CHANNEL_ACTIVE_WINDOW}s")
    logger.info(f"  - Liveness sweep: every {DeviceConfig.LIVENESS_SWEEP_INTERVAL}s "
                f"(timeout {DeviceConfig.LIVENESS_TIMEOUT}s)")
    logger.info(f"  - Validated devices store: {DeviceConfig.STORAGE_FILE}")
    logger.info("=" * 80)

    try:
        app.run(
            host=AppConfig.FLASK_HOST,
            port=AppConfig.FLASK_PORT,
            debug=AppConfig.FLASK_DEBUG,
            use_reloader=False  # Disable reloader to avoid duplicate workers
        )
    except Exception as e:
        logger.error(f"Flask server error: {e}", exc_info=True)
    finally:
        container.shutdown()


if __name__ == '__main__':
    main()
