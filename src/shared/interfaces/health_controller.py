import logging
from flask import Blueprint, jsonify

logger = logging.getLogger(__name__)


class HealthController:
    """
    Service health (/health) and runtime summary (/info)

    Degraded means the broker link is down or the liveness sweep stopped;
    the REST API keeps serving the in-memory and stored state either way.
    """

    def __init__(self, container):
        self.container = container
        self.blueprint = Blueprint('health', __name__)
        self.blueprint.add_url_rule('/health', 'health_check', self.health_check)
        self.blueprint.add_url_rule('/info', 'info', self.info)

    def _component_status(self) -> dict:
        return {
            'mqtt_connected': self.container.mqtt_manager.is_connected(),
            'liveness_worker_running': self.container.liveness_worker.is_running()
        }

    def health_check(self):
        """GET /health - 200 when healthy, 503 when degraded"""
        components = self._component_status()
        healthy = all(components.values())

        return jsonify({
            'status': 'healthy' if healthy else 'degraded',
            **components
        }), 200 if healthy else 503

    def info(self):
        """GET /info"""
        registry = self.container.device_registry
        sweep = self.container.liveness_worker

        return jsonify({
            'name': 'Device Validator',
            **self._component_status(),
            'subscribed': self.container.mqtt_subscriber.is_subscribed(),
            'liveness_sweep': {
                'interval_seconds': sweep.interval_seconds,
                'timeout_seconds': sweep.timeout_seconds,
                'cycles': sweep.cycle_count
            },
            'devices': {
                'live_count': registry.count(),
                'validated_count': self.container.validation_service.count(),
                'pending_timers': registry.scheduler.pending_count(),
                'revision': registry.revision
            }
        }), 200

    def get_blueprint(self):
        return self.blueprint
