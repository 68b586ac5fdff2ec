import logging

from flask import Blueprint, Response, jsonify, request

from config.device_config import DeviceConfig
from src.devicevalidation.application.services import DeviceRegistry, ValidationService
from src.devicevalidation.infrastructure.export import ValidatedDeviceExporter
from src.devicevalidation.infrastructure.messaging import CommandPublisher

logger = logging.getLogger(__name__)


class DeviceController:
    """
    REST API Controller for the operator

    Replaces the desktop dashboard: live device view, validation, device
    configuration commands and the validated device list.

    Endpoints:
    - GET    /api/v1/devices                      - Live devices (sorted by id)
    - GET    /api/v1/devices/<id>                 - One live device
    - POST   /api/v1/devices/<id>/validate        - Validate a ready device
    - POST   /api/v1/devices/<id>/config          - Send port activation command
    - GET    /api/v1/validated-devices            - Validated devices
    - DELETE /api/v1/validated-devices/<id>       - Unvalidate a device
    - GET    /api/v1/validated-devices/export     - Plain text export
    """

    # Failure code → HTTP status
    STATUS_BY_CODE = {
        'NOT_FOUND': 404,
        'NOT_READY': 409,
        'INVALID_REQUEST': 400,
        'NOT_CONNECTED': 503,
        'TRANSPORT_ERROR': 502,
        'PERSISTENCE_FAILED': 500
    }

    def __init__(
            self,
            registry: DeviceRegistry,
            validation_service: ValidationService,
            command_publisher: CommandPublisher,
            exporter: ValidatedDeviceExporter
    ):
        self.registry = registry
        self.validation_service = validation_service
        self.command_publisher = command_publisher
        self.exporter = exporter
        self.blueprint = Blueprint('devices', __name__)
        self._register_routes()

    def _register_routes(self):
        """Register all routes for this controller"""
        self.blueprint.add_url_rule(
            '/api/v1/devices', 'list_devices', self.list_devices, methods=['GET']
        )
        self.blueprint.add_url_rule(
            '/api/v1/devices/<device_id>', 'get_device', self.get_device, methods=['GET']
        )
        self.blueprint.add_url_rule(
            '/api/v1/devices/<device_id>/validate',
            'validate_device',
            self.validate_device,
            methods=['POST']
        )
        self.blueprint.add_url_rule(
            '/api/v1/devices/<device_id>/config',
            'send_config',
            self.send_config,
            methods=['POST']
        )
        self.blueprint.add_url_rule(
            '/api/v1/validated-devices/export',
            'export_validated_devices',
            self.export_validated_devices,
            methods=['GET']
        )
        self.blueprint.add_url_rule(
            '/api/v1/validated-devices',
            'list_validated_devices',
            self.list_validated_devices,
            methods=['GET']
        )
        self.blueprint.add_url_rule(
            '/api/v1/validated-devices/<device_id>',
            'remove_validated_device',
            self.remove_validated_device,
            methods=['DELETE']
        )

    def list_devices(self):
        """
        GET /api/v1/devices

        Response:
        {
            "devices": [{"id": "A1", "online": true, "readyForValidation": false, ...}],
            "count": 1,
            "revision": 42
        }
        """
        with self.registry.lock:
            devices = [self._device_json(device) for device in self.registry.all()]
            revision = self.registry.revision

        return jsonify({
            'devices': devices,
            'count': len(devices),
            'revision': revision
        }), 200

    def get_device(self, device_id: str):
        """GET /api/v1/devices/<id>"""
        with self.registry.lock:
            device = self.registry.get(device_id)
            if device is None:
                return jsonify({'error': f'Device {device_id} not found'}), 404
            body = self._device_json(device)

        return jsonify(body), 200

    def validate_device(self, device_id: str):
        """
        POST /api/v1/devices/<id>/validate

        Response:
        - 200 OK: Device validated and stored
        - 404 Not Found: Device is not live
        - 409 Conflict: Some channel has not reported data since the last log
        - 500 Internal Server Error: Store could not be written (device stays live)
        """
        result = self.validation_service.validate(device_id)

        if not result.success:
            return self._failure(result)

        return jsonify({
            'message': f'Device {device_id} validated',
            'device': result.data.to_dict()
        }), 200

    def send_config(self, device_id: str):
        """
        POST /api/v1/devices/<id>/config

        Request Body (JSON):
        {
            "activate": true
        }

        Response:
        - 200 OK: Command published
        - 400 Bad Request: Missing or non-boolean "activate"
        - 503 Service Unavailable: Broker not connected
        """
        data = request.get_json(silent=True) or {}
        activate = data.get('activate')

        if not isinstance(activate, bool):
            return jsonify({
                'error': 'Field "activate" must be a boolean'
            }), 400

        result = self.command_publisher.send_config(device_id, activate)

        if not result.success:
            return self._failure(result)

        return jsonify({
            'message': f'Command sent to {device_id}',
            'activate': activate
        }), 200

    def list_validated_devices(self):
        """GET /api/v1/validated-devices"""
        devices = [
            device.to_dict()
            for device in self.validation_service.get_validated_devices()
        ]

        return jsonify({
            'devices': devices,
            'count': len(devices)
        }), 200

    def remove_validated_device(self, device_id: str):
        """
        DELETE /api/v1/validated-devices/<id>

        Idempotent: removing an id that is not validated succeeds.
        """
        result = self.validation_service.unvalidate(device_id)

        if not result.success:
            return self._failure(result)

        return jsonify({'message': f'Device {device_id} unvalidated'}), 200

    def export_validated_devices(self):
        """
        GET /api/v1/validated-devices/export

        Response:
        - 200 OK: text/plain attachment, one line per device
        - 404 Not Found: Nothing validated yet
        """
        devices = self.validation_service.get_validated_devices()

        if not devices:
            return jsonify({'error': 'No validated devices to export'}), 404

        content = self.exporter.render(devices)

        return Response(
            content,
            mimetype='text/plain',
            headers={
                'Content-Disposition': f'attachment; filename={DeviceConfig.EXPORT_FILENAME}'
            }
        )

    def _device_json(self, device) -> dict:
        body = device.to_dict()
        body['readyForValidation'] = self.validation_service.can_validate(device)
        return body

    def _failure(self, result):
        status = self.STATUS_BY_CODE.get(result.code, 500)
        return jsonify(result.to_dict()), status

    def get_blueprint(self):
        """Get Flask Blueprint for registration"""
        return self.blueprint
