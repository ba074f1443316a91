import logging

from flask import Flask, request

from .coordinator import BridgeCoordinator
from .models import DeliveryConfig, InvalidPayloadError

logger = logging.getLogger(__name__)


def create_app(coordinator: BridgeCoordinator):
    app = Flask(__name__)
    app.config['COORDINATOR'] = coordinator

    @app.errorhandler(InvalidPayloadError)
    def invalid_payload(e):
        logger.info(f"Requisição inválida em {request.path}: {e}")
        return f'Error: {str(e)}', 400

    @app.route('/ready', methods=['GET'])
    def ready():
        return 'OK', 200

    @app.route('/integrations/configure', methods=['GET'])
    def configure():
        config = DeliveryConfig.from_dict(request.args.to_dict())
        try:
            return coordinator.on_configure(config), 200
        except Exception as e:
            logger.exception(f"Falha ao configurar integração {config.install_id}")
            return f'Error: {str(e)}', 500

    @app.route('/integrations/events', methods=['POST'])
    def events():
        data = request.get_json(force=True, silent=True)
        if data is None:
            raise InvalidPayloadError("corpo da requisição não é JSON válido")
        try:
            return coordinator.on_outgoing_event(data), 200
        except InvalidPayloadError:
            raise
        except Exception as e:
            logger.exception("Falha ao processar evento do Twist")
            return f'Error: {str(e)}', 500

    @app.route('/alerts/webhooks/<install_id>', methods=['POST'])
    def alert(install_id):
        try:
            coordinator.on_alert(install_id, request.get_data())
        except Exception as e:
            logger.exception(f"Falha ao processar alerta para {install_id}")
            return f'Error: {str(e)}', 500
        return 'OK', 200

    return app
