import logging
from typing import Any, Callable, Dict, Mapping, Union

from .constants import CALLBACK_PATH, CONFIGURE_REPLY, GREETING_MESSAGE
from .models import DeliveryConfig, InvalidPayloadError, UnknownEventError
from .normalizer import normalize as default_normalize
from .registry import IntegrationRegistry

logger = logging.getLogger(__name__)

# message, thread e comment são apenas confirmados (sem conteúdo)
ACKNOWLEDGED_EVENTS = {'message', 'thread', 'comment'}


class BridgeCoordinator:
    """Liga os eventos do Twist e os alertas do GCP ao registro de integrações."""

    def __init__(self, server_name: str, registry: IntegrationRegistry, dispatcher,
                 normalize: Callable[[Union[str, bytes]], str] = default_normalize):
        self.server_name = server_name
        self.registry = registry
        self.dispatcher = dispatcher
        self.normalize = normalize

    def callback_url(self, install_id: str) -> str:
        return f"https://{self.server_name}{CALLBACK_PATH.format(install_id=install_id)}"

    def on_configure(self, config: DeliveryConfig) -> str:
        self.registry.register(config)
        logger.info(f"configure for {config.user_name} on {config.post_data_url}")

        self.dispatcher.submit(config.post_data_url, GREETING_MESSAGE)
        return CONFIGURE_REPLY.format(callback_url=self.callback_url(config.install_id))

    def on_outgoing_event(self, event: Mapping) -> Dict[str, Any]:
        if not isinstance(event, Mapping):
            raise InvalidPayloadError("evento: esperado um objeto JSON")
        event_type = event.get('event_type')
        if not isinstance(event_type, str):
            raise InvalidPayloadError("evento: campo 'event_type' ausente ou não textual")

        if event_type == 'ping':
            return {'content': 'pong'}
        if event_type in ACKNOWLEDGED_EVENTS:
            return {'content': ''}
        if event_type == 'uninstall':
            install_id = event.get('install_id')
            if not isinstance(install_id, str):
                raise InvalidPayloadError("uninstall: campo 'install_id' ausente ou não textual")
            removed = self.registry.unregister(install_id)
            if removed:
                logger.info(f"uninstall de {install_id} ({removed.configuration.user_name})")
            else:
                logger.info(f"uninstall de {install_id} ignorado: integração não registrada")
            return {'content': 'uninstalled!'}
        raise UnknownEventError(event_type)

    def on_alert(self, install_id: str, raw_payload: Union[str, bytes]) -> bool:
        """Normaliza o alerta e enfileira a entrega. Retorna False se a integração não existir."""
        message = self.normalize(raw_payload)

        record = self.registry.find(install_id)
        if record is None:
            logger.warning(f"no twist integration found with id {install_id}")
            return False

        self.dispatcher.submit(record.configuration.post_data_url, message)
        return True
