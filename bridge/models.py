from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping


class BridgeError(Exception):
    """Erro base da ponte."""


class InvalidPayloadError(BridgeError, ValueError):
    """Entrada inválida vinda do Twist ou da query string (erro do cliente)."""


class UnknownEventError(InvalidPayloadError):
    def __init__(self, event_type: str):
        super().__init__(f"event_type desconhecido: {event_type!r}")
        self.event_type = event_type


def _require_strings(data: Any, fields, what: str) -> Dict[str, str]:
    if not isinstance(data, Mapping):
        raise InvalidPayloadError(f"{what}: esperado um objeto, recebido {type(data).__name__}")
    missing = [f for f in fields if f not in data or data[f] is None]
    invalid = [f for f in fields if f not in missing and not isinstance(data[f], str)]
    problems = []
    if missing:
        problems.append(f"campos ausentes: {', '.join(missing)}")
    if invalid:
        problems.append(f"campos não textuais: {', '.join(invalid)}")
    if problems:
        raise InvalidPayloadError(f"{what}: {'; '.join(problems)}")
    return {f: data[f] for f in fields}


@dataclass(frozen=True)
class DeliveryConfig:
    """Destino e identidade de uma instalação do Twist."""

    install_id: str
    post_data_url: str
    user_id: str
    user_name: str

    FIELDS = ('install_id', 'post_data_url', 'user_id', 'user_name')

    @classmethod
    def from_dict(cls, data: Mapping) -> 'DeliveryConfig':
        return cls(**_require_strings(data, cls.FIELDS, 'configuration'))

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class IntegrationRecord:
    secret_id: str
    configuration: DeliveryConfig

    @classmethod
    def from_config(cls, config: DeliveryConfig) -> 'IntegrationRecord':
        return cls(secret_id=config.install_id, configuration=config)

    @classmethod
    def from_dict(cls, data: Mapping) -> 'IntegrationRecord':
        if not isinstance(data, Mapping):
            raise InvalidPayloadError(f"registro: esperado um objeto, recebido {type(data).__name__}")
        secret_id = data.get('secret_id')
        if not isinstance(secret_id, str):
            raise InvalidPayloadError("registro: campo 'secret_id' ausente ou não textual")
        return cls(secret_id=secret_id, configuration=DeliveryConfig.from_dict(data.get('configuration')))

    def to_dict(self) -> Dict[str, Any]:
        return {'secret_id': self.secret_id, 'configuration': self.configuration.to_dict()}
