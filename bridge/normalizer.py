import json
import logging
from typing import Any, Callable, List, Optional, Tuple, Union

from .constants import ALARM_EMOJI, RESOLVED_EMOJI, UNKNOWN_SERVICE

logger = logging.getLogger(__name__)


class ShapeMismatch(Exception):
    """O payload não corresponde ao formato testado pelo parser."""


def _field(obj: Any, path: str, kind: Optional[type] = str) -> Any:
    """
    Lê um campo aninhado (ex: 'incident.resource.type') exigindo o tipo informado.
    kind=None aceita qualquer valor JSON, mas o campo precisa existir.
    """
    current = obj
    walked = []
    for part in path.split('.'):
        walked.append(part)
        if not isinstance(current, dict):
            raise ShapeMismatch(f"'{'.'.join(walked[:-1]) or '$'}' não é um objeto")
        if part not in current:
            raise ShapeMismatch(f"campo ausente '{'.'.join(walked)}'")
        current = current[part]
    if kind is not None and not isinstance(current, kind):
        raise ShapeMismatch(f"campo '{path}' deveria ser {kind.__name__}, recebido {type(current).__name__}")
    return current


def extract_service_name(labels: Any) -> str:
    if isinstance(labels, dict):
        name = labels.get('container_name')
        if isinstance(name, str):
            return name
    return UNKNOWN_SERVICE


def parse_log_alert(payload: Any) -> str:
    """Alerta baseado em logs (log-based alert policy)."""
    content = _field(payload, 'incident.documentation.content')
    _field(payload, 'incident.documentation.mime_type')
    policy_name = _field(payload, 'incident.policy_name')
    labels = _field(payload, 'incident.resource.labels', kind=None)
    _field(payload, 'incident.resource.type')
    url = _field(payload, 'incident.url')

    service = extract_service_name(labels)
    return f"{ALARM_EMOJI} {policy_name} on {service} [incident]({url})\n\n{content}"


def parse_uptime_alert(payload: Any) -> str:
    """Alerta de uptime check."""
    policy_name = _field(payload, 'incident.policy_name')
    url = _field(payload, 'incident.url')
    summary = _field(payload, 'incident.summary')
    state = _field(payload, 'incident.state')

    emoji = ALARM_EMOJI if state == 'open' else RESOLVED_EMOJI
    return f"{emoji} {policy_name} [incident]({url})\n\n{summary}"


# Ordem importa: o primeiro parser que aceitar o payload vence
PARSERS: List[Tuple[str, Callable[[Any], str]]] = [
    ('log', parse_log_alert),
    ('uptime', parse_uptime_alert),
]


def _as_text(raw_payload: Union[str, bytes]) -> Tuple[str, Optional[str]]:
    """
    Retorna (texto, erro). Bytes que não são UTF-8 válido viram repr(),
    assim a mensagem de diagnóstico preserva o corpo original sem perdas.
    """
    if isinstance(raw_payload, bytes):
        try:
            return raw_payload.decode("utf-8"), None
        except UnicodeDecodeError as e:
            return repr(raw_payload), f"invalid UTF-8: {e}"
    return raw_payload, None


def _match(raw_payload: str) -> Tuple[Optional[str], Optional[str], str]:
    """Retorna (nome_do_formato, mensagem, erro)."""
    try:
        payload = json.loads(raw_payload)
    except (ValueError, TypeError, RecursionError) as e:
        return None, None, f"invalid JSON: {e}"

    reasons = []
    for name, parser in PARSERS:
        try:
            return name, parser(payload), ''
        except ShapeMismatch as e:
            reasons.append(f"{name}: {e}")
    return None, None, f"data did not match any known alert shape ({'; '.join(reasons)})"


def format_fallback(error: str, raw_payload: str) -> str:
    return f"Failed to parse due to {error}:\n\n```\n{raw_payload}\n```"


def classify(raw_payload: Union[str, bytes]) -> Optional[str]:
    text, error = _as_text(raw_payload)
    if error:
        return None
    name, _, _ = _match(text)
    return name


def normalize(raw_payload: Union[str, bytes]) -> str:
    """
    Converte o payload de alerta do GCP em mensagem para o Twist.
    Nunca lança exceção: payload irreconhecível vira uma mensagem de diagnóstico
    contendo o erro e o payload original.
    """
    text, error = _as_text(raw_payload)
    if error:
        logger.warning(f"Corpo do alerta não é UTF-8, encaminhando repr dos bytes: {error}")
        return format_fallback(error, text)

    name, message, error = _match(text)
    if message is not None:
        logger.debug(f"Alerta reconhecido como '{name}'")
        return message

    logger.warning(f"Falha ao interpretar alerta: {error}")
    return format_fallback(error, text)
