import logging
import threading
from concurrent import futures
from typing import Optional, Set

import requests

from .constants import DELIVERY_MAX_WORKERS, DELIVERY_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


def send_twist_payload(post_url, content, timeout=DELIVERY_TIMEOUT_SECONDS):
    resp = requests.post(post_url, json={'content': content}, timeout=timeout)
    logger.debug(f"Twist response: {resp.status_code}")
    if resp.status_code >= 300:
        logger.warning(f"Twist respondeu {resp.status_code} para {post_url}: {resp.text[:200]}")
    return resp


class DeliveryDispatcher:
    """
    Entrega mensagens no Twist fora da thread da requisição.
    Os handlers apenas enfileiram; as entregas rodam em paralelo num pool limitado,
    então um destino lento não atrasa os demais. Falhas de rede são registradas em log e descartadas.
    """

    def __init__(self, timeout: float = DELIVERY_TIMEOUT_SECONDS, max_workers: int = DELIVERY_MAX_WORKERS):
        self.timeout = timeout
        self.max_workers = max(1, max_workers)
        self._executor: Optional[futures.ThreadPoolExecutor] = None
        self._pending: Set[futures.Future] = set()
        self._lock = threading.Lock()

    def start(self):
        with self._lock:
            if self._executor is None:
                self._executor = futures.ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix='twist-delivery',
                )
        logger.debug(f"DeliveryDispatcher iniciado ({self.max_workers} workers)")

    def is_alive(self) -> bool:
        return self._executor is not None

    def submit(self, post_url: str, content: str) -> futures.Future:
        with self._lock:
            if self._executor is None:
                raise RuntimeError("DeliveryDispatcher não iniciado")
            future = self._executor.submit(self._run, post_url, content)
            self._pending.add(future)
        future.add_done_callback(self._discard)
        return future

    def _discard(self, future: futures.Future):
        with self._lock:
            self._pending.discard(future)

    def _snapshot(self) -> Set[futures.Future]:
        with self._lock:
            return set(self._pending)

    def join_pending(self, timeout: Optional[float] = None) -> bool:
        """Bloqueia até que as entregas enfileiradas terminem. Retorna False se o timeout expirar."""
        pending = self._snapshot()
        while pending:
            _, not_done = futures.wait(pending, timeout=timeout)
            if not_done:
                return False
            pending = self._snapshot()
        return True

    def stop(self, wait: Optional[float] = None):
        if not self.join_pending(timeout=wait):
            logger.warning(f"Encerrando com {len(self._snapshot())} entrega(s) pendente(s)")
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False)

    def deliver(self, post_url: str, content: str) -> bool:
        try:
            resp = send_twist_payload(post_url, content, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Falha ao entregar mensagem em {post_url}: {e}")
            return False
        return resp.status_code < 300

    def _run(self, post_url: str, content: str) -> bool:
        try:
            return self.deliver(post_url, content)
        except Exception:
            # um worker do pool não pode propagar erro de uma mensagem
            logger.exception("Erro inesperado na entrega de mensagem")
            return False
