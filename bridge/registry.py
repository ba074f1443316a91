import json
import logging
import os
import stat
import tempfile
import threading
from typing import List, Optional

from .constants import REGISTRY_FILE
from .models import BridgeError, DeliveryConfig, IntegrationRecord, InvalidPayloadError

logger = logging.getLogger(__name__)


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


# mkstemp cria o arquivo com 0600; um registro novo segue o modo padrão de open()
# e um existente mantém o modo atual
DEFAULT_FILE_MODE = 0o666 & ~_current_umask()


class RegistryError(BridgeError):
    pass


class RegistryLoadError(RegistryError):
    """Arquivo do registro existe mas não contém registros válidos."""


class RegistryPersistError(RegistryError):
    """Falha ao gravar o registro em disco."""


class IntegrationRegistry:
    """
    Mapeamento persistente secret_id -> configuração de entrega.

    Regras:
    - A lista em memória é a fonte da verdade enquanto o processo roda
    - Toda mutação grava o arquivo inteiro antes de liberar o lock
    - Leituras e escritas usam o mesmo lock (sem separação leitor/escritor)
    - Se a gravação falhar, a mutação em memória é desfeita
    """

    def __init__(self, path: str = REGISTRY_FILE):
        self.path = path
        self._lock = threading.Lock()
        self._records: List[IntegrationRecord] = []

    def load(self):
        """Carrega o registro do arquivo JSON. Ausência do arquivo = registro vazio."""
        if not os.path.exists(self.path):
            logger.info(f"Arquivo de registro '{self.path}' não existe, iniciando vazio")
            with self._lock:
                self._records = []
            return

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise RegistryLoadError(f"Falha ao ler registro '{self.path}': {e}") from e

        if not isinstance(data, list):
            raise RegistryLoadError(f"Registro '{self.path}' não é uma lista JSON")

        records = []
        for idx, entry in enumerate(data):
            try:
                records.append(IntegrationRecord.from_dict(entry))
            except InvalidPayloadError as e:
                raise RegistryLoadError(f"Registro '{self.path}' inválido na posição {idx}: {e}") from e

        ids = [r.secret_id for r in records]
        duplicated = sorted({i for i in ids if ids.count(i) > 1})
        if duplicated:
            # dados legados: find() usa o primeiro, unregister() remove o primeiro
            logger.warning(f"Registro contém ids duplicados: {', '.join(duplicated)}")

        with self._lock:
            self._records = records
        logger.info(f"Registro carregado: {len(records)} integrações")

    def _file_mode(self) -> int:
        try:
            return stat.S_IMODE(os.stat(self.path).st_mode)
        except FileNotFoundError:
            return DEFAULT_FILE_MODE

    def _save(self, records: List[IntegrationRecord]):
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix='.registry-', suffix='.json', dir=directory)
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump([r.to_dict() for r in records], f)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, self._file_mode())
            # rename atômico: leitores nunca veem um arquivo pela metade
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise RegistryPersistError(f"Falha ao salvar registro '{self.path}': {e}") from e

    def _commit(self, records: List[IntegrationRecord]):
        # chamado com o lock adquirido
        self._save(records)
        self._records = records

    def register(self, config: DeliveryConfig) -> IntegrationRecord:
        """Registra a instalação; um registro anterior com o mesmo id é substituído."""
        record = IntegrationRecord.from_config(config)
        with self._lock:
            replaced = [r for r in self._records if r.secret_id == record.secret_id]
            records = [r for r in self._records if r.secret_id != record.secret_id]
            records.append(record)
            self._commit(records)
        if replaced:
            logger.info(f"Integração '{record.secret_id}' reconfigurada ({len(replaced)} registro(s) substituído(s))")
        return record

    def find(self, secret_id: str) -> Optional[IntegrationRecord]:
        with self._lock:
            for record in self._records:
                if record.secret_id == secret_id:
                    return record
        return None

    def unregister(self, install_id: str) -> Optional[IntegrationRecord]:
        """Remove o primeiro registro com o id informado. Id desconhecido é no-op."""
        with self._lock:
            for idx, record in enumerate(self._records):
                if record.secret_id == install_id:
                    self._commit(self._records[:idx] + self._records[idx + 1:])
                    return record
        return None

    def records(self) -> List[IntegrationRecord]:
        with self._lock:
            return list(self._records)

    def __len__(self):
        with self._lock:
            return len(self._records)
