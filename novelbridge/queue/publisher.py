# queue/publisher.py
import logging
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)

_DEFAULT_SPOOL_DIR = Path.home() / ".novelbridge" / "spool"
_TOPIC_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class PublishError(Exception):
    pass


class BaseQueuePublisher(ABC):
    """
    Interfaz hacia la cola de trabajos. El broker concreto es externo;
    cualquier fallo se reporta como PublishError.
    """

    @abstractmethod
    def publish(self, topic: str, payload: str) -> None:
        raise NotImplementedError


class SpoolQueuePublisher(BaseQueuePublisher):
    """
    Cola basada en archivos: una línea JSON por mensaje en <spool_dir>/<topic>.jsonl.
    El worker externo consume los archivos en orden de escritura.
    """

    def __init__(self, spool_dir: str | None = None, log: logging.Logger | None = None):
        self._logger = log or logger
        self._dir    = Path(spool_dir or os.environ.get("NOVELBRIDGE_SPOOL_DIR") or _DEFAULT_SPOOL_DIR).expanduser()

    def topic_path(self, topic: str) -> Path:
        if not _TOPIC_RE.match(topic):
            raise PublishError(f"Nombre de cola inválido: '{topic}'")
        return self._dir / f"{topic}.jsonl"

    def publish(self, topic: str, payload: str) -> None:
        if "\n" in payload:
            raise PublishError("El payload debe ser JSON en una sola línea")

        path = self.topic_path(topic)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as f:
                f.write(payload + "\n")
        except OSError as e:
            raise PublishError(f"No se pudo escribir en la cola '{topic}'") from e

        self._logger.debug("Mensaje publicado en '%s'", topic)
