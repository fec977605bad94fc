# queue/relay.py
import logging
from dataclasses import dataclass

from novelbridge.queue.publisher import BaseQueuePublisher
from novelbridge.storage.models import OutboxMessage
from novelbridge.storage.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


@dataclass
class RelayResult:
    delivered: int = 0
    failed:    int = 0


class OutboxRelay:
    """
    Entrega los mensajes pendientes del outbox a la cola.

    Un mensaje se marca como entregado solo si publish() no lanzó;
    si falla queda pendiente con attempts y last_error actualizados,
    y el relay sigue con el resto. Nunca lanza.
    """

    def __init__(
        self,
        uow:       UnitOfWork,
        publisher: BaseQueuePublisher,
        log:       logging.Logger | None = None,
    ):
        self._uow       = uow
        self._publisher = publisher
        self._logger    = log or logger

    def relay_pending(self, batch_size: int = 50) -> RelayResult:
        result = RelayResult()
        try:
            pending = self._uow.repos.outbox.get_pending(limit=batch_size)
        except Exception:
            self._logger.exception("No se pudo leer el outbox")
            return result

        for message in pending:
            if self.deliver(message):
                result.delivered += 1
            else:
                result.failed += 1

        if pending:
            self._logger.info(
                "Outbox: %d entregados, %d fallidos", result.delivered, result.failed,
            )
        return result

    def deliver(self, message: OutboxMessage) -> bool:
        """Publica un mensaje y registra el resultado. True si quedó entregado."""
        try:
            self._publisher.publish(message.topic, message.payload)
        except Exception as e:
            self._logger.warning("No se pudo publicar el mensaje %s: %s", message.id, e)
            error = str(e)[:500] or type(e).__name__
            self._record(lambda repos: repos.outbox.mark_failed(message.id, error))
            return False

        self._record(lambda repos: repos.outbox.mark_delivered(message.id))
        return True

    def _record(self, fn) -> None:
        try:
            self._uow.do(fn)
        except Exception:
            self._logger.exception("No se pudo actualizar el estado del outbox")
