# storage/outbox_repository.py
import sqlite3

from novelbridge.storage.db import new_id, utc_now
from novelbridge.storage.models import OutboxMessage


class OutboxRepository:
    """
    Mensajes pendientes de publicar en la cola. Se escriben en la misma
    transacción que el cambio de dominio que los origina; un relay los
    entrega después y los marca como entregados.
    """

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def add(self, topic: str, payload: str) -> OutboxMessage:
        message = OutboxMessage(
            id         = new_id(),
            topic      = topic,
            payload    = payload,
            attempts   = 0,
            created_at = utc_now(),
        )
        self._conn.execute(
            """
            INSERT INTO outbox_messages (id, topic, payload, attempts, created_at)
            VALUES (?, ?, ?, 0, ?)
            """,
            (message.id, topic, payload, message.created_at),
        )
        return message

    def get_by_id(self, message_id: str) -> OutboxMessage | None:
        row = self._conn.execute(
            "SELECT * FROM outbox_messages WHERE id = ?", (message_id,)
        ).fetchone()
        return self._row_to_message(row) if row else None

    def get_pending(self, limit: int = 50) -> list[OutboxMessage]:
        rows = self._conn.execute(
            """
            SELECT * FROM outbox_messages
            WHERE delivered_at IS NULL
            ORDER BY created_at ASC, rowid ASC
            LIMIT ?
            """,
            (limit,),
        ).fetchall()
        return [self._row_to_message(r) for r in rows]

    def count_pending(self) -> int:
        row = self._conn.execute(
            "SELECT COUNT(*) FROM outbox_messages WHERE delivered_at IS NULL"
        ).fetchone()
        return row[0]

    def mark_delivered(self, message_id: str) -> None:
        self._conn.execute(
            """
            UPDATE outbox_messages
            SET delivered_at = ?, attempts = attempts + 1, last_error = NULL
            WHERE id = ?
            """,
            (utc_now(), message_id),
        )

    def mark_failed(self, message_id: str, error: str) -> None:
        self._conn.execute(
            "UPDATE outbox_messages SET attempts = attempts + 1, last_error = ? WHERE id = ?",
            (error, message_id),
        )

    @staticmethod
    def _row_to_message(row: sqlite3.Row) -> OutboxMessage:
        return OutboxMessage(
            id           = row["id"],
            topic        = row["topic"],
            payload      = row["payload"],
            attempts     = row["attempts"],
            created_at   = row["created_at"],
            last_error   = row["last_error"],
            delivered_at = row["delivered_at"],
        )
