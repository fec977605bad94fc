# storage/unit_of_work.py
import logging
import sqlite3
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from novelbridge.storage.db import get_connection, init_schema
from novelbridge.storage.job_repository import JobRepository
from novelbridge.storage.novel_repository import MediaRepository, NovelRepository
from novelbridge.storage.outbox_repository import OutboxRepository
from novelbridge.storage.tag_repository import TagRepository
from novelbridge.storage.volume_repository import ChapterRepository, VolumeRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RepositoryProvider:
    """Todos los repositorios sobre una misma conexión."""

    def __init__(self, conn: sqlite3.Connection):
        self.novels   = NovelRepository(conn)
        self.media    = MediaRepository(conn)
        self.tags     = TagRepository(conn)
        self.volumes  = VolumeRepository(conn)
        self.chapters = ChapterRepository(conn)
        self.jobs     = JobRepository(conn)
        self.outbox   = OutboxRepository(conn)


class UnitOfWork:
    """
    Dueña de la conexión y de la transacción.

    Uso:
        uow = UnitOfWork(db_path=":memory:")
        with uow.transaction() as repos:
            novel = repos.novels.create(...)
            repos.volumes.create(novel.id, ...)
        # commit si el bloque termina bien, rollback si lanza

    Las lecturas sueltas pueden usar `uow.repos` sin abrir transacción.
    Las escrituras siempre pasan por `transaction()` o `do()`.
    """

    def __init__(self, db_path: str | None = None, log: logging.Logger | None = None):
        self._logger = log or logger
        self._conn   = get_connection(db_path)
        init_schema(self._conn)
        self._repos  = RepositoryProvider(self._conn)

    @property
    def repos(self) -> RepositoryProvider:
        return self._repos

    @contextmanager
    def transaction(self) -> Iterator[RepositoryProvider]:
        if self._conn.in_transaction:
            raise RuntimeError("Ya hay una transacción abierta en esta UnitOfWork")

        self._conn.execute("BEGIN")
        try:
            yield self._repos
        except BaseException:
            self._conn.rollback()
            self._logger.debug("Transacción revertida")
            raise
        else:
            self._conn.commit()

    def do(self, fn: Callable[[RepositoryProvider], T]) -> T:
        """Ejecuta fn(repos) dentro de una transacción y devuelve su resultado."""
        with self.transaction() as repos:
            return fn(repos)

    def close(self) -> None:
        self._conn.close()
