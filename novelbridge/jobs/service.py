# jobs/service.py
import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

from novelbridge.jobs.errors import (
    ActiveJobConflictError,
    AlreadyTerminalJobError,
    InvalidLanguageError,
    JobNotFoundError,
    NoChaptersToTranslateError,
    NovelNotFoundError,
)
from novelbridge.jobs.state import (
    check_job_transition, check_subtask_transition, is_terminal_job,
)
from novelbridge.queue.messages import (
    DEFAULT_TARGET_FIELDS, TRANSLATION_JOBS_TOPIC, TranslationJobMessage,
)
from novelbridge.queue.relay import OutboxRelay
from novelbridge.storage.db import new_id, utc_now
from novelbridge.storage.errors import PersistenceError
from novelbridge.storage.models import (
    PRIORITY_CHAPTER, PRIORITY_NOVEL, PRIORITY_VOLUME,
    EntityType, JobStatus, OutboxMessage, StoredVolume, SubtaskStatus,
    TranslationJob, TranslationSubtask,
)
from novelbridge.storage.unit_of_work import RepositoryProvider, UnitOfWork

logger = logging.getLogger(__name__)


@dataclass
class JobPage:
    jobs:   list[TranslationJob]
    total:  int
    limit:  int
    offset: int


def build_subtasks(job_id: str, novel_id: str, volumes: list[StoredVolume]) -> list[TranslationSubtask]:
    """
    Descompone la novela en subtareas:
      - una por capítulo (seq global: por número de volumen y luego de capítulo)
      - una por volumen (seq por número de volumen)
      - una para la novela (seq 1)

    El worker procesa por priority ascendente: capítulos → volúmenes → novela.
    """
    ordered = sorted(volumes, key=lambda v: v.number)
    subtasks: list[TranslationSubtask] = []

    seq = 0
    for volume in ordered:
        for chapter in sorted(volume.chapters, key=lambda c: c.number):
            seq += 1
            subtasks.append(TranslationSubtask(
                id               = new_id(),
                job_id           = job_id,
                entity_type      = EntityType.CHAPTER,
                entity_id        = chapter.id,
                parent_volume_id = volume.id,
                seq              = seq,
                priority         = PRIORITY_CHAPTER,
            ))

    for i, volume in enumerate(ordered, start=1):
        subtasks.append(TranslationSubtask(
            id          = new_id(),
            job_id      = job_id,
            entity_type = EntityType.VOLUME,
            entity_id   = volume.id,
            seq         = i,
            priority    = PRIORITY_VOLUME,
        ))

    subtasks.append(TranslationSubtask(
        id          = new_id(),
        job_id      = job_id,
        entity_type = EntityType.NOVEL,
        entity_id   = novel_id,
        seq         = 1,
        priority    = PRIORITY_NOVEL,
    ))
    return subtasks


def normalize_lang(code: str | None) -> str:
    """
    '  PT-BR ' → 'pt-br'. Letras y guiones, hasta 10 caracteres.

    Raises:
        InvalidLanguageError: vacío, caracteres inválidos o demasiado largo.
    """
    code = (code or "").strip().lower()
    if not code:
        raise InvalidLanguageError(code, "no puede estar vacío")
    if not code.replace("-", "").isalpha():
        raise InvalidLanguageError(code, "contiene caracteres inválidos")
    if len(code) > 10:
        raise InvalidLanguageError(code, "demasiado largo")
    return code


class TranslationJobService:
    """
    Crea jobs de traducción (job + subtareas) y expone los cambios de estado
    que usa el worker externo. La traducción en sí ocurre fuera de este paquete.

    El mensaje para la cola se escribe en el outbox dentro de la misma
    transacción que el job. Después del commit, si hay relay configurado,
    se intenta entregarlo; si falla, queda pendiente para `outbox relay`.

    Los errores de sqlite se loguean completos y salen como PersistenceError
    con un mensaje corto, sin SQL ni rutas.
    """

    def __init__(
        self,
        uow:                UnitOfWork,
        relay:              Optional[OutboxRelay] = None,
        target_fields:      Optional[list[str]]   = None,
        enable_code_filter: bool                  = False,
        topic:              str                   = TRANSLATION_JOBS_TOPIC,
        log:                logging.Logger | None = None,
    ):
        self._uow                = uow
        self._topic              = topic
        self._relay              = relay
        self._target_fields      = list(target_fields or DEFAULT_TARGET_FIELDS)
        self._enable_code_filter = enable_code_filter
        self._logger             = log or logger

    # ------------------------------------------------------------------
    # Creación
    # ------------------------------------------------------------------

    def create_translation_job(
        self,
        novel_id:     str,
        target_lang:  str,
        requested_by: Optional[str] = None,
    ) -> TranslationJob:
        target_lang = normalize_lang(target_lang)

        with self._storage("crear el job"):
            try:
                job, message = self._uow.do(
                    lambda repos: self._create(repos, novel_id, target_lang, requested_by)
                )
            except sqlite3.IntegrityError as e:
                # Otro request creó un job activo entre el chequeo y el insert
                existing = self._uow.repos.jobs.get_active_by_novel_and_lang(novel_id, target_lang)
                if existing is None:
                    raise
                raise ActiveJobConflictError(novel_id, target_lang, existing.id) from e

        self._logger.info(
            "Job %s creado: novela %s %s → %s, %d subtareas",
            job.id, novel_id, job.from_lang, target_lang, job.total_subtasks,
        )

        if self._relay is not None:
            self._relay.deliver(message)

        return job

    def _create(
        self,
        repos:        RepositoryProvider,
        novel_id:     str,
        target_lang:  str,
        requested_by: Optional[str],
    ) -> tuple[TranslationJob, OutboxMessage]:
        novel = repos.novels.get_by_id(novel_id)
        if novel is None:
            raise NovelNotFoundError(novel_id)

        existing = repos.jobs.get_active_by_novel_and_lang(novel_id, target_lang)
        if existing is not None:
            raise ActiveJobConflictError(novel_id, target_lang, existing.id)

        volumes = repos.volumes.get_all_with_chapters_by_novel_id(novel_id)
        if not any(v.chapters for v in volumes):
            raise NoChaptersToTranslateError(novel_id)

        job = repos.jobs.create(TranslationJob(
            id          = new_id(),
            novel_id    = novel_id,
            from_lang   = novel.original_language,
            target_lang = target_lang,
            status      = JobStatus.PENDING,
            created_by  = requested_by,
        ))

        subtasks = build_subtasks(job.id, novel_id, volumes)
        repos.jobs.create_subtasks_batch(subtasks)
        repos.jobs.update_total_subtasks(job.id, len(subtasks))
        job.total_subtasks = len(subtasks)
        job.subtasks       = subtasks

        message = TranslationJobMessage(
            job_id             = job.id,
            target_lang        = job.target_lang,
            source_lang        = job.from_lang,
            target_fields      = self._target_fields,
            enable_code_filter = self._enable_code_filter,
        )
        outbox = repos.outbox.add(self._topic, message.to_json())
        return job, outbox

    # ------------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------------

    def get_job(self, job_id: str) -> TranslationJob:
        with self._storage("leer el job"):
            job = self._uow.repos.jobs.get_by_id(job_id, with_subtasks=True)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def list_jobs(
        self,
        limit:  int = 20,
        offset: int = 0,
        status: Optional[JobStatus] = None,
    ) -> JobPage:
        limit, offset = _normalize_page(limit, offset)
        with self._storage("listar los jobs"):
            jobs  = self._uow.repos.jobs.get_all(limit=limit, offset=offset, status=status)
            total = self._uow.repos.jobs.count(status=status)
        return JobPage(jobs=jobs, total=total, limit=limit, offset=offset)

    def list_jobs_by_novel(
        self,
        novel_id: str,
        limit:    int = 20,
        offset:   int = 0,
        status:   Optional[JobStatus] = None,
    ) -> JobPage:
        limit, offset = _normalize_page(limit, offset)
        with self._storage("listar los jobs"):
            jobs  = self._uow.repos.jobs.get_by_novel_id(novel_id, limit=limit, offset=offset, status=status)
            total = self._uow.repos.jobs.count_by_novel_id(novel_id, status=status)
        return JobPage(jobs=jobs, total=total, limit=limit, offset=offset)

    # ------------------------------------------------------------------
    # Cambios de estado
    # ------------------------------------------------------------------

    def cancel_job(self, job_id: str) -> TranslationJob:
        """
        PENDING / IN_PROGRESS → CANCELLED. Las subtareas que no terminaron
        también pasan a CANCELLED. Un job terminal lanza AlreadyTerminalJobError.
        """
        def _cancel(repos: RepositoryProvider) -> int:
            job = repos.jobs.get_by_id(job_id, with_subtasks=False)
            if job is None:
                raise JobNotFoundError(job_id)
            if is_terminal_job(job.status):
                raise AlreadyTerminalJobError(job_id, job.status.value)

            now = utc_now()
            repos.jobs.update_status(job_id, JobStatus.CANCELLED, finished_at=now)
            return repos.jobs.cancel_open_subtasks(job_id, finished_at=now)

        with self._storage("cancelar el job"):
            cancelled = self._uow.do(_cancel)
        self._logger.info("Job %s cancelado (%d subtareas canceladas)", job_id, cancelled)
        return self.get_job(job_id)

    def update_job_status(
        self,
        job_id:        str,
        status:        JobStatus,
        error_message: Optional[str] = None,
    ) -> TranslationJob:
        def _update(repos: RepositoryProvider) -> None:
            job = repos.jobs.get_by_id(job_id, with_subtasks=False)
            if job is None:
                raise JobNotFoundError(job_id)
            check_job_transition(job.status, status)

            now = utc_now()
            repos.jobs.update_status(
                job_id,
                status,
                error_message = error_message,
                started_at    = now if status == JobStatus.IN_PROGRESS else None,
                finished_at   = now if is_terminal_job(status) else None,
            )

        with self._storage("actualizar el job"):
            self._uow.do(_update)
        return self.get_job(job_id)

    def update_subtask_status(
        self,
        subtask_id:    str,
        status:        SubtaskStatus,
        error_message: Optional[str] = None,
    ) -> TranslationSubtask:
        def _update(repos: RepositoryProvider) -> TranslationSubtask:
            subtask = repos.jobs.get_subtask_by_id(subtask_id)
            if subtask is None:
                raise JobNotFoundError(subtask_id)
            check_subtask_transition(subtask.status, status)

            now = utc_now()
            repos.jobs.update_subtask_status(
                subtask_id,
                status,
                error_message = error_message,
                started_at    = now if status == SubtaskStatus.IN_PROGRESS else None,
                finished_at   = now if status in (
                    SubtaskStatus.DONE, SubtaskStatus.FAILED, SubtaskStatus.CANCELLED,
                ) else None,
            )
            return repos.jobs.get_subtask_by_id(subtask_id)

        with self._storage("actualizar la subtarea"):
            return self._uow.do(_update)

    def refresh_progress(self, job_id: str) -> TranslationJob:
        """completed_subtasks = subtareas DONE; progress = porcentaje entero."""
        def _refresh(repos: RepositoryProvider) -> None:
            job = repos.jobs.get_by_id(job_id, with_subtasks=False)
            if job is None:
                raise JobNotFoundError(job_id)
            done     = repos.jobs.count_subtasks_by_status(job_id, SubtaskStatus.DONE)
            progress = (done * 100 // job.total_subtasks) if job.total_subtasks else 0
            repos.jobs.update_progress(job_id, completed=done, progress=progress)

        with self._storage("actualizar el progreso"):
            self._uow.do(_refresh)
        return self.get_job(job_id)

    @contextmanager
    def _storage(self, action: str):
        try:
            yield
        except sqlite3.Error as e:
            self._logger.exception("Falló la base al %s", action)
            raise PersistenceError(f"no se pudo {action}") from e


def _normalize_page(limit: int, offset: int) -> tuple[int, int]:
    if limit <= 0:
        limit = 20
    return min(limit, 100), max(offset, 0)
