# storage/job_repository.py
import sqlite3
from typing import Optional

from novelbridge.storage.db import utc_now
from novelbridge.storage.models import (
    ACTIVE_JOB_STATUSES,
    EntityType, JobStatus, SubtaskStatus, TranslationJob, TranslationSubtask,
)

_ACTIVE_VALUES = tuple(s.value for s in ACTIVE_JOB_STATUSES)
_OPEN_SUBTASKS = (SubtaskStatus.PENDING.value, SubtaskStatus.IN_PROGRESS.value)


class JobRepository:
    """
    Jobs de traducción y sus subtareas.
    Las subtareas siempre se devuelven ordenadas por (priority ASC, seq ASC),
    que es el orden en que el worker externo debe procesarlas.
    """

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def create(self, job: TranslationJob) -> TranslationJob:
        """
        Inserta el job. Si ya hay uno activo para (novela, idioma) el índice
        parcial único lanza sqlite3.IntegrityError; el servicio lo traduce.
        """
        now = utc_now()
        job.created_at = job.created_at or now
        job.updated_at = now
        self._conn.execute(
            """
            INSERT INTO translation_jobs
                (id, novel_id, from_lang, target_lang, status, progress,
                 total_subtasks, completed_subtasks, error_message, created_by,
                 started_at, finished_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (job.id, job.novel_id, job.from_lang, job.target_lang, job.status.value,
             job.progress, job.total_subtasks, job.completed_subtasks, job.error_message,
             job.created_by, job.started_at, job.finished_at, job.created_at, job.updated_at),
        )
        return job

    def get_by_id(self, job_id: str, with_subtasks: bool = True) -> TranslationJob | None:
        row = self._conn.execute(
            "SELECT * FROM translation_jobs WHERE id = ?", (job_id,)
        ).fetchone()
        if not row:
            return None
        job = self._row_to_job(row)
        if with_subtasks:
            job.subtasks = self.get_subtasks(job_id)
        return job

    def get_active_by_novel_and_lang(self, novel_id: str, target_lang: str) -> TranslationJob | None:
        row = self._conn.execute(
            f"""
            SELECT * FROM translation_jobs
            WHERE novel_id = ? AND target_lang = ?
              AND status IN ({",".join("?" * len(_ACTIVE_VALUES))})
            ORDER BY created_at DESC
            LIMIT 1
            """,
            (novel_id, target_lang, *_ACTIVE_VALUES),
        ).fetchone()
        return self._row_to_job(row) if row else None

    def get_all(
        self,
        limit:  int = 20,
        offset: int = 0,
        status: Optional[JobStatus] = None,
    ) -> list[TranslationJob]:
        if status is not None:
            rows = self._conn.execute(
                """
                SELECT * FROM translation_jobs WHERE status = ?
                ORDER BY created_at DESC LIMIT ? OFFSET ?
                """,
                (status.value, limit, offset),
            ).fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM translation_jobs ORDER BY created_at DESC LIMIT ? OFFSET ?",
                (limit, offset),
            ).fetchall()
        return [self._row_to_job(r) for r in rows]

    def count(self, status: Optional[JobStatus] = None) -> int:
        if status is not None:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM translation_jobs WHERE status = ?", (status.value,)
            ).fetchone()
        else:
            row = self._conn.execute("SELECT COUNT(*) FROM translation_jobs").fetchone()
        return row[0]

    def get_by_novel_id(
        self,
        novel_id: str,
        limit:    int = 20,
        offset:   int = 0,
        status:   Optional[JobStatus] = None,
    ) -> list[TranslationJob]:
        where, params = _novel_filter(novel_id, status)
        rows = self._conn.execute(
            f"SELECT * FROM translation_jobs WHERE {where} ORDER BY created_at DESC LIMIT ? OFFSET ?",
            (*params, limit, offset),
        ).fetchall()
        return [self._row_to_job(r) for r in rows]

    def count_by_novel_id(self, novel_id: str, status: Optional[JobStatus] = None) -> int:
        where, params = _novel_filter(novel_id, status)
        row = self._conn.execute(
            f"SELECT COUNT(*) FROM translation_jobs WHERE {where}", params
        ).fetchone()
        return row[0]

    def update_status(
        self,
        job_id:        str,
        status:        JobStatus,
        error_message: Optional[str] = None,
        started_at:    Optional[str] = None,
        finished_at:   Optional[str] = None,
    ) -> None:
        """started_at / finished_at solo se pisan si vienen informados."""
        self._conn.execute(
            """
            UPDATE translation_jobs
            SET status        = ?,
                error_message = COALESCE(?, error_message),
                started_at    = COALESCE(?, started_at),
                finished_at   = COALESCE(?, finished_at),
                updated_at    = ?
            WHERE id = ?
            """,
            (status.value, error_message, started_at, finished_at, utc_now(), job_id),
        )

    def update_total_subtasks(self, job_id: str, total: int) -> None:
        self._conn.execute(
            "UPDATE translation_jobs SET total_subtasks = ?, updated_at = ? WHERE id = ?",
            (total, utc_now(), job_id),
        )

    def update_progress(self, job_id: str, completed: int, progress: int) -> None:
        self._conn.execute(
            """
            UPDATE translation_jobs
            SET completed_subtasks = ?, progress = ?, updated_at = ?
            WHERE id = ?
            """,
            (completed, progress, utc_now(), job_id),
        )

    # ------------------------------------------------------------------
    # Subtareas
    # ------------------------------------------------------------------

    def create_subtasks_batch(self, subtasks: list[TranslationSubtask]) -> None:
        now = utc_now()
        for s in subtasks:
            s.created_at = s.created_at or now
            s.updated_at = now
        self._conn.executemany(
            """
            INSERT INTO translation_subtasks
                (id, job_id, entity_type, entity_id, parent_volume_id, seq, priority,
                 status, error_message, started_at, finished_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (s.id, s.job_id, s.entity_type.value, s.entity_id, s.parent_volume_id,
                 s.seq, s.priority, s.status.value, s.error_message, s.started_at,
                 s.finished_at, s.created_at, s.updated_at)
                for s in subtasks
            ],
        )

    def get_subtasks(self, job_id: str) -> list[TranslationSubtask]:
        rows = self._conn.execute(
            """
            SELECT * FROM translation_subtasks
            WHERE job_id = ?
            ORDER BY priority ASC, seq ASC
            """,
            (job_id,),
        ).fetchall()
        return [self._row_to_subtask(r) for r in rows]

    def get_subtask_by_id(self, subtask_id: str) -> TranslationSubtask | None:
        row = self._conn.execute(
            "SELECT * FROM translation_subtasks WHERE id = ?", (subtask_id,)
        ).fetchone()
        return self._row_to_subtask(row) if row else None

    def update_subtask_status(
        self,
        subtask_id:    str,
        status:        SubtaskStatus,
        error_message: Optional[str] = None,
        started_at:    Optional[str] = None,
        finished_at:   Optional[str] = None,
    ) -> None:
        self._conn.execute(
            """
            UPDATE translation_subtasks
            SET status        = ?,
                error_message = COALESCE(?, error_message),
                started_at    = COALESCE(?, started_at),
                finished_at   = COALESCE(?, finished_at),
                updated_at    = ?
            WHERE id = ?
            """,
            (status.value, error_message, started_at, finished_at, utc_now(), subtask_id),
        )

    def cancel_open_subtasks(self, job_id: str, finished_at: str) -> int:
        """Pasa a CANCELLED toda subtarea PENDING o IN_PROGRESS. Devuelve cuántas."""
        cursor = self._conn.execute(
            """
            UPDATE translation_subtasks
            SET status = ?, finished_at = ?, updated_at = ?
            WHERE job_id = ? AND status IN (?, ?)
            """,
            (SubtaskStatus.CANCELLED.value, finished_at, utc_now(), job_id, *_OPEN_SUBTASKS),
        )
        return cursor.rowcount

    def count_subtasks_by_status(self, job_id: str, status: SubtaskStatus) -> int:
        row = self._conn.execute(
            "SELECT COUNT(*) FROM translation_subtasks WHERE job_id = ? AND status = ?",
            (job_id, status.value),
        ).fetchone()
        return row[0]

    # ------------------------------------------------------------------
    # Helpers internos
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_job(row: sqlite3.Row) -> TranslationJob:
        return TranslationJob(
            id                 = row["id"],
            novel_id           = row["novel_id"],
            from_lang          = row["from_lang"],
            target_lang        = row["target_lang"],
            status             = JobStatus(row["status"]),
            progress           = row["progress"],
            total_subtasks     = row["total_subtasks"],
            completed_subtasks = row["completed_subtasks"],
            error_message      = row["error_message"],
            created_by         = row["created_by"],
            started_at         = row["started_at"],
            finished_at        = row["finished_at"],
            created_at         = row["created_at"],
            updated_at         = row["updated_at"],
        )

    @staticmethod
    def _row_to_subtask(row: sqlite3.Row) -> TranslationSubtask:
        return TranslationSubtask(
            id               = row["id"],
            job_id           = row["job_id"],
            entity_type      = EntityType(row["entity_type"]),
            entity_id        = row["entity_id"],
            seq              = row["seq"],
            priority         = row["priority"],
            status           = SubtaskStatus(row["status"]),
            parent_volume_id = row["parent_volume_id"],
            error_message    = row["error_message"],
            started_at       = row["started_at"],
            finished_at      = row["finished_at"],
            created_at       = row["created_at"],
            updated_at       = row["updated_at"],
        )

def _novel_filter(novel_id: str, status: Optional[JobStatus]) -> tuple[str, tuple]:
    if status is None:
        return "novel_id = ?", (novel_id,)
    return "novel_id = ? AND status = ?", (novel_id, status.value)
