# storage/db.py
import sqlite3
import uuid
import os
from datetime import datetime, timezone
from pathlib import Path


_DEFAULT_DB_PATH = Path.home() / ".novelbridge" / "novelbridge.db"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS media (
    id          TEXT    PRIMARY KEY,
    url         TEXT    NOT NULL,
    mime_type   TEXT    NOT NULL,
    size        INTEGER NOT NULL DEFAULT 0,
    uploader_id TEXT,
    created_at  TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS novels (
    id                TEXT PRIMARY KEY,
    created_by        TEXT NOT NULL,
    original_language TEXT NOT NULL,
    original_author   TEXT,
    publisher         TEXT,
    source_type       TEXT,
    cover_media_id    TEXT,
    created_at        TEXT NOT NULL,
    FOREIGN KEY (cover_media_id) REFERENCES media(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS novel_translations (
    id          TEXT PRIMARY KEY,
    novel_id    TEXT NOT NULL,
    lang        TEXT NOT NULL,
    title       TEXT NOT NULL,
    description TEXT,
    synopsis    TEXT,
    created_at  TEXT NOT NULL,
    FOREIGN KEY (novel_id) REFERENCES novels(id) ON DELETE CASCADE,
    UNIQUE (novel_id, lang)
);

CREATE TABLE IF NOT EXISTS tags (
    id         TEXT PRIMARY KEY,
    name       TEXT NOT NULL,
    slug       TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_tags_lower_name ON tags (LOWER(name));

CREATE TABLE IF NOT EXISTS novel_tags (
    novel_id TEXT NOT NULL,
    tag_id   TEXT NOT NULL,
    PRIMARY KEY (novel_id, tag_id),
    FOREIGN KEY (novel_id) REFERENCES novels(id) ON DELETE CASCADE,
    FOREIGN KEY (tag_id)   REFERENCES tags(id)   ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS volumes (
    id                TEXT    PRIMARY KEY,
    novel_id          TEXT    NOT NULL,
    number            INTEGER NOT NULL,
    original_language TEXT    NOT NULL,
    is_virtual        INTEGER NOT NULL DEFAULT 0,
    cover_media_id    TEXT,
    created_at        TEXT    NOT NULL,
    FOREIGN KEY (novel_id)       REFERENCES novels(id) ON DELETE CASCADE,
    FOREIGN KEY (cover_media_id) REFERENCES media(id)  ON DELETE SET NULL
);

CREATE INDEX IF NOT EXISTS idx_volumes_novel ON volumes (novel_id, number);

CREATE TABLE IF NOT EXISTS volume_translations (
    id         TEXT PRIMARY KEY,
    volume_id  TEXT NOT NULL,
    lang       TEXT NOT NULL,
    title      TEXT NOT NULL,
    created_at TEXT NOT NULL,
    FOREIGN KEY (volume_id) REFERENCES volumes(id) ON DELETE CASCADE,
    UNIQUE (volume_id, lang)
);

CREATE TABLE IF NOT EXISTS chapters (
    id         TEXT    PRIMARY KEY,
    volume_id  TEXT    NOT NULL,
    number     INTEGER NOT NULL,
    created_at TEXT    NOT NULL,
    FOREIGN KEY (volume_id) REFERENCES volumes(id) ON DELETE CASCADE,
    UNIQUE (volume_id, number)
);

CREATE TABLE IF NOT EXISTS chapter_translations (
    id         TEXT PRIMARY KEY,
    chapter_id TEXT NOT NULL,
    lang       TEXT NOT NULL,
    title      TEXT NOT NULL,
    content    TEXT NOT NULL,
    plain_text TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY (chapter_id) REFERENCES chapters(id) ON DELETE CASCADE,
    UNIQUE (chapter_id, lang)
);

CREATE TABLE IF NOT EXISTS translation_jobs (
    id                 TEXT    PRIMARY KEY,
    novel_id           TEXT    NOT NULL,
    from_lang          TEXT    NOT NULL,
    target_lang        TEXT    NOT NULL,
    status             TEXT    NOT NULL DEFAULT 'PENDING',
    progress           INTEGER NOT NULL DEFAULT 0,
    total_subtasks     INTEGER NOT NULL DEFAULT 0,
    completed_subtasks INTEGER NOT NULL DEFAULT 0,
    error_message      TEXT,
    created_by         TEXT,
    started_at         TEXT,
    finished_at        TEXT,
    created_at         TEXT    NOT NULL,
    updated_at         TEXT    NOT NULL,
    FOREIGN KEY (novel_id) REFERENCES novels(id) ON DELETE CASCADE
);

-- Como mucho un job activo por (novela, idioma destino). Es la garantía real
-- ante requests concurrentes; el chequeo previo del servicio no alcanza solo.
CREATE UNIQUE INDEX IF NOT EXISTS idx_translation_job_active_novel_lang
    ON translation_jobs (novel_id, target_lang)
    WHERE status IN ('PENDING', 'IN_PROGRESS');

CREATE INDEX IF NOT EXISTS idx_translation_jobs_novel ON translation_jobs (novel_id);

CREATE TABLE IF NOT EXISTS translation_subtasks (
    id               TEXT    PRIMARY KEY,
    job_id           TEXT    NOT NULL,
    entity_type      TEXT    NOT NULL,
    entity_id        TEXT    NOT NULL,
    parent_volume_id TEXT,
    seq              INTEGER NOT NULL,
    priority         INTEGER NOT NULL,
    status           TEXT    NOT NULL DEFAULT 'PENDING',
    error_message    TEXT,
    started_at       TEXT,
    finished_at      TEXT,
    created_at       TEXT    NOT NULL,
    updated_at       TEXT    NOT NULL,
    FOREIGN KEY (job_id) REFERENCES translation_jobs(id) ON DELETE CASCADE,
    UNIQUE (job_id, entity_type, entity_id)
);

CREATE TABLE IF NOT EXISTS outbox_messages (
    id           TEXT    PRIMARY KEY,
    topic        TEXT    NOT NULL,
    payload      TEXT    NOT NULL,
    attempts     INTEGER NOT NULL DEFAULT 0,
    last_error   TEXT,
    created_at   TEXT    NOT NULL,
    delivered_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_outbox_pending ON outbox_messages (delivered_at, created_at);
"""


def get_connection(db_path: str | None = None) -> sqlite3.Connection:
    """
    Abre y configura la conexión a SQLite.
    Siempre devuelve rows como dicts (row_factory).
    Activa foreign keys — SQLite las tiene desactivadas por defecto.
    """
    path = db_path or os.environ.get("NOVELBRIDGE_DB_PATH") or str(_DEFAULT_DB_PATH)

    if path != ":memory:":
        path = str(Path(path).expanduser())
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    if path != ":memory:":
        conn.execute("PRAGMA journal_mode = WAL")   # mejor performance en lecturas concurrentes
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    """Crea las tablas si no existen. Idempotente."""
    with conn:
        conn.executescript(_SCHEMA)


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()
