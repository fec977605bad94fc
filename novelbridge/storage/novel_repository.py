# storage/novel_repository.py
import sqlite3
from typing import Optional

from novelbridge.storage.db import new_id, utc_now
from novelbridge.storage.models import (
    StoredMedia, StoredNovel, StoredNovelTranslation, StoredTag,
)


class NovelRepository:
    """
    Novelas y sus traducciones (título/descripción por idioma).
    No hace commit: las escrituras viven dentro de una UnitOfWork.
    """

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def create(
        self,
        created_by:        str,
        original_language: str,
        original_author:   Optional[str] = None,
        publisher:         Optional[str] = None,
        source_type:       Optional[str] = None,
        cover_media_id:    Optional[str] = None,
    ) -> StoredNovel:
        novel = StoredNovel(
            id                = new_id(),
            created_by        = created_by,
            original_language = original_language,
            created_at        = utc_now(),
            original_author   = original_author,
            publisher         = publisher,
            source_type       = source_type,
            cover_media_id    = cover_media_id,
        )
        self._conn.execute(
            """
            INSERT INTO novels (id, created_by, original_language, original_author,
                                publisher, source_type, cover_media_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (novel.id, novel.created_by, novel.original_language, novel.original_author,
             novel.publisher, novel.source_type, novel.cover_media_id, novel.created_at),
        )
        return novel

    def get_by_id(self, novel_id: str) -> StoredNovel | None:
        row = self._conn.execute(
            "SELECT * FROM novels WHERE id = ?", (novel_id,)
        ).fetchone()
        return self._row_to_novel(row) if row else None

    def create_translation(
        self,
        novel_id:    str,
        lang:        str,
        title:       str,
        description: Optional[str] = None,
        synopsis:    Optional[str] = None,
    ) -> StoredNovelTranslation:
        translation = StoredNovelTranslation(
            id          = new_id(),
            novel_id    = novel_id,
            lang        = lang,
            title       = title,
            description = description,
            synopsis    = synopsis,
        )
        self._conn.execute(
            """
            INSERT INTO novel_translations (id, novel_id, lang, title, description, synopsis, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (translation.id, novel_id, lang, title, description, synopsis, utc_now()),
        )
        return translation

    def get_translation(self, novel_id: str, lang: str) -> StoredNovelTranslation | None:
        row = self._conn.execute(
            "SELECT * FROM novel_translations WHERE novel_id = ? AND lang = ?",
            (novel_id, lang),
        ).fetchone()
        if not row:
            return None
        return StoredNovelTranslation(
            id          = row["id"],
            novel_id    = row["novel_id"],
            lang        = row["lang"],
            title       = row["title"],
            description = row["description"],
            synopsis    = row["synopsis"],
        )

    def link_tags(self, novel_id: str, tag_ids: list[str]) -> None:
        """Idempotente: un vínculo repetido se ignora."""
        self._conn.executemany(
            "INSERT OR IGNORE INTO novel_tags (novel_id, tag_id) VALUES (?, ?)",
            [(novel_id, tag_id) for tag_id in tag_ids],
        )

    def get_tags(self, novel_id: str) -> list[StoredTag]:
        rows = self._conn.execute(
            """
            SELECT t.* FROM tags t
            JOIN novel_tags nt ON nt.tag_id = t.id
            WHERE nt.novel_id = ?
            ORDER BY t.name ASC
            """,
            (novel_id,),
        ).fetchall()
        return [StoredTag(id=r["id"], name=r["name"], slug=r["slug"]) for r in rows]

    @staticmethod
    def _row_to_novel(row: sqlite3.Row) -> StoredNovel:
        return StoredNovel(
            id                = row["id"],
            created_by        = row["created_by"],
            original_language = row["original_language"],
            created_at        = row["created_at"],
            original_author   = row["original_author"],
            publisher         = row["publisher"],
            source_type       = row["source_type"],
            cover_media_id    = row["cover_media_id"],
        )


class MediaRepository:

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def create(
        self,
        media_id:    str,
        url:         str,
        mime_type:   str,
        size:        int,
        uploader_id: Optional[str] = None,
    ) -> StoredMedia:
        media = StoredMedia(
            id          = media_id,
            url         = url,
            mime_type   = mime_type,
            size        = size,
            created_at  = utc_now(),
            uploader_id = uploader_id,
        )
        self._conn.execute(
            """
            INSERT INTO media (id, url, mime_type, size, uploader_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (media.id, media.url, media.mime_type, media.size, media.uploader_id, media.created_at),
        )
        return media

    def get_by_id(self, media_id: str) -> StoredMedia | None:
        row = self._conn.execute("SELECT * FROM media WHERE id = ?", (media_id,)).fetchone()
        if not row:
            return None
        return StoredMedia(
            id          = row["id"],
            url         = row["url"],
            mime_type   = row["mime_type"],
            size        = row["size"],
            created_at  = row["created_at"],
            uploader_id = row["uploader_id"],
        )
