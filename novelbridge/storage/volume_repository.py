# storage/volume_repository.py
import sqlite3
from dataclasses import dataclass
from typing import Optional

from novelbridge.storage.db import new_id, utc_now
from novelbridge.storage.models import StoredChapter, StoredVolume


@dataclass
class StoredChapterTranslation:
    id:         str
    chapter_id: str
    lang:       str
    title:      str
    content:    str
    plain_text: Optional[str] = None


class VolumeRepository:

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def create(
        self,
        novel_id:          str,
        number:            int,
        original_language: str,
        is_virtual:        bool = False,
        cover_media_id:    Optional[str] = None,
    ) -> StoredVolume:
        volume = StoredVolume(
            id                = new_id(),
            novel_id          = novel_id,
            number            = number,
            original_language = original_language,
            is_virtual        = is_virtual,
            cover_media_id    = cover_media_id,
        )
        self._conn.execute(
            """
            INSERT INTO volumes (id, novel_id, number, original_language,
                                 is_virtual, cover_media_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (volume.id, novel_id, number, original_language,
             int(is_virtual), cover_media_id, utc_now()),
        )
        return volume

    def create_translation(self, volume_id: str, lang: str, title: str) -> str:
        translation_id = new_id()
        self._conn.execute(
            """
            INSERT INTO volume_translations (id, volume_id, lang, title, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (translation_id, volume_id, lang, title, utc_now()),
        )
        return translation_id

    def get_all_with_chapters_by_novel_id(self, novel_id: str) -> list[StoredVolume]:
        """
        Volúmenes de la novela ordenados por número, cada uno con sus
        capítulos ordenados por número. Los títulos salen de la traducción
        en el idioma original del volumen, si existe.
        """
        volume_rows = self._conn.execute(
            """
            SELECT v.*, vt.title AS title
            FROM volumes v
            LEFT JOIN volume_translations vt
                   ON vt.volume_id = v.id AND vt.lang = v.original_language
            WHERE v.novel_id = ?
            ORDER BY v.number ASC, v.created_at ASC
            """,
            (novel_id,),
        ).fetchall()

        volumes = [self._row_to_volume(r) for r in volume_rows]
        if not volumes:
            return volumes

        by_id = {v.id: v for v in volumes}
        chapter_rows = self._conn.execute(
            """
            SELECT c.*, ct.title AS title
            FROM chapters c
            JOIN volumes v ON v.id = c.volume_id
            LEFT JOIN chapter_translations ct
                   ON ct.chapter_id = c.id AND ct.lang = v.original_language
            WHERE v.novel_id = ?
            ORDER BY c.number ASC
            """,
            (novel_id,),
        ).fetchall()

        for row in chapter_rows:
            by_id[row["volume_id"]].chapters.append(StoredChapter(
                id        = row["id"],
                volume_id = row["volume_id"],
                number    = row["number"],
                title     = row["title"],
            ))
        return volumes

    @staticmethod
    def _row_to_volume(row: sqlite3.Row) -> StoredVolume:
        return StoredVolume(
            id                = row["id"],
            novel_id          = row["novel_id"],
            number            = row["number"],
            original_language = row["original_language"],
            is_virtual        = bool(row["is_virtual"]),
            cover_media_id    = row["cover_media_id"],
            title             = row["title"],
        )


class ChapterRepository:

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def create(self, volume_id: str, number: int) -> StoredChapter:
        chapter = StoredChapter(id=new_id(), volume_id=volume_id, number=number)
        self._conn.execute(
            "INSERT INTO chapters (id, volume_id, number, created_at) VALUES (?, ?, ?, ?)",
            (chapter.id, volume_id, number, utc_now()),
        )
        return chapter

    def create_translation(
        self,
        chapter_id: str,
        lang:       str,
        title:      str,
        content:    str,
        plain_text: Optional[str] = None,
    ) -> StoredChapterTranslation:
        translation = StoredChapterTranslation(
            id         = new_id(),
            chapter_id = chapter_id,
            lang       = lang,
            title      = title,
            content    = content,
            plain_text = plain_text,
        )
        self._conn.execute(
            """
            INSERT INTO chapter_translations (id, chapter_id, lang, title, content, plain_text, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (translation.id, chapter_id, lang, title, content, plain_text, utc_now()),
        )
        return translation

    def get_translation(self, chapter_id: str, lang: str) -> StoredChapterTranslation | None:
        row = self._conn.execute(
            "SELECT * FROM chapter_translations WHERE chapter_id = ? AND lang = ?",
            (chapter_id, lang),
        ).fetchone()
        if not row:
            return None
        return StoredChapterTranslation(
            id         = row["id"],
            chapter_id = row["chapter_id"],
            lang       = row["lang"],
            title      = row["title"],
            content    = row["content"],
            plain_text = row["plain_text"],
        )
