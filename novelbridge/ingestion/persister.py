# ingestion/persister.py
import logging
from dataclasses import dataclass, field
from typing import Optional

from novelbridge.media.uploader import BaseMediaUploader, UploadedMedia
from novelbridge.processor.models import EpubProcessResult, VolumeData
from novelbridge.storage.errors import PersistenceError
from novelbridge.storage.models import StoredVolume
from novelbridge.storage.unit_of_work import RepositoryProvider, UnitOfWork

logger = logging.getLogger(__name__)

_DEFAULT_TITLE = "Untitled"


@dataclass
class PersistedNovel:
    novel_id:       str
    title:          str
    language:       str
    source_type:    str
    volume_ids:     list[str] = field(default_factory=list)
    chapter_count:  int = 0
    tag_ids:        list[str] = field(default_factory=list)
    cover_media_id: Optional[str] = None

    @property
    def volume_count(self) -> int:
        return len(self.volume_ids)


class _Step:
    """Nombra el paso en curso para que el error hacia afuera sea corto y legible."""

    def __init__(self):
        self.label = "iniciar la transacción"


class IngestionPersister:
    """
    Escribe un EpubProcessResult en la base, todo o nada.

    La portada se sube antes de abrir la transacción y es best-effort:
    si falla se loguea y la novela queda sin portada. Todo lo demás ocurre
    dentro de una sola transacción; cualquier error revierte y se reporta
    como PersistenceError.
    """

    def __init__(
        self,
        uow:      UnitOfWork,
        uploader: Optional[BaseMediaUploader] = None,
        log:      logging.Logger | None = None,
    ):
        self._uow      = uow
        self._uploader = uploader
        self._logger   = log or logger

    def persist(self, result: EpubProcessResult, created_by: str) -> PersistedNovel:
        cover = self._upload_cover(result, created_by)
        step  = _Step()

        try:
            persisted = self._uow.do(
                lambda repos: self._write(repos, result, created_by, cover, step)
            )
        except Exception as e:
            self._logger.exception("Falló la persistencia al %s", step.label)
            if cover is not None:
                self._logger.warning("La portada %s quedó huérfana en el host de imágenes", cover.media_id)
            raise PersistenceError(f"no se pudo {step.label}") from e

        self._logger.info(
            "Novela persistida: %s '%s' — %d volúmenes, %d capítulos, %d tags",
            persisted.novel_id, persisted.title, persisted.volume_count,
            persisted.chapter_count, len(persisted.tag_ids),
        )
        return persisted

    # ------------------------------------------------------------------
    # Portada (fuera de la transacción)
    # ------------------------------------------------------------------

    def _upload_cover(self, result: EpubProcessResult, created_by: str) -> UploadedMedia | None:
        image = result.novel_data.cover_image
        if not image or self._uploader is None:
            return None
        try:
            return self._uploader.upload("cover", image, uploader_id=created_by)
        except Exception as e:
            self._logger.warning("No se pudo subir la portada, se sigue sin ella: %s", e)
            return None

    # ------------------------------------------------------------------
    # Escritura (dentro de la transacción)
    # ------------------------------------------------------------------

    def _write(
        self,
        repos:      RepositoryProvider,
        result:     EpubProcessResult,
        created_by: str,
        cover:      UploadedMedia | None,
        step:       _Step,
    ) -> PersistedNovel:
        data     = result.novel_data
        language = data.original_language or "und"
        title    = data.title.strip() or _DEFAULT_TITLE

        cover_media_id = None
        if cover is not None:
            step.label = "registrar la portada"
            repos.media.create(cover.media_id, cover.url, cover.mime_type, cover.size, uploader_id=created_by)
            cover_media_id = cover.media_id

        step.label = "crear la novela"
        novel = repos.novels.create(
            created_by        = created_by,
            original_language = language,
            original_author   = data.original_author or None,
            publisher         = data.publisher or None,
            source_type       = result.source_type.value,
            cover_media_id    = cover_media_id,
        )
        repos.novels.create_translation(
            novel.id,
            language,
            title,
            description = data.description or None,
            synopsis    = data.synopsis or None,
        )

        step.label = "asociar los tags"
        tags = repos.tags.find_or_create_by_names(data.tags)
        repos.novels.link_tags(novel.id, [t.id for t in tags])

        volumes = self._write_volumes(repos, novel.id, language, result.volumes, step)

        used_numbers: dict[int, set[int]] = {i: set() for i in range(len(volumes))}
        for chapter in result.chapters:
            index = chapter.volume_index
            if not 0 <= index < len(volumes):
                self._logger.warning(
                    "Capítulo %d apunta al volumen %d (hay %d) — se asigna al primero",
                    chapter.order_num, index, len(volumes),
                )
                index = 0

            number = chapter.order_num
            used   = used_numbers[index]
            if number in used:
                number = max(used) + 1
            used.add(number)

            step.label = f"crear el capítulo {number}"
            stored = repos.chapters.create(volumes[index].id, number)
            repos.chapters.create_translation(
                stored.id,
                language,
                chapter.title or f"Chapter {number}",
                chapter.content,
                plain_text = chapter.plain_text or None,
            )

        return PersistedNovel(
            novel_id       = novel.id,
            title          = title,
            language       = language,
            source_type    = result.source_type.value,
            volume_ids     = [v.id for v in volumes],
            chapter_count  = len(result.chapters),
            tag_ids        = [t.id for t in tags],
            cover_media_id = cover_media_id,
        )

    def _write_volumes(
        self,
        repos:    RepositoryProvider,
        novel_id: str,
        language: str,
        volumes:  list[VolumeData],
        step:     _Step,
    ) -> list[StoredVolume]:
        if not volumes:
            volumes = [VolumeData(number=1, title="Volume 1", is_virtual=True)]

        stored: list[StoredVolume] = []
        for volume in volumes:
            step.label = f"crear el volumen {volume.number}"
            row = repos.volumes.create(
                novel_id,
                volume.number,
                language,
                is_virtual = volume.is_virtual,
            )
            repos.volumes.create_translation(row.id, language, volume.title or f"Volume {volume.number}")
            stored.append(row)
        return stored
