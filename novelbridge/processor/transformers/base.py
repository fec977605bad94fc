# processor/transformers/base.py
import logging
import posixpath
import re
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, Optional

from novelbridge.processor.epub.exceptions import EpubError, InvalidOPFError, TransformError
from novelbridge.processor.epub.html_text import decode_html, extract_chapter_title, extract_heading, extract_text
from novelbridge.processor.epub.opf import OPFParser, resolve_href
from novelbridge.processor.models import (
    ChapterData, ContentFile, ManifestItem, NovelData,
    OPFPackage, RawContainer, SourceType, VolumeData,
)

logger = logging.getLogger(__name__)

_DEFAULT_LANGUAGE = "und"
_COVER_FILENAME = re.compile(r"cover\.(jpe?g|png)$", re.IGNORECASE)


class EpubDocument:
    """
    Vista de un RawContainer con el OPF ya parseado.
    Se construye de nuevo en cada llamada de cada transformer:
    cada vendor resuelve rutas a su manera y no se comparte caché.
    """

    def __init__(self, raw: RawContainer, package: OPFPackage, log: logging.Logger):
        self.raw      = raw
        self.package  = package
        self.manifest = package.manifest_by_id()
        self._logger  = log

    def path_for(self, item: ManifestItem) -> str:
        return resolve_href(self.raw.opf_path, item.href)

    def read(self, item: ManifestItem) -> Optional[bytes]:
        return self.raw.files.get(self.path_for(item))

    def html_spine(self) -> Iterator[ManifestItem]:
        """Items HTML del spine en orden de lectura. Las referencias colgantes se saltan."""
        for ref in self.package.spine:
            item = self.manifest.get(ref.idref)
            if item is None:
                self._logger.error("Item del manifest no encontrado para spine ref: %s", ref.idref)
                continue
            if not item.is_html:
                continue
            yield item

    def content_file(self, item: ManifestItem) -> Optional[ContentFile]:
        """
        Construye el registro de contenido de un archivo.
        Cualquier fallo al decodificar/parsear se registra y devuelve None:
        un archivo malformado no tumba el lote.
        """
        path = self.path_for(item)
        data = self.raw.files.get(path)
        if data is None:
            self._logger.error("Archivo de contenido no encontrado: %s", path)
            return None

        try:
            html = decode_html(data)
            return ContentFile(
                path       = path,
                raw_html   = html,
                plain_text = extract_text(html),
                media_type = item.media_type,
            )
        except Exception as e:
            self._logger.error("No se pudo procesar el archivo de contenido %s: %s", path, e)
            return None


class BaseTransformer(ABC):
    """
    Contrato de todos los transformers de vendor.

    Las subclases declaran:
      - source_type
      - _VOLUME_PATTERN: regex sobre el nombre de archivo con el ordinal
        del volumen en el grupo 1 (None = el vendor no tiene volúmenes)
      - _CHAPTER_VOLUME_PATTERN: regex opcional que saca el ordinal del
        volumen del nombre de archivo de un capítulo
      - _SKIP_PATTERNS: archivos del spine que no son capítulos
    e implementan detect_source(). Los extras de metadata van en
    _merge_extras().
    """

    source_type: SourceType

    _VOLUME_PATTERN:         Optional[re.Pattern] = None
    _CHAPTER_VOLUME_PATTERN: Optional[re.Pattern] = None
    _SKIP_PATTERNS:          tuple[re.Pattern, ...] = ()

    def __init__(self, log: logging.Logger | None = None):
        self._logger = log or logger
        self._opf_parser = OPFParser()

    @abstractmethod
    def detect_source(self, raw: RawContainer) -> bool:
        """True si el EPUB fue producido por este vendor."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # API pública: cada método parsea el OPF por su cuenta
    # ------------------------------------------------------------------

    def transform_to_novel_data(self, raw: RawContainer) -> NovelData:
        doc = self._open(raw)
        with self._stage("metadata"):
            return self._novel_data(doc)

    def transform_to_volumes(self, raw: RawContainer) -> list[VolumeData]:
        doc = self._open(raw)
        with self._stage("volúmenes"):
            volumes, _ = self._volume_layout(doc)
            return volumes

    def transform_to_chapters(self, raw: RawContainer) -> list[ChapterData]:
        doc = self._open(raw)
        with self._stage("capítulos"):
            return self._chapters(doc)

    def transform(self, raw: RawContainer) -> tuple[NovelData, list[VolumeData], list[ChapterData]]:
        """Las tres etapas sobre un único parseo del OPF."""
        doc = self._open(raw)
        with self._stage("metadata"):
            novel = self._novel_data(doc)
        with self._stage("volúmenes"):
            volumes, _ = self._volume_layout(doc)
        with self._stage("capítulos"):
            chapters = self._chapters(doc)
        return novel, volumes, chapters

    # ------------------------------------------------------------------
    # Etapas
    # ------------------------------------------------------------------

    def _novel_data(self, doc: EpubDocument) -> NovelData:
        meta = doc.package.metadata
        language = (_first(meta.language) or _DEFAULT_LANGUAGE).strip().lower()

        data = NovelData(
            title             = _first(meta.title),
            original_author   = ", ".join(meta.creator),
            description       = " ".join(meta.description),
            publisher         = _first(meta.publisher),
            original_language = language,
            tags              = [s.strip() for s in meta.subject if s.strip()],
        )
        self._merge_extras(doc, data)
        return data

    def _merge_extras(self, doc: EpubDocument, data: NovelData) -> None:
        """Hook para extras del vendor (sinopsis, portada). La ausencia no es error."""
        data.synopsis = data.description

    def _volume_layout(self, doc: EpubDocument) -> tuple[list[VolumeData], dict[int, int]]:
        """
        Recorre el spine buscando archivos frontera de volumen.
        Devuelve los volúmenes y el mapa ordinal → índice.
        Sin fronteras: un único volumen virtual. Nunca devuelve lista vacía.
        """
        volumes: list[VolumeData] = []
        index_by_ordinal: dict[int, int] = {}

        for item in doc.html_spine():
            ordinal = self._boundary_ordinal(item)
            if ordinal is None or ordinal in index_by_ordinal:
                continue

            title = None
            data = doc.read(item)
            if data is not None:
                title = extract_heading(decode_html(data))

            index_by_ordinal[ordinal] = len(volumes)
            volumes.append(VolumeData(
                number     = ordinal,
                title      = title or f"Volume {ordinal}",
                is_virtual = False,
            ))

        if not volumes:
            return [VolumeData(number=1, title="Volume 1", is_virtual=True)], {}

        return volumes, index_by_ordinal

    def _chapters(self, doc: EpubDocument) -> list[ChapterData]:
        volumes, index_by_ordinal = self._volume_layout(doc)
        counters = [0] * len(volumes)
        current  = 0   # capítulos antes de la primera frontera → primer volumen
        chapters: list[ChapterData] = []

        for item in doc.html_spine():
            ordinal = self._boundary_ordinal(item)
            if ordinal is not None:
                current = index_by_ordinal.get(ordinal, current)
                continue

            if self._is_skipped(item):
                self._logger.debug("Saltando archivo que no es capítulo: %s", item.href)
                continue

            content = doc.content_file(item)
            if content is None:
                continue

            volume_index = self._chapter_volume_index(item, index_by_ordinal, current)
            counters[volume_index] += 1
            order_num = counters[volume_index]

            chapters.append(ChapterData(
                volume_index = volume_index,
                order_num    = order_num,
                title        = extract_chapter_title(content.raw_html, order_num),
                content      = content.raw_html,
                plain_text   = content.plain_text,
            ))

        self._logger.info(
            "%s: %d capítulos extraídos en %d volúmenes",
            self.source_type.value, len(chapters), len(volumes),
        )
        return chapters

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _open(self, raw: RawContainer) -> EpubDocument:
        data = raw.files.get(raw.opf_path)
        if data is None:
            raise InvalidOPFError(f"OPF no encontrado en: {raw.opf_path}", opf_path=raw.opf_path)
        package = self._opf_parser.parse(data)
        return EpubDocument(raw, package, self._logger)

    @contextmanager
    def _stage(self, name: str):
        """Convierte fallos inesperados de una etapa en TransformError."""
        try:
            yield
        except EpubError:
            raise
        except Exception as e:
            self._logger.exception("Fallo inesperado transformando %s (%s)", name, self.source_type.value)
            raise TransformError(
                f"Error transformando {name}: {type(e).__name__}: {e}",
                source_type=self.source_type.value,
            ) from e

    def _boundary_ordinal(self, item: ManifestItem) -> Optional[int]:
        if self._VOLUME_PATTERN is None:
            return None
        match = self._VOLUME_PATTERN.search(_filename(item))
        return int(match.group(1)) if match else None

    def _is_skipped(self, item: ManifestItem) -> bool:
        name = _filename(item)
        return any(p.search(name) for p in self._SKIP_PATTERNS)

    def _chapter_volume_index(self, item: ManifestItem, index_by_ordinal: dict[int, int], current: int) -> int:
        if self._CHAPTER_VOLUME_PATTERN is not None:
            match = self._CHAPTER_VOLUME_PATTERN.search(_filename(item))
            if match and int(match.group(1)) in index_by_ordinal:
                return index_by_ordinal[int(match.group(1))]
        return current

    def _find_cover_image(self, doc: EpubDocument, by_filename: bool = True) -> Optional[bytes]:
        """
        Portada: primero un archivo cover.jpg/.jpeg/.png suelto, después
        el manifest (meta cover, propiedad cover-image o id con 'cover').
        """
        if by_filename:
            for path in sorted(doc.raw.files):
                if _COVER_FILENAME.search(path):
                    self._logger.info("Portada extraída de: %s", path)
                    return doc.raw.files[path]

        candidates = []
        if doc.package.cover_id and doc.package.cover_id in doc.manifest:
            candidates.append(doc.manifest[doc.package.cover_id])
        for item in doc.package.manifest:
            if "cover-image" in item.properties.split() or "cover" in item.id.lower():
                candidates.append(item)

        for item in candidates:
            if not item.is_image:
                continue
            data = doc.read(item)
            if data is not None:
                self._logger.info("Portada extraída del manifest: %s", doc.path_for(item))
                return data
        return None


def _first(values: list[str]) -> str:
    return values[0] if values else ""


def _filename(item: ManifestItem) -> str:
    return posixpath.basename(item.href.split("#", 1)[0]).lower()


def find_raw_file(raw: RawContainer, lower_path: str) -> Optional[bytes]:
    """Busca un archivo por ruta sin distinguir mayúsculas."""
    for path, data in raw.files.items():
        if path.lower() == lower_path:
            return data
    return None
