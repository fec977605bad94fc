# processor/transformers/lightnovel_crawler.py
import re

from novelbridge.processor.models import NovelData, RawContainer, SourceType
from .base import BaseTransformer, EpubDocument, find_raw_file

_INTRO_FILE  = "epub/intro.xhtml"
_MARKER_TEXT = b"https://github.com/dipu-bd/lightnovel-crawler"


class LightnovelCrawlerTransformer(BaseTransformer):
    """
    EPUBs generados por dipu-bd/lightnovel-crawler.

    - Firma: EPUB/intro.xhtml con la URL del proyecto.
    - Volúmenes: volume-N.xhtml; los capítulos llevan el volumen en el
      prefijo del nombre (v2-chapter-15.xhtml).
    - Extras: portada (cover.jpg o imagen del manifest).
    """

    source_type = SourceType.LIGHTNOVEL_CRAWLER

    _VOLUME_PATTERN         = re.compile(r"^vol(?:ume)?[-_]?(\d+)\.x?html?$")
    _CHAPTER_VOLUME_PATTERN = re.compile(r"^v(?:ol)?(\d+)[-_]")
    _SKIP_PATTERNS          = (
        re.compile(r"^intro\."),
        re.compile(r"^cover(?:[-_]?page)?\.x?html?$"),
        re.compile(r"^(toc|nav)\."),
    )

    def detect_source(self, raw: RawContainer) -> bool:
        data = find_raw_file(raw, _INTRO_FILE)
        if data is not None and _MARKER_TEXT in data:
            self._logger.info("Detectado formato lightnovel-crawler (intro.xhtml con marca)")
            return True
        return False

    def _merge_extras(self, doc: EpubDocument, data: NovelData) -> None:
        data.cover_image = self._find_cover_image(doc)
        if data.cover_image is None:
            self._logger.info("lightnovel-crawler: sin portada")
        # no tiene archivo de sinopsis propio
        data.synopsis = data.description
