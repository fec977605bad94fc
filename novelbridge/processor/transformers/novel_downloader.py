# processor/transformers/novel_downloader.py
import re

from novelbridge.processor.epub.html_text import extract_text
from novelbridge.processor.models import NovelData, RawContainer, SourceType
from .base import BaseTransformer, EpubDocument, find_raw_file

_INFO_FILE   = "oebps/info.txt"
_MARKER_TEXT = b"https://github.com/404-novel-project/novel-downloader"


class NovelDownloaderTransformer(BaseTransformer):
    """
    EPUBs exportados por 404-novel-project/novel-downloader.

    - Firma: OEBPS/info.txt con la URL del proyecto.
    - Volúmenes: archivos section-NNNN.xhtml marcan el inicio de cada uno.
    - Extras: sinopsis en synopsis.xhtml. No trae portada.
    """

    source_type = SourceType.NOVEL_DOWNLOADER_404

    _VOLUME_PATTERN = re.compile(r"^section[-_]?(\d+)\.x?html?$")
    _SKIP_PATTERNS  = (
        re.compile(r"synopsis"),
        re.compile(r"^info\."),
        re.compile(r"^cover(?:[-_]?page)?\.x?html?$"),
    )

    def detect_source(self, raw: RawContainer) -> bool:
        data = find_raw_file(raw, _INFO_FILE)
        if data is None:
            return False
        if _MARKER_TEXT in data:
            self._logger.info("Detectado formato novel-downloader (info.txt con marca)")
            return True
        self._logger.info("info.txt encontrado pero sin la marca de novel-downloader")
        return False

    def _merge_extras(self, doc: EpubDocument, data: NovelData) -> None:
        for item in doc.package.manifest:
            if "synopsis" not in item.href.lower() or not item.is_html:
                continue
            raw_html = doc.read(item)
            if raw_html is None:
                continue
            data.synopsis = extract_text(raw_html)
            self._logger.info("Sinopsis extraída de %s", item.href)
            break

        if not data.description and data.synopsis:
            data.description = data.synopsis
