# processor/transformers/generic.py
import re

from novelbridge.processor.epub.exceptions import EpubError
from novelbridge.processor.models import ManifestItem, NovelData, RawContainer, SourceType
from .base import BaseTransformer, EpubDocument


class GenericTransformer(BaseTransformer):
    """
    EPUB estándar sin firma de vendor. Va último en el registro.

    A diferencia de un "acepta todo", solo reconoce archivos cuyo OPF
    parsea y cuyo spine referencia al menos un documento HTML presente:
    si no hay nada que leer, el registro responde UnsupportedSourceFormat.
    """

    source_type = SourceType.GENERIC

    _VOLUME_PATTERN = re.compile(r"^vol(?:ume)?[-_]?(\d+)\.x?html?$")

    def detect_source(self, raw: RawContainer) -> bool:
        try:
            doc = self._open(raw)
        except EpubError as e:
            self._logger.info("Genérico: OPF ilegible (%s)", e)
            return False

        for item in doc.html_spine():
            if doc.read(item) is not None:
                self._logger.info("Usando transformer genérico")
                return True
        return False

    def _is_skipped(self, item: ManifestItem) -> bool:
        # documento de navegación EPUB 3
        return "nav" in item.properties.split()

    def _merge_extras(self, doc: EpubDocument, data: NovelData) -> None:
        data.cover_image = self._find_cover_image(doc, by_filename=False)
        data.synopsis = data.description
