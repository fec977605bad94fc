# processor/epub_service.py
import logging

from novelbridge.processor.epub.container import ContainerExtractor
from novelbridge.processor.epub.exceptions import EpubError, InvalidOPFError, TransformError
from novelbridge.processor.epub.opf import OPFParser
from novelbridge.processor.models import EpubProcessResult, RawContainer
from novelbridge.processor.transformers.registry import TransformerRegistry

logger = logging.getLogger(__name__)


class EpubService:
    """
    bytes crudos → EpubProcessResult.

    Corre sincrónicamente en el hilo que lo llama; no hay timeout.
    Los errores de dominio (EpubError) se propagan tal cual; cualquier
    otra excepción se convierte en TransformError para que un archivo
    malformado solo haga fallar este upload.

    El OPF se valida antes de la detección: un paquete ilegible es
    InvalidOPFError, no "formato no soportado".
    """

    def __init__(
        self,
        extractor: ContainerExtractor | None = None,
        registry:  TransformerRegistry | None = None,
        log:       logging.Logger | None = None,
    ):
        self._logger     = log or logger
        self._extractor  = extractor or ContainerExtractor(log=log)
        self._registry   = registry or TransformerRegistry(log=log)
        self._opf_parser = OPFParser()

    def extract(self, data: bytes) -> RawContainer:
        return self._guard(lambda: self._extractor.extract(data))

    def process(self, data: bytes) -> EpubProcessResult:
        raw = self.extract(data)
        return self._guard(lambda: self._transform(raw))

    def _transform(self, raw: RawContainer) -> EpubProcessResult:
        self._validate_opf(raw)
        transformer = self._registry.detect_and_get_transformer(raw)
        novel, volumes, chapters = transformer.transform(raw)

        self._logger.info(
            "EPUB procesado (%s): '%s' — %d volúmenes, %d capítulos",
            transformer.source_type.value, novel.title, len(volumes), len(chapters),
        )

        return EpubProcessResult(
            raw_content    = raw,
            novel_data     = novel,
            volumes        = volumes,
            chapters       = chapters,
            source_type    = transformer.source_type,
            total_volumes  = len(volumes),
            total_chapters = len(chapters),
        )

    def _validate_opf(self, raw: RawContainer) -> None:
        # solo valida; cada transformer vuelve a parsear su propia copia
        data = raw.files.get(raw.opf_path)
        if data is None:
            raise InvalidOPFError(f"OPF no encontrado en: {raw.opf_path}", opf_path=raw.opf_path)
        try:
            self._opf_parser.parse(data)
        except InvalidOPFError as e:
            e.opf_path = raw.opf_path
            raise

    def _guard(self, fn):
        try:
            return fn()
        except EpubError as e:
            self._logger.error("No se pudo procesar el EPUB: %s", e)
            raise
        except Exception as e:
            self._logger.exception("Fallo inesperado procesando el EPUB")
            raise TransformError(f"Error inesperado procesando el EPUB: {type(e).__name__}") from e
