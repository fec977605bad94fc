# processor/transformers/registry.py
import logging

from novelbridge.processor.epub.exceptions import UnsupportedSourceFormatError
from novelbridge.processor.models import RawContainer, SourceType
from .base import BaseTransformer
from .generic import GenericTransformer
from .lightnovel_crawler import LightnovelCrawlerTransformer
from .novel_downloader import NovelDownloaderTransformer

logger = logging.getLogger(__name__)


class TransformerRegistry:
    """
    Registro central de transformers de vendor.

    Uso básico:
        transformer = TransformerRegistry().detect_and_get_transformer(raw)

    Uso con transformer registrado externamente:
        registry = TransformerRegistry()
        registry.register(MiTransformerCustom())

    Los transformers se evalúan en orden de registro.
    El primero que responda True a detect_source() gana. Si ninguno
    responde, se lanza UnsupportedSourceFormatError: nunca se elige
    uno "a ojo", porque aplicar las heurísticas de nombres equivocadas
    corrompe la jerarquía volumen/capítulo.
    """

    def __init__(
        self,
        transformers: list[BaseTransformer] | None = None,
        log: logging.Logger | None = None,
    ):
        self._logger = log or logger
        if transformers is None:
            # en orden de prioridad, el genérico va último
            transformers = [
                NovelDownloaderTransformer(log=log),
                LightnovelCrawlerTransformer(log=log),
                GenericTransformer(log=log),
            ]
        self._transformers: list[BaseTransformer] = list(transformers)

    @property
    def transformers(self) -> list[BaseTransformer]:
        return list(self._transformers)

    def register(self, transformer: BaseTransformer) -> None:
        """Registra un transformer adicional al inicio de la lista (mayor prioridad)."""
        self._transformers.insert(0, transformer)
        self._logger.info("Transformer registrado: %s", transformer.source_type.value)

    def detect_and_get_transformer(self, raw: RawContainer) -> BaseTransformer:
        """
        Raises:
            UnsupportedSourceFormatError: si ningún transformer reconoce el EPUB.
        """
        for transformer in self._transformers:
            if self._detect(transformer, raw):
                self._logger.info("Usando transformer: %s", transformer.source_type.value)
                return transformer

        raise UnsupportedSourceFormatError(
            "Formato de EPUB no soportado. "
            f"Transformers disponibles: {self._supported_sources()}"
        )

    def get_transformer_by_type(self, source_type: SourceType) -> BaseTransformer:
        for transformer in self._transformers:
            if transformer.source_type == source_type:
                return transformer
        raise UnsupportedSourceFormatError(
            f"No hay transformer registrado para: {source_type.value}"
        )

    def _detect(self, transformer: BaseTransformer, raw: RawContainer) -> bool:
        # un detector que explota cuenta como "no es mío"
        try:
            return bool(transformer.detect_source(raw))
        except Exception as e:
            self._logger.error(
                "Fallo detectando con %s: %s", transformer.source_type.value, e
            )
            return False

    def _supported_sources(self) -> str:
        return ", ".join(t.source_type.value for t in self._transformers)
