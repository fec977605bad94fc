# ingestion/service.py
import logging
from dataclasses import dataclass

from novelbridge.ingestion.persister import IngestionPersister, PersistedNovel
from novelbridge.processor.epub_service import EpubService
from novelbridge.processor.models import EpubProcessResult

logger = logging.getLogger(__name__)


@dataclass
class IngestionReport:
    novel:    PersistedNovel
    result:   EpubProcessResult

    @property
    def novel_id(self) -> str:
        return self.novel.novel_id


class NovelIngestionService:
    """
    Upload completo: bytes del EPUB → novela persistida.
    inspect() corre solo el parseo, sin tocar la base.
    """

    def __init__(
        self,
        epub_service: EpubService,
        persister:    IngestionPersister,
        log:          logging.Logger | None = None,
    ):
        self._epub      = epub_service
        self._persister = persister
        self._logger    = log or logger

    def inspect(self, data: bytes) -> EpubProcessResult:
        return self._epub.process(data)

    def ingest(self, data: bytes, created_by: str) -> IngestionReport:
        result = self._epub.process(data)
        novel  = self._persister.persist(result, created_by)
        self._logger.info("Ingesta terminada: novela %s (%s)", novel.novel_id, result.source_type.value)
        return IngestionReport(novel=novel, result=result)
