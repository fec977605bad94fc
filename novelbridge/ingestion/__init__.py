from novelbridge.ingestion.persister import IngestionPersister, PersistedNovel
from novelbridge.ingestion.service import IngestionReport, NovelIngestionService

__all__ = ["IngestionPersister", "IngestionReport", "NovelIngestionService", "PersistedNovel"]
