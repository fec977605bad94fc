# novelbridge/factory.py
import logging
from dataclasses import dataclass
from typing import Optional

from novelbridge.ingestion.persister import IngestionPersister
from novelbridge.ingestion.service import NovelIngestionService
from novelbridge.jobs.service import TranslationJobService
from novelbridge.media.uploader import BaseMediaUploader, LocalMediaUploader
from novelbridge.processor.epub_service import EpubService
from novelbridge.queue.publisher import BaseQueuePublisher, SpoolQueuePublisher
from novelbridge.queue.relay import OutboxRelay
from novelbridge.settings.config_loader import load_config
from novelbridge.settings.logging_setup import configure_logging
from novelbridge.settings.models import AppConfig
from novelbridge.storage.unit_of_work import UnitOfWork


@dataclass
class Services:
    config:    AppConfig
    uow:       UnitOfWork
    epub:      EpubService
    ingestion: NovelIngestionService
    jobs:      TranslationJobService
    relay:     OutboxRelay

    def close(self) -> None:
        self.uow.close()


def build_services(
    config_path: Optional[str]                = None,
    db_path:     Optional[str]                = None,
    config:      Optional[AppConfig]          = None,
    publisher:   Optional[BaseQueuePublisher] = None,
    uploader:    Optional[BaseMediaUploader]  = None,
    log:         Optional[logging.Logger]     = None,
) -> Services:
    """
    Ensambla todos los servicios sobre una misma UnitOfWork.
    Punto de entrada único para el CLI y los tests de integración.

    config tiene prioridad sobre config_path; db_path pisa database.path.
    publisher / uploader permiten reemplazar la cola y el host de imágenes.
    """
    config = config or load_config(config_path)
    if log is None:
        # cada módulo usa su propio logger, hijo de "novelbridge"
        configure_logging(config.logging)

    uow       = UnitOfWork(db_path=db_path or config.database.path, log=log)
    publisher = publisher or SpoolQueuePublisher(spool_dir=config.queue.spool_dir, log=log)
    uploader  = uploader or LocalMediaUploader(media_dir=config.media.dir, log=log)
    relay     = OutboxRelay(uow, publisher, log=log)
    epub      = EpubService(log=log)

    ingestion = NovelIngestionService(
        epub_service = epub,
        persister    = IngestionPersister(uow, uploader=uploader, log=log),
        log          = log,
    )
    jobs = TranslationJobService(
        uow,
        relay              = relay if config.queue.relay_on_create else None,
        target_fields      = config.queue.target_fields,
        enable_code_filter = config.queue.enable_code_filter,
        topic              = config.queue.name,
        log                = log,
    )

    return Services(
        config    = config,
        uow       = uow,
        epub      = epub,
        ingestion = ingestion,
        jobs      = jobs,
        relay     = relay,
    )
