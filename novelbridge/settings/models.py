# settings/models.py
from dataclasses import dataclass, field
from typing import Optional

from novelbridge.queue.messages import DEFAULT_TARGET_FIELDS, TRANSLATION_JOBS_TOPIC


@dataclass
class DatabaseConfig:
    path: Optional[str] = None   # None → NOVELBRIDGE_DB_PATH o ~/.novelbridge/novelbridge.db


@dataclass
class LoggingConfig:
    level:        str           = "INFO"
    file:         Optional[str] = None   # None → solo consola
    max_bytes:    int           = 5 * 1024 * 1024
    backup_count: int           = 3


@dataclass
class QueueConfig:
    spool_dir:          Optional[str] = None
    name:               str           = TRANSLATION_JOBS_TOPIC
    target_fields:      list[str]     = field(default_factory=lambda: list(DEFAULT_TARGET_FIELDS))
    enable_code_filter: bool          = False
    relay_batch_size:   int           = 50
    relay_on_create:    bool          = True


@dataclass
class MediaConfig:
    dir: Optional[str] = None


@dataclass
class AppConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging:  LoggingConfig  = field(default_factory=LoggingConfig)
    queue:    QueueConfig    = field(default_factory=QueueConfig)
    media:    MediaConfig    = field(default_factory=MediaConfig)
