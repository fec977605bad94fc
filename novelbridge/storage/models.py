# storage/models.py
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional


class JobStatus(Enum):
    PENDING     = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED   = "COMPLETED"
    FAILED      = "FAILED"
    CANCELLED   = "CANCELLED"


class SubtaskStatus(Enum):
    PENDING     = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    DONE        = "DONE"
    FAILED      = "FAILED"
    CANCELLED   = "CANCELLED"


class EntityType(Enum):
    CHAPTER = "chapter"
    VOLUME  = "volume"
    NOVEL   = "novel"


# Orden de procesamiento ascendente: primero capítulos, después volúmenes,
# al final la novela (los niveles superiores resumen a los inferiores).
PRIORITY_CHAPTER = 100
PRIORITY_VOLUME  = 150
PRIORITY_NOVEL   = 200

ACTIVE_JOB_STATUSES = (JobStatus.PENDING, JobStatus.IN_PROGRESS)


@dataclass
class StoredMedia:
    id:          str
    url:         str
    mime_type:   str
    size:        int
    created_at:  str
    uploader_id: Optional[str] = None


@dataclass
class StoredNovel:
    id:                str
    created_by:        str
    original_language: str
    created_at:        str
    original_author:   Optional[str] = None
    publisher:         Optional[str] = None
    source_type:       Optional[str] = None
    cover_media_id:    Optional[str] = None


@dataclass
class StoredNovelTranslation:
    id:          str
    novel_id:    str
    lang:        str
    title:       str
    description: Optional[str] = None
    synopsis:    Optional[str] = None


@dataclass
class StoredTag:
    id:   str
    name: str
    slug: str


@dataclass
class StoredChapter:
    id:        str
    volume_id: str
    number:    int
    title:     Optional[str] = None   # título en el idioma original, si se cargó


@dataclass
class StoredVolume:
    id:                str
    novel_id:          str
    number:            int
    original_language: str
    is_virtual:        bool
    cover_media_id:    Optional[str]       = None
    title:             Optional[str]       = None
    chapters:          list[StoredChapter] = field(default_factory=list)


@dataclass
class TranslationSubtask:
    id:               str
    job_id:           str
    entity_type:      EntityType
    entity_id:        str
    seq:              int
    priority:         int
    status:           SubtaskStatus = SubtaskStatus.PENDING
    parent_volume_id: Optional[str] = None
    error_message:    Optional[str] = None
    started_at:       Optional[str] = None
    finished_at:      Optional[str] = None
    created_at:       Optional[str] = None
    updated_at:       Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["entity_type"] = self.entity_type.value
        data["status"]      = self.status.value
        return data


@dataclass
class TranslationJob:
    id:                 str
    novel_id:           str
    from_lang:          str
    target_lang:        str
    status:             JobStatus = JobStatus.PENDING
    progress:           int = 0
    total_subtasks:     int = 0
    completed_subtasks: int = 0
    error_message:      Optional[str] = None
    created_by:         Optional[str] = None
    started_at:         Optional[str] = None
    finished_at:        Optional[str] = None
    created_at:         Optional[str] = None
    updated_at:         Optional[str] = None
    subtasks:           list[TranslationSubtask] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_JOB_STATUSES

    def to_dict(self, include_subtasks: bool = False) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        data.pop("subtasks")
        if include_subtasks:
            data["subtasks"] = [s.to_dict() for s in self.subtasks]
        return data


@dataclass
class OutboxMessage:
    id:           str
    topic:        str
    payload:      str   # JSON ya serializado
    attempts:     int
    created_at:   str
    last_error:   Optional[str] = None
    delivered_at: Optional[str] = None
