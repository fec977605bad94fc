from novelbridge.jobs.errors import (
    ActiveJobConflictError,
    AlreadyTerminalJobError,
    InvalidLanguageError,
    InvalidTransitionError,
    JobError,
    JobNotFoundError,
    NoChaptersToTranslateError,
    NovelNotFoundError,
)
from novelbridge.jobs.service import JobPage, TranslationJobService, build_subtasks, normalize_lang

__all__ = [
    "ActiveJobConflictError",
    "AlreadyTerminalJobError",
    "InvalidLanguageError",
    "InvalidTransitionError",
    "JobError",
    "JobNotFoundError",
    "JobPage",
    "NoChaptersToTranslateError",
    "NovelNotFoundError",
    "TranslationJobService",
    "build_subtasks",
    "normalize_lang",
]
