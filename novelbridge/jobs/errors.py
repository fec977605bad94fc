# jobs/errors.py


class JobError(Exception):
    pass


class NovelNotFoundError(JobError):
    def __init__(self, novel_id: str):
        super().__init__(f"Novela no encontrada: {novel_id}")
        self.novel_id = novel_id


class JobNotFoundError(JobError):
    def __init__(self, job_id: str):
        super().__init__(f"Job no encontrado: {job_id}")
        self.job_id = job_id


class NoChaptersToTranslateError(JobError):
    def __init__(self, novel_id: str):
        super().__init__(f"La novela {novel_id} no tiene capítulos para traducir")
        self.novel_id = novel_id


class ActiveJobConflictError(JobError):
    """Ya existe un job PENDING o IN_PROGRESS para la misma novela e idioma."""

    def __init__(self, novel_id: str, target_lang: str, existing_job_id: str | None):
        super().__init__(
            f"Ya hay un job activo para la novela {novel_id} → '{target_lang}'"
            + (f" ({existing_job_id})" if existing_job_id else "")
        )
        self.novel_id        = novel_id
        self.target_lang     = target_lang
        self.existing_job_id = existing_job_id


class AlreadyTerminalJobError(JobError):
    def __init__(self, job_id: str, status: str):
        super().__init__(f"El job {job_id} ya terminó ({status})")
        self.job_id = job_id
        self.status = status


class InvalidTransitionError(JobError):
    def __init__(self, kind: str, current: str, target: str):
        super().__init__(f"Transición inválida de {kind}: {current} → {target}")
        self.kind    = kind
        self.current = current
        self.target  = target


class InvalidLanguageError(JobError):
    def __init__(self, code: str, reason: str):
        super().__init__(f"Código de idioma inválido '{code}': {reason}. Ejemplos válidos: en, es, ja, fr, pt-br")
        self.code   = code
        self.reason = reason
