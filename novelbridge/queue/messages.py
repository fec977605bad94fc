# queue/messages.py
import json
from dataclasses import dataclass, field

TRANSLATION_JOBS_TOPIC = "translation_jobs"

DEFAULT_TARGET_FIELDS = ["title", "description", "content"]


@dataclass
class TranslationJobMessage:
    """
    Mensaje que recibe el worker de traducción.

    Formato en la cola:
        {"job_id": "...", "target_lang": "es", "source_lang": "en",
         "target_fields": ["title", "description", "content"],
         "enable_code_filter": true}

    enable_code_filter solo aparece cuando es True.
    """
    job_id:             str
    target_lang:        str
    source_lang:        str
    target_fields:      list[str] = field(default_factory=lambda: list(DEFAULT_TARGET_FIELDS))
    enable_code_filter: bool = False

    def to_dict(self) -> dict:
        data = {
            "job_id":        self.job_id,
            "target_lang":   self.target_lang,
            "source_lang":   self.source_lang,
            "target_fields": list(self.target_fields),
        }
        if self.enable_code_filter:
            data["enable_code_filter"] = True
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, payload: str) -> "TranslationJobMessage":
        data = json.loads(payload)
        return cls(
            job_id             = data["job_id"],
            target_lang        = data["target_lang"],
            source_lang        = data["source_lang"],
            target_fields      = data.get("target_fields") or list(DEFAULT_TARGET_FIELDS),
            enable_code_filter = bool(data.get("enable_code_filter", False)),
        )
