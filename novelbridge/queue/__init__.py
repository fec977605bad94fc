from novelbridge.queue.messages import (
    DEFAULT_TARGET_FIELDS, TRANSLATION_JOBS_TOPIC, TranslationJobMessage,
)
from novelbridge.queue.publisher import BaseQueuePublisher, PublishError, SpoolQueuePublisher
from novelbridge.queue.relay import OutboxRelay, RelayResult

__all__ = [
    "DEFAULT_TARGET_FIELDS",
    "TRANSLATION_JOBS_TOPIC",
    "BaseQueuePublisher",
    "OutboxRelay",
    "PublishError",
    "RelayResult",
    "SpoolQueuePublisher",
    "TranslationJobMessage",
]
