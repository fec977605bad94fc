# settings/config_loader.py
import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml

from novelbridge.settings.models import (
    AppConfig, DatabaseConfig, LoggingConfig, MediaConfig, QueueConfig,
)

_DEFAULT_CONFIG_PATH = Path.home() / ".novelbridge" / "config.yaml"

_ENV_REF = re.compile(r"\$\{([^}]+)\}")


class ConfigError(Exception):
    pass


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Carga la configuración desde YAML.
    Resuelve variables de entorno (${VAR}) en cualquier valor de texto.

    Sin ruta explícita ni NOVELBRIDGE_CONFIG_PATH, un archivo inexistente
    no es error: se usan los valores por defecto. Una ruta pedida
    explícitamente que no existe sí lo es.
    """
    explicit = config_path or os.environ.get("NOVELBRIDGE_CONFIG_PATH")
    path     = Path(explicit) if explicit else _DEFAULT_CONFIG_PATH

    if not path.exists():
        if explicit:
            raise FileNotFoundError(
                f"Config no encontrada en {path}. "
                f"Copia config.example.yaml a ~/.novelbridge/config.yaml"
            )
        raw: dict = {}
    else:
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: se esperaba un mapa en la raíz del YAML")

    raw = _resolve_env(raw)

    db_section    = _section(raw, "database")
    log_section   = _section(raw, "logging")
    queue_section = _section(raw, "queue")
    media_section = _section(raw, "media")

    queue_defaults = QueueConfig()
    log_defaults   = LoggingConfig()

    return AppConfig(
        database = DatabaseConfig(
            path = os.environ.get("NOVELBRIDGE_DB_PATH") or db_section.get("path"),
        ),
        logging = LoggingConfig(
            level        = str(log_section.get("level", log_defaults.level)).upper(),
            file         = log_section.get("file"),
            max_bytes    = int(log_section.get("max_bytes", log_defaults.max_bytes)),
            backup_count = int(log_section.get("backup_count", log_defaults.backup_count)),
        ),
        queue = QueueConfig(
            spool_dir          = queue_section.get("spool_dir"),
            name               = queue_section.get("name", queue_defaults.name),
            target_fields      = list(queue_section.get("target_fields") or queue_defaults.target_fields),
            enable_code_filter = bool(queue_section.get("enable_code_filter", False)),
            relay_batch_size   = int(queue_section.get("relay_batch_size", queue_defaults.relay_batch_size)),
            relay_on_create    = bool(queue_section.get("relay_on_create", True)),
        ),
        media = MediaConfig(
            dir = media_section.get("dir"),
        ),
    )


def _section(raw: dict, name: str) -> dict:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"La sección '{name}' debe ser un mapa")
    return value


def _resolve_env(value: Any) -> Any:
    """Expande ${VAR_NAME} desde el entorno, recorriendo dicts y listas."""
    if isinstance(value, dict):
        return {k: _resolve_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env(v) for v in value]
    if not isinstance(value, str) or "${" not in value:
        return value

    match = _ENV_REF.fullmatch(value.strip())
    if match:
        # valor completo "${VAR}" → None si la variable no existe
        return os.environ.get(match.group(1).strip())
    return _ENV_REF.sub(lambda m: os.environ.get(m.group(1).strip(), ""), value)
