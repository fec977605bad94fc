# settings/logging_setup.py
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from novelbridge.settings.models import LoggingConfig

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_ROOT_LOGGER = "novelbridge"


def configure_logging(config: LoggingConfig) -> logging.Logger:
    """
    Configura el logger raíz del paquete: consola siempre, archivo rotativo
    si config.file está definido. Llamarla dos veces reemplaza los handlers.
    """
    root = logging.getLogger(_ROOT_LOGGER)
    root.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if config.file:
        path = Path(config.file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes    = config.max_bytes,
            backupCount = config.backup_count,
            encoding    = "utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root
