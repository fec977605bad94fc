from novelbridge.settings.config_loader import ConfigError, load_config
from novelbridge.settings.logging_setup import configure_logging
from novelbridge.settings.models import (
    AppConfig, DatabaseConfig, LoggingConfig, MediaConfig, QueueConfig,
)

__all__ = [
    "AppConfig",
    "ConfigError",
    "DatabaseConfig",
    "LoggingConfig",
    "MediaConfig",
    "QueueConfig",
    "configure_logging",
    "load_config",
]
