# tests/settings/test_config_loader.py
import logging
from logging.handlers import RotatingFileHandler

import pytest

from novelbridge.settings.config_loader import ConfigError, load_config
from novelbridge.settings.logging_setup import configure_logging
from novelbridge.settings.models import LoggingConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for var in ("NOVELBRIDGE_CONFIG_PATH", "NOVELBRIDGE_DB_PATH"):
        monkeypatch.delenv(var, raising=False)
    # sin config.yaml en el home real
    monkeypatch.setattr("novelbridge.settings.config_loader._DEFAULT_CONFIG_PATH", tmp_path / "nope.yaml")


def write_config(tmp_path, text: str):
    f = tmp_path / "config.yaml"
    f.write_text(text, encoding="utf-8")
    return str(f)


class TestLoadConfig:

    def test_sin_archivo_usa_defaults(self):
        config = load_config()
        assert config.database.path is None
        assert config.logging.level == "INFO"
        assert config.queue.name == "translation_jobs"
        assert config.queue.relay_on_create is True

    def test_ruta_explicita_inexistente(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "falta.yaml"))

    def test_ruta_desde_el_entorno_inexistente(self, tmp_path, monkeypatch):
        monkeypatch.setenv("NOVELBRIDGE_CONFIG_PATH", str(tmp_path / "falta.yaml"))
        with pytest.raises(FileNotFoundError):
            load_config()

    def test_lee_todas_las_secciones(self, tmp_path):
        path = write_config(tmp_path, """
database:
  path: /data/nb.db
logging:
  level: debug
  file: /var/log/nb.log
  max_bytes: 1024
  backup_count: 7
queue:
  spool_dir: /spool
  name: jobs_es
  target_fields: [title]
  enable_code_filter: true
  relay_batch_size: 10
  relay_on_create: false
media:
  dir: /media
""")
        config = load_config(path)

        assert config.database.path == "/data/nb.db"
        assert config.logging.level == "DEBUG"
        assert (config.logging.max_bytes, config.logging.backup_count) == (1024, 7)
        assert config.queue.name == "jobs_es"
        assert config.queue.target_fields == ["title"]
        assert config.queue.enable_code_filter is True
        assert config.queue.relay_batch_size == 10
        assert config.queue.relay_on_create is False
        assert config.media.dir == "/media"

    def test_expande_variables(self, tmp_path, monkeypatch):
        monkeypatch.setenv("NB_SPOOL", "/tmp/spool")
        monkeypatch.setenv("NB_ROOT", "/srv")
        path = write_config(tmp_path, """
queue:
  spool_dir: ${NB_SPOOL}
media:
  dir: ${NB_ROOT}/media
""")
        config = load_config(path)
        assert config.queue.spool_dir == "/tmp/spool"
        assert config.media.dir == "/srv/media"

    def test_variable_ausente_es_none(self, tmp_path, monkeypatch):
        monkeypatch.delenv("NB_FALTA", raising=False)
        path = write_config(tmp_path, "database:\n  path: ${NB_FALTA}\n")
        assert load_config(path).database.path is None

    def test_db_path_del_entorno_pisa_el_archivo(self, tmp_path, monkeypatch):
        monkeypatch.setenv("NOVELBRIDGE_DB_PATH", "/env.db")
        path = write_config(tmp_path, "database:\n  path: /file.db\n")
        assert load_config(path).database.path == "/env.db"

    def test_raiz_que_no_es_mapa(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(write_config(tmp_path, "- a\n- b\n"))

    def test_seccion_que_no_es_mapa(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(write_config(tmp_path, "queue: nada\n"))


class TestConfigureLogging:

    @pytest.fixture(autouse=True)
    def restore(self):
        yield
        root = logging.getLogger("novelbridge")
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()

    def test_solo_consola(self):
        root = configure_logging(LoggingConfig(level="WARNING"))
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1

    def test_archivo_rotativo(self, tmp_path):
        log_file = tmp_path / "logs" / "nb.log"
        root = configure_logging(LoggingConfig(file=str(log_file), max_bytes=2048, backup_count=2))

        rotating = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
        assert len(rotating) == 1
        assert rotating[0].maxBytes == 2048
        assert rotating[0].backupCount == 2

        logging.getLogger("novelbridge.test").info("hola")
        assert "hola" in log_file.read_text(encoding="utf-8")

    def test_llamarla_dos_veces_no_duplica(self):
        configure_logging(LoggingConfig())
        root = configure_logging(LoggingConfig())
        assert len(root.handlers) == 1
