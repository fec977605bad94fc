# tests/test_cli.py
import json
import logging
import re
import sqlite3
from pathlib import Path

import pytest
from click.testing import CliRunner

from conftest import EpubBuilder, container_xml, generic_epub, lightnovel_crawler_epub, zip_bytes
from novelbridge.cli import main
from novelbridge.storage.job_repository import JobRepository


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------

@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_logging():
    """configure_logging engancha handlers al stderr del runner; se limpian al terminar."""
    yield
    root = logging.getLogger("novelbridge")
    for handler in list(root.handlers):
        root.removeHandler(handler)


@pytest.fixture
def config_file(tmp_path) -> Path:
    f = tmp_path / "config.yaml"
    f.write_text(
        "logging:\n"
        "  level: WARNING\n"
        "queue:\n"
        f"  spool_dir: {tmp_path / 'spool'}\n"
        "media:\n"
        f"  dir: {tmp_path / 'media'}\n",
        encoding="utf-8",
    )
    return f


@pytest.fixture
def db_file(tmp_path) -> Path:
    return tmp_path / "novelbridge.db"


@pytest.fixture
def epub_file(tmp_path) -> Path:
    f = tmp_path / "shadow.epub"
    f.write_bytes(lightnovel_crawler_epub().build())
    return f


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def run(runner, config_file, db_file, *args):
    """Shortcut que agrega --config y --db a cada invocación."""
    return runner.invoke(main, ["--config", str(config_file), "--db", str(db_file), *args])


def ingest(runner, config_file, db_file, epub_file) -> str:
    result = run(runner, config_file, db_file, "ingest", "--epub", str(epub_file), "--user", "user-1")
    assert result.exit_code == 0, result.output
    return re.search(r"Id\s+: (\S+)", result.output).group(1)


def create_job(runner, config_file, db_file, novel_id, lang="es") -> str:
    result = run(runner, config_file, db_file, "job", "create", "--novel", novel_id, "--to", lang)
    assert result.exit_code == 0, result.output
    return re.search(r"Job creado: (\S+)", result.output).group(1)


# ------------------------------------------------------------------
# inspect / ingest
# ------------------------------------------------------------------

class TestInspect:

    def test_muestra_estructura(self, runner, config_file, db_file, epub_file):
        result = run(runner, config_file, db_file, "inspect", "--epub", str(epub_file))

        assert result.exit_code == 0, result.output
        assert "source_b" in result.output
        assert "Shadow Slave" in result.output
        assert "Nightmare Begins" in result.output
        assert "Capítulos    : 3" in result.output

    def test_volumen_virtual(self, runner, config_file, db_file, tmp_path):
        f = tmp_path / "plain.epub"
        f.write_bytes(generic_epub().build())

        result = run(runner, config_file, db_file, "inspect", "-e", str(f))

        assert result.exit_code == 0, result.output
        assert "(virtual)" in result.output

    def test_archivo_inexistente(self, runner, config_file, db_file, tmp_path):
        result = run(runner, config_file, db_file, "inspect", "--epub", str(tmp_path / "nada.epub"))
        assert result.exit_code == 1
        assert "no encontrado" in result.output

    def test_extension_incorrecta(self, runner, config_file, db_file, tmp_path):
        f = tmp_path / "libro.txt"
        f.write_text("texto")
        result = run(runner, config_file, db_file, "inspect", "--epub", str(f))
        assert result.exit_code == 1
        assert ".epub" in result.output

    def test_formato_no_soportado_sale_con_2(self, runner, config_file, db_file, tmp_path):
        f = tmp_path / "vacio.epub"
        f.write_bytes(EpubBuilder().build())

        result = run(runner, config_file, db_file, "inspect", "--epub", str(f))

        assert result.exit_code == 2
        assert "no soportado" in result.output

    def test_opf_malformado_sale_con_1(self, runner, config_file, db_file, tmp_path):
        f = tmp_path / "opf-roto.epub"
        f.write_bytes(zip_bytes({
            "META-INF/container.xml": container_xml("content.opf"),
            "content.opf":            "<package><metadata>",
        }))

        result = run(runner, config_file, db_file, "inspect", "--epub", str(f))

        assert result.exit_code == 1
        assert "OPF" in result.output
        assert "no soportado" not in result.output

    def test_zip_corrupto_sale_con_1(self, runner, config_file, db_file, tmp_path):
        f = tmp_path / "roto.epub"
        f.write_bytes(b"esto no es un zip")

        result = run(runner, config_file, db_file, "inspect", "--epub", str(f))
        assert result.exit_code == 1

    def test_config_explicita_inexistente(self, runner, db_file, epub_file, tmp_path):
        result = runner.invoke(main, [
            "--config", str(tmp_path / "no.yaml"), "--db", str(db_file),
            "inspect", "--epub", str(epub_file),
        ])
        assert result.exit_code == 1
        assert "Config no encontrada" in result.output


class TestIngest:

    def test_guarda_la_novela(self, runner, config_file, db_file, epub_file):
        result = run(runner, config_file, db_file, "ingest", "--epub", str(epub_file), "--user", "user-1")

        assert result.exit_code == 0, result.output
        assert "✓ Novela guardada" in result.output
        assert "Volúmenes  : 2" in result.output
        assert "Capítulos  : 3" in result.output
        assert "Portada" in result.output
        assert db_file.exists()

    def test_portada_guardada_en_media_dir(self, runner, config_file, db_file, epub_file, tmp_path):
        ingest(runner, config_file, db_file, epub_file)
        assert len(list((tmp_path / "media").glob("*.png"))) == 1

    def test_user_obligatorio(self, runner, config_file, db_file, epub_file):
        result = run(runner, config_file, db_file, "ingest", "--epub", str(epub_file))
        assert result.exit_code != 0


# ------------------------------------------------------------------
# job ...
# ------------------------------------------------------------------

class TestJobCommands:

    def test_create_publica_en_el_spool(self, runner, config_file, db_file, epub_file, tmp_path):
        novel_id = ingest(runner, config_file, db_file, epub_file)

        job_id = create_job(runner, config_file, db_file, novel_id)

        lines = (tmp_path / "spool" / "translation_jobs.jsonl").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["job_id"] == job_id

    def test_create_duplicado(self, runner, config_file, db_file, epub_file):
        novel_id = ingest(runner, config_file, db_file, epub_file)
        job_id   = create_job(runner, config_file, db_file, novel_id)

        result = run(runner, config_file, db_file, "job", "create", "--novel", novel_id, "--to", "es")

        assert result.exit_code == 1
        assert job_id in result.output

    def test_create_novela_inexistente(self, runner, config_file, db_file):
        result = run(runner, config_file, db_file, "job", "create", "--novel", "nope", "--to", "es")
        assert result.exit_code == 1
        assert "Novela no encontrada" in result.output

    @pytest.mark.parametrize("lang", ["e$", "abcdefghijkl"])
    def test_create_idioma_invalido(self, runner, config_file, db_file, lang):
        result = run(runner, config_file, db_file, "job", "create", "--novel", "x", "--to", lang)
        assert result.exit_code == 1
        assert "Código de idioma inválido" in result.output

    def test_show(self, runner, config_file, db_file, epub_file):
        novel_id = ingest(runner, config_file, db_file, epub_file)
        job_id   = create_job(runner, config_file, db_file, novel_id)

        result = run(runner, config_file, db_file, "job", "show", job_id)

        assert result.exit_code == 0, result.output
        assert "PENDING" in result.output
        assert result.output.count("chapter") == 3
        assert result.output.count("volume") == 2

    def test_show_json(self, runner, config_file, db_file, epub_file):
        novel_id = ingest(runner, config_file, db_file, epub_file)
        job_id   = create_job(runner, config_file, db_file, novel_id)

        result = run(runner, config_file, db_file, "job", "show", job_id, "--json")

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["id"] == job_id
        assert data["status"] == "PENDING"
        assert [s["entity_type"] for s in data["subtasks"]] == ["chapter"] * 3 + ["volume"] * 2 + ["novel"]

    def test_show_inexistente(self, runner, config_file, db_file):
        result = run(runner, config_file, db_file, "job", "show", "nope")
        assert result.exit_code == 1

    def test_error_de_base_no_se_filtra(self, runner, config_file, db_file, monkeypatch):
        def locked(*args, **kwargs):
            raise sqlite3.OperationalError("database is locked: /secret/path.db")

        monkeypatch.setattr(JobRepository, "get_by_id", locked)

        result = run(runner, config_file, db_file, "job", "show", "x")

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        error_line = next(l for l in result.output.splitlines() if l.startswith("[novelbridge] Error:"))
        assert error_line == "[novelbridge] Error: no se pudo leer el job"

    def test_list_vacio(self, runner, config_file, db_file):
        result = run(runner, config_file, db_file, "job", "list")
        assert result.exit_code == 0
        assert "Sin jobs." in result.output

    def test_list_con_filtros(self, runner, config_file, db_file, epub_file):
        novel_id = ingest(runner, config_file, db_file, epub_file)
        create_job(runner, config_file, db_file, novel_id, "es")
        create_job(runner, config_file, db_file, novel_id, "fr")

        result = run(runner, config_file, db_file, "job", "list", "--novel", novel_id, "--status", "pending")

        assert result.exit_code == 0, result.output
        assert "2 de 2" in result.output

    def test_cancel(self, runner, config_file, db_file, epub_file):
        novel_id = ingest(runner, config_file, db_file, epub_file)
        job_id   = create_job(runner, config_file, db_file, novel_id)

        result = run(runner, config_file, db_file, "job", "cancel", job_id)
        assert result.exit_code == 0, result.output
        assert f"Job {job_id} cancelado" in result.output

        again = run(runner, config_file, db_file, "job", "cancel", job_id)
        assert again.exit_code == 1
        assert "ya terminó" in again.output


class TestOutboxRelay:

    def test_sin_pendientes(self, runner, config_file, db_file):
        result = run(runner, config_file, db_file, "outbox", "relay")
        assert result.exit_code == 0
        assert "Entregados : 0" in result.output

    def test_entrega_pendientes(self, runner, tmp_path, db_file, epub_file):
        config = tmp_path / "no-relay.yaml"
        config.write_text(
            "logging:\n  level: WARNING\n"
            f"queue:\n  spool_dir: {tmp_path / 'spool'}\n  relay_on_create: false\n"
            f"media:\n  dir: {tmp_path / 'media'}\n",
            encoding="utf-8",
        )
        novel_id = ingest(runner, config, db_file, epub_file)
        create_job(runner, config, db_file, novel_id)
        assert not (tmp_path / "spool" / "translation_jobs.jsonl").exists()

        result = run(runner, config, db_file, "outbox", "relay")

        assert result.exit_code == 0, result.output
        assert "Entregados : 1" in result.output
        assert (tmp_path / "spool" / "translation_jobs.jsonl").exists()
