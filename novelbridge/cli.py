# novelbridge/cli.py
import json
import sys
from pathlib import Path

import click
from dotenv import load_dotenv

from novelbridge.factory import Services, build_services
from novelbridge.jobs.errors import ActiveJobConflictError, JobError
from novelbridge.processor.epub.exceptions import EpubError, UnsupportedSourceFormatError
from novelbridge.settings.config_loader import ConfigError
from novelbridge.storage.errors import PersistenceError
from novelbridge.storage.models import JobStatus, TranslationJob


# Carga .env una sola vez, antes que cualquier otra cosa
load_dotenv()

_EXIT_DOMAIN      = 1
_EXIT_UNSUPPORTED = 2

_STATUS_CHOICES = [s.value for s in JobStatus]


# ------------------------------------------------------------------
# Grupo raíz
# ------------------------------------------------------------------

@click.group()
@click.version_option(package_name="novelbridge")
@click.option(
    "--config", "config_path",
    type    = click.Path(dir_okay=False),
    default = None,
    help    = "Ruta al config.yaml (por defecto ~/.novelbridge/config.yaml)",
)
@click.option(
    "--db", "db_path",
    type    = click.Path(dir_okay=False),
    default = None,
    help    = "Ruta a la base SQLite (pisa database.path)",
)
@click.pass_context
def main(ctx: click.Context, config_path: str | None, db_path: str | None):
    """
    novelbridge — ingesta de EPUBs y trabajos de traducción.

    Convierte exports EPUB de herramientas de scraping en un árbol
    novela → volúmenes → capítulos y lo descompone en jobs de traducción
    para un pool de workers externo.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["db_path"]     = db_path


# ------------------------------------------------------------------
# novelbridge inspect / ingest
# ------------------------------------------------------------------

@main.command()
@click.option(
    "--epub", "-e", "epub_path",
    required = True,
    type     = click.Path(exists=False),   # validamos nosotros para mejor mensaje
    help     = "Ruta al archivo .epub",
)
@click.pass_context
def inspect(ctx: click.Context, epub_path: str):
    """Detecta el formato y muestra la estructura sin guardar nada."""
    data     = _read_epub(epub_path)
    services = _services(ctx)

    try:
        result = services.ingestion.inspect(data)
    except EpubError as e:
        _epub_failure(e)
    finally:
        services.close()

    click.echo(f"[novelbridge] Formato      : {result.source_type.value}")
    click.echo(f"[novelbridge] Título       : {result.novel_data.title}")
    click.echo(f"[novelbridge] Autor        : {result.novel_data.original_author or '-'}")
    click.echo(f"[novelbridge] Idioma       : {result.novel_data.original_language}")
    if result.novel_data.tags:
        click.echo(f"[novelbridge] Tags         : {', '.join(result.novel_data.tags)}")
    click.echo(f"[novelbridge] Volúmenes    : {result.total_volumes}")
    for i, volume in enumerate(result.volumes):
        count  = sum(1 for c in result.chapters if c.volume_index == i)
        suffix = " (virtual)" if volume.is_virtual else ""
        click.echo(f"[novelbridge]   {volume.number:>3}. {volume.title}{suffix} — {count} capítulos")
    click.echo(f"[novelbridge] Capítulos    : {result.total_chapters}")


@main.command()
@click.option(
    "--epub", "-e", "epub_path",
    required = True,
    type     = click.Path(exists=False),
    help     = "Ruta al archivo .epub",
)
@click.option("--user", "-u", "user_id", required=True, help="Id del usuario que sube la novela")
@click.pass_context
def ingest(ctx: click.Context, epub_path: str, user_id: str):
    """Procesa el EPUB y guarda la novela completa."""
    data     = _read_epub(epub_path)
    services = _services(ctx)

    try:
        report = services.ingestion.ingest(data, created_by=user_id)
    except EpubError as e:
        _epub_failure(e)
    except PersistenceError as e:
        _abort(str(e))
    finally:
        services.close()

    novel = report.novel
    click.echo(f"[novelbridge] ✓ Novela guardada")
    click.echo(f"[novelbridge]   Id         : {novel.novel_id}")
    click.echo(f"[novelbridge]   Título     : {novel.title}")
    click.echo(f"[novelbridge]   Formato    : {novel.source_type}")
    click.echo(f"[novelbridge]   Volúmenes  : {novel.volume_count}")
    click.echo(f"[novelbridge]   Capítulos  : {novel.chapter_count}")
    if novel.cover_media_id:
        click.echo(f"[novelbridge]   Portada    : {novel.cover_media_id}")


# ------------------------------------------------------------------
# novelbridge job ...
# ------------------------------------------------------------------

@main.group()
def job():
    """Jobs de traducción."""


@job.command("create")
@click.option("--novel", "-n", "novel_id", required=True, help="Id de la novela")
@click.option("--to", "target_lang", required=True, metavar="LANG", help="Idioma de destino (ej: es, en)")
@click.option("--user", "-u", "user_id", default=None, help="Id del usuario que pide el job")
@click.pass_context
def job_create(ctx: click.Context, novel_id: str, target_lang: str, user_id: str | None):
    """Crea un job de traducción para una novela."""
    services = _services(ctx)

    try:
        created = services.jobs.create_translation_job(novel_id, target_lang, requested_by=user_id)
    except ActiveJobConflictError as e:
        _abort(f"{e}\nUsa 'novelbridge job show {e.existing_job_id}' para ver su estado.")
    except (JobError, PersistenceError) as e:
        _abort(str(e))
    finally:
        services.close()

    click.echo(f"[novelbridge] ✓ Job creado: {created.id}")
    click.echo(f"[novelbridge]   {created.from_lang} → {created.target_lang}, {created.total_subtasks} subtareas")


@job.command("show")
@click.argument("job_id")
@click.option("--json", "as_json", is_flag=True, default=False, help="Salida en JSON (job + subtareas)")
@click.pass_context
def job_show(ctx: click.Context, job_id: str, as_json: bool):
    """Muestra un job y sus subtareas en orden de procesamiento."""
    services = _services(ctx)
    try:
        found = services.jobs.get_job(job_id)
    except (JobError, PersistenceError) as e:
        _abort(str(e))
    finally:
        services.close()

    if as_json:
        click.echo(json.dumps(found.to_dict(include_subtasks=True), ensure_ascii=False, indent=2))
        return

    _print_job(found)
    for subtask in found.subtasks:
        click.echo(
            f"[novelbridge]   [{subtask.priority}] {subtask.entity_type.value:<7} "
            f"#{subtask.seq:<4} {subtask.status.value:<11} {subtask.entity_id}"
        )


@job.command("list")
@click.option("--status", type=click.Choice(_STATUS_CHOICES, case_sensitive=False), default=None)
@click.option("--novel", "novel_id", default=None, help="Filtra por novela")
@click.option("--limit", default=20, show_default=True, type=int)
@click.option("--offset", default=0, show_default=True, type=int)
@click.pass_context
def job_list(ctx: click.Context, status: str | None, novel_id: str | None, limit: int, offset: int):
    """Lista jobs, los más recientes primero."""
    job_status = JobStatus(status.upper()) if status else None
    services   = _services(ctx)
    try:
        if novel_id:
            page = services.jobs.list_jobs_by_novel(novel_id, limit=limit, offset=offset, status=job_status)
        else:
            page = services.jobs.list_jobs(limit=limit, offset=offset, status=job_status)
    except PersistenceError as e:
        _abort(str(e))
    finally:
        services.close()

    if not page.jobs:
        click.echo("[novelbridge] Sin jobs.")
        return

    for found in page.jobs:
        _print_job(found)
    click.echo(f"[novelbridge] {len(page.jobs)} de {page.total}")


@job.command("cancel")
@click.argument("job_id")
@click.pass_context
def job_cancel(ctx: click.Context, job_id: str):
    """Cancela un job pendiente o en curso."""
    services = _services(ctx)
    try:
        cancelled = services.jobs.cancel_job(job_id)
    except (JobError, PersistenceError) as e:
        _abort(str(e))
    finally:
        services.close()

    click.echo(f"[novelbridge] ✓ Job {cancelled.id} cancelado")


# ------------------------------------------------------------------
# novelbridge outbox relay
# ------------------------------------------------------------------

@main.group()
def outbox():
    """Mensajes pendientes hacia la cola."""


@outbox.command("relay")
@click.option("--batch", "batch_size", default=None, type=int, help="Máximo de mensajes a entregar")
@click.pass_context
def outbox_relay(ctx: click.Context, batch_size: int | None):
    """Entrega a la cola los mensajes que quedaron pendientes."""
    services = _services(ctx)
    try:
        result = services.relay.relay_pending(batch_size or services.config.queue.relay_batch_size)
    finally:
        services.close()

    click.echo(f"[novelbridge] Entregados : {result.delivered}")
    if result.failed:
        click.echo(click.style(f"[novelbridge] Fallidos   : {result.failed}", fg="yellow"))


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _services(ctx: click.Context) -> Services:
    obj = ctx.find_root().obj or {}
    try:
        return build_services(config_path=obj.get("config_path"), db_path=obj.get("db_path"))
    except (FileNotFoundError, ConfigError) as e:
        _abort(str(e))


def _read_epub(path: str) -> bytes:
    """Verifica existencia y extensión del archivo y devuelve sus bytes."""
    p = Path(path)

    if not p.exists():
        _abort(f"Archivo no encontrado: {path}")

    if not p.is_file():
        _abort(f"La ruta no es un archivo: {path}")

    if p.suffix.lower() != ".epub":
        _abort(f"Formato no soportado: '{p.suffix}'. Se espera un .epub")

    return p.read_bytes()


def _epub_failure(error: EpubError) -> None:
    if isinstance(error, UnsupportedSourceFormatError):
        _error(f"Formato de EPUB no soportado: {error}")
        sys.exit(_EXIT_UNSUPPORTED)
    _abort(str(error))


def _print_job(found: TranslationJob) -> None:
    color = {
        JobStatus.COMPLETED: "green",
        JobStatus.FAILED:    "red",
        JobStatus.CANCELLED: "yellow",
    }.get(found.status)
    status = click.style(found.status.value, fg=color) if color else found.status.value
    click.echo(
        f"[novelbridge] {found.id}  {status}  {found.from_lang} → {found.target_lang}  "
        f"{found.completed_subtasks}/{found.total_subtasks} ({found.progress}%)"
    )


def _abort(message: str) -> None:
    """Error de validación o de dominio — exit 1."""
    click.echo(click.style(f"[novelbridge] Error: {message}", fg="red"), err=True)
    sys.exit(_EXIT_DOMAIN)


def _error(message: str) -> None:
    """Error de sistema — no es culpa del usuario."""
    click.echo(click.style(f"[novelbridge] {message}", fg="red"), err=True)
