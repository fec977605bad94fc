# media/uploader.py
import io
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from PIL import Image

from novelbridge.storage.db import new_id

logger = logging.getLogger(__name__)

_DEFAULT_MEDIA_DIR = Path.home() / ".novelbridge" / "media"

# formato de Pillow → (mime, extensión)
_FORMATS = {
    "JPEG": ("image/jpeg", ".jpg"),
    "PNG":  ("image/png",  ".png"),
    "GIF":  ("image/gif",  ".gif"),
    "WEBP": ("image/webp", ".webp"),
}


class MediaUploadError(Exception):
    pass


@dataclass
class UploadedMedia:
    media_id:  str
    url:       str
    mime_type: str
    size:      int


def identify_image(name: str, data: bytes) -> tuple[str, str]:
    """
    Abre la imagen con Pillow y devuelve (mime, extensión).

    verify() recorre el archivo completo, así que una imagen truncada o
    corrupta falla acá aunque el encabezado sea válido.

    Raises:
        MediaUploadError: si no es una imagen legible o el formato no está en _FORMATS.
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
            image.verify()
    except Exception as e:
        raise MediaUploadError(f"'{name}' no es una imagen válida") from e

    if image_format not in _FORMATS:
        raise MediaUploadError(
            f"'{name}': formato {image_format} no soportado (jpeg, png, gif, webp)"
        )
    return _FORMATS[image_format]


class BaseMediaUploader(ABC):
    """
    Interfaz del host de imágenes. El host real es externo;
    el núcleo solo necesita un id estable y una URL.
    """

    @abstractmethod
    def upload(self, name: str, data: bytes, uploader_id: str | None = None) -> UploadedMedia:
        raise NotImplementedError


class LocalMediaUploader(BaseMediaUploader):
    """Guarda las imágenes en un directorio local. La URL es un file:// URI."""

    def __init__(self, media_dir: str | None = None, log: logging.Logger | None = None):
        self._logger = log or logger
        self._dir    = Path(media_dir or os.environ.get("NOVELBRIDGE_MEDIA_DIR") or _DEFAULT_MEDIA_DIR).expanduser()

    def upload(self, name: str, data: bytes, uploader_id: str | None = None) -> UploadedMedia:
        if not data:
            raise MediaUploadError(f"'{name}' está vacío")

        mime_type, ext = identify_image(name, data)

        media_id = new_id()
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self._dir / f"{media_id}{ext}"
        try:
            path.write_bytes(data)
        except OSError as e:
            raise MediaUploadError(f"No se pudo guardar '{name}'") from e

        self._logger.info("Imagen guardada: %s (%s, %d bytes)", path.name, mime_type, len(data))
        return UploadedMedia(
            media_id  = media_id,
            url       = path.resolve().as_uri(),
            mime_type = mime_type,
            size      = len(data),
        )
