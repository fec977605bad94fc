# processor/epub/container.py
import io
import logging
import zipfile
import zlib

from lxml import etree

from novelbridge.processor.models import RawContainer
from .exceptions import ContainerCorruptError, EmptyContainerError, MissingRootfileError

logger = logging.getLogger(__name__)

CONTAINER_PATH = "META-INF/container.xml"

# Sin entidades externas ni red: el XML viene de un upload arbitrario
_XML_PARSER = etree.XMLParser(resolve_entities=False, no_network=True)

_UNREADABLE_ENTRY_ERRORS = (
    zipfile.BadZipFile,     # CRC inválido
    NotImplementedError,    # método de compresión no soportado
    RuntimeError,           # entrada cifrada
    zlib.error,
    OSError,
)


class ContainerExtractor:
    """
    Abre el EPUB como ZIP y devuelve un mapa plano ruta → bytes
    junto con la ruta del OPF declarada en container.xml.

    Es puramente estructural: no sabe nada de vendors.
    """

    def __init__(self, log: logging.Logger | None = None):
        self._logger = log or logger

    def extract(self, data: bytes) -> RawContainer:
        """
        Raises:
            ContainerCorruptError: el blob no es un ZIP.
            EmptyContainerError:   el ZIP no tiene archivos.
            MissingRootfileError:  no se puede localizar el OPF.
        """
        files = self._read_files(data)
        if not files:
            raise EmptyContainerError("El EPUB no contiene ningún archivo")

        opf_path = find_opf_path(files)
        self._logger.info("OPF encontrado en: %s", opf_path)
        return RawContainer(files=files, opf_path=opf_path)

    def _read_files(self, data: bytes) -> dict[str, bytes]:
        if not data:
            raise ContainerCorruptError("El archivo EPUB está vacío")

        try:
            archive = zipfile.ZipFile(io.BytesIO(data))
        except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as e:
            raise ContainerCorruptError(f"No se pudo abrir el EPUB como ZIP: {e}") from e

        files: dict[str, bytes] = {}
        with archive:
            for info in archive.infolist():
                if info.is_dir():
                    continue
                try:
                    files[info.filename] = archive.read(info)
                except _UNREADABLE_ENTRY_ERRORS as e:
                    # una entrada rota no invalida el resto del contenedor
                    self._logger.error("No se pudo leer '%s' del EPUB: %s", info.filename, e)

        return files


def find_opf_path(files: dict[str, bytes]) -> str:
    """Primer rootfile/@full-path de META-INF/container.xml."""
    data = files.get(CONTAINER_PATH)
    if data is None:
        # algunos exportadores escriben la ruta con otro casing
        for path, content in files.items():
            if path.lower() == CONTAINER_PATH.lower():
                data = content
                break

    if data is None:
        raise MissingRootfileError(f"{CONTAINER_PATH} no encontrado")

    try:
        root = etree.fromstring(data, parser=_XML_PARSER)
    except etree.XMLSyntaxError as e:
        raise MissingRootfileError(f"container.xml inválido: {e}") from e

    if root is None:
        raise MissingRootfileError("container.xml vacío")

    rootfiles = root.xpath("//*[local-name()='rootfile']")
    if not rootfiles:
        raise MissingRootfileError("container.xml no declara ningún rootfile")

    # solo cuenta el primero
    full_path = (rootfiles[0].get("full-path") or "").strip()
    if not full_path:
        raise MissingRootfileError("El rootfile de container.xml no tiene full-path")
    return full_path
