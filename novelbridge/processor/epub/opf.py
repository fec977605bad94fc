# processor/epub/opf.py
import posixpath
from urllib.parse import unquote

from lxml import etree

from novelbridge.processor.models import ManifestItem, OPFMetadata, OPFPackage, SpineItem
from .exceptions import InvalidOPFError

_XML_PARSER = etree.XMLParser(resolve_entities=False, no_network=True)

# Campos Dublin Core que se leen de <metadata>, en el orden de OPFMetadata
_DC_FIELDS = (
    "title", "creator", "language", "publisher", "description",
    "subject", "date", "identifier", "rights",
)


def _children(element, local_name: str) -> list:
    """Hijos directos por nombre local, ignorando el namespace (OPF 2 y 3 lo usan distinto)."""
    return element.xpath(f"./*[local-name()='{local_name}']")


def _text(element) -> str:
    return "".join(element.itertext()).strip()


class OPFParser:
    """
    Parsea el XML del paquete OPF a metadata + manifest + spine.

    No valida semántica: un idref del spine que no existe en el manifest
    se conserva tal cual y lo filtra cada transformer.
    """

    def parse(self, data: bytes) -> OPFPackage:
        """
        Raises:
            InvalidOPFError: si el XML no está bien formado.
        """
        try:
            root = etree.fromstring(data, parser=_XML_PARSER)
        except (etree.XMLSyntaxError, ValueError) as e:
            raise InvalidOPFError(f"No se pudo parsear el OPF: {e}") from e

        if root is None:
            raise InvalidOPFError("El OPF está vacío")

        metadata_nodes = _children(root, "metadata")
        manifest_nodes = _children(root, "manifest")
        spine_nodes    = _children(root, "spine")

        metadata = self._parse_metadata(metadata_nodes[0]) if metadata_nodes else OPFMetadata()
        cover_id = self._parse_cover_id(metadata_nodes[0]) if metadata_nodes else None
        manifest = self._parse_manifest(manifest_nodes[0]) if manifest_nodes else []
        spine    = self._parse_spine(spine_nodes[0]) if spine_nodes else []

        return OPFPackage(metadata=metadata, manifest=manifest, spine=spine, cover_id=cover_id)

    # ------------------------------------------------------------------ #
    #  Helpers privados                                                    #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _parse_metadata(node) -> OPFMetadata:
        values: dict[str, list[str]] = {}
        for name in _DC_FIELDS:
            values[name] = [
                text for text in (_text(child) for child in _children(node, name)) if text
            ]
        return OPFMetadata(**values)

    @staticmethod
    def _parse_cover_id(node) -> str | None:
        for meta in _children(node, "meta"):
            if (meta.get("name") or "").lower() == "cover" and meta.get("content"):
                return meta.get("content").strip()
        return None

    @staticmethod
    def _parse_manifest(node) -> list[ManifestItem]:
        items = []
        for item in _children(node, "item"):
            items.append(ManifestItem(
                id         = item.get("id", ""),
                href       = item.get("href", ""),
                media_type = item.get("media-type", ""),
                properties = item.get("properties", ""),
            ))
        return items

    @staticmethod
    def _parse_spine(node) -> list[SpineItem]:
        return [SpineItem(idref=ref.get("idref", "")) for ref in _children(node, "itemref")]


def base_dir(opf_path: str) -> str:
    """Directorio del OPF con '/' final, o '' si está en la raíz."""
    idx = opf_path.rfind("/")
    return opf_path[: idx + 1] if idx >= 0 else ""


def resolve_href(opf_path: str, href: str) -> str:
    """
    Resuelve un href del manifest contra el directorio del OPF.
    Quita fragmentos, decodifica %XX y normaliza '..'.
    """
    href = unquote(href.split("#", 1)[0])
    joined = base_dir(opf_path) + href
    normalized = posixpath.normpath(joined)
    return "" if normalized == "." else normalized
