"""
Extracción de texto plano y títulos desde los archivos de contenido
(X)HTML de un EPUB.

El texto plano se guarda junto al HTML original como versión para
búsqueda/preview. Nunca lanza: un fragmento imposible de parsear
devuelve "".
"""
import logging
import warnings

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

logger = logging.getLogger(__name__)

# Los EPUB usan XHTML: bs4 avisa en cada archivo si no se silencia
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

_PARSER = "lxml"


def decode_html(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def extract_text(html: str | bytes) -> str:
    """Textos del DOM recortados y unidos con un espacio."""
    if isinstance(html, bytes):
        html = decode_html(html)
    if not html.strip():
        return ""

    try:
        soup = BeautifulSoup(html, _PARSER)
        # stripped_strings excluye comentarios y doctype
        return " ".join(soup.stripped_strings)
    except Exception as e:
        logger.debug("HTML imposible de parsear, texto vacío: %s", e)
        return ""


def extract_heading(html: str) -> str | None:
    """Primer <h1>; si no hay, primer <h2>. None si no hay ninguno con texto."""
    if not html.strip():
        return None

    try:
        soup = BeautifulSoup(html, _PARSER)
    except Exception as e:
        logger.debug("HTML imposible de parsear, sin título: %s", e)
        return None

    for tag_name in ("h1", "h2"):
        tag = soup.find(tag_name)
        if tag is None:
            continue
        text = " ".join(tag.stripped_strings)
        if text:
            return text
    return None


def extract_chapter_title(html: str, order_num: int) -> str:
    return extract_heading(html) or f"Chapter {order_num}"
