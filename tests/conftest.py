# tests/conftest.py
import io
import zipfile
from dataclasses import dataclass, field

import pytest
from PIL import Image

from novelbridge.storage.unit_of_work import UnitOfWork

NOVEL_DOWNLOADER_MARKER = "https://github.com/404-novel-project/novel-downloader"
LIGHTNOVEL_CRAWLER_MARKER = "https://github.com/dipu-bd/lightnovel-crawler"


def image_bytes(image_format: str = "PNG", size: tuple[int, int] = (2, 2)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (200, 40, 40)).save(buffer, format=image_format)
    return buffer.getvalue()


PNG_BYTES = image_bytes("PNG")


def xhtml(heading: str | None = None, body: str = "", tag: str = "h1") -> str:
    head = f"<{tag}>{heading}</{tag}>" if heading else ""
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<html xmlns="http://www.w3.org/1999/xhtml"><head><meta charset="utf-8"/></head>'
        f"<body>{head}<p>{body}</p></body></html>"
    )


def container_xml(opf_path: str) -> str:
    return (
        '<?xml version="1.0"?>\n'
        '<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">'
        "<rootfiles>"
        f'<rootfile full-path="{opf_path}" media-type="application/oebps-package+xml"/>'
        "</rootfiles></container>"
    )


@dataclass
class EpubBuilder:
    """
    Arma un EPUB en memoria.

        epub = EpubBuilder(title="X")
        epub.add_chapter("ch1", "chapter-1.xhtml", xhtml("Uno", "texto"))
        data = epub.build()
    """
    title:       str = "Test Novel"
    creators:    list[str] = field(default_factory=lambda: ["Author One"])
    language:    str | None = "en"
    publisher:   str | None = None
    description: list[str] = field(default_factory=list)
    subjects:    list[str] = field(default_factory=list)
    opf_dir:     str = "OEBPS"
    cover_id:    str | None = None
    manifest:    list[tuple[str, str, str, str]] = field(default_factory=list)
    spine:       list[str] = field(default_factory=list)
    files:       dict[str, bytes] = field(default_factory=dict)

    @property
    def opf_path(self) -> str:
        return f"{self.opf_dir}/content.opf" if self.opf_dir else "content.opf"

    def _path(self, href: str) -> str:
        return f"{self.opf_dir}/{href}" if self.opf_dir else href

    def add_item(self, item_id: str, href: str, media_type: str, content: bytes | str | None,
                 in_spine: bool = False, properties: str = "") -> "EpubBuilder":
        self.manifest.append((item_id, href, media_type, properties))
        if content is not None:
            self.files[self._path(href)] = content.encode("utf-8") if isinstance(content, str) else content
        if in_spine:
            self.spine.append(item_id)
        return self

    def add_chapter(self, item_id: str, href: str, content: str, properties: str = "") -> "EpubBuilder":
        return self.add_item(item_id, href, "application/xhtml+xml", content,
                             in_spine=True, properties=properties)

    def add_raw(self, path: str, content: bytes | str) -> "EpubBuilder":
        self.files[path] = content.encode("utf-8") if isinstance(content, str) else content
        return self

    def opf(self) -> str:
        meta = [f"<dc:title>{self.title}</dc:title>"]
        meta += [f"<dc:creator>{c}</dc:creator>" for c in self.creators]
        if self.language:
            meta.append(f"<dc:language>{self.language}</dc:language>")
        if self.publisher:
            meta.append(f"<dc:publisher>{self.publisher}</dc:publisher>")
        meta += [f"<dc:description>{d}</dc:description>" for d in self.description]
        meta += [f"<dc:subject>{s}</dc:subject>" for s in self.subjects]
        if self.cover_id:
            meta.append(f'<meta name="cover" content="{self.cover_id}"/>')

        items = "".join(
            f'<item id="{i}" href="{h}" media-type="{m}"'
            + (f' properties="{p}"' if p else "")
            + "/>"
            for i, h, m, p in self.manifest
        )
        refs = "".join(f'<itemref idref="{i}"/>' for i in self.spine)

        return (
            '<?xml version="1.0" encoding="utf-8"?>\n'
            '<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="id">'
            '<metadata xmlns:dc="http://purl.org/dc/elements/1.1/">'
            + "".join(meta)
            + f"</metadata><manifest>{items}</manifest><spine>{refs}</spine></package>"
        )

    def build(self) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr("mimetype", "application/epub+zip")
            zf.writestr("META-INF/container.xml", container_xml(self.opf_path))
            zf.writestr(self.opf_path, self.opf())
            for path, content in self.files.items():
                zf.writestr(path, content)
        return buffer.getvalue()


def zip_bytes(files: dict[str, bytes | str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for path, content in files.items():
            zf.writestr(path, content)
    return buffer.getvalue()


# ------------------------------------------------------------------
# EPUBs de ejemplo
# ------------------------------------------------------------------

def novel_downloader_epub() -> EpubBuilder:
    """Un volumen (section-0001) con dos capítulos, más sinopsis."""
    epub = EpubBuilder(
        title    = "The Wandering Inn",
        creators = ["pirateaba"],
        subjects = ["Fantasy", "LitRPG"],
    )
    epub.add_raw("OEBPS/info.txt", f"Generated by {NOVEL_DOWNLOADER_MARKER}\n")
    epub.add_chapter("synopsis", "synopsis.xhtml", xhtml("Synopsis", "An inn in another world."))
    epub.add_chapter("s1", "section-0001.xhtml", xhtml("Volume One"))
    epub.add_chapter("c1", "chapter-1.xhtml", xhtml("1.00", "Erin wakes up."))
    epub.add_chapter("c2", "chapter-2.xhtml", xhtml("1.01", "Goblins."))
    return epub


def lightnovel_crawler_epub() -> EpubBuilder:
    """Dos volúmenes; los capítulos llevan el volumen en el nombre."""
    epub = EpubBuilder(
        title       = "Shadow Slave",
        creators    = ["Guiltythree", "Translator"],
        description = ["Growing up in poverty,", "Sunny never expected anything good."],
        subjects    = ["Action", "Fantasy"],
        opf_dir     = "EPUB",
    )
    epub.add_chapter("intro", "intro.xhtml", xhtml("Shadow Slave", f"Made with {LIGHTNOVEL_CRAWLER_MARKER}"))
    epub.add_item("cover-image", "cover.png", "image/png", PNG_BYTES)
    epub.add_chapter("vol1", "volume-1.xhtml", xhtml("Nightmare Begins"))
    epub.add_chapter("v1c1", "v1-chapter-1.xhtml", xhtml("Chapter 1: Nightmare", "..."))
    epub.add_chapter("v1c2", "v1-chapter-2.xhtml", xhtml("Chapter 2: Rules", "..."))
    epub.add_chapter("vol2", "volume-2.xhtml", xhtml("Shadow Island"))
    epub.add_chapter("v2c3", "v2-chapter-3.xhtml", xhtml("Chapter 3: Island", "..."))
    return epub


def generic_epub() -> EpubBuilder:
    """Sin marca de vendor ni nombres de volumen: tres capítulos planos."""
    epub = EpubBuilder(title="Plain Book", creators=["Someone"], language="EN")
    epub.add_chapter("nav", "nav.xhtml", xhtml("Contents"), properties="nav")
    epub.add_chapter("a", "text/part-a.xhtml", xhtml("First", "uno"))
    epub.add_chapter("b", "text/part-b.xhtml", xhtml(None, "dos"))
    epub.add_chapter("c", "text/part-c.xhtml", xhtml("Third", "tres"))
    return epub


@pytest.fixture
def uow():
    """Cada test tiene su propia DB en memoria — aislada, sin cleanup."""
    u = UnitOfWork(db_path=":memory:")
    yield u
    u.close()
