# processor/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class SourceType(Enum):
    NOVEL_DOWNLOADER_404 = "source_a"
    LIGHTNOVEL_CRAWLER   = "source_b"
    GENERIC              = "generic"


@dataclass(frozen=True)
class RawContainer:
    """Lo que sale del ContainerExtractor: archivos crudos + ruta del OPF."""
    files:    dict[str, bytes]
    opf_path: str


# ------------------------------------------------------------------
# OPF
# ------------------------------------------------------------------

@dataclass
class OPFMetadata:
    # Campos repetibles: por convención el primero es el canónico
    title:       list[str] = field(default_factory=list)
    creator:     list[str] = field(default_factory=list)
    language:    list[str] = field(default_factory=list)
    publisher:   list[str] = field(default_factory=list)
    description: list[str] = field(default_factory=list)
    subject:     list[str] = field(default_factory=list)
    date:        list[str] = field(default_factory=list)
    identifier:  list[str] = field(default_factory=list)
    rights:      list[str] = field(default_factory=list)


@dataclass
class ManifestItem:
    id:         str
    href:       str
    media_type: str
    properties: str = ""

    @property
    def is_html(self) -> bool:
        return "html" in self.media_type.lower()

    @property
    def is_image(self) -> bool:
        return self.media_type.lower().startswith("image")


@dataclass
class SpineItem:
    idref: str


@dataclass
class OPFPackage:
    metadata: OPFMetadata
    manifest: list[ManifestItem]
    spine:    list[SpineItem]
    cover_id: Optional[str] = None   # <meta name="cover" content="...">

    def manifest_by_id(self) -> dict[str, ManifestItem]:
        return {item.id: item for item in self.manifest}


@dataclass
class ContentFile:
    path:       str
    raw_html:   str
    plain_text: str
    media_type: str


# ------------------------------------------------------------------
# Salida de los transformers (transitorio, aún no son entidades)
# ------------------------------------------------------------------

@dataclass
class NovelData:
    title:             str = ""
    original_author:   str = ""
    description:       str = ""
    publisher:         str = ""
    original_language: str = ""
    tags:              list[str] = field(default_factory=list)
    cover_image:       Optional[bytes] = field(default=None, repr=False)
    synopsis:          str = ""


@dataclass
class VolumeData:
    number:     int
    title:      str
    is_virtual: bool = False


@dataclass
class ChapterData:
    """volume_index apunta a la lista de VolumeData producida en la misma llamada."""
    volume_index: int
    order_num:    int
    title:        str
    content:      str = field(repr=False)
    plain_text:   str = field(default="", repr=False)


@dataclass
class EpubProcessResult:
    raw_content:    RawContainer = field(repr=False)
    novel_data:     NovelData
    volumes:        list[VolumeData]
    chapters:       list[ChapterData]
    source_type:    SourceType
    total_volumes:  int = 0
    total_chapters: int = 0
