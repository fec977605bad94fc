# storage/tag_repository.py
import hashlib
import re
import sqlite3

from novelbridge.storage.db import new_id, utc_now
from novelbridge.storage.models import StoredTag

_SLUG_SEPARATORS = re.compile(r"[\s_]+")
_SLUG_INVALID    = re.compile(r"[^\w-]")


def generate_slug(name: str) -> str:
    """
    'Slice of Life' → 'slice-of-life', '奇幻' → '奇幻'.

    Conserva letras y dígitos Unicode. Si no queda nada ('!!!'), usa
    'tag-<hash>' del nombre en minúsculas para que el slug nunca sea vacío.
    """
    lowered = name.strip().lower()
    slug    = _SLUG_INVALID.sub("", _SLUG_SEPARATORS.sub("-", lowered)).strip("-")
    if slug:
        return slug
    return "tag-" + hashlib.sha1(lowered.encode("utf-8")).hexdigest()[:10]


class TagRepository:

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def get_by_name(self, name: str) -> StoredTag | None:
        row = self._conn.execute(
            "SELECT * FROM tags WHERE LOWER(name) = LOWER(?)", (name,)
        ).fetchone()
        return self._row_to_tag(row) if row else None

    def get_by_slug(self, slug: str) -> StoredTag | None:
        row = self._conn.execute("SELECT * FROM tags WHERE slug = ?", (slug,)).fetchone()
        return self._row_to_tag(row) if row else None

    def create(self, name: str, slug: str) -> StoredTag:
        tag = StoredTag(id=new_id(), name=name, slug=slug)
        self._conn.execute(
            "INSERT INTO tags (id, name, slug, created_at) VALUES (?, ?, ?, ?)",
            (tag.id, name, slug, utc_now()),
        )
        return tag

    def find_or_create_by_names(self, names: list[str]) -> list[StoredTag]:
        """
        Resuelve cada nombre a un tag existente — primero por nombre sin
        distinguir mayúsculas, después por slug — o lo crea.
        El resultado no tiene duplicados y respeta el orden de entrada.

        'Fantasy', 'fantasy' y 'FANTASY' terminan en el mismo tag.
        Solo se ignoran los nombres vacíos.
        """
        tags: list[StoredTag] = []
        seen: set[str] = set()

        for raw_name in names:
            name = raw_name.strip()
            if not name:
                continue
            slug = generate_slug(name)

            tag = self.get_by_name(name) or self.get_by_slug(slug)
            if tag is None:
                tag = self.create(name, slug)

            if tag.id not in seen:
                seen.add(tag.id)
                tags.append(tag)

        return tags

    @staticmethod
    def _row_to_tag(row: sqlite3.Row) -> StoredTag:
        return StoredTag(id=row["id"], name=row["name"], slug=row["slug"])
