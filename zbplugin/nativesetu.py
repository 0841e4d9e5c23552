"""A library of local pictures, one class per folder, indexed in SQLite."""

from __future__ import annotations

import io
import logging
import os
import sqlite3
import threading
from pathlib import Path

from PIL import Image

log = logging.getLogger(__name__)

IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png", ".gif", ".webp")


def difference_hash(image: Image.Image) -> int:
    """64-bit difference hash of an image, as a signed integer.

    The image is shrunk to 9x8; each bit tells whether a pixel is darker
    than its right neighbour, the first comparison in the top bit.
    """
    small = image.convert("RGB").resize((9, 8), Image.BILINEAR)
    pixels = small.load()
    value = 0
    for y in range(8):
        gray = [
            0.299 * r + 0.587 * g + 0.114 * b
            for r, g, b in (pixels[x, y] for x in range(9))
        ]
        for left, right in zip(gray, gray[1:]):
            value = (value << 1) | (1 if left < right else 0)
    return value - (1 << 64) if value >= 1 << 63 else value


def _quote(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class SetuLibrary:
    """Picture classes stored as tables of (imgid, name, path)."""

    def __init__(self, db_path):
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        self._db = sqlite3.connect(str(self.db_path), check_same_thread=False)

    def __enter__(self) -> "SetuLibrary":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def classes(self) -> list[str]:
        """Names of all picture classes."""
        with self._lock:
            rows = self._db.execute(
                "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
            ).fetchall()
        return [row[0] for row in rows]

    def _create(self, name: str) -> None:
        with self._db:
            self._db.execute(
                f"CREATE TABLE IF NOT EXISTS {_quote(name)} "
                "(imgid INTEGER, name TEXT, path TEXT PRIMARY KEY)"
            )

    def scan_all(self, root) -> None:
        """Rebuild the whole index from every folder below ``root``."""
        root = Path(root)
        with self._lock:
            self._db.close()
            if self.db_path.exists():
                self.db_path.unlink()
            self._db = sqlite3.connect(str(self.db_path), check_same_thread=False)
        for dirpath, dirnames, _ in os.walk(root):
            dirnames.sort()
            for dirname in dirnames:
                relpath = Path(dirpath, dirname).relative_to(root).as_posix()
                with self._lock:
                    self._create(dirname)
                self.scan_class(root, relpath, dirname)

    def scan_class(self, root, relpath: str, name: str) -> None:
        """Rebuild class ``name`` from the pictures directly inside ``root/relpath``."""
        folder = Path(root) / relpath
        entries = sorted(folder.iterdir(), key=lambda p: p.name)
        with self._lock, self._db:
            self._db.execute(f"DROP TABLE IF EXISTS {_quote(name)}")
        with self._lock:
            self._create(name)
        for entry in entries:
            if entry.is_dir() or not entry.name.lower().endswith(IMAGE_SUFFIXES):
                continue
            path = f"{relpath}/{entry.name}"
            log.debug("[nsetu] read %s", path)
            with Image.open(io.BytesIO(entry.read_bytes())) as image:
                image.load()
                key = difference_hash(image)
            log.debug("[nsetu] insert %s with id %d into %s", entry.name, key, name)
            with self._lock, self._db:
                self._db.execute(
                    f"REPLACE INTO {_quote(name)} (imgid, name, path) VALUES (?, ?, ?)",
                    (key, entry.name, path),
                )

    def pick(self, name: str) -> tuple[str, str]:
        """A random picture of a class, as its file name and path relative to the root."""
        try:
            with self._lock:
                row = self._db.execute(
                    f"SELECT name, path FROM {_quote(name)} ORDER BY RANDOM() LIMIT 1"
                ).fetchone()
        except sqlite3.OperationalError as exc:
            raise LookupError(f"no such class: {name}") from exc
        if row is None:
            raise LookupError(f"class {name} is empty")
        return row[0], row[1]

    def count(self, name: str) -> int:
        """How many pictures a class holds."""
        try:
            with self._lock:
                return self._db.execute(
                    f"SELECT COUNT(*) FROM {_quote(name)}"
                ).fetchone()[0]
        except sqlite3.OperationalError as exc:
            raise LookupError(f"no such class: {name}") from exc

    def summary(self) -> str:
        """The numbered list of classes with their sizes."""
        lines = ["所有本地setu分类"]
        for index, name in enumerate(self.classes()):
            try:
                lines.append(f"{index:02d}. {name}({self.count(name)})")
            except LookupError as exc:
                log.error("[nsetu] %s", exc)
                lines.append(f"{index:02d}. {name}(error)")
        return "\n".join(lines)

    def close(self) -> None:
        """Close the database."""
        self._db.close()