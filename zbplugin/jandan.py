"""A store of pictures collected from a picture board, and its updater."""

from __future__ import annotations

import logging
import re
import sqlite3
import threading
from typing import Callable, Optional

from lxml import html as lxml_html

log = logging.getLogger(__name__)

API = "http://jandan.net/pic"
_POLY = 0xD800000000000000
_MASK = (1 << 64) - 1
_DIGITS = re.compile(r"[0-9]+")

_CURRENT = "//*[@id='comments']/div[2]/div/span[@class='current-comment-page']/text()"
_PICTURES = "//*[@class='view_img_link']"
_PREVIOUS = (
    "//*[@id='comments']/div[@class='comments']/div[@class='cp-pagenavi']"
    "/a[@class='previous-comment-page']"
)


def _make_table() -> list[int]:
    table = []
    for i in range(256):
        crc = i
        for _ in range(8):
            crc = (crc >> 1) ^ _POLY if crc & 1 else crc >> 1
        table.append(crc)
    return table


_TABLE = _make_table()


def crc64_iso(data: bytes) -> int:
    """CRC-64 with the ISO polynomial, reflected, as an unsigned integer."""
    crc = _MASK
    for byte in data:
        crc = _TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ _MASK


def picture_id(url: str) -> int:
    """The id of a picture: the CRC-64 of its URL."""
    return crc64_iso(url.encode("utf-8"))


def _signed(value: int) -> int:
    return value - (1 << 64) if value >= 1 << 63 else value


class PictureStore:
    """Picture URLs kept in SQLite, keyed by :func:`picture_id`."""

    def __init__(self, db_path):
        self._lock = threading.RLock()
        self._db = sqlite3.connect(str(db_path), check_same_thread=False)
        with self._db:
            self._db.execute(
                "CREATE TABLE IF NOT EXISTS picture (id INTEGER PRIMARY KEY, url TEXT)"
            )

    def __enter__(self) -> "PictureStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def random_url(self) -> str:
        """A stored URL chosen at random."""
        with self._lock:
            row = self._db.execute(
                "SELECT url FROM picture ORDER BY RANDOM() LIMIT 1"
            ).fetchone()
        if row is None:
            raise LookupError("no pictures stored")
        return row[0]

    def contains(self, picture_id: int) -> bool:
        """Whether a picture with this id is stored."""
        with self._lock:
            row = self._db.execute(
                "SELECT 1 FROM picture WHERE id = ?", (_signed(picture_id),)
            ).fetchone()
        return row is not None

    def add(self, url: str) -> int:
        """Store a URL and return its id."""
        key = picture_id(url)
        with self._lock, self._db:
            self._db.execute(
                "REPLACE INTO picture (id, url) VALUES (?, ?)", (_signed(key), url)
            )
        return key

    def count(self) -> int:
        """How many pictures are stored."""
        with self._lock:
            return self._db.execute("SELECT COUNT(*) FROM picture").fetchone()[0]

    def close(self) -> None:
        """Close the database."""
        self._db.close()


def parse_page(html: str) -> tuple[Optional[int], list[str], Optional[str]]:
    """Read a board page.

    Returns the current page number (None if absent), the first attribute
    of every picture link, and the second attribute of the link to the
    previous page (None if absent).
    """
    doc = lxml_html.document_fromstring(html)
    current = None
    texts = doc.xpath(_CURRENT)
    if texts:
        match = _DIGITS.search(str(texts[0]))
        if match:
            current = int(match.group())
    pictures = [
        list(el.attrib.values())[0] for el in doc.xpath(_PICTURES) if len(el.attrib)
    ]
    previous = None
    links = doc.xpath(_PREVIOUS)
    if links:
        values = list(links[0].attrib.values())
        if len(values) > 1:
            previous = values[1]
    return current, pictures, previous


def _default_fetch(url: str) -> str:
    import requests

    response = requests.get(url, timeout=30)
    response.raise_for_status()
    return response.text


def update(store: PictureStore, fetch: Optional[Callable[[str], str]] = None) -> int:
    """Walk back through the board adding new pictures; stop at the first known one.

    Returns how many pictures were added.
    """
    fetch = fetch or _default_fetch
    url = API
    total, _, _ = parse_page(fetch(url))
    if total is None:
        raise ValueError("page number not found")
    added = 0
    for i in range(total):
        log.debug("[jandan] 处理第%d/%d页...", i, total)
        _, pictures, previous = parse_page(fetch(url))
        for href in pictures:
            full = "https:" + href
            if store.contains(picture_id(full)):
                return added
            store.add(full)
            added += 1
        if i != total - 1:
            if previous is None:
                raise ValueError("previous page link not found")
            url = "https:" + previous
    return added