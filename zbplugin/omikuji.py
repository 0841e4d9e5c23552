"""Drawing fortune slips of the Senso-ji temple and reading their explanations."""

from __future__ import annotations

import random
import sqlite3
from datetime import date
from typing import Optional

BED = "https://gitcode.net/u011570312/senso-ji-omikuji/-/raw/main/{}_{}.jpg"
SLIP_COUNT = 100


class KujiStore:
    """The explanations of the slips, kept in SQLite."""

    def __init__(self, db_path):
        self._db = sqlite3.connect(str(db_path), check_same_thread=False)
        with self._db:
            self._db.execute("CREATE TABLE IF NOT EXISTS kuji (id INTEGER PRIMARY KEY, text TEXT)")

    def __enter__(self) -> "KujiStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def get(self, number: int) -> str:
        """The explanation of slip ``number``."""
        row = self._db.execute("SELECT text FROM kuji WHERE id = ?", (number,)).fetchone()
        if row is None:
            raise LookupError(f"no kuji numbered {number}")
        return row[0]

    def count(self) -> int:
        """How many explanations are stored."""
        return self._db.execute("SELECT COUNT(*) FROM kuji").fetchone()[0]

    def close(self) -> None:
        """Close the database."""
        self._db.close()


def image_urls(number: int) -> tuple[str, str]:
    """The front and back pictures of slip ``number``."""
    return BED.format(number, 0), BED.format(number, 1)


def draw_number(user_id: int, today: Optional[date] = None) -> int:
    """The slip a user draws today, from 1 to 100; the same all day long."""
    if today is None:
        today = date.today()
    rng = random.Random(f"{user_id}-{today.isoformat()}")
    return rng.randrange(SLIP_COUNT) + 1