"""The Ogura Hyakunin Isshu: one hundred poems by one hundred poets."""

from __future__ import annotations

import csv
import random
import re
from dataclasses import dataclass, fields
from typing import Optional

BED = "https://gitcode.net/u011570312/OguraHyakuninIsshu/-/raw/master/"
CSV_URL = BED + "小倉百人一首.csv"
POEM_COUNT = 100

_REQUEST = re.compile("百人一首之[\t\n\f\r ]?([0-9]+)")
_LABELS = ("番号", "歌人", "上の句", "下の句", "上の句ひらがな", "下の句ひらがな")
_MARKS = ("●", "◉", "○", "○", "◎", "◎")


@dataclass(frozen=True)
class Poem:
    """One poem: its number, poet, and upper and lower verses with their readings."""

    number: str
    poet: str
    kami: str
    shimo: str
    kami_kana: str
    shimo_kana: str

    def __str__(self) -> str:
        values = [getattr(self, f.name) for f in fields(self)]
        return "".join(
            f"{mark}{label}：{value}\n" for mark, label, value in zip(_MARKS, _LABELS, values)
        )


def load_poems(path) -> list[Poem]:
    """Read the hundred poems from the CSV file, checking its shape and numbering."""
    with open(path, newline="", encoding="utf-8-sig") as handle:
        records = list(csv.reader(handle))[1:]  # skip the title row
    if len(records) != POEM_COUNT:
        raise ValueError("invalid csvfile")
    poems = []
    for index, record in enumerate(records):
        if len(record) != 6:
            raise ValueError("invalid csvfile")
        if int(record[0]) - 1 != index:
            raise ValueError("invalid csvfile")
        poems.append(Poem(*record))
    return poems


def image_urls(number: int) -> tuple[str, str]:
    """The card picture and the calligraphy picture of poem ``number``."""
    return f"{BED}img/{number:03d}.jpg", f"{BED}img/{number:03d}.png"


def parse_request(text: str) -> Optional[int]:
    """The poem number a message asks for, a random one for "百人一首", else None."""
    if text == "百人一首":
        return random.randint(1, POEM_COUNT)
    match = _REQUEST.fullmatch(text)
    if match is None:
        return None
    number = int(match.group(1))
    if number < 1 or number > POEM_COUNT:
        raise ValueError("超出范围")
    return number