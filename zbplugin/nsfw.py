"""Wording the classification scores of a picture."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

HSO_IMAGE = "https://gchat.qpic.cn/gchatpic_new//--4234EDEC5F147A4C319A41149D7E0EA9/0"
THRESHOLD = 0.3


@dataclass
class Picture:
    """Class probabilities of one picture."""

    drawings: float = 0.0
    hentai: float = 0.0
    neutral: float = 0.0
    porn: float = 0.0
    sexy: float = 0.0


def _tags(picture: Picture) -> list[str]:
    tags = []
    if picture.hentai > THRESHOLD:
        tags.append(" hentai")
    if picture.porn > THRESHOLD:
        tags.append(" porn")
    if picture.sexy > THRESHOLD:
        tags.append(" hso")
    return tags


def judge(picture: Picture) -> str:
    """The verdict given when someone asks for a rating."""
    if picture.neutral > THRESHOLD:
        return "普通哦"
    if picture.drawings > THRESHOLD or picture.neutral < THRESHOLD:
        verdict = "二次元"
    else:
        verdict = "三次元"
    return verdict + "".join(_tags(picture))


def auto_judge(picture: Picture) -> Optional[str]:
    """The unprompted remark on a picture, or None when it is harmless."""
    if picture.neutral > THRESHOLD:
        return None
    tags = _tags(picture)
    if not tags:
        return None
    verdict = "二次元" if picture.drawings > THRESHOLD else "三次元"
    return verdict + "".join(tags)