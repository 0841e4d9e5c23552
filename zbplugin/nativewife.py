"""Per-group albums of "wife" pictures and the daily draw from them."""

from __future__ import annotations

import hashlib
import random
from datetime import date
from pathlib import Path
from typing import Optional, Sequence

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_ALLOW = {"设置", "授予", "让"}
_DENY = {"取消", "撤销", "不让"}


def group_folder_name(group_id: int) -> str:
    """The group id written in base 36, the name of its album folder."""
    if group_id == 0:
        return "0"
    sign = "-" if group_id < 0 else ""
    value = abs(group_id)
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return sign + "".join(reversed(digits))


def clean_wife_name(text: str, keyword: str) -> str:
    """The name following the last ``keyword`` in a message, without spaces or slashes."""
    raw = text.replace(" ", "").encode("utf-8")
    start = raw.rfind(keyword.encode("utf-8")) + len(keyword.encode("utf-8"))
    name = raw[start:].decode("utf-8", errors="ignore")
    return name.replace("/", "").replace("\\", "")


def pick_wife(names: Sequence[str], nickname: str, today: Optional[date] = None) -> str:
    """The wife of ``nickname`` for today: fixed for the day, by name and date."""
    if not names:
        raise LookupError("一个wife也没有哦~")
    if len(names) == 1:
        return names[0]
    if today is None:
        today = date.today()
    key = f"{nickname}{today.year}{today.month}{today.day}".encode("utf-8")
    seed = int.from_bytes(hashlib.md5(key).digest()[:8], "little", signed=True)
    return names[random.Random(seed).randrange(len(names))]


def can_add_wife(flags: int, is_admin: bool) -> bool:
    """Whether a member may add wives: everyone if the group allows it, else admins."""
    return flags & 1 == 1 or bool(is_admin)


def everyone_flag(option: str) -> Optional[int]:
    """The group flag an option sets: 1 to let everyone add, 0 to forbid, None to leave it."""
    if option in _ALLOW:
        return 1
    if option in _DENY:
        return 0
    return None


def _clean(name: str) -> str:
    name = name.replace("/", "").replace("\\", "")
    if not name:
        raise ValueError("没有找到wife的名字！")
    return name


class WifeAlbum:
    """Wife pictures stored as files in one folder per group."""

    def __init__(self, base):
        self.base = Path(base)

    def _folder(self, group_id: int) -> Path:
        return self.base / group_folder_name(group_id)

    def wives(self, group_id: int) -> list[str]:
        """The names of a group's wives, sorted; empty when there is no album."""
        folder = self._folder(group_id)
        if not folder.is_dir():
            return []
        return sorted(entry.name for entry in folder.iterdir())

    def add(self, group_id: int, name: str, data: bytes) -> Path:
        """Store a picture under ``name`` in the group's album."""
        name = _clean(name)
        folder = self._folder(group_id)
        folder.mkdir(parents=True, exist_ok=True)
        path = folder / name
        path.write_bytes(data)
        return path

    def remove(self, group_id: int, name: str) -> None:
        """Delete a wife from the group's album."""
        (self._folder(group_id) / _clean(name)).unlink()

    def draw(self, group_id: int, nickname: str,
             today: Optional[date] = None) -> tuple[str, Path]:
        """Today's wife of ``nickname`` in the group, as her name and picture path."""
        name = pick_wife(self.wives(group_id), nickname, today)
        return name, self._folder(group_id) / name