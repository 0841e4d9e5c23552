"""Group management helpers: greetings, mute lengths, flags and gist checks."""

from __future__ import annotations

import hashlib
import logging
import random
import re
import sqlite3
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

log = logging.getLogger(__name__)

GIST_RAW = "https://gist.githubusercontent.com/{}/{}/raw/{}"
MAX_BAN_MINUTES = 43199  # a month is the longest a mute may last
GIST_WINDOW = 600

_MINUTE_UNITS = {"分钟", "min", "mins", "m"}
_HOUR_UNITS = {"小时", "hour", "hours", "h"}
_DAY_UNITS = {"天", "day", "days", "d"}
_ENABLE = {"开启", "打开", "启用"}
_DISABLE = {"关闭", "关掉", "禁用"}
_ANSWER_MARK = "答案："
_INT_RE = re.compile(r"[+-]?[0-9]+")


@dataclass
class Welcome:
    """A greeting or farewell template for one group."""

    group_id: int
    msg: str


@dataclass
class Member:
    """A group member admitted through a gist check."""

    qq: int
    ghun: str


class ManagerStore:
    """SQLite storage for welcome and farewell texts and admitted members."""

    def __init__(self, db_path):
        self._db = sqlite3.connect(str(db_path), check_same_thread=False)
        with self._db:
            for table in ("welcome", "farewell"):
                self._db.execute(
                    f"CREATE TABLE IF NOT EXISTS {table} (gid INTEGER PRIMARY KEY, msg TEXT)"
                )
            self._db.execute(
                "CREATE TABLE IF NOT EXISTS member (qq INTEGER PRIMARY KEY, ghun TEXT)"
            )

    def __enter__(self) -> "ManagerStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _set(self, table: str, group_id: int, text: str) -> None:
        with self._db:
            self._db.execute(
                f"REPLACE INTO {table} (gid, msg) VALUES (?, ?)", (group_id, text)
            )

    def _get(self, table: str, group_id: int) -> Optional[Welcome]:
        row = self._db.execute(
            f"SELECT gid, msg FROM {table} WHERE gid = ?", (group_id,)
        ).fetchone()
        return Welcome(*row) if row else None

    def set_welcome(self, group_id: int, text: str) -> None:
        """Store the group's welcome template, replacing an older one."""
        self._set("welcome", group_id, text)

    def get_welcome(self, group_id: int) -> Optional[Welcome]:
        """The group's welcome template, or None."""
        return self._get("welcome", group_id)

    def set_farewell(self, group_id: int, text: str) -> None:
        """Store the group's farewell template, replacing an older one."""
        self._set("farewell", group_id, text)

    def get_farewell(self, group_id: int) -> Optional[Welcome]:
        """The group's farewell template, or None."""
        return self._get("farewell", group_id)

    def has_member(self, ghun: str) -> bool:
        """Whether a member with this GitHub user name was already admitted."""
        row = self._db.execute(
            "SELECT 1 FROM member WHERE ghun = ? LIMIT 1", (ghun,)
        ).fetchone()
        return row is not None

    def add_member(self, qq: int, ghun: str) -> None:
        """Record an admitted member."""
        with self._db:
            self._db.execute("REPLACE INTO member (qq, ghun) VALUES (?, ?)", (qq, ghun))

    def close(self) -> None:
        """Close the database."""
        self._db.close()


def ban_minutes(amount: int, unit: str) -> int:
    """Length of a mute in minutes; unknown units mean minutes, capped at a month."""
    if unit in _HOUR_UNITS:
        amount *= 60
    elif unit in _DAY_UNITS:
        amount *= 60 * 24
    return min(amount, MAX_BAN_MINUTES)


def welcome_to_cq(template: str, user_id: int, nickname: str, group_id: int,
                  group_name: str) -> str:
    """Fill the placeholders of a greeting template with CQ codes and values."""
    uid = str(user_id)
    replacements = (
        ("{at}", f"[CQ:at,qq={uid}]"),
        ("{nickname}", nickname),
        ("{avatar}", f"[CQ:image,file=http://q4.qlogo.cn/g?b=qq&nk={uid}&s=640]"),
        ("{uid}", uid),
        ("{gid}", str(group_id)),
        ("{groupname}", group_name),
    )
    for key, value in replacements:
        template = template.replace(key, value)
    return template


def unescape_brackets(content: str) -> str:
    """Turn escaped CQ brackets back into plain ones."""
    return content.replace("&#91;", "[").replace("&#93;", "]")


def _apply_option(data: int, option: str, set_mask: int, keep_mask: int) -> int:
    if option in _ENABLE:
        return data | set_mask
    if option in _DISABLE:
        return data & keep_mask
    raise ValueError(f"unknown option: {option}")


def set_verify_flag(data: int, option: str) -> int:
    """Switch the join-quiz bit of a group's plugin data on or off."""
    return _apply_option(data, option, 0x1, 0x7FFFFFFF_FFFFFFFE)


def set_gist_flag(data: int, option: str) -> int:
    """Switch the gist auto-approval bit of a group's plugin data on or off."""
    return _apply_option(data, option, 0x10, 0x7FFFFFFF_FFFFFFFD)


def pick_lucky(members: Sequence[dict], self_id: int, user_id: int,
               rng: random.Random | None = None) -> str:
    """Pick one of the ten most recent speakers and word the announcement."""
    if not members:
        raise ValueError("no members to pick from")
    rng = rng or random.Random()
    recent = sorted(members, key=lambda m: m.get("last_sent_time", 0))[-10:]
    who = recent[rng.randrange(len(recent))]
    if who.get("user_id") == self_id:
        return "幸运儿居然是我自己"
    if who.get("user_id") == user_id:
        return "哎呀，就是你自己了"
    nick = who.get("card") or who.get("nickname", "")
    return f"{nick} 就是你啦！"


def make_challenge(rng: random.Random | None = None) -> tuple[int, int, int]:
    """Two addends below 100 and their sum, for the join quiz."""
    rng = rng or random.Random()
    a = rng.randrange(100)
    b = rng.randrange(100)
    return a, b, a + b


def parse_join_answer(comment: str) -> tuple[str, str]:
    """Split the "username/gisthash" answer out of a join request comment."""
    raw = comment.encode("utf-8")
    mark = _ANSWER_MARK.encode("utf-8")
    start = raw.find(mark) + len(mark)
    answer = raw[start:].decode("utf-8", errors="replace")
    divider = answer.find("/")
    if divider <= 0:
        raise ValueError("格式错误!")
    return answer[:divider], answer[divider + 1:]


def gist_url(ghun: str, gist_hash: str, group_id: int) -> str:
    """Raw URL of the gist file named by the md5 of the group id."""
    name = hashlib.md5(str(group_id).encode("ascii")).hexdigest()
    return GIST_RAW.format(ghun, gist_hash, name)


def _default_fetch(url: str) -> bytes:
    import requests

    response = requests.get(url, timeout=30)
    response.raise_for_status()
    return response.content


def check_new_user(store: ManagerStore, qq: int, group_id: int, ghun: str,
                   gist_hash: str, fetch: Callable[[str], bytes] | None = None,
                   now: float | None = None) -> tuple[bool, str]:
    """Check a join request against its gist; admit and record the user on success.

    Returns whether the user passes and, if not, the reason.
    """
    if store.has_member(ghun):
        return False, "该github用户已入群"
    url = gist_url(ghun, gist_hash, group_id)
    log.debug("[gist]visit url: %s", url)
    try:
        data = (fetch or _default_fetch)(url)
    except Exception as exc:  # any failure to reach the gist is reported back
        return False, f"无法连接到gist: {exc}"
    text = data.decode("utf-8", errors="replace")
    log.debug("[gist]get data: %s", text)
    if not _INT_RE.fullmatch(text):
        return False, "时间戳格式错误: " + text
    stamp = int(text)
    current = int(time.time() if now is None else now)
    if abs(current - stamp) < GIST_WINDOW:
        store.add_member(qq, ghun)
        return True, ""
    return False, "时间戳超时"