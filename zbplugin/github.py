"""Searching GitHub repositories and describing the best match."""

from __future__ import annotations

import json
import re
from typing import Optional

import requests

API = "https://api.github.com/search/repositories"
OPENGRAPH = "https://opengraph.githubassets.com/0/"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/88.0.4324.182 Safari/537.36"
)
_COMMAND = re.compile(r">github[\t\n\f\r ](-.{1,10}? )?(.*)")


def notnull(text: str, default: str) -> str:
    """``text``, or ``default`` when it is empty."""
    return text if text else default


def parse_command(text: str) -> Optional[tuple[str, str]]:
    """The option ("-p ", "-t " or "") and query of a search command, or None."""
    match = _COMMAND.fullmatch(text)
    if match is None:
        return None
    return match.group(1) or "", match.group(2)


def search_repo(query: str, session=None) -> dict:
    """The first repository found for ``query``."""
    client = session or requests
    response = client.get(
        API, params={"q": query}, headers={"User-Agent": USER_AGENT}, timeout=30
    )
    if response.status_code != 200:
        raise RuntimeError(f"code {response.status_code}")
    try:
        info = json.loads(response.content)
    except ValueError as exc:
        raise RuntimeError(f"invalid response: {exc}") from exc
    items = info.get("items") or [] if isinstance(info, dict) else []
    if not isinstance(info, dict) or not info.get("total_count") or not items:
        raise LookupError("没有找到这样的仓库")
    return items[0]


def _text(value) -> str:
    return value if isinstance(value, str) else ""


def _int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def format_repo(repo: dict) -> str:
    """A text summary of a repository."""
    license_info = repo.get("license") if isinstance(repo.get("license"), dict) else {}
    return (
        f"{_text(repo.get('full_name'))}\n"
        f"Description: {_text(repo.get('description'))}\n"
        f"Star/Fork/Issue: {_int(repo.get('watchers'))}/{_int(repo.get('forks'))}"
        f"/{_int(repo.get('open_issues'))}\n"
        f"Language: {notnull(_text(repo.get('language')), 'None')}\n"
        f"License: {notnull(_text(license_info.get('key')).upper(), 'None')}\n"
        f"Last pushed: {_text(repo.get('pushed_at'))}\n"
        f"Jump: {_text(repo.get('html_url'))}\n"
    )


def opengraph_url(full_name: str) -> str:
    """The preview card image of a repository."""
    return OPENGRAPH + full_name