"""Keyword search of illustrations and the text shown with a result."""

from __future__ import annotations

import json
import re
from urllib.parse import quote_plus

import requests

SEARCH_API = "https://api.pixivel.moe/v2/pixiv/illust/search/"
REFERER = "https://pixivel.moe/"
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/94.0.4606.61 Safari/537.36"
)
_HREF = re.compile(r'<a href=".*">')


def clean_description(text: str) -> str:
    """Strip the link markup from a description and turn breaks into newlines."""
    text = text.replace("<br />", "\n").replace("</a>", "")
    return _HREF.sub("", text)


def format_tags(tags) -> str:
    """One "#name (translation)" line per tag, each preceded by a newline."""
    parts = []
    for tag in tags:
        parts.append("\n#" + str(tag.get("name", "")))
        translation = tag.get("translation") or ""
        if translation:
            parts.append(f" ({translation})")
    return "".join(parts)


def search(keyword: str, session=None) -> list[dict]:
    """The illustrations found for ``keyword`` on the first result page."""
    client = session or requests
    url = SEARCH_API + quote_plus(keyword) + "?page=0"
    response = client.get(
        url, headers={"Referer": REFERER, "User-Agent": USER_AGENT}, timeout=30
    )
    if response.status_code != 200:
        raise RuntimeError(f"code {response.status_code}")
    try:
        payload = json.loads(response.content)
    except ValueError as exc:
        raise RuntimeError(f"invalid response: {exc}") from exc
    if not isinstance(payload, dict):
        raise RuntimeError("invalid response")
    if payload.get("error"):
        raise RuntimeError(str(payload.get("message", "")))
    data = payload.get("data") or {}
    illusts = data.get("illusts") if isinstance(data, dict) else None
    return list(illusts or [])


def format_illust(illust: dict, user_name: str, user_id) -> str:
    """The caption sent with an illustration."""
    return (
        f"{illust.get('width', 0)}x{illust.get('height', 0)}\n"
        f"标题: {illust.get('title', '')}\n"
        f"副标题: {illust.get('altTitle', '')}\n"
        f"ID: {illust.get('id', 0)}\n"
        f"画师: {user_name} ({user_id})\n"
        f"分级:{illust.get('sanity', 0)}\n"
        + clean_description(illust.get("description", "") or "")
        + format_tags(illust.get("tags") or [])
    )