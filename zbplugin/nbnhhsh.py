"""Guessing what a pinyin-initial abbreviation stands for."""

from __future__ import annotations

import json
import re

import requests

GUESS_URL = "https://lab.magiconch.com/api/nbnhhsh/guess"
COMMAND = re.compile(r"^[?？]{1,2} ?([a-z0-9]+)$")


def _as_text(value) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return json.dumps(value, ensure_ascii=False)


def parse_guess(payload) -> list[str]:
    """The meanings in a guess response: "trans" if present, else "inputting"."""
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError:
            return []
    if not isinstance(payload, list) or not payload or not isinstance(payload[0], dict):
        return []
    first = payload[0]
    values = first["trans"] if "trans" in first else first.get("inputting")
    if values is None:
        return []
    if isinstance(values, list):
        return [_as_text(v) for v in values]
    return [_as_text(values)]


def guess(text: str, session=None) -> list[str]:
    """Ask the guessing service for the meanings of ``text``."""
    client = session or requests
    response = client.post(GUESS_URL, data={"text": text}, timeout=30)
    return parse_guess(response.content)


def format_reply(keyword: str, values) -> str:
    """The reply line listing the meanings of ``keyword``."""
    return keyword + ": " + ", ".join(values)