"""The "绝绝子" sentence generator client."""

from __future__ import annotations

import json

import requests

JUEJUEZI_URL = "https://www.offjuan.com/api/juejuezi/text"
REFERER = "https://juejuezi.offjuan.com/"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/96.0.4664.110 Safari/537.36"
)
KEYWORD = "绝绝子"


def strip_keyword(text: str) -> str:
    """The message with every "绝绝子" removed."""
    return text.replace(KEYWORD, "")


def request_body(verb: str, noun: str) -> str:
    """The JSON body sent to the generator, built verbatim."""
    return '{"verb":"%s","noun":"%s"}' % (verb, noun)


def juejuezi(verb: str, noun: str, session=None) -> str:
    """Generate a sentence for the verb and noun; empty if the reply has no text."""
    client = session or requests
    response = client.post(
        JUEJUEZI_URL,
        data=request_body(verb, noun).encode("utf-8"),
        headers={"Referer": REFERER, "User-Agent": USER_AGENT},
        timeout=30,
    )
    try:
        payload = json.loads(response.content)
    except ValueError:
        return ""
    if not isinstance(payload, dict):
        return ""
    text = payload.get("text")
    if text is None:
        return ""
    return text if isinstance(text, str) else json.dumps(text, ensure_ascii=False)