"""Hearthstone card search and deck image lookups."""

from __future__ import annotations

import json
import re
from typing import Optional

import requests

SITE = "https://hs.fbigame.com"
USER_AGENT = (
    "Mozilla/5.0 (Linux; Android 6.0; Nexus 5 Build/MRA58N) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/86.0.4240.198 Mobile Safari/537.36"
)
HS_API = "https://hs.fbigame.com/ajax.php?"
PARA = (
    "mod=get_cards_list&"
    "mode=-1&"
    "extend=-1&"
    "mutil_extend=&"
    "hero=-1&"
    "rarity=-1&"
    "cost=-1&"
    "mutil_cost=&"
    "techlevel=-1&"
    "type=-1&"
    "collectible=-1&"
    "isbacon=-1&"
    "page=1&"
    "search_type=1&"
    "deckmode=normal"
)
_HASH_MARK = 'var hash = "'
_DECK_CODE = re.compile(r"[\s\S]*?(AAE[a-zA-Z0-9/+=]{70,})[\s\S]*")


def extract_hash(page: str) -> str:
    """The page hash embedded in the site's front page."""
    _, found, rest = page.partition(_HASH_MARK)
    if not found:
        raise ValueError("no hash in page")
    return rest.split('"', 1)[0]


def card_search_url(page_hash: str, search: str) -> str:
    """The URL listing the cards that match ``search``."""
    return HS_API + PARA + "&hash=" + page_hash + "&search=" + search


def deck_image_url(page_hash: str, code: str) -> str:
    """The URL that renders the deck ``code`` as an image."""
    return (
        HS_API + PARA + "mod=general_deck_image&deck_code=" + code
        + "&deck_text=&hash=" + page_hash + "&search=" + code
    )


def find_deck_code(text: str) -> Optional[str]:
    """The deck code contained in a message, or None."""
    match = _DECK_CODE.fullmatch(text)
    return match.group(1) if match else None


def _request(session, url: str) -> str:
    client = session or requests
    response = client.get(
        url, headers={"Referer": SITE, "User-Agent": USER_AGENT}, timeout=30
    )
    if response.status_code != 200:
        raise RuntimeError(f"code {response.status_code}")
    return response.content.decode("utf-8", errors="replace")


def _json(text: str):
    try:
        return json.loads(text)
    except ValueError:
        return None


def search_cards(query: str, session=None) -> list[dict]:
    """The cards found for ``query``, each with its CardID and auth_key."""
    page_hash = extract_hash(_request(session, SITE))
    payload = _json(_request(session, card_search_url(page_hash, query)))
    if not isinstance(payload, dict) or not isinstance(payload.get("list"), list):
        return []
    return payload["list"]


def deck_image(code: str, session=None) -> str:
    """The rendered deck as a base64 image URI."""
    page_hash = extract_hash(_request(session, SITE))
    payload = _json(_request(session, deck_image_url(page_hash, code)))
    image = payload.get("img") if isinstance(payload, dict) else None
    return "base64://" + (image if isinstance(image, str) else "")