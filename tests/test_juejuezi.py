import json

from zbplugin.juejuezi import (
    JUEJUEZI_URL,
    REFERER,
    USER_AGENT,
    juejuezi,
    request_body,
    strip_keyword,
)


class _Response:
    def __init__(self, content):
        self.content = content


class _Session:
    def __init__(self, content):
        self.content = content
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return _Response(self.content)


def test_strip_keyword():
    assert strip_keyword("喝奶茶绝绝子") == "喝奶茶"
    assert strip_keyword("绝绝子吃饭") == "吃饭"
    assert strip_keyword("绝绝子") == ""


def test_request_body_is_json():
    body = request_body("喝", "奶茶")
    assert body == '{"verb":"喝","noun":"奶茶"}'
    assert json.loads(body) == {"verb": "喝", "noun": "奶茶"}


def test_juejuezi_returns_text_and_sends_headers():
    session = _Session(json.dumps({"text": "generated"}).encode("utf-8"))
    assert juejuezi("喝", "奶茶", session) == "generated"
    url, kwargs = session.calls[0]
    assert url == JUEJUEZI_URL
    assert kwargs["headers"] == {"Referer": REFERER, "User-Agent": USER_AGENT}
    assert kwargs["data"].decode("utf-8") == request_body("喝", "奶茶")


def test_juejuezi_missing_text():
    assert juejuezi("a", "b", _Session(b"{}")) == ""
    assert juejuezi("a", "b", _Session(b"oops")) == ""