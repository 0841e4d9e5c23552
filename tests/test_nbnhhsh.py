import json

from zbplugin.nbnhhsh import GUESS_URL, format_reply, guess, parse_guess


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


def test_parse_guess_trans():
    payload = json.dumps([{"name": "yyds", "trans": ["永远的神", "永远单身"]}])
    assert parse_guess(payload) == ["永远的神", "永远单身"]


def test_parse_guess_inputting_fallback():
    payload = json.dumps([{"name": "abc", "inputting": ["alpha"]}]).encode("utf-8")
    assert parse_guess(payload) == ["alpha"]


def test_parse_guess_trans_wins_over_inputting():
    payload = [{"trans": ["one"], "inputting": ["two"]}]
    assert parse_guess(payload) == ["one"]


def test_parse_guess_empty_and_invalid():
    assert parse_guess("[]") == []
    assert parse_guess("not json") == []
    assert parse_guess('[{"name": "x"}]') == []


def test_guess_posts_form():
    body = json.dumps([{"name": "xswl", "trans": ["笑死我了"]}]).encode("utf-8")
    session = _Session(body)
    assert guess("xswl", session) == ["笑死我了"]
    url, kwargs = session.calls[0]
    assert url == GUESS_URL
    assert kwargs["data"] == {"text": "xswl"}


def test_format_reply():
    assert format_reply("yyds", ["a", "b"]) == "yyds: a, b"
    assert format_reply("q", []) == "q: "