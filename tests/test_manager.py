import random

import pytest

from zbplugin.manager import (
    ManagerStore,
    Welcome,
    ban_minutes,
    check_new_user,
    gist_url,
    make_challenge,
    parse_join_answer,
    pick_lucky,
    set_gist_flag,
    set_verify_flag,
    unescape_brackets,
    welcome_to_cq,
)


@pytest.fixture
def store(tmp_path):
    s = ManagerStore(tmp_path / "config.db")
    yield s
    s.close()


def test_welcome_round_trip(store):
    store.set_welcome(10, "hi {at}")
    assert store.get_welcome(10) == Welcome(10, "hi {at}")
    store.set_welcome(10, "bye")
    assert store.get_welcome(10).msg == "bye"
    assert store.get_welcome(11) is None


def test_farewell_separate_from_welcome(store):
    store.set_farewell(5, "see you")
    assert store.get_farewell(5).msg == "see you"
    assert store.get_welcome(5) is None


def test_members(store):
    assert store.has_member("octo") is False
    store.add_member(42, "octo")
    assert store.has_member("octo") is True


def test_ban_minutes_units():
    assert ban_minutes(3, "小时") == ban_minutes(180, "分钟")
    assert ban_minutes(2, "天") == ban_minutes(48, "h")
    assert ban_minutes(7, "whatever") == 7
    assert ban_minutes(100, "days") == 43199


def test_welcome_to_cq():
    out = welcome_to_cq("{at}{nickname}{uid}{gid}{groupname}", 123, "Nick", 456, "Grp")
    assert out == "[CQ:at,qq=123]Nick123456Grp"
    avatar = welcome_to_cq("{avatar}", 123, "n", 1, "g")
    assert avatar == "[CQ:image,file=http://q4.qlogo.cn/g?b=qq&nk=123&s=640]"


def test_unescape_brackets():
    assert unescape_brackets("&#91;CQ:face,id=1&#93;") == "[CQ:face,id=1]"


def test_verify_flag():
    on = set_verify_flag(0x10, "开启")
    assert on & 1 == 1
    assert set_verify_flag(on, "关闭") == 0x10
    with pytest.raises(ValueError):
        set_verify_flag(0, "maybe")


def test_gist_flag():
    assert set_gist_flag(0, "启用") == 0x10
    assert set_gist_flag(0x3, "禁用") == 0x1
    with pytest.raises(ValueError):
        set_gist_flag(0, "")


def test_pick_lucky_self_and_user():
    assert pick_lucky([{"user_id": 1, "last_sent_time": 0}], 1, 2) == "幸运儿居然是我自己"
    assert pick_lucky([{"user_id": 2, "last_sent_time": 0}], 1, 2) == "哎呀，就是你自己了"


def test_pick_lucky_name_fallback():
    card = pick_lucky([{"user_id": 3, "card": "C", "nickname": "N"}], 1, 2)
    assert card == "C 就是你啦！"
    nick = pick_lucky([{"user_id": 3, "card": "", "nickname": "N"}], 1, 2)
    assert nick == "N 就是你啦！"


def test_pick_lucky_only_recent():
    members = [{"user_id": 100 + i, "last_sent_time": i, "nickname": f"u{i}"}
               for i in range(11)]
    seen = {pick_lucky(members, 1, 2, random.Random(seed)) for seed in range(200)}
    assert "u0 就是你啦！" not in seen
    assert len(seen) > 1


def test_pick_lucky_empty():
    with pytest.raises(ValueError):
        pick_lucky([], 1, 2)


def test_make_challenge():
    rng = random.Random(7)
    for _ in range(50):
        a, b, total = make_challenge(rng)
        assert 0 <= a < 100 and 0 <= b < 100
        assert total == a + b


def test_parse_join_answer():
    assert parse_join_answer("问题：x\n答案：octo/abc123") == ("octo", "abc123")
    with pytest.raises(ValueError):
        parse_join_answer("答案：/abc")
    with pytest.raises(ValueError):
        parse_join_answer("答案：noslash")


def test_gist_url_shape():
    url = gist_url("octo", "abc", 1)
    prefix = "https://gist.githubusercontent.com/octo/abc/raw/"
    assert url.startswith(prefix)
    name = url[len(prefix):]
    assert len(name) == 32 and all(c in "0123456789abcdef" for c in name)
    assert gist_url("octo", "abc", 2) != url


def test_check_new_user_success(store):
    urls = []

    def fetch(url):
        urls.append(url)
        return b"1000"

    ok, reason = check_new_user(store, 9, 1, "octo", "abc", fetch, now=1100)
    assert (ok, reason) == (True, "")
    assert urls == [gist_url("octo", "abc", 1)]
    assert store.has_member("octo")
    assert check_new_user(store, 10, 1, "octo", "abc", fetch, now=1100) == (
        False, "该github用户已入群")


def test_check_new_user_timeout(store):
    ok, reason = check_new_user(store, 9, 1, "octo", "h", lambda u: b"1000", now=1600)
    assert (ok, reason) == (False, "时间戳超时")
    assert not store.has_member("octo")


def test_check_new_user_bad_format(store):
    ok, reason = check_new_user(store, 9, 1, "octo", "h", lambda u: b"abc", now=0)
    assert (ok, reason) == (False, "时间戳格式错误: abc")


def test_check_new_user_fetch_error(store):
    def fetch(url):
        raise OSError("down")

    ok, reason = check_new_user(store, 9, 1, "octo", "h", fetch, now=0)
    assert ok is False
    assert reason.startswith("无法连接到gist: ")