from datetime import date

import pytest

from zbplugin.nativewife import (
    WifeAlbum,
    can_add_wife,
    clean_wife_name,
    everyone_flag,
    group_folder_name,
    pick_wife,
)


def test_group_folder_name():
    assert group_folder_name(35) == "z"
    assert group_folder_name(36) == "10"
    assert group_folder_name(-36) == "-10"


def test_group_folder_name_round_trip():
    for gid in (1, 123456789, 987654321012):
        assert int(group_folder_name(gid), 36) == gid


def test_clean_wife_name():
    assert clean_wife_name("添加wife 小 明/\\", "添加wife") == "小明"


def test_clean_wife_name_uses_last_keyword():
    assert clean_wife_name("删除wife删除wifeabc", "删除wife") == "abc"


def test_pick_wife_is_stable_for_a_day():
    names = ["a", "b", "c", "d", "e"]
    day = date(2022, 6, 1)
    first = pick_wife(names, "nick", day)
    assert first in names
    assert all(pick_wife(names, "nick", day) == first for _ in range(5))


def test_pick_wife_single_and_empty():
    assert pick_wife(["only"], "nick") == "only"
    with pytest.raises(LookupError):
        pick_wife([], "nick")


def test_can_add_wife():
    assert can_add_wife(1, False) is True
    assert can_add_wife(0, True) is True
    assert can_add_wife(2, False) is False


def test_everyone_flag():
    assert [everyone_flag(o) for o in ("让", "授予", "不让", "撤销", "别的")] == [1, 1, 0, 0, None]


def test_album_add_draw_remove(tmp_path):
    album = WifeAlbum(tmp_path)
    path = album.add(36, "alice", b"data")
    assert path == tmp_path / group_folder_name(36) / "alice"
    assert path.read_bytes() == b"data"
    album.add(36, "bob", b"x")
    assert album.wives(36) == ["alice", "bob"]
    name, drawn = album.draw(36, "nick", date(2022, 1, 1))
    assert name in ("alice", "bob")
    assert drawn.exists()
    album.remove(36, "alice")
    assert album.wives(36) == ["bob"]


def test_album_errors(tmp_path):
    album = WifeAlbum(tmp_path)
    assert album.wives(1) == []
    with pytest.raises(LookupError):
        album.draw(1, "nick")
    with pytest.raises(ValueError):
        album.add(1, "/", b"x")
    with pytest.raises(FileNotFoundError):
        album.remove(1, "ghost")