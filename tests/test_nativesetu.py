import pytest
from PIL import Image

from zbplugin.nativesetu import SetuLibrary, difference_hash


def _gradient(increasing=True):
    image = Image.new("RGB", (9, 8))
    for x in range(9):
        level = x * 30 if increasing else 240 - x * 30
        for y in range(8):
            image.putpixel((x, y), (level, level, level))
    return image


def test_hash_uniform_is_zero():
    assert difference_hash(Image.new("RGB", (20, 20), (100, 100, 100))) == 0


def test_hash_increasing_sets_every_bit():
    assert difference_hash(_gradient(True)) == -1


def test_hash_decreasing_sets_no_bit():
    assert difference_hash(_gradient(False)) == 0


def test_hash_is_stable():
    image = _gradient(True).rotate(45)
    assert difference_hash(image) == difference_hash(image.copy())


@pytest.fixture
def root(tmp_path):
    base = tmp_path / "pics"
    (base / "cats").mkdir(parents=True)
    (base / "dogs").mkdir()
    _gradient(True).save(base / "cats" / "a.png")
    _gradient(False).save(base / "cats" / "b.PNG")
    (base / "cats" / "notes.txt").write_text("not an image")
    Image.new("RGB", (10, 10), (1, 2, 3)).save(base / "dogs" / "c.jpg")
    return base


@pytest.fixture
def library(tmp_path):
    lib = SetuLibrary(tmp_path / "data.db")
    yield lib
    lib.close()


def test_scan_all(library, root):
    library.scan_all(root)
    assert library.classes() == ["cats", "dogs"]
    assert library.count("cats") == 2
    assert library.count("dogs") == 1
    name, path = library.pick("cats")
    assert name in ("a.png", "b.PNG")
    assert path == "cats/" + name


def test_summary(library, root):
    library.scan_all(root)
    assert library.summary() == "所有本地setu分类\n00. cats(2)\n01. dogs(1)"


def test_scan_class_refreshes(library, root):
    library.scan_all(root)
    (root / "dogs" / "c.jpg").unlink()
    library.scan_class(root, "dogs", "dogs")
    assert library.count("dogs") == 0
    with pytest.raises(LookupError):
        library.pick("dogs")


def test_unknown_class(library):
    with pytest.raises(LookupError):
        library.pick("birds")
    with pytest.raises(LookupError):
        library.count("birds")