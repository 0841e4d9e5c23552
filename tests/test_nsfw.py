from zbplugin.nsfw import Picture, auto_judge, judge


def test_judge_neutral():
    assert judge(Picture(neutral=0.9)) == "普通哦"


def test_judge_drawing_with_tags():
    result = judge(Picture(drawings=0.5, neutral=0.1, hentai=0.6, porn=0.4))
    assert result.startswith("二次元")
    assert "hentai" in result and "porn" in result
    assert "hso" not in result


def test_judge_real_photo_at_threshold():
    result = judge(Picture(drawings=0.1, neutral=0.3, sexy=0.5))
    assert result.startswith("三次元")
    assert result.endswith(" hso")


def test_judge_low_neutral_counts_as_drawing():
    assert judge(Picture(drawings=0.0, neutral=0.1)).startswith("二次元")


def test_auto_judge_silent_cases():
    assert auto_judge(Picture(neutral=0.8, porn=0.9)) is None
    assert auto_judge(Picture(neutral=0.1, drawings=0.9)) is None


def test_auto_judge_remark():
    result = auto_judge(Picture(neutral=0.1, drawings=0.1, sexy=0.5))
    assert result is not None and result.startswith("三次元")
    assert result.endswith("hso")