import random
from unittest.mock import patch

import mido
import pytest

from zbplugin.midi import (
    ListeningQuiz,
    MidiSyntaxError,
    make_midi,
    midi_to_text,
    note_name,
    note_number,
    parse_note,
    random_target,
    render_wav,
    text_to_music,
    track_count,
    validate_timbre,
)


def test_note_number_default_octave():
    assert note_number(0, 5) == 60


def test_note_number_zero_octave_keeps_base():
    assert note_number(7, 0) == 7


def test_parse_note_names():
    assert parse_note("C") == 60
    assert parse_note("A") == 69
    assert parse_note("C#") == 61
    assert parse_note("Db") == 61
    assert parse_note("B") == 71


def test_parse_note_octaves_differ_by_twelve():
    assert parse_note("C5") - parse_note("C4") == 12
    assert parse_note("G6") - parse_note("G5") == 12


def test_note_name():
    assert note_name(61) == "Db"
    assert note_name(60) == "C"
    for n in range(40, 90):
        assert note_name(n + 12) == note_name(n)


def test_random_target_round_trip():
    for seed in range(50):
        target, answer = random_target(random.Random(seed))
        assert 55 <= target < 55 + 34
        assert answer == note_name(target) + str(target // 12)
        assert parse_note(answer) == target


@pytest.mark.parametrize("text", ["CDEFGAB", "C<1R<1D", "C6D4", "C<-1E<-2"])
def test_make_midi_round_trip(tmp_path, text):
    path = make_midi(tmp_path / "song.mid", text)
    assert midi_to_text(path.read_bytes(), 0) == text


def test_make_midi_ignores_spaces(tmp_path):
    a = make_midi(tmp_path / "a.mid", "C D E")
    assert midi_to_text(a.read_bytes(), 0) == "CDE"


def test_sharp_reads_back_as_flat(tmp_path):
    path = make_midi(tmp_path / "s.mid", "C#")
    assert midi_to_text(path.read_bytes(), 0) == "Db"


def test_make_midi_program_change(tmp_path):
    path = make_midi(tmp_path / "p.mid", "C", 40)
    midi = mido.MidiFile(str(path))
    programs = [m.program for m in midi.tracks[0] if m.type == "program_change"]
    assert programs == [40]
    assert midi.ticks_per_beat == 960


def test_make_midi_syntax_error(tmp_path):
    path = tmp_path / "bad.mid"
    with pytest.raises(MidiSyntaxError):
        make_midi(path, "CX")
    assert not path.exists()


def test_make_midi_keeps_existing_file(tmp_path):
    path = tmp_path / "old.mid"
    path.write_bytes(b"x")
    make_midi(path, "CDE")
    assert path.read_bytes() == b"x"


def test_track_count(tmp_path):
    path = make_midi(tmp_path / "t.mid", "CDE")
    assert track_count(path.read_bytes()) == 1


def test_track_count_invalid():
    with pytest.raises(ValueError):
        track_count(b"not a midi file")


def test_midi_to_text_missing_track(tmp_path):
    path = make_midi(tmp_path / "t.mid", "CDE")
    assert midi_to_text(path.read_bytes(), 5) == ""
    assert midi_to_text(b"garbage", 0) == ""


def test_render_wav_runs_timidity(tmp_path):
    midi_path = tmp_path / "x.mid"
    with patch("subprocess.run") as run:
        result = render_wav(midi_path)
    assert result == tmp_path / "x.wav"
    run.assert_called_once_with(
        ["timidity", str(midi_path), "-Ow", "-o", str(tmp_path / "x.wav")], check=True
    )


def test_text_to_music(tmp_path):
    midi_path = tmp_path / "y.mid"
    with patch("subprocess.run") as run:
        result = text_to_music("CDE", midi_path)
    assert result == tmp_path / "y.wav"
    assert run.call_count == 1
    assert midi_to_text(midi_path.read_bytes(), 0) == "CDE"


def test_validate_timbre():
    assert validate_timbre(0) == 0
    assert validate_timbre("127") == 127
    with pytest.raises(ValueError):
        validate_timbre(128)
    with pytest.raises(ValueError):
        validate_timbre(-1)


def test_quiz_correct_first_try():
    quiz = ListeningQuiz(rng=random.Random(3))
    solution = quiz.solution
    outcome, answered = quiz.answer(7, solution)
    assert (outcome, answered) == ("correct", solution)
    assert quiz.scores == {7: 1.0}
    assert quiz.round == 2
    assert quiz.errors == 0


def test_quiz_one_error_scores_half():
    quiz = ListeningQuiz(rng=random.Random(4))
    solution = quiz.solution
    assert quiz.answer(7, "C1")[0] == "wrong"
    assert quiz.errors == 1
    assert quiz.answer(7, solution)[0] == "correct"
    assert quiz.scores == {7: 0.5}


def test_quiz_personal_fails_after_three():
    quiz = ListeningQuiz(rng=random.Random(5))
    outcomes = [quiz.answer(7, "C1")[0] for _ in range(3)]
    assert outcomes == ["wrong", "wrong", "failed"]
    assert quiz.scores == {}
    assert quiz.round == 2


def test_quiz_team_allows_ten_errors():
    quiz = ListeningQuiz(team=True, rng=random.Random(6))
    solution = quiz.solution
    for _ in range(9):
        assert quiz.answer(1, "C1")[0] == "wrong"
    assert quiz.answer(2, solution)[0] == "correct"
    assert quiz.scores == {2: 1.0}


def test_quiz_team_fails_on_tenth_error():
    quiz = ListeningQuiz(team=True, rng=random.Random(6))
    outcomes = [quiz.answer(1, "C1")[0] for _ in range(10)]
    assert outcomes[-1] == "failed"
    assert outcomes[:-1] == ["wrong"] * 9
    assert quiz.scores == {}


def test_quiz_finishes_after_five_rounds():
    quiz = ListeningQuiz(rng=random.Random(8))
    for _ in range(5):
        assert not quiz.finished
        quiz.answer(1, quiz.solution)
    assert quiz.finished
    assert quiz.round == 6
    with pytest.raises(RuntimeError):
        quiz.answer(1, "C")


def test_score_lines():
    quiz = ListeningQuiz(rng=random.Random(9))
    quiz.answer(11, quiz.solution)
    assert quiz.score_lines({11: "alice"}) == "alice: 1.0\n"
    assert quiz.score_lines({}).startswith("11: ")