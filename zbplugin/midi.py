"""Note strings to MIDI and back, WAV rendering and an ear-training quiz."""

from __future__ import annotations

import io
import math
import random
import re
import subprocess
from pathlib import Path
from typing import Mapping, Optional

import mido

TICKS_PER_QUARTER = 960
DEFAULT_TIMBRE = 40
VELOCITY = 120
TEMPO_BPM = 72

NOTE_MAP = {
    "C": 60,
    "Db": 61,
    "D": 62,
    "Eb": 63,
    "E": 64,
    "F": 65,
    "Gb": 66,
    "G": 67,
    "Ab": 68,
    "A": 69,
    "Bb": 70,
    "B": 71,
}
_NAME_BY_CLASS = {value % 12: key for key, value in NOTE_MAP.items()}
_LENGTH_RE = re.compile(r"-?[0-9]+")
_DIGITS = "0123456789"


class MidiSyntaxError(ValueError):
    """A note string holds a character that cannot be parsed."""

    def __init__(self, position: int, char: str):
        super().__init__(f"无法解析第{position}个位置的{char}字符")
        self.position = position
        self.char = char


def note_number(base: int, octave: int) -> int:
    """MIDI note of pitch class ``base`` in ``octave``, with byte arithmetic."""
    octave = min(octave, 10)
    if octave == 0:
        return base
    result = (base + 12 * octave) & 0xFF
    if result > 127:
        result -= 12
    return result


def note_name(n: int) -> str:
    """Name of the pitch class of note ``n``, flats for black keys."""
    return _NAME_BY_CLASS.get(n % 12, "")


def parse_note(text: str) -> int:
    """The MIDI note named by a short answer such as "C#6"; unknown characters are ignored."""
    base = 0
    level = 0
    for ch in text.replace(" ", ""):
        if "A" <= ch <= "G":
            base = NOTE_MAP[ch] % 12
        elif ch == "b":
            base = (base - 1) & 0xFF
        elif ch == "#":
            base = (base + 1) & 0xFF
        elif ch in _DIGITS:
            level = (level * 10 + int(ch)) & 0xFF
    if level == 0:
        level = 5
    return note_number(base, level)


def random_target(rng: Optional[random.Random] = None) -> tuple[int, str]:
    """A random note for the quiz and the text that names it."""
    rng = rng or random.Random()
    target = 55 + rng.randrange(34)
    return target, note_name(target) + str(target // 12)


def _ticks(length: int) -> int:
    """Ticks of a note lasting 2**length quarters, in 32-bit arithmetic."""
    if length >= 0:
        factor = (1 << length) if length < 32 else 0
        return (TICKS_PER_QUARTER * factor) & 0xFFFFFFFF
    shift = -length
    if shift >= 32:
        raise ValueError(f"note length out of range: {length}")
    return TICKS_PER_QUARTER // (1 << shift)


def _build_track(text: str, program: int) -> mido.MidiTrack:
    track = mido.MidiTrack()
    track.append(mido.MetaMessage("time_signature", numerator=4, denominator=4, time=0))
    track.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(TEMPO_BPM), time=0))
    track.append(mido.MetaMessage("instrument_name", name="Violin", time=0))
    track.append(mido.Message("program_change", channel=0, program=program, time=0))

    k = text.replace(" ", "")
    i = 0
    delay = 0
    while i < len(k):
        base = 0
        level = 0
        rest = False
        digits = ""
        while True:
            ch = k[i]
            if ch == "R":
                rest = True
                i += 1
            elif "A" <= ch <= "G":
                base = NOTE_MAP[ch] % 12
                i += 1
            elif ch == "b":
                base = (base - 1) & 0xFF
                i += 1
            elif ch == "#":
                base = (base + 1) & 0xFF
                i += 1
            elif ch in _DIGITS:
                level = (level * 10 + int(ch)) & 0xFF
                i += 1
            elif ch == "<":
                i += 1
                while i < len(k) and (k[i] == "-" or k[i] in _DIGITS):
                    digits += k[i]
                    i += 1
            else:
                raise MidiSyntaxError(i, ch)
            if i >= len(k) or "A" <= k[i] <= "G" or k[i] == "R":
                break
        length = int(digits) if _LENGTH_RE.fullmatch(digits) else 0
        if rest:
            delay = _ticks(length)
            continue
        if level == 0:
            level = 5
        note = note_number(base, level)
        track.append(mido.Message("note_on", channel=0, note=note, velocity=VELOCITY, time=delay))
        track.append(mido.Message("note_off", channel=0, note=note, velocity=0,
                                  time=_ticks(length)))
        delay = 0
    track.append(mido.MetaMessage("end_of_track", time=0))
    return track


def make_midi(path, text: str, program: int = DEFAULT_TIMBRE) -> Path:
    """Write the note string to a MIDI file; an existing file is left as it is."""
    path = Path(path)
    if path.exists():
        return path
    track = _build_track(text, program)
    midi = mido.MidiFile(type=1, ticks_per_beat=TICKS_PER_QUARTER)
    midi.tracks.append(track)
    midi.save(str(path))
    return path


def _read(data: bytes) -> mido.MidiFile:
    try:
        return mido.MidiFile(file=io.BytesIO(data))
    except (OSError, EOFError, ValueError, KeyError, IndexError) as exc:
        raise ValueError(f"invalid midi data: {exc}") from exc


def track_count(data: bytes) -> int:
    """Number of tracks in a MIDI file."""
    return len(_read(data).tracks)


def _round(x: float) -> int:
    """Round half away from zero."""
    return int(math.copysign(math.floor(abs(x) + 0.5), x))


def _power(length: float) -> Optional[int]:
    if length <= 0:
        return None
    return _round(math.log2(length))


def midi_to_text(data: bytes, track: int) -> str:
    """Turn one track of a MIDI file back into a note string."""
    try:
        midi = _read(data)
    except ValueError:
        return ""
    if not 0 <= track < len(midi.tracks):
        return ""
    out: list[str] = []
    ticks = 0
    start = end = 0.0
    start_note = end_note = 0
    for msg in midi.tracks[track]:
        ticks += msg.time
        if msg.is_meta:
            continue
        is_on = msg.type == "note_on" and msg.velocity > 0
        is_off = msg.type == "note_off" or (msg.type == "note_on" and msg.velocity == 0)
        if is_on:
            start = float(ticks)
            start_note = msg.note
        if is_off:
            end = float(ticks)
            end_note = msg.note
            if start_note == end_note:
                out.append(note_name(msg.note))
                level = msg.note // 12
                if level != 5:
                    out.append(str(level))
                power = _power((end - start) / TICKS_PER_QUARTER)
                if power is not None and power >= -4 and power != 0:
                    out.append(f"<{power}")
                start_note = end_note = 0
        if is_on and start > end:
            power = _power((start - end) / TICKS_PER_QUARTER)
            if power == 0:
                out.append("R")
            elif power is not None and power >= -4:
                out.append(f"R<{power}")
    return "".join(out)


def render_wav(midi_path) -> Path:
    """Render a MIDI file to WAV with timidity and return the WAV path."""
    midi_path = str(midi_path)
    wav_path = midi_path.replace(".mid", ".wav")
    subprocess.run(["timidity", midi_path, "-Ow", "-o", wav_path], check=True)
    return Path(wav_path)


def text_to_music(text: str, midi_path, program: int = DEFAULT_TIMBRE) -> Path:
    """Write the note string as MIDI and render it to WAV."""
    make_midi(midi_path, text, program)
    return render_wav(midi_path)


def validate_timbre(timbre) -> int:
    """Check an instrument number, which must lie in 0-127."""
    value = int(timbre)
    if value < 0 or value > 127:
        raise ValueError("音色应该在0~127之间")
    return value


class ListeningQuiz:
    """Five rounds of naming a played note, alone or as a group.

    Alone, three wrong answers end a round and fewer errors score more;
    as a team, ten wrong answers end a round and any correct answer scores one.
    """

    max_round = 6

    def __init__(self, team: bool = False, rng: Optional[random.Random] = None):
        self.team = team
        self.max_errors = 10 if team else 3
        self.round = 1
        self.errors = 0
        self.scores: dict[int, float] = {}
        self._rng = rng or random.Random()
        self.target, self.solution = random_target(self._rng)

    @property
    def finished(self) -> bool:
        """Whether all rounds have been played."""
        return self.round == self.max_round

    def _award(self, user_id: int) -> None:
        if self.team:
            if self.errors != self.max_errors:
                self.scores[user_id] = self.scores.get(user_id, 0.0) + 1.0
            return
        points = {0: 1.0, 1: 0.5, 2: 0.2}.get(self.errors)
        if points is not None:
            self.scores[user_id] = self.scores.get(user_id, 0.0) + points

    def answer(self, user_id: int, text: str) -> tuple[str, str]:
        """Judge an answer.

        Returns the outcome ("correct", "wrong" or "failed") and the solution
        of the question that was answered.  After "correct" or "failed" the
        next question, if any, is already set.
        """
        if self.finished:
            raise RuntimeError("the quiz is over")
        solution = self.solution
        hit = parse_note(text) == self.target
        if not hit:
            self.errors += 1
        if not hit and self.errors != self.max_errors:
            return "wrong", solution
        self._award(user_id)
        self.round += 1
        if not self.finished:
            self.errors = 0
            self.target, self.solution = random_target(self._rng)
        return ("correct" if hit else "failed"), solution

    def score_lines(self, names: Mapping[int, str]) -> str:
        """One "name: score" line per scoring player."""
        return "".join(
            f"{names.get(uid, str(uid))}: {score:.1f}\n" for uid, score in self.scores.items()
        )