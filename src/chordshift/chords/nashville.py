"""Nashville Number System chords and charts.

A Nashville chord names a scale degree instead of a letter root::

    1   4   5/7   6m7   b7   ◆1   4^

Quality markers follow the number (``m`` or ``-`` minor, ``°`` diminished,
``+`` augmented), extensions use the same spellings as letter chords, and a
slash names the bass degree.  Rhythmic symbols may precede or follow the
chord:

+--------+-------------+
| Symbol | Meaning     |
+========+=============+
| ``◆``  | sustain     |
| ``^``  | accent      |
| ``.``  | staccato    |
| ``<``  | crescendo   |
| ``>``  | decrescendo |
+--------+-------------+

:class:`NashvilleConverter` maps between numbers and letter chords for a
given key.
"""

import re
from dataclasses import dataclass, field
from enum import Enum

from ..exceptions import ChordFormatError, ChordValidationError, InvalidKeyError
from .chord import Chord, ChordBuilder, Extension, ExtensionType, Quality, spell_suffix
from .keys import parse_key, spell
from .parser import ChordParser
from .values import NashvilleNumber


class RhythmKind(Enum):
    SUSTAIN = "◆"
    ACCENT = "^"
    STACCATO = "."
    CRESCENDO = "<"
    DECRESCENDO = ">"


@dataclass(frozen=True)
class RhythmicSymbol:
    kind: RhythmKind
    placement: str = "before"  # "before" or "after"


RHYTHM_CHARS = "◆^.<>"

NASHVILLE_CHORD_RE = re.compile(
    r"^([◆^.<>]*)([#b]?)([1-7])([m°+-]?)([^/◆^.<>]*)(?:/([#b]?)([1-7]))?([◆^.<>]*)$"
)

_QUALITY_MARKS = {"m": Quality.MINOR, "-": Quality.MINOR, "°": Quality.DIMINISHED, "+": Quality.AUGMENTED}


@dataclass(frozen=True)
class NashvilleChord:
    number: NashvilleNumber
    quality: Quality = Quality.MAJOR
    accidental: str | None = None
    extensions: tuple[Extension, ...] = ()
    bass: NashvilleNumber | None = None
    bass_accidental: str | None = None
    symbols: tuple[RhythmicSymbol, ...] = ()

    def __str__(self) -> str:
        before = "".join(s.kind.value for s in self.symbols if s.placement == "before")
        after = "".join(s.kind.value for s in self.symbols if s.placement == "after")
        text = f"{before}{self.accidental or ''}{self.number}{nashville_suffix(self.quality, self.extensions)}"
        if self.bass is not None:
            text += f"/{self.bass_accidental or ''}{self.bass}"
        return text + after


def nashville_suffix(quality: Quality, extensions) -> str:
    suffix = spell_suffix(quality, extensions)
    if quality is Quality.DIMINISHED and suffix.startswith("dim") and not any(
        e.type is ExtensionType.DIM for e in extensions
    ):
        return "°" + suffix[3:]
    if quality is Quality.AUGMENTED and suffix.startswith("aug") and not any(
        e.type is ExtensionType.AUG for e in extensions
    ):
        return "+" + suffix[3:]
    return suffix


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


@dataclass
class NashvilleChordBuilder:
    _number: int | None = None
    _accidental: str | None = None
    _quality: Quality = Quality.MAJOR
    _extensions: list[Extension] = field(default_factory=list)
    _bass: int | None = None
    _bass_accidental: str | None = None
    _symbols: list[RhythmicSymbol] = field(default_factory=list)

    def number(self, number: int, accidental: str | None = None) -> "NashvilleChordBuilder":
        self._number = number
        self._accidental = accidental or None
        return self

    def quality(self, quality: Quality) -> "NashvilleChordBuilder":
        self._quality = quality
        return self

    def extension(self, extension: Extension) -> "NashvilleChordBuilder":
        self._extensions.append(extension)
        return self

    def bass(self, number: int, accidental: str | None = None) -> "NashvilleChordBuilder":
        self._bass = number
        self._bass_accidental = accidental or None
        return self

    def symbol(self, kind: RhythmKind, placement: str = "before") -> "NashvilleChordBuilder":
        self._symbols.append(RhythmicSymbol(kind, placement))
        return self

    def build(self) -> NashvilleChord:
        if self._number is None:
            raise ChordValidationError("", ["Nashville number is required"])
        number = NashvilleNumber(self._number)
        bass = NashvilleNumber(self._bass) if self._bass is not None else None
        if bass is not None and bass == number and self._bass_accidental == self._accidental:
            raise ChordValidationError(str(self._number), ["bass number cannot equal the chord number"])
        return NashvilleChord(
            number=number,
            quality=self._quality,
            accidental=self._accidental,
            extensions=tuple(self._extensions),
            bass=bass,
            bass_accidental=self._bass_accidental,
            symbols=tuple(self._symbols),
        )


def parse_nashville_chord(text: str) -> NashvilleChord:
    """Parse a Nashville chord such as ``"◆4m7/5"``.

    Raises ChordFormatError for text that is not a Nashville chord and
    ChordValidationError when the bass repeats the chord's own number.
    """
    m = NASHVILLE_CHORD_RE.match(text.strip())
    if not m:
        raise ChordFormatError(text, "not a Nashville number chord")
    before, accidental, number, mark, rest, bass_acc, bass, after = m.groups()

    builder = NashvilleChordBuilder().number(int(number), accidental)
    quality = _QUALITY_MARKS.get(mark)
    # Let the letter-chord parser read the extensions against a dummy root.
    components = ChordParser().parse("C" + ("m" if quality is Quality.MINOR else "") + rest)
    if quality in (Quality.DIMINISHED, Quality.AUGMENTED):
        builder.quality(quality)
    else:
        builder.quality(components.quality)
    for ext in components.extensions:
        builder.extension(ext)
    if bass:
        builder.bass(int(bass), bass_acc)
    for ch in before:
        builder.symbol(RhythmKind(ch), "before")
    for ch in after:
        builder.symbol(RhythmKind(ch), "after")
    return builder.build()


# ---------------------------------------------------------------------------
# Charts
# ---------------------------------------------------------------------------

BAR_SYMBOLS = {
    "single": "|",
    "double": "||",
    "repeat_start": "|:",
    "repeat_end": ":|",
}

COMMON_PROGRESSIONS = {
    "I-V-vi-IV": "1-5-6m-4",
    "I-IV-V-I": "1-4-5-1",
    "vi-IV-I-V": "6m-4-1-5",
    "I-vi-IV-V": "1-6m-4-5",
    "ii-V-I": "2m-5-1",
    "I-IV-I-V": "1-4-1-5",
    "12-bar blues": "1-1-1-1-4-4-1-1-5-4-1-5",
}

_TIME_SIGNATURE_RE = re.compile(r"^\d+/\d+$")


@dataclass(frozen=True)
class BarLine:
    kind: str
    index: int  # number of chords that precede this bar line


@dataclass(frozen=True)
class NashvilleNotation:
    key: str
    time_signature: str
    chords: tuple[NashvilleChord, ...]
    bar_lines: tuple[BarLine, ...] = ()

    def __str__(self) -> str:
        bars: dict[int, list[str]] = {}
        for bar in self.bar_lines:
            bars.setdefault(bar.index, []).append(BAR_SYMBOLS[bar.kind])
        tokens: list[str] = []
        for i, chord in enumerate(self.chords):
            tokens.extend(bars.get(i, []))
            tokens.append(str(chord))
        tokens.extend(bars.get(len(self.chords), []))
        return " ".join(tokens)

    def to_chords(self) -> list[Chord]:
        converter = NashvilleConverter()
        return [converter.to_chord(chord, self.key) for chord in self.chords]


@dataclass
class NashvilleNotationBuilder:
    """Assemble a Nashville chart bar by bar.

    Usage::

        chart = (
            NashvilleNotationBuilder()
            .key("G")
            .time_signature("4/4")
            .bar("repeat_start")
            .progression("1-5-6m-4")
            .bar("repeat_end")
            .build()
        )
        str(chart)   # "|: 1 5 6m 4 :|"
    """

    _key: str | None = None
    _time_signature: str = "4/4"
    _chords: list[NashvilleChord] = field(default_factory=list)
    _bar_lines: list[BarLine] = field(default_factory=list)

    def key(self, key: str) -> "NashvilleNotationBuilder":
        self._key = str(parse_key(key))
        return self

    def time_signature(self, signature: str) -> "NashvilleNotationBuilder":
        if not _TIME_SIGNATURE_RE.match(signature):
            raise ValueError(f"Invalid time signature: {signature!r}")
        self._time_signature = signature
        return self

    def chord(self, chord: str | NashvilleChord) -> "NashvilleNotationBuilder":
        self._chords.append(chord if isinstance(chord, NashvilleChord) else parse_nashville_chord(chord))
        return self

    def bar(self, kind: str = "single") -> "NashvilleNotationBuilder":
        if kind not in BAR_SYMBOLS:
            raise ValueError(f"Unknown bar line: {kind!r}")
        self._bar_lines.append(BarLine(kind, len(self._chords)))
        return self

    def progression(self, progression: str) -> "NashvilleNotationBuilder":
        """Append chords from a dash-separated progression, or a COMMON_PROGRESSIONS name."""
        steps = COMMON_PROGRESSIONS.get(progression, progression)
        for token in steps.split("-"):
            self.chord(token)
        return self

    def build(self) -> NashvilleNotation:
        if self._key is None:
            raise InvalidKeyError("")
        return NashvilleNotation(
            key=self._key,
            time_signature=self._time_signature,
            chords=tuple(self._chords),
            bar_lines=tuple(self._bar_lines),
        )


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


class NashvilleConverter:
    """Convert between Nashville chords and letter chords in a key."""

    def to_chord(self, chord: NashvilleChord, key: str, position: int = 0) -> Chord:
        k = parse_key(key)
        flats = k.prefers_flats
        root = self._degree(k, chord.number, chord.accidental, flats or chord.accidental == "b")
        builder = (
            ChordBuilder()
            .root(root)
            .quality(chord.quality)
            .extensions(chord.extensions)
            .position(position)
            .nashville(str(chord))
        )
        if chord.bass is not None:
            builder.bass(self._degree(k, chord.bass, chord.bass_accidental, flats or chord.bass_accidental == "b"))
        return builder.build()

    def to_nashville(self, chord: Chord, key: str) -> NashvilleChord:
        k = parse_key(key)
        number, accidental = self._number(k, chord.root.chromatic_index)
        builder = NashvilleChordBuilder().number(number, accidental).quality(chord.quality)
        for ext in chord.extensions:
            builder.extension(ext)
        if chord.bass is not None:
            bass, bass_acc = self._number(k, chord.bass.chromatic_index)
            if (bass, bass_acc) != (number, accidental):
                builder.bass(bass, bass_acc)
        return builder.build()

    @staticmethod
    def _degree(key, number: NashvilleNumber, accidental: str | None, flats: bool) -> str:
        shift = {"#": 1, "b": -1}.get(accidental or "", 0)
        return spell(key.index + key.intervals[number.value - 1] + shift, flats)

    @staticmethod
    def _number(key, index: int) -> tuple[int, str | None]:
        rel = (index - key.index) % 12
        if rel in key.intervals:
            return key.intervals.index(rel) + 1, None
        # Chromatic degrees are written flat: b3, b6, b7.
        return key.intervals.index((rel + 1) % 12) + 1, "b"
