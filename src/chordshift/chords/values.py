"""Musical value objects: chord roots and Nashville scale degrees.

Both are immutable and validated at construction, so any instance that
exists is known to be well formed.

Usage::

    from chordshift.chords.values import ChordRoot, NashvilleNumber
    ChordRoot("F#").transpose(1)            # ChordRoot("G")
    ChordRoot("A").transpose(1, True)       # ChordRoot("Bb")
    NashvilleNumber(5).roman()              # "V"
"""

import re
from dataclasses import dataclass

from ..exceptions import InvalidNashvilleNumberError, InvalidRootError

VALID_ROOTS = (
    "C", "C#", "Db", "D", "D#", "Eb", "E", "F",
    "F#", "Gb", "G", "G#", "Ab", "A", "A#", "Bb", "B",
)

CHROMATIC_INDEX = {
    "C": 0, "C#": 1, "Db": 1, "D": 2, "D#": 3, "Eb": 3, "E": 4, "F": 5,
    "F#": 6, "Gb": 6, "G": 7, "G#": 8, "Ab": 8, "A": 9, "A#": 10, "Bb": 10, "B": 11,
}

SHARP_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")
FLAT_NAMES = ("C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B")

_ENHARMONICS = {
    "C#": "Db", "Db": "C#", "D#": "Eb", "Eb": "D#", "F#": "Gb",
    "Gb": "F#", "G#": "Ab", "Ab": "G#", "A#": "Bb", "Bb": "A#",
}


@dataclass(frozen=True)
class ChordRoot:
    """A pitch class spelled with one of the 17 canonical root names."""

    name: str

    def __post_init__(self):
        if self.name not in VALID_ROOTS:
            raise InvalidRootError(self.name)

    def __str__(self) -> str:
        return self.name

    @property
    def chromatic_index(self) -> int:
        return CHROMATIC_INDEX[self.name]

    @property
    def is_sharp(self) -> bool:
        return self.name.endswith("#")

    @property
    def is_flat(self) -> bool:
        return self.name.endswith("b")

    @property
    def is_natural(self) -> bool:
        return len(self.name) == 1

    def enharmonic(self) -> "ChordRoot":
        """Return the other spelling of this pitch, or self for naturals."""
        other = _ENHARMONICS.get(self.name)
        return ChordRoot(other) if other else self

    def is_enharmonic_to(self, other: "ChordRoot") -> bool:
        return self.chromatic_index == other.chromatic_index

    def transpose(self, semitones: int, prefer_flats: bool = False) -> "ChordRoot":
        return ChordRoot.from_chromatic_index(self.chromatic_index + semitones, prefer_flats)

    @classmethod
    def from_chromatic_index(cls, index: int, prefer_flats: bool = False) -> "ChordRoot":
        names = FLAT_NAMES if prefer_flats else SHARP_NAMES
        return cls(names[index % 12])

    @classmethod
    def is_valid(cls, name: str) -> bool:
        return name in VALID_ROOTS


# ---------------------------------------------------------------------------
# Nashville numbers
# ---------------------------------------------------------------------------

_ROMAN = ("I", "II", "III", "IV", "V", "VI", "VII")

_DEGREE_NAMES = (
    "Tonic", "Supertonic", "Mediant", "Subdominant", "Dominant", "Submediant", "Leading Tone",
)

_FUNCTIONS = {1: "tonic", 2: "subdominant", 3: "tonic", 4: "subdominant",
              5: "dominant", 6: "tonic", 7: "dominant"}

# Diatonic triad quality per degree: "maj", "min" or "dim".
_MAJOR_KEY_QUALITIES = {1: "maj", 2: "min", 3: "min", 4: "maj", 5: "maj", 6: "min", 7: "dim"}
_MINOR_KEY_QUALITIES = {1: "min", 2: "dim", 3: "maj", 4: "min", 5: "maj", 6: "maj", 7: "maj"}

_NUMBER_RE = re.compile(r"^\s*([1-7])\s*$")


@dataclass(frozen=True)
class NashvilleNumber:
    """A scale degree from 1 to 7."""

    value: int

    def __post_init__(self):
        if not isinstance(self.value, int) or isinstance(self.value, bool) or not 1 <= self.value <= 7:
            raise InvalidNashvilleNumberError(self.value)

    def __str__(self) -> str:
        return str(self.value)

    def roman(self, minor: bool = False) -> str:
        numeral = _ROMAN[self.value - 1]
        return numeral.lower() if minor else numeral

    @property
    def degree_name(self) -> str:
        return _DEGREE_NAMES[self.value - 1]

    @property
    def function(self) -> str:
        return _FUNCTIONS[self.value]

    def typical_quality(self, minor_key: bool = False) -> str:
        table = _MINOR_KEY_QUALITIES if minor_key else _MAJOR_KEY_QUALITIES
        return table[self.value]

    def transpose(self, steps: int) -> "NashvilleNumber":
        return NashvilleNumber((self.value - 1 + steps) % 7 + 1)

    def interval_to(self, other: "NashvilleNumber") -> int:
        """Ascending number of scale steps from self to *other* (0-6)."""
        return (other.value - self.value) % 7

    @classmethod
    def from_roman(cls, numeral: str) -> "NashvilleNumber":
        try:
            return cls(_ROMAN.index(numeral.strip().upper()) + 1)
        except ValueError:
            raise InvalidNashvilleNumberError(numeral) from None

    @classmethod
    def from_string(cls, text: str) -> "NashvilleNumber":
        m = _NUMBER_RE.match(text)
        if not m:
            raise InvalidNashvilleNumberError(text)
        return cls(int(m.group(1)))
