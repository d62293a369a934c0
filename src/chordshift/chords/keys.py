"""Key names, scales and key signatures.

Keys are written as a tonic plus an optional minor suffix: ``G``, ``Bb``,
``F#m``, ``Ebmin``.  Unlike chord roots, key tonics may use any accidental
spelling (``Cb`` is a valid key even though it is not a canonical root).
"""

import re
from dataclasses import dataclass

from ..exceptions import InvalidKeyError
from .values import FLAT_NAMES, SHARP_NAMES

# Keys whose scales are spelled with flats.
FLAT_KEYS = frozenset({
    "F", "Bb", "Eb", "Ab", "Db", "Gb", "Cb",
    "Dm", "Gm", "Cm", "Fm", "Bbm", "Ebm", "Abm",
})

MAJOR_INTERVALS = (0, 2, 4, 5, 7, 9, 11)
MINOR_INTERVALS = (0, 2, 3, 5, 7, 8, 10)

_LETTER_INDEX = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}

_KEY_RE = re.compile(r"^\s*([A-Ga-g])([#b]?)\s*(m|min|minor|-)?\s*(?:maj|major)?\s*$")

# Accidentals of the 15 standard major keys, in the order they are added.
_SHARP_ORDER = ("F#", "C#", "G#", "D#", "A#", "E#", "B#")
_FLAT_ORDER = ("Bb", "Eb", "Ab", "Db", "Gb", "Cb", "Fb")
_MAJOR_ACCIDENTALS = {
    "C": 0, "G": 1, "D": 2, "A": 3, "E": 4, "B": 5, "F#": 6, "C#": 7,
    "F": -1, "Bb": -2, "Eb": -3, "Ab": -4, "Db": -5, "Gb": -6, "Cb": -7,
}


@dataclass(frozen=True)
class Key:
    tonic: str  # "F#", "Bb"
    minor: bool = False

    def __str__(self) -> str:
        return f"{self.tonic}m" if self.minor else self.tonic

    @property
    def index(self) -> int:
        return note_index(self.tonic)

    @property
    def prefers_flats(self) -> bool:
        return str(self) in FLAT_KEYS

    @property
    def intervals(self) -> tuple[int, ...]:
        return MINOR_INTERVALS if self.minor else MAJOR_INTERVALS


@dataclass(frozen=True)
class KeySignature:
    key: str
    sharps: int
    flats: int
    accidentals: tuple[str, ...]


def note_index(note: str) -> int:
    """Chromatic index (0-11) of any single-accidental note name."""
    if not note or note[0].upper() not in _LETTER_INDEX:
        raise InvalidKeyError(note)
    index = _LETTER_INDEX[note[0].upper()]
    for accidental in note[1:]:
        if accidental == "#":
            index += 1
        elif accidental == "b":
            index -= 1
        else:
            raise InvalidKeyError(note)
    return index % 12


def parse_key(key: str) -> Key:
    """Parse a key name such as ``"G"``, ``"Bbm"`` or ``"F# minor"``.

    Raises InvalidKeyError for anything else.
    """
    m = _KEY_RE.match(key or "")
    if not m:
        raise InvalidKeyError(key)
    return Key(tonic=m.group(1).upper() + m.group(2), minor=bool(m.group(3)))


def is_valid_key(key: str) -> bool:
    return bool(_KEY_RE.match(key or ""))


def spell(index: int, prefer_flats: bool) -> str:
    names = FLAT_NAMES if prefer_flats else SHARP_NAMES
    return names[index % 12]


def scale(key: str) -> list[str]:
    """Return the seven notes of *key* (major or natural minor)."""
    k = parse_key(key)
    return [spell(k.index + step, k.prefers_flats) for step in k.intervals]


def relative_key(key: str) -> str:
    k = parse_key(key)
    if k.minor:
        return spell(k.index + 3, str(k) in FLAT_KEYS or k.tonic.endswith("b"))
    return spell(k.index - 3, k.prefers_flats) + "m"


def parallel_key(key: str) -> str:
    k = parse_key(key)
    return k.tonic if k.minor else f"{k.tonic}m"


def key_signature(key: str) -> KeySignature:
    """Return the key signature for one of the 15 standard majors or their relative minors."""
    k = parse_key(key)
    major = relative_key(str(k)) if k.minor else k.tonic
    count = _MAJOR_ACCIDENTALS.get(major)
    if count is None:
        # Relative major spelled with sharps when the table uses flats (or vice versa).
        enharmonic = spell(note_index(major), not major.endswith("b"))
        count = _MAJOR_ACCIDENTALS.get(enharmonic)
        if count is None:
            raise InvalidKeyError(key)
    if count >= 0:
        return KeySignature(str(k), count, 0, _SHARP_ORDER[:count])
    return KeySignature(str(k), 0, -count, _FLAT_ORDER[:-count])
