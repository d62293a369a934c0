"""Guess a song's key from its chords.

Every major and minor key is scored on:

* scale fit: share of chord roots that belong to the key's scale (0.3)
* progressions: known progressions found in the chord sequence (0.2 each, max 0.4)
* tonic: share of chords that are the tonic triad (0.3)
* characteristic chords: I/IV/V in major, i/iv/v in minor (0.2), plus 0.1 for
  I + V + vi (major) or VI + VII (minor)

minus penalties for more than 40% out-of-key chords and for triads that
contradict the mode.  The best key wins; ties keep the order major keys
first, circle of fifths.
"""

from collections import Counter
from dataclasses import dataclass, field

from .chords.chord import Chord, Quality
from .chords.keys import MAJOR_INTERVALS, MINOR_INTERVALS, parse_key

MAJOR_KEYS = ("C", "G", "D", "A", "E", "B", "F#", "C#", "F", "Bb", "Eb", "Ab", "Db", "Gb", "Cb")
MINOR_KEYS = ("Am", "Em", "Bm", "F#m", "C#m", "G#m", "D#m", "A#m", "Dm", "Gm", "Cm", "Fm", "Bbm", "Ebm", "Abm")

MAJOR_PROGRESSIONS = [
    ("1", "5", "6m", "4"),
    ("1", "4", "5", "1"),
    ("6m", "4", "1", "5"),
    ("1", "6m", "4", "5"),
    ("1", "4", "1", "5"),
    ("4", "5", "1"),
    ("1", "5", "6m"),
    ("2m", "5", "1"),
    ("6m", "2m", "5", "1"),
]

MINOR_PROGRESSIONS = [
    ("1m", "7", "6", "7"),
    ("1m", "4m", "5", "1m"),
    ("1m", "6", "7", "1m"),
    ("1m", "3", "7", "1m"),
    ("1m", "4m", "1m"),
    ("1m", "5", "1m"),
    ("6", "7", "1m"),
    ("1m", "2°", "5", "1m"),
]


@dataclass
class KeyDetection:
    key: str
    confidence: float
    minor: bool = False
    chord_frequency: dict[str, int] = field(default_factory=dict)
    progressions: list[str] = field(default_factory=list)


def _degree_label(chord: Chord, key: str) -> str | None:
    """Nashville-style label (``"1"``, ``"6m"``, ``"7°"``) for a diatonic chord root, else None."""
    k = parse_key(key)
    rel = (chord.root.chromatic_index - k.index) % 12
    intervals = MINOR_INTERVALS if k.minor else MAJOR_INTERVALS
    if rel not in intervals:
        return None
    label = str(intervals.index(rel) + 1)
    if chord.quality is Quality.MINOR:
        label += "m"
    elif chord.quality is Quality.DIMINISHED:
        label += "°"
    return label


def _contains(sequence: list[str], pattern: tuple[str, ...]) -> bool:
    n = len(pattern)
    return any(tuple(sequence[i:i + n]) == pattern for i in range(len(sequence) - n + 1))


def _score(chords: list[Chord], key: str) -> KeyDetection:
    minor = key.endswith("m")
    labels = [label for label in (_degree_label(c, key) for c in chords) if label is not None]
    total = len(chords)
    in_key = len(labels)
    freq = Counter(labels)
    progressions = [
        "-".join(p) for p in (MINOR_PROGRESSIONS if minor else MAJOR_PROGRESSIONS) if _contains(labels, p)
    ]

    confidence = in_key / total * 0.3
    confidence += min(len(progressions) * 0.2, 0.4)
    tonic = freq["1m" if minor else "1"]
    confidence += tonic / total * 0.3

    if minor:
        characteristic = freq["1m"] + freq["4m"] + freq["5m"]
        if freq["6"] and freq["7"]:
            confidence += 0.1
        conflicting = freq["1"] + freq["4"] + freq["5"]
    else:
        characteristic = freq["1"] + freq["4"] + freq["5"]
        if freq["1"] and freq["5"] and freq["6m"]:
            confidence += 0.1
        conflicting = freq["1m"] + freq["4m"] + freq["5m"]
    confidence += characteristic / total * 0.2

    out_of_key = (total - in_key) / total
    if out_of_key > 0.4:
        confidence -= (out_of_key - 0.4) * 0.3
    if conflicting > tonic:
        confidence -= 0.2

    return KeyDetection(
        key=key,
        confidence=max(0.0, min(1.0, confidence)),
        minor=minor,
        chord_frequency=dict(freq),
        progressions=progressions,
    )


def detect_key(chords: list[Chord]) -> KeyDetection:
    """Return the most likely key for *chords* (confidence 0 when there are none)."""
    if not chords:
        return KeyDetection(key="C", confidence=0.0)
    best = KeyDetection(key="C", confidence=0.0)
    for key in MAJOR_KEYS + MINOR_KEYS:
        result = _score(chords, key)
        if result.confidence > best.confidence:
            best = result
    return best
