import itertools

import pytest

from chordshift.chords.chord import ChordBuilder
from chordshift.chords.parser import ChordParser
from chordshift.chords.values import VALID_ROOTS, ChordRoot
from chordshift.dialects.onsong import OnSongParser
from chordshift.models import Dialect
from chordshift.registry import get_parser
from chordshift.transpose import KeyTransposer, TransposeKeyCommand

ALL_KEYS = list(VALID_ROOTS) + [root + "m" for root in VALID_ROOTS] + ["Cb", "Cbm"]

CHORDS = [
    "C", "Am", "G7", "E9", "Ab13", "Cmaj7", "Am7", "F#m7b5", "Bbsus4", "Dsus2",
    "Eadd9", "C6/9", "Am6/9/E", "Gdim7", "Caug", "C7#9", "Cm(add9)", "D/F#", "Am7/G", "Bb/D",
]

UNRULY = ["", "   ", " \n\t\n ", "[C", "{C", "]]]", "[C]Hello [G", "{title: Foo", "<b>Verse 1", "|: 1 4 :|x["]


def _roots(model):
    return [p.chord.root.chromatic_index for p in model.placements()]


# ---------------------------------------------------------------------------
# Keys and roots
# ---------------------------------------------------------------------------


def test_key_distance_is_antisymmetric():
    t = KeyTransposer()
    for a, b in itertools.product(ALL_KEYS, repeat=2):
        assert (t.get_key_distance(a, b) + t.get_key_distance(b, a)) % 12 == 0
        assert 0 <= t.get_key_distance(a, b) < 12


def test_key_distance_to_itself_is_zero():
    t = KeyTransposer()
    assert all(t.get_key_distance(key, key) == 0 for key in ALL_KEYS)


@pytest.mark.parametrize("name", VALID_ROOTS)
def test_root_transpose_inverse(name):
    root = ChordRoot(name)
    for n in range(-24, 25):
        for prefer_flats in (False, True):
            back = root.transpose(n, prefer_flats).transpose(-n, prefer_flats)
            assert back.chromatic_index == root.chromatic_index


@pytest.mark.parametrize("name", VALID_ROOTS)
def test_transpose_note_inverse(name):
    t = KeyTransposer()
    for n in range(-12, 13):
        for key in (None, "C", "F", "Eb", "A"):
            there = t.transpose_note(name, n, key)
            assert ChordRoot(t.transpose_note(there, -n, key)).chromatic_index == ChordRoot(name).chromatic_index


# ---------------------------------------------------------------------------
# Chords
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("text", CHORDS)
def test_chord_round_trip(text):
    parser = ChordParser()
    components = parser.parse(text)
    chord = (
        ChordBuilder()
        .root(components.root)
        .quality(components.quality)
        .extensions(components.extensions)
        .bass(components.bass)
        .build()
    )
    again = parser.parse(chord.notation)
    assert again.root == components.root
    assert again.quality is components.quality
    assert {e.value for e in again.extensions} == {e.value for e in components.extensions}
    assert again.bass == components.bass


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("dialect", list(Dialect))
def test_parse_never_raises(dialect):
    parser = get_parser(dialect)
    for text in UNRULY:
        result = parser.parse(text)
        assert result.success
        assert result.model is not None


# ---------------------------------------------------------------------------
# Transposition round trip
# ---------------------------------------------------------------------------


def test_transpose_there_and_back_restores_roots():
    model = OnSongParser().parse("[C]One [Am]two [F]three [G7/B]four [E]five [Bb]six").model
    before = _roots(model)
    notations = [c.notation for c in model.chords()]

    TransposeKeyCommand(model, "C", "D").execute()
    assert _roots(model) == [(r + 2) % 12 for r in before]

    TransposeKeyCommand(model, "D", "C").execute()
    assert _roots(model) == before
    assert [c.notation for c in model.chords()][:5] == notations[:5]
    assert [str(c.bass) for c in model.chords() if c.bass] == ["B"]
