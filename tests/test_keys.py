import pytest

from chordshift.chords.keys import (
    Key,
    is_valid_key,
    key_signature,
    note_index,
    parallel_key,
    parse_key,
    relative_key,
    scale,
)
from chordshift.exceptions import InvalidKeyError

# ---------------------------------------------------------------------------
# parse_key
# ---------------------------------------------------------------------------


def test_parse_major_key():
    assert parse_key("G") == Key("G")
    assert parse_key("bb") == Key("Bb")


def test_parse_minor_spellings():
    assert parse_key("Am") == Key("A", True)
    assert parse_key("F# minor") == Key("F#", True)
    assert parse_key("Ebmin") == Key("Eb", True)


def test_parse_invalid_key():
    for bad in ("H", "", "C##", "Cmaj7"):
        with pytest.raises(InvalidKeyError):
            parse_key(bad)


def test_is_valid_key():
    assert is_valid_key("Bbm")
    assert is_valid_key("Cb")
    assert not is_valid_key("X")
    assert not is_valid_key(None)


def test_key_str_and_flags():
    assert str(parse_key("F# minor")) == "F#m"
    assert parse_key("Eb").prefers_flats
    assert not parse_key("E").prefers_flats


def test_note_index():
    assert note_index("C") == 0
    assert note_index("Cb") == 11
    assert note_index("E#") == 5


# ---------------------------------------------------------------------------
# Scales and related keys
# ---------------------------------------------------------------------------


def test_scale_sharp_key():
    assert scale("G") == ["G", "A", "B", "C", "D", "E", "F#"]


def test_scale_flat_key():
    assert scale("F") == ["F", "G", "A", "Bb", "C", "D", "E"]


def test_scale_minor_key():
    assert scale("Am") == ["A", "B", "C", "D", "E", "F", "G"]


def test_relative_keys():
    assert relative_key("C") == "Am"
    assert relative_key("Am") == "C"
    assert relative_key("Dm") == "F"
    assert relative_key("F") == "Dm"


def test_parallel_keys():
    assert parallel_key("C") == "Cm"
    assert parallel_key("Cm") == "C"


# ---------------------------------------------------------------------------
# Key signatures
# ---------------------------------------------------------------------------


def test_signature_sharps():
    sig = key_signature("D")
    assert (sig.sharps, sig.flats) == (2, 0)
    assert sig.accidentals == ("F#", "C#")


def test_signature_flats():
    sig = key_signature("Bb")
    assert (sig.sharps, sig.flats) == (0, 2)
    assert sig.accidentals == ("Bb", "Eb")


def test_signature_minor_uses_relative_major():
    assert key_signature("Em").sharps == 1
    assert key_signature("Dm").flats == 1
    assert key_signature("Am").accidentals == ()
