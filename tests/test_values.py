import pytest

from chordshift.chords.values import ChordRoot, NashvilleNumber
from chordshift.exceptions import InvalidNashvilleNumberError, InvalidRootError

# ---------------------------------------------------------------------------
# ChordRoot
# ---------------------------------------------------------------------------


def test_root_accepts_canonical_names():
    for name in ("C", "C#", "Db", "Bb", "B"):
        assert ChordRoot(name).name == name


def test_root_rejects_unknown_name():
    with pytest.raises(InvalidRootError):
        ChordRoot("H")


def test_root_rejects_double_accidental():
    with pytest.raises(InvalidRootError):
        ChordRoot("C##")


def test_root_accidentals():
    assert ChordRoot("F#").is_sharp
    assert ChordRoot("Eb").is_flat
    assert ChordRoot("G").is_natural


def test_root_enharmonic():
    assert ChordRoot("C#").enharmonic() == ChordRoot("Db")
    assert ChordRoot("G").enharmonic() == ChordRoot("G")
    assert ChordRoot("A#").is_enharmonic_to(ChordRoot("Bb"))


def test_root_transpose_uses_sharps_by_default():
    assert ChordRoot("F#").transpose(1) == ChordRoot("G")
    assert ChordRoot("A").transpose(1) == ChordRoot("A#")


def test_root_transpose_prefers_flats_when_asked():
    assert ChordRoot("A").transpose(1, True) == ChordRoot("Bb")


def test_root_transpose_wraps_octave():
    assert ChordRoot("B").transpose(1) == ChordRoot("C")
    assert ChordRoot("C").transpose(-1) == ChordRoot("B")
    assert ChordRoot("D").transpose(12) == ChordRoot("D")


# ---------------------------------------------------------------------------
# NashvilleNumber
# ---------------------------------------------------------------------------


def test_number_range():
    assert NashvilleNumber(1).value == 1
    assert NashvilleNumber(7).value == 7
    for bad in (0, 8, -1):
        with pytest.raises(InvalidNashvilleNumberError):
            NashvilleNumber(bad)


def test_number_rejects_non_int():
    with pytest.raises(InvalidNashvilleNumberError):
        NashvilleNumber("5")


def test_number_roman():
    assert NashvilleNumber(5).roman() == "V"
    assert NashvilleNumber(6).roman(minor=True) == "vi"


def test_number_from_roman_and_string():
    assert NashvilleNumber.from_roman("iv") == NashvilleNumber(4)
    assert NashvilleNumber.from_string(" 3 ") == NashvilleNumber(3)
    with pytest.raises(InvalidNashvilleNumberError):
        NashvilleNumber.from_roman("VIII")


def test_number_transpose_wraps():
    assert NashvilleNumber(7).transpose(1) == NashvilleNumber(1)
    assert NashvilleNumber(1).transpose(-1) == NashvilleNumber(7)


def test_number_interval_is_ascending():
    assert NashvilleNumber(1).interval_to(NashvilleNumber(5)) == 4
    assert NashvilleNumber(5).interval_to(NashvilleNumber(1)) == 3


def test_number_degree_info():
    assert NashvilleNumber(5).degree_name == "Dominant"
    assert NashvilleNumber(4).function == "subdominant"
    assert NashvilleNumber(2).typical_quality() == "min"
    assert NashvilleNumber(3).typical_quality(minor_key=True) == "maj"
