from chordshift.chords.chord import Quality
from chordshift.dialects.nashville import NashvilleParser, NashvilleRenderer, chart_key
from chordshift.dialects.onsong import OnSongParser
from chordshift.models import Placement, TextLine

CHART = """\
Key: G

Verse 1:
1       4
Amazing grace
5/7     6m
How sweet the sound
"""


def parse(text, key=None):
    result = NashvilleParser(key=key).parse(text)
    assert result.success
    return result


def text_lines(model):
    return [line for line in model.lines() if isinstance(line, TextLine)]


def notations(line):
    return [p.chord.notation for p in line.chords]


# ---------------------------------------------------------------------------
# Key resolution
# ---------------------------------------------------------------------------


def test_key_header_sets_chart_key():
    result = parse(CHART)
    assert result.model.metadata.original_key == "G"
    assert notations(text_lines(result.model)[0]) == ["G", "C"]


def test_key_argument_wins_over_header():
    result = parse(CHART, key="D")
    assert result.model.metadata.original_key == "D"
    assert notations(text_lines(result.model)[0]) == ["D", "G"]


def test_missing_key_assumes_c_with_warning():
    result = parse("1 4 5 1")
    assert notations(text_lines(result.model)[0]) == ["C", "F", "G", "C"]
    assert result.model.metadata.original_key is None
    assert any("assuming C" in w for w in result.warnings)


def test_invalid_key_argument_is_ignored():
    result = parse("Key: A\n1 5", key="H")
    assert result.model.metadata.original_key == "A"
    assert any("invalid key" in w for w in result.warnings)


# ---------------------------------------------------------------------------
# Chord lines
# ---------------------------------------------------------------------------


def test_number_line_merges_with_lyric():
    line = text_lines(parse(CHART).model)[0]
    assert line.text == "Amazing grace"
    assert [p.column for p in line.chords] == [0, 8]
    assert all(p.placement is Placement.ABOVE for p in line.chords)


def test_slash_and_minor_numbers():
    line = text_lines(parse(CHART).model)[1]
    assert notations(line) == ["D/F#", "Em"]
    assert line.chords[1].chord.quality is Quality.MINOR
    assert line.chords[0].chord.nashville == "5/7"


def test_number_line_without_lyric_is_chord_only():
    line = text_lines(parse("1 4 5 1", key="G").model)[0]
    assert line.is_chord_only
    assert notations(line) == ["G", "C", "D", "G"]
    assert all(p.placement is Placement.BETWEEN for p in line.chords)


def test_standalone_rhythm_tokens_keep_number_line():
    line = text_lines(parse("Key: C\n\n1 . 4 ◆\nHello there").model)[0]
    assert line.text == "Hello there"
    assert notations(line) == ["C", "F"]
    assert [p.column for p in line.chords] == [0, 4]


def test_inline_bracket_numbers():
    line = text_lines(parse("[1]Amazing [4]grace", key="G").model)[0]
    assert line.text == "Amazing grace"
    assert notations(line) == ["G", "C"]


def test_flat_key_spelling():
    line = text_lines(parse("1 4", key="F").model)[0]
    assert notations(line) == ["F", "Bb"]


def test_bass_equal_to_number_is_recovered():
    result = parse("[1/1]Hello", key="C")
    line = text_lines(result.model)[0]
    assert "Hello" in line.text
    assert result.warnings


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


def test_render_round_trip():
    assert NashvilleRenderer().render(parse(CHART).model) == CHART


def test_render_letter_chords_as_numbers():
    model = OnSongParser().parse("Key: G\n[G]Amazing [C]grace").model
    assert NashvilleRenderer().render(model) == "Key: G\n\n1       4\nAmazing grace\n"


def test_render_keeps_rhythm_symbols():
    model = parse("◆1 4^", key="C").model
    assert NashvilleRenderer().render(model).splitlines()[-1] == "◆1 4^"


def test_render_adds_key_line_when_key_unknown():
    model = OnSongParser().parse("[Am]Hello [C]there").model
    lines = NashvilleRenderer().render(model).splitlines()
    assert lines[0] == f"Key: {chart_key(model)}"
