from chordshift.dialects.songbook import SongbookParser, SongbookRenderer
from chordshift.models import AnnotationKind, Placement, TextLine

SONG = """\
Title: Amazing Grace
Artist: John Newton

VERSE 1
C          F       C
Amazing grace, how sweet
(Slowly)
"""


def parse(text):
    result = SongbookParser().parse(text)
    assert result.success
    return result


def text_lines(model):
    return [line for line in model.lines() if isinstance(line, TextLine)]


def test_is_valid_songbook():
    parser = SongbookParser()
    assert parser.is_valid("C   G\nHello there")
    assert parser.is_valid("(Repeat)")
    assert not parser.is_valid("Hello there")


def test_metadata_lines():
    meta = parse(SONG).model.metadata
    assert meta.title == "Amazing Grace"
    assert meta.artist == "John Newton"


def test_chord_line_anchors_to_lyric_columns():
    line = text_lines(parse(SONG).model)[0]
    assert line.text == "Amazing grace, how sweet"
    assert [p.chord.notation for p in line.chords] == ["C", "F", "C"]
    assert [p.column for p in line.chords] == [0, 11, 19]
    assert all(p.placement is Placement.ABOVE for p in line.chords)


def test_chord_past_end_of_lyric_is_clamped():
    line = text_lines(parse("C        G\nHi").model)[0]
    assert [p.column for p in line.chords] == [0, 2]


def test_lyric_starting_with_chord_letter_is_not_a_chord_line():
    model = parse("G\nGo tell it on the mountain").model
    line = text_lines(model)[0]
    assert line.text == "Go tell it on the mountain"
    assert [p.chord.notation for p in line.chords] == ["G"]


def test_section_and_parenthetical_comment():
    model = parse(SONG).model
    verse = model.sections[-1]
    assert verse.label == "VERSE 1"
    assert verse.lines[-1].text == "Slowly"
    assert verse.lines[-1].kind is AnnotationKind.TEMPO


def test_render_round_trip():
    assert SongbookRenderer().render(parse(SONG).model) == SONG
