from chordshift.dialects.guitar_tabs import GuitarTabsParser, GuitarTabsRenderer
from chordshift.models import TextLine

SONG = """\
[Intro]
e|--0--1--|
B|--1--1--|

[Verse 1]
G      D
Hello there
"""


def parse(text):
    result = GuitarTabsParser().parse(text)
    assert result.success
    return result


def test_is_valid_guitar_tabs():
    parser = GuitarTabsParser()
    assert parser.is_valid(SONG)
    assert parser.is_valid("e|---0---|")
    assert not parser.is_valid("Verse 1:\n[C]Hello")


def test_bracketed_section_headers():
    labels = [s.label for s in parse(SONG).model.sections]
    assert labels == ["Intro", "Verse 1"]


def test_tab_staves_kept_verbatim():
    intro = parse(SONG).model.sections[0]
    staves = [line for line in intro.lines if isinstance(line, TextLine)]
    assert [s.text for s in staves] == ["e|--0--1--|", "B|--1--1--|"]
    assert all(not s.chords for s in staves)


def test_chords_over_lyrics():
    verse = parse(SONG).model.sections[1]
    line = [line for line in verse.lines if isinstance(line, TextLine)][0]
    assert line.text == "Hello there"
    assert [(p.chord.notation, p.column) for p in line.chords] == [("G", 0), ("D", 7)]


def test_render_round_trip():
    assert GuitarTabsRenderer().render(parse(SONG).model) == SONG
