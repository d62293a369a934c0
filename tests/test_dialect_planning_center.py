from chordshift.dialects.planning_center import PlanningCenterParser, PlanningCenterRenderer
from chordshift.models import AnnotationKind, AnnotationLine, TextLine

SONG = """\
<b>Verse 1</b>
C       G
Hello world
COLUMN_BREAK

<b>Chorus</b>
F
Sing it
"""


def parse(text):
    result = PlanningCenterParser().parse(text)
    assert result.success
    return result


def test_is_valid_planning_center():
    assert PlanningCenterParser().is_valid("<b>Verse 1</b>")
    assert not PlanningCenterParser().is_valid("")
    assert PlanningCenterParser().is_valid("G        D\nAmazing grace")
    assert PlanningCenterParser().is_valid("COLUMN_BREAK")


def test_prose_is_not_planning_center():
    assert not PlanningCenterParser().is_valid("Amazing grace, how sweet the sound")
    assert not PlanningCenterParser().is_valid("Amazing grace\nBut that was long ago")


def test_bold_headers_open_sections():
    labels = [s.label for s in parse(SONG).model.sections]
    assert labels == ["Verse 1", "Chorus"]


def test_layout_breaks_are_instructions():
    verse = parse(SONG).model.sections[0]
    brk = [line for line in verse.lines if isinstance(line, AnnotationLine)][-1]
    assert brk.kind is AnnotationKind.INSTRUCTION
    assert brk.directive == "column_break"


def test_chords_over_lyrics():
    verse = parse(SONG).model.sections[0]
    line = [line for line in verse.lines if isinstance(line, TextLine)][0]
    assert line.text == "Hello world"
    assert [(p.chord.notation, p.column) for p in line.chords] == [("C", 0), ("G", 8)]


def test_render_round_trip():
    assert PlanningCenterRenderer().render(parse(SONG).model) == SONG
