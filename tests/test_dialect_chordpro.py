from chordshift.dialects.chordpro import ChordProParser, ChordProRenderer
from chordshift.models import AnnotationKind, AnnotationLine, EmptyLine, Placement, TextLine

SONG = """\
{title: Amazing Grace}
{artist: John Newton}
{key: G}

{start_of_verse: Verse 1}
{G}Amazing {C}grace how {G}sweet
{end_of_verse}

{start_of_chorus}
{D}I once was {G}lost
{end_of_chorus}
"""


def parse(text):
    result = ChordProParser().parse(text)
    assert result.success
    return result


def text_lines(model):
    return [line for line in model.lines() if isinstance(line, TextLine)]


# ---------------------------------------------------------------------------
# is_valid
# ---------------------------------------------------------------------------


def test_is_valid_chordpro():
    parser = ChordProParser()
    assert parser.is_valid(SONG)
    assert parser.is_valid("{C}Hello")
    assert not parser.is_valid("[C]Hello")
    assert not parser.is_valid("")


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


def test_metadata_directives():
    meta = parse(SONG).model.metadata
    assert meta.title == "Amazing Grace"
    assert meta.artist == "John Newton"
    assert meta.original_key == "G"


def test_short_metadata_directives():
    meta = parse("{t: Hallelujah}\n{st: Live}\n{capo: 5}\n{tempo: 72 bpm}").model.metadata
    assert meta.title == "Hallelujah"
    assert meta.extra["subtitle"] == "Live"
    assert meta.capo == 5
    assert meta.tempo == 72


def test_metadata_kept_as_annotation():
    first = parse(SONG).model.sections[0].lines[0]
    assert first == AnnotationLine("Amazing Grace", AnnotationKind.COMMENT, directive="title")


# ---------------------------------------------------------------------------
# Chords
# ---------------------------------------------------------------------------


def test_inline_chords_and_columns():
    line = text_lines(parse(SONG).model)[0]
    assert line.text == "Amazing grace how sweet"
    assert [p.chord.notation for p in line.chords] == ["G", "C", "G"]
    assert [p.column for p in line.chords] == [0, 8, 18]
    assert all(p.placement is Placement.INLINE for p in line.chords)


def test_chord_span_points_at_source_markup():
    line = text_lines(parse("Hello {Am7}world").model)[0]
    placement = line.chords[0]
    assert (placement.start, placement.end) == (6, 11)


def test_brackets_are_lyrics_in_chordpro():
    line = text_lines(parse("{C}Amazing [grace]").model)[0]
    assert line.text == "Amazing [grace]"
    assert len(line.chords) == 1


def test_chord_only_line():
    line = text_lines(parse("{C} {G} {Am}").model)[0]
    assert line.is_chord_only
    assert all(p.placement is Placement.BETWEEN for p in line.chords)


def test_uppercase_single_brace_is_a_chord_not_a_directive():
    line = text_lines(parse("{C}").model)[0]
    assert [p.chord.notation for p in line.chords] == ["C"]


# ---------------------------------------------------------------------------
# Sections and comments
# ---------------------------------------------------------------------------


def test_sections_open_and_close():
    sections = parse(SONG).model.sections
    assert [s.label for s in sections if s.label] == ["Verse 1", "Chorus"]
    verse = sections[1]
    assert verse.lines[0].directive == "start_of_verse"
    assert verse.lines[-1].directive == "end_of_verse"


def test_short_section_directives():
    sections = parse("{soc}\n{C}La la\n{eoc}").model.sections
    assert sections[0].label == "Chorus"
    assert sections[0].lines[0].directive == "start_of_chorus"


def test_comment_directive_is_classified():
    line = parse("{comment: Repeat twice}").model.sections[0].lines[0]
    assert line.text == "Repeat twice"
    assert line.kind is AnnotationKind.INSTRUCTION
    assert line.directive == "comment"


def test_unknown_directive_kept():
    line = parse("{new_page}").model.sections[0].lines[0]
    assert isinstance(line, AnnotationLine)
    assert line.directive == "new_page"


def test_blank_run_becomes_one_empty_line():
    lines = parse("{C}One\n\n\n{G}Two").model.sections[0].lines
    assert lines[1] == EmptyLine(2)


# ---------------------------------------------------------------------------
# Recovery
# ---------------------------------------------------------------------------


def test_unclosed_directive_is_recovered():
    result = parse("{title: Amazing Grace\n{C}Hello")
    first = result.model.sections[0].lines[0]
    assert isinstance(first, AnnotationLine)
    assert first.text == "title: Amazing Grace"
    assert any("Line 1" in w for w in result.warnings)


def test_invalid_chord_is_kept_as_text():
    result = parse("{Csus2sus4}Hello {C}world")
    line = text_lines(result.model)[0]
    assert line.text == "Csus2sus4Hello world"
    assert [p.chord.notation for p in line.chords] == ["C"]
    assert result.warnings


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


def test_render_round_trip():
    model = parse(SONG).model
    assert ChordProRenderer().render(model) == SONG


def test_render_from_other_dialect_labels():
    renderer = ChordProRenderer()
    assert renderer.render_section_header("Verse 2") == ["{start_of_verse: Verse 2}"]
    assert renderer.render_section_header("Chorus") == ["{start_of_chorus}"]
    assert renderer.render_section_header("Bridge 2") == ["{start_of_bridge: Bridge 2}"]
    assert renderer.render_section_header("Intro") == ["{comment: Intro}"]


def test_render_ends_with_single_newline():
    output = ChordProRenderer().render(parse("{C}Hello\n\n\n").model)
    assert output == "{C}Hello\n"
