"""ChordPro dialect: ``{directive: value}`` lines and ``{C}`` inline chords.

Section label to ChordPro directive mapping (rendering)
-------------------------------------------------------

+--------------------------------------+------------------------------------+
| Label (case-insensitive prefix)      | Directive pair                     |
+======================================+====================================+
| ``Verse``, ``Verse N``               | ``{start_of_verse: Verse N}`` /    |
|                                      | ``{end_of_verse}``                 |
+--------------------------------------+------------------------------------+
| ``Chorus``, ``Bridge``, ``Tab``      | ``{start_of_chorus}`` /            |
|                                      | ``{end_of_chorus}`` (label kept    |
|                                      | when it is not the bare word)      |
+--------------------------------------+------------------------------------+
| anything else                        | ``{comment: <label>}``             |
+--------------------------------------+------------------------------------+

Parsing accepts the long and short directive names (``soc``/``eoc``,
``t``, ``st``, ``c``) and keeps unknown directives as comments.
"""

import re

from ..exceptions import SectionError
from ..models import AnnotationKind, AnnotationLine, CanonicalSongModel, Dialect, Section, SongMetadata, TextLine
from .base import DialectParser, DialectRenderer, MarkupChordStrategy, apply_metadata, metadata_fields
from .utils import chord_only_tokens, classify_annotation, insert_inline, layout_tokens

_DIRECTIVE_RE = re.compile(r"^\{\s*([A-Za-z_]+)\s*(?::\s*(.*?))?\s*\}$")
_OPEN_DIRECTIVE_RE = re.compile(r"^\{\s*[a-z_]+\s*(?::|$)")

METADATA_DIRECTIVES = {
    "title": "title",
    "t": "title",
    "subtitle": "subtitle",
    "st": "subtitle",
    "artist": "artist",
    "composer": "composer",
    "key": "key",
    "tempo": "tempo",
    "time": "time",
    "capo": "capo",
}

COMMENT_DIRECTIVES = frozenset({"comment", "c", "ci", "comment_italic", "cb", "comment_box", "highlight"})

_SHORT_SECTIONS = {
    "soc": "start_of_chorus",
    "eoc": "end_of_chorus",
    "sov": "start_of_verse",
    "eov": "end_of_verse",
    "sob": "start_of_bridge",
    "eob": "end_of_bridge",
    "sot": "start_of_tab",
    "eot": "end_of_tab",
}

# Section labels whose directives ChordPro has standardised.
_STRUCTURED = {
    "verse": ("start_of_verse", "end_of_verse"),
    "chorus": ("start_of_chorus", "end_of_chorus"),
    "bridge": ("start_of_bridge", "end_of_bridge"),
    "tab": ("start_of_tab", "end_of_tab"),
}


def _directive(stripped: str) -> tuple[str, str | None] | None:
    """Return ``(name, value)`` for a directive line, or None.

    ``{C}`` and ``{Am7}`` are chords, not directives: a directive name
    starts lower-case or carries a value.
    """
    m = _DIRECTIVE_RE.match(stripped)
    if not m:
        return None
    name, value = m.group(1), m.group(2)
    if value is None and not name[0].islower():
        return None
    return name.lower(), value


def _section_name(directive: str) -> str:
    return directive.split("_of_", 1)[1].replace("_", " ").title()


class BraceChordStrategy(MarkupChordStrategy):
    opener = "{"
    closer = "}"
    name = "brace"

    def accepts(self, inner: str) -> bool:
        # Only {C}-style chords; other brace text stays in the lyric.
        return inner[:1] in "ABCDEFG" and ":" not in inner


class ChordProParser(DialectParser):
    dialect = Dialect.CHORDPRO

    def create_strategy(self) -> BraceChordStrategy:
        return BraceChordStrategy()

    def is_valid(self, text: str) -> bool:
        if not text or not isinstance(text, str):
            return False
        return bool(
            re.search(r"\{(?:title|artist|key|tempo|time|capo|comment|c):", text, re.IGNORECASE)
            or re.search(r"\{[A-G][#b]?[^}]*\}", text)
            or re.search(r"\{(?:start_of_|end_of_)(?:verse|chorus|bridge)\}", text, re.IGNORECASE)
        )

    def read_metadata(self, stripped: str, metadata: SongMetadata) -> AnnotationLine | None:
        directive = _directive(stripped)
        if directive is None:
            return super().read_metadata(stripped, metadata)
        name, value = directive
        if name not in METADATA_DIRECTIVES or not value:
            return None
        canonical = METADATA_DIRECTIVES[name]
        apply_metadata(metadata, canonical, value)
        return AnnotationLine(value, AnnotationKind.COMMENT, directive=canonical)

    def is_annotation(self, stripped: str) -> bool:
        return (
            _directive(stripped) is not None
            or bool(_OPEN_DIRECTIVE_RE.match(stripped))
            or super().is_annotation(stripped)
        )

    def parse_annotation(self, stripped: str) -> AnnotationLine:
        directive = _directive(stripped)
        if directive is None:
            if _OPEN_DIRECTIVE_RE.match(stripped):
                raise SectionError(stripped, "missing closing brace")
            return super().parse_annotation(stripped)

        name, value = directive
        if name in COMMENT_DIRECTIVES:
            if not value:
                raise SectionError(stripped, "empty comment")
            return AnnotationLine(value, classify_annotation(value), directive="comment")
        name = _SHORT_SECTIONS.get(name, name)
        if name.startswith("start_of_"):
            return AnnotationLine(value or _section_name(name), AnnotationKind.SECTION, directive=name)
        if name.startswith("end_of_"):
            return AnnotationLine(_section_name(name), AnnotationKind.SECTION, directive=name)
        return AnnotationLine(value or name, AnnotationKind.COMMENT, directive=name)


class ChordProRenderer(DialectRenderer):
    """Render a model to ChordPro text."""

    dialect = Dialect.CHORDPRO

    def render_metadata(self, model: CanonicalSongModel) -> list[str]:
        return [f"{{{name}: {value}}}" for name, value in metadata_fields(model.metadata)]

    def render_section_header(self, label: str) -> list[str]:
        kind = label.lower().split()[0] if label.strip() else ""
        if kind not in _STRUCTURED:
            return [f"{{comment: {label}}}"]
        start = _STRUCTURED[kind][0]
        # Verse keeps its number; chorus/bridge only when the label says more than the word.
        if kind == "verse" or label.strip().lower() != kind:
            return [f"{{{start}: {label}}}"]
        return [f"{{{start}}}"]

    def render_section_end(self, section: Section) -> list[str]:
        if section.kind in _STRUCTURED:
            return [f"{{{_STRUCTURED[section.kind][1]}}}"]
        return []

    def render_annotation(self, line: AnnotationLine) -> list[str]:
        if line.directive and line.directive not in ("comment", *COMMENT_DIRECTIVES):
            if line.text == line.directive:
                return [f"{{{line.directive}}}"]
            return [f"{{{line.directive}: {line.text}}}"]
        return [f"{{comment: {line.text}}}"]

    def render_text(self, line: TextLine, model: CanonicalSongModel) -> list[str]:
        def markup(p):
            return "{" + self.chord_symbol(p.chord, model) + "}"

        if line.is_chord_only:
            return [layout_tokens(chord_only_tokens(line, markup))]
        return [insert_inline(line.text, line.chords, markup)]
