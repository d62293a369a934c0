"""Planning Center chord charts: ``<b>Verse 1</b>`` headers and chords above lyrics.

``COLUMN_BREAK`` and ``PAGE_BREAK`` layout markers are kept as instruction
annotations.
"""

import re

from ..models import AnnotationKind, AnnotationLine, CanonicalSongModel, Dialect, TextLine
from .base import ChordLineStrategy, DialectParser, DialectRenderer, metadata_fields
from .utils import chord_over_lyric, count_chord_lyric_pairs

_BREAK_RE = re.compile(r"^(?:COLUMN_BREAK|PAGE_BREAK)$", re.MULTILINE)


class PlanningCenterParser(DialectParser):
    dialect = Dialect.PLANNING_CENTER

    def create_strategy(self) -> ChordLineStrategy:
        return ChordLineStrategy()

    def is_valid(self, text: str) -> bool:
        if not text or not isinstance(text, str):
            return False
        return bool(re.search(r"<b>[^<]+</b>", text) or _BREAK_RE.search(text)) or count_chord_lyric_pairs(text) > 0

    def is_annotation(self, stripped: str) -> bool:
        return bool(_BREAK_RE.match(stripped)) or super().is_annotation(stripped)

    def parse_annotation(self, stripped: str) -> AnnotationLine:
        if _BREAK_RE.match(stripped):
            return AnnotationLine(stripped, AnnotationKind.INSTRUCTION, directive=stripped.lower())
        return super().parse_annotation(stripped)


class PlanningCenterRenderer(DialectRenderer):
    dialect = Dialect.PLANNING_CENTER

    def render_metadata(self, model: CanonicalSongModel) -> list[str]:
        return [f"{name.title()}: {value}" for name, value in metadata_fields(model.metadata)]

    def render_section_header(self, label: str) -> list[str]:
        return [f"<b>{label}</b>"]

    def render_annotation(self, line: AnnotationLine) -> list[str]:
        if line.directive in ("column_break", "page_break"):
            return [line.directive.upper()]
        return [f"({line.text})"]

    def render_text(self, line: TextLine, model: CanonicalSongModel) -> list[str]:
        return chord_over_lyric(line, lambda p: self.chord_symbol(p.chord, model))
