"""Songbook dialect: chord lines printed above the lyric they belong to.

::

    Title: Amazing Grace
    Artist: John Newton

    VERSE 1
    C          F       C
    Amazing grace, how sweet
"""

import re

from ..models import AnnotationLine, CanonicalSongModel, Dialect, TextLine
from .base import ChordLineStrategy, DialectParser, DialectRenderer, metadata_fields
from .utils import chord_over_lyric, count_chord_lyric_pairs


class SongbookParser(DialectParser):
    dialect = Dialect.SONGBOOK

    def create_strategy(self) -> ChordLineStrategy:
        return ChordLineStrategy()

    def is_valid(self, text: str) -> bool:
        if not text or not isinstance(text, str):
            return False
        return count_chord_lyric_pairs(text, 0.5) > 0 or bool(re.search(r"^\([^)]+\)$", text, re.MULTILINE))


class SongbookRenderer(DialectRenderer):
    dialect = Dialect.SONGBOOK

    def render_metadata(self, model: CanonicalSongModel) -> list[str]:
        return [f"{name.title()}: {value}" for name, value in metadata_fields(model.metadata)]

    def render_section_header(self, label: str) -> list[str]:
        return [label.upper()]

    def render_annotation(self, line: AnnotationLine) -> list[str]:
        return [f"({line.text})"]

    def render_text(self, line: TextLine, model: CanonicalSongModel) -> list[str]:
        return chord_over_lyric(line, lambda p: self.chord_symbol(p.chord, model))
