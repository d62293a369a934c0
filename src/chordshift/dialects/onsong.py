"""OnSong dialect: ``[C]`` chords inside the lyric, ``*`` comments, ``Verse 1:`` headers.

Header lines such as ``Title:``, ``Artist:`` and ``Key:`` fill in the
metadata.
"""

import re

from ..models import AnnotationLine, CanonicalSongModel, Dialect, TextLine
from .base import DialectParser, DialectRenderer, MarkupChordStrategy, metadata_fields
from .utils import chord_only_tokens, insert_inline, layout_tokens


class BracketChordStrategy(MarkupChordStrategy):
    opener = "["
    closer = "]"
    name = "bracket"


class OnSongParser(DialectParser):
    dialect = Dialect.ONSONG

    def create_strategy(self) -> BracketChordStrategy:
        return BracketChordStrategy()

    def is_valid(self, text: str) -> bool:
        if not text or not isinstance(text, str):
            return False
        return bool(re.search(r"\[[A-G][#b]?[^\]]*\]", text) or re.search(r"^\*[^*\n]+$", text, re.MULTILINE))


class OnSongRenderer(DialectRenderer):
    dialect = Dialect.ONSONG

    def render_metadata(self, model: CanonicalSongModel) -> list[str]:
        return [f"{name.title()}: {value}" for name, value in metadata_fields(model.metadata)]

    def render_section_header(self, label: str) -> list[str]:
        return [f"{label}:"]

    def render_annotation(self, line: AnnotationLine) -> list[str]:
        return [f"*{line.text}"]

    def render_text(self, line: TextLine, model: CanonicalSongModel) -> list[str]:
        def markup(p):
            return f"[{self.chord_symbol(p.chord, model)}]"

        if line.is_chord_only:
            return [layout_tokens(chord_only_tokens(line, markup))]
        return [insert_inline(line.text, line.chords, markup)]
