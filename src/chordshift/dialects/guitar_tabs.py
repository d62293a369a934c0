"""Guitar tab sheets: ``[Verse 1]`` headers, chord lines over lyrics and ASCII tab staves.

Tab staves (``e|--0--1--``) and tab legends are kept verbatim as chord-less
text lines.
"""

import re

from ..models import AnnotationLine, CanonicalSongModel, Dialect, TextLine
from .base import ChordLineStrategy, DialectParser, DialectRenderer, metadata_fields
from .utils import chord_over_lyric, is_tab_line


class TabStrategy(ChordLineStrategy):
    def is_verbatim(self, line: str) -> bool:
        return is_tab_line(line)


class GuitarTabsParser(DialectParser):
    dialect = Dialect.GUITAR_TABS

    def create_strategy(self) -> TabStrategy:
        return TabStrategy()

    def is_valid(self, text: str) -> bool:
        if not text or not isinstance(text, str):
            return False
        has_headers = re.search(
            r"^\[(?:Intro|Verse|Chorus|Bridge|Outro|Solo|Pre-Chorus|Tag|Coda|Instrumental|Refrain|Break|Interlude)"
            r"(?:\s+\d+)?\]$",
            text,
            re.IGNORECASE | re.MULTILINE,
        )
        has_staves = re.search(r"^[eBGDAE][|\-\d\s]+$", text, re.MULTILINE)
        return bool(has_headers or has_staves)


class GuitarTabsRenderer(DialectRenderer):
    dialect = Dialect.GUITAR_TABS

    def render_metadata(self, model: CanonicalSongModel) -> list[str]:
        return [f"{name.title()}: {value}" for name, value in metadata_fields(model.metadata)]

    def render_section_header(self, label: str) -> list[str]:
        return [f"[{label}]"]

    def render_annotation(self, line: AnnotationLine) -> list[str]:
        return [f"*{line.text}"]

    def render_text(self, line: TextLine, model: CanonicalSongModel) -> list[str]:
        return chord_over_lyric(line, lambda p: self.chord_symbol(p.chord, model))
