"""Nashville Number System charts.

Chords are scale degrees (``1 4 5/7 6m``), either on a line of their own
above the lyric or bracketed inline (``[4]Amazing``).  The letter chords
stored in the model depend on the chart's key, taken from (in order):

1. the ``key`` passed to the parser,
2. a ``Key:`` header line in the text,
3. ``C``, with a warning.

Rendering converts letter chords back to numbers in the model's key.
"""

import logging
import re

from ..chords.chord import Chord
from ..chords.keys import is_valid_key, parse_key
from ..chords.nashville import RHYTHM_CHARS, NashvilleConverter, parse_nashville_chord
from ..exceptions import ChordValidationError
from ..models import AnnotationLine, CanonicalSongModel, Dialect, TextLine
from .base import ChordLineStrategy, DialectParser, DialectRenderer, Extraction, MarkupChordStrategy, metadata_fields
from .utils import chord_over_lyric

logger = logging.getLogger(__name__)

DEFAULT_KEY = "C"

NASHVILLE_WORD_RE = re.compile(
    r"^[◆^.<>]*[#b]?[1-7](?:[m°+\-]|maj|min|dim|aug|sus|add|no|\d|\(|\)|#|b)*(?:/[#b]?[1-7])?[◆^.<>]*$"
)

_KEY_HEADER_RE = re.compile(r"^\s*key\s*:\s*(\S+)\s*$", re.IGNORECASE | re.MULTILINE)
_RHYTHM_EDGES_RE = re.compile(rf"^([{RHYTHM_CHARS}]*).*?([{RHYTHM_CHARS}]*)$")
_RHYTHM_TOKEN_RE = re.compile(rf"^[{RHYTHM_CHARS}]+$")


class NashvilleStrategy(ChordLineStrategy):
    """Number lines above lyrics, plus ``[n]`` chords inline."""

    def __init__(self):
        super().__init__(NASHVILLE_WORD_RE, _RHYTHM_TOKEN_RE)
        self.inline = MarkupChordStrategy()

    def extract(self, line: str) -> Extraction:
        if "[" in line or "]" in line:
            return self.inline.extract(line)
        return super().extract(line)


class NashvilleParser(DialectParser):
    dialect = Dialect.NASHVILLE

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.converter = NashvilleConverter()
        self.chart_key = DEFAULT_KEY

    def create_strategy(self) -> NashvilleStrategy:
        return NashvilleStrategy()

    def is_valid(self, text: str) -> bool:
        if not text or not isinstance(text, str):
            return False
        number = r"[1-7][#b]?[m°+]?(?:sus|add|maj|min)?[0-9]*(?:/[1-7][#b]?)?"
        return bool(
            re.search(rf"\b{number}\b", text)
            or re.search(rf"\[{number}\]", text)
            or re.search(r"[◆^.<>]", text)
        )

    def prepare(self, text, state) -> None:
        key = self.key
        if key is not None and not is_valid_key(key):
            state.warnings.append(f"Ignoring invalid key {key!r} for Nashville chart")
            key = None
        if key is None:
            m = _KEY_HEADER_RE.search(text)
            if m and is_valid_key(m.group(1)):
                key = m.group(1)
        if key is None:
            logger.warning("No key for Nashville chart, assuming %s", DEFAULT_KEY)
            state.warnings.append(f"No key given for Nashville chart; assuming {DEFAULT_KEY}")
            key = DEFAULT_KEY
        else:
            state.metadata.original_key = str(parse_key(key))
        self.chart_key = str(parse_key(key))

    def read_metadata(self, stripped, metadata):
        line = super().read_metadata(stripped, metadata)
        # The key the chords were numbered against wins over a conflicting header.
        if line is not None and line.directive == "key" and metadata.original_key is not None:
            metadata.original_key = self.chart_key
        return line

    def make_chord(self, symbol: str, position: int) -> Chord:
        try:
            nchord = parse_nashville_chord(symbol)
        except ChordValidationError as exc:
            raise ChordValidationError(symbol, exc.errors) from exc
        return self.converter.to_chord(nchord, self.chart_key, position)


class NashvilleRenderer(DialectRenderer):
    dialect = Dialect.NASHVILLE

    def __init__(self):
        self.converter = NashvilleConverter()

    def render_metadata(self, model: CanonicalSongModel) -> list[str]:
        fields = metadata_fields(model.metadata)
        if model.metadata.original_key is None:
            fields.append(("key", chart_key(model)))
        return [f"{name.title()}: {value}" for name, value in fields]

    def chord_symbol(self, chord: Chord, model: CanonicalSongModel) -> str:
        number = str(self.converter.to_nashville(chord, chart_key(model)))
        if chord.nashville:
            before, after = _RHYTHM_EDGES_RE.match(chord.nashville).groups()
            number = before + number + after
        return number

    def render_section_header(self, label: str) -> list[str]:
        return [f"{label}:"]

    def render_annotation(self, line: AnnotationLine) -> list[str]:
        return [f"({line.text})"]

    def render_text(self, line: TextLine, model: CanonicalSongModel) -> list[str]:
        return chord_over_lyric(line, lambda p: self.chord_symbol(p.chord, model))


def chart_key(model: CanonicalSongModel) -> str:
    """Key used to number *model*'s chords: original, else detected, else C."""
    return model.metadata.original_key or model.metadata.detected_key or DEFAULT_KEY
