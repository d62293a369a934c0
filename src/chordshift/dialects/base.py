"""Base classes shared by every dialect: extraction strategy, parser and renderer.

Line walk (:meth:`DialectParser.parse`)
---------------------------------------
1. A run of blank lines becomes one :class:`~chordshift.models.EmptyLine`.
2. Metadata lines (``{title: ...}``, ``Key: G``) fill in the song metadata
   and are kept as comment annotations.
3. Section headers and comment markers become annotations; a section
   annotation starts a new :class:`~chordshift.models.Section`.
4. Everything else is a content line handed to the dialect's
   :class:`ChordExtractionStrategy`.  In chord-over-lyric dialects a chord
   line followed by a lyric line is merged into one text line.

Any :class:`~chordshift.exceptions.ChordShiftError` raised along the way is
turned into a :class:`~chordshift.models.ConversionError` and offered to the
recovery chain, so one bad line never stops the document.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ..chords.chord import Chord
from ..chords.factory import ChordFactory
from ..chords.keys import is_valid_key
from ..exceptions import (
    ChordFormatError,
    ChordShiftError,
    ChordValidationError,
    MarkupError,
    SectionError,
    TextEncodingError,
)
from ..keydetect import detect_key
from ..models import (
    AnnotationKind,
    AnnotationLine,
    CanonicalSongModel,
    ChordPlacement,
    ConversionError,
    Dialect,
    EmptyLine,
    ErrorKind,
    Line,
    ParseInfo,
    Placement,
    Section,
    SongMetadata,
    TextLine,
)
from ..recovery import RecoveryChain
from .utils import (
    CHORD_WORD_RE,
    check_encoding,
    chord_tokens,
    classify_annotation,
    is_chord_line,
    is_chord_only_text,
    is_section_header,
    section_label,
)

logger = logging.getLogger(__name__)

# Comment markers recognised in every dialect.
_COMMENT_MARKERS = [
    re.compile(r"^\*\s*(.+)$"),  # *comment
    re.compile(r"^\((.+)\)$"),  # (comment)
    re.compile(r"^\{(?:comment|c|ci|comment_italic|cb|comment_box)\s*:\s*(.*)\}$", re.IGNORECASE),
    re.compile(r"^<b>(.*)</b>$", re.IGNORECASE),  # <b>comment</b>
]

# "Title: Amazing Grace", "Key: G" header lines.
METADATA_LINE_RE = re.compile(
    r"^(title|subtitle|artist|composer|key|tempo|time|capo)\s*:\s*(.+)$", re.IGNORECASE
)


@dataclass
class ChordMatch:
    """One chord found by a strategy: its symbol, source span and column in the cleaned text."""

    symbol: str
    start: int
    end: int
    column: int
    placement: Placement = Placement.INLINE


@dataclass
class Extraction:
    text: str
    matches: list[ChordMatch] = field(default_factory=list)


class ChordExtractionStrategy(ABC):
    """Find chords in one content line and return the line with chord markup removed."""

    # Chord-over-lyric strategies return True from is_chord_line() for chord-only lines.
    merges_chord_lines = False

    @abstractmethod
    def extract(self, line: str) -> Extraction:
        """Return the markup-stripped text and non-overlapping chord matches.

        Raises MarkupError for unbalanced markup.
        """

    def is_chord_line(self, line: str) -> bool:
        return False

    def is_verbatim(self, line: str) -> bool:
        """True for lines kept exactly as written (e.g. ASCII tab staves)."""
        return False


class MarkupChordStrategy(ChordExtractionStrategy):
    """Chords wrapped in paired markup inside the lyric: ``{C}Amazing`` or ``[C]Amazing``."""

    opener = "["
    closer = "]"
    name = "bracket"

    def __init__(self):
        o, c = re.escape(self.opener), re.escape(self.closer)
        self.pattern = re.compile(rf"{o}\s*([^{o}{c}]+?)\s*{c}")

    def extract(self, line: str) -> Extraction:
        if line.count(self.opener) != line.count(self.closer):
            raise MarkupError(line, f"Unbalanced {self.name} markup")
        pieces = []
        matches = []
        pos = 0
        column = 0
        for m in self.pattern.finditer(line):
            if not self.accepts(m.group(1)):
                continue
            pieces.append(line[pos:m.start()])
            column += m.start() - pos
            matches.append(ChordMatch(m.group(1), m.start(), m.end(), column))
            pos = m.end()
        pieces.append(line[pos:])
        return Extraction("".join(pieces), matches)

    def accepts(self, inner: str) -> bool:
        """Return False for markup that is not a chord and should stay in the text."""
        return True


class ChordLineStrategy(ChordExtractionStrategy):
    """Chord-over-lyric dialects: a line of chord words sits above the lyric it belongs to."""

    merges_chord_lines = True

    def __init__(self, word_re: re.Pattern = CHORD_WORD_RE, filler_re: re.Pattern | None = None):
        self.word_re = word_re
        self.filler_re = filler_re

    def is_chord_line(self, line: str) -> bool:
        return is_chord_line(line, self.word_re, self.filler_re)

    def extract(self, line: str) -> Extraction:
        if not self.is_chord_line(line):
            return Extraction(line)
        matches = [
            ChordMatch(token, column, column + len(token), column, Placement.BETWEEN)
            for column, token in chord_tokens(line, self.filler_re)
        ]
        text = list(line)
        for match in matches:
            text[match.start:match.end] = " " * (match.end - match.start)
        return Extraction("".join(text).rstrip(), matches)


@dataclass
class ParseResult:
    success: bool
    model: CanonicalSongModel | None = None
    errors: list[ConversionError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class _ParseState:
    metadata: SongMetadata
    sections: list[Section]
    current: Section
    errors: list[ConversionError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _error_kind(exc: Exception) -> ErrorKind:
    if isinstance(exc, (ChordFormatError, ChordValidationError, SectionError, TextEncodingError)):
        return ErrorKind.PARSE
    if isinstance(exc, MarkupError):
        return ErrorKind.FORMAT
    return ErrorKind.UNKNOWN


class DialectParser(ABC):
    """Line-oriented parser for one dialect.

    Subclasses set :attr:`dialect`, provide a strategy and may override the
    annotation hooks.
    """

    dialect: Dialect

    def __init__(self, recovery: RecoveryChain | None = None, factory: ChordFactory | None = None,
                 key: str | None = None):
        self.recovery = recovery or RecoveryChain(dialect=self.dialect)
        self.factory = factory or ChordFactory()
        self.key = key
        self.strategy = self.create_strategy()

    # -- dialect hooks ------------------------------------------------------

    @abstractmethod
    def create_strategy(self) -> ChordExtractionStrategy:
        """Return the chord extraction strategy for this dialect."""

    @abstractmethod
    def is_valid(self, text: str) -> bool:
        """Return True if *text* looks like this dialect."""

    def supported_format(self) -> Dialect:
        return self.dialect

    def read_metadata(self, stripped: str, metadata: SongMetadata) -> AnnotationLine | None:
        """Apply a metadata line to *metadata*; return its annotation, or None if not metadata."""
        m = METADATA_LINE_RE.match(stripped)
        if not m:
            return None
        name = m.group(1).lower()
        apply_metadata(metadata, name, m.group(2).strip())
        return AnnotationLine(stripped, AnnotationKind.COMMENT, directive=name)

    def is_annotation(self, stripped: str) -> bool:
        return is_section_header(stripped) or any(p.match(stripped) for p in _COMMENT_MARKERS)

    def parse_annotation(self, stripped: str) -> AnnotationLine:
        if is_section_header(stripped):
            return AnnotationLine(section_label(stripped), AnnotationKind.SECTION)
        for pattern in _COMMENT_MARKERS:
            m = pattern.match(stripped)
            if m:
                text = m.group(1).strip()
                if not text:
                    raise SectionError(stripped, "empty annotation")
                return AnnotationLine(text, classify_annotation(text))
        raise SectionError(stripped)

    def make_chord(self, symbol: str, position: int) -> Chord:
        return self.factory.create(symbol, position)

    # -- public API ---------------------------------------------------------

    def parse(self, text: str) -> ParseResult:
        """Parse *text* into a canonical model; never raises."""
        if not isinstance(text, str):
            error = ConversionError(ErrorKind.PARSE, "Input must be a string", recoverable=False)
            return ParseResult(False, errors=[error])

        metadata = SongMetadata()
        state = _ParseState(metadata=metadata, sections=[], current=Section())
        self.prepare(text, state)

        lines = split_lines(text)
        i = 0
        while i < len(lines):
            i = self._parse_at(lines, i, state)
        if state.current.lines:
            state.sections.append(state.current)

        model = CanonicalSongModel(
            metadata=metadata,
            sections=state.sections,
            parse_info=ParseInfo(source_format=self.dialect, errors=state.errors, warnings=state.warnings),
        )
        self._detect_key(model)
        logger.info(
            "Parsed %s: %d sections, %d chords, %d errors",
            self.dialect.value, len(model.sections), len(model.chords()), len(state.errors),
        )
        return ParseResult(True, model=model, errors=list(state.errors), warnings=list(state.warnings))

    def prepare(self, text: str, state: _ParseState) -> None:
        """Hook run before the line walk (Nashville uses it to settle the key)."""

    # -- line walk ----------------------------------------------------------

    def _parse_at(self, lines: list[str], i: int, state: _ParseState) -> int:
        """Parse the line(s) starting at *i*; return the index of the next unread line."""
        raw = lines[i]
        if not raw.strip():
            j = i
            while j < len(lines) and not lines[j].strip():
                j += 1
            self._emit(EmptyLine(j - i), state)
            return j

        try:
            if self.strategy.merges_chord_lines and self.strategy.is_chord_line(raw):
                nxt = lines[i + 1] if i + 1 < len(lines) else None
                if nxt is not None and self._is_lyric(nxt):
                    self._emit(self._merge(raw, nxt), state)
                    return i + 2
            self._emit(self._parse_line(raw, state.metadata), state)
        except ChordShiftError as exc:
            self._emit(self._recover(exc, raw, i, state), state)
        except Exception as exc:
            logger.exception("Unexpected failure parsing line %d", i + 1)
            self._emit(self._recover(exc, raw, i, state), state)
        return i + 1

    def _parse_line(self, raw: str, metadata: SongMetadata) -> Line:
        """Classify and parse one non-blank line (no chord-line merging)."""
        check_encoding(raw)
        stripped = raw.strip()
        meta = self.read_metadata(stripped, metadata)
        if meta is not None:
            return meta
        if self.is_annotation(stripped):
            return self.parse_annotation(stripped)
        if self.strategy.is_verbatim(raw):
            return TextLine(raw.rstrip())
        if self.strategy.merges_chord_lines and self.strategy.is_chord_line(raw):
            return self._chord_only(raw)
        return self._content(raw)

    def _content(self, raw: str) -> TextLine:
        line = raw.rstrip()
        extraction = self.strategy.extract(line)
        placements = [self._place(match) for match in extraction.matches]
        if placements and is_chord_only_text(extraction.text):
            # Chord-only: columns (and any bar symbols) stay in source coordinates.
            blanked = list(line)
            for placement, match in zip(placements, extraction.matches):
                placement.placement = Placement.BETWEEN
                placement.column = match.start
                blanked[match.start:match.end] = " " * (match.end - match.start)
            return TextLine("".join(blanked).rstrip(), placements)
        return TextLine(extraction.text, placements)

    def _chord_only(self, raw: str) -> TextLine:
        extraction = self.strategy.extract(raw.rstrip())
        placements = [self._place(match, Placement.BETWEEN) for match in extraction.matches]
        return TextLine(extraction.text, placements)

    def _merge(self, chord_line: str, lyric: str) -> TextLine:
        """Anchor the chords of *chord_line* onto *lyric* by column."""
        check_encoding(chord_line)
        check_encoding(lyric)
        text = lyric.rstrip()
        extraction = self.strategy.extract(chord_line.rstrip())
        placements = []
        for match in extraction.matches:
            placement = self._place(match, Placement.ABOVE)
            placement.column = min(match.start, len(text))
            placements.append(placement)
        return TextLine(text, placements)

    def _place(self, match: ChordMatch, placement: Placement | None = None) -> ChordPlacement:
        chord = self.make_chord(match.symbol, match.start)
        return ChordPlacement(
            chord=chord,
            start=match.start,
            end=match.end,
            placement=placement or match.placement,
            column=match.column,
        )

    def _is_lyric(self, line: str) -> bool:
        stripped = line.strip()
        return bool(
            stripped
            and not METADATA_LINE_RE.match(stripped)
            and not self.is_annotation(stripped)
            and not self.strategy.is_chord_line(line)
            and not self.strategy.is_verbatim(line)
        )

    def _emit(self, line: Line, state: _ParseState) -> None:
        if isinstance(line, AnnotationLine) and line.kind is AnnotationKind.SECTION:
            directive = line.directive or ""
            if directive.startswith("end_of_"):
                state.current.lines.append(line)
                state.sections.append(state.current)
                state.current = Section()
                return
            if state.current.lines:
                state.sections.append(state.current)
            state.current = Section(label=line.text)
        state.current.lines.append(line)

    # -- recovery -----------------------------------------------------------

    def _recover(self, exc: Exception, raw: str, index: int, state: _ParseState) -> Line:
        snippet = getattr(exc, "text", None) or raw
        error = ConversionError(
            kind=_error_kind(exc),
            message=str(exc),
            line=index + 1,
            snippet=snippet,
            recoverable=True,
        )
        logger.warning("Line %d: %s", index + 1, error.message)
        result = self.recovery.recover(error, raw)
        if not result.success:
            state.errors.append(error)
            return TextLine(raw.rstrip())

        state.errors.extend(result.errors)
        line = result.line if result.line is not None else TextLine(raw.rstrip())
        if result.repaired_text is not None and result.repaired_text != raw:
            try:
                line = self._parse_line(result.repaired_text, state.metadata)
            except ChordShiftError as second:
                logger.debug("Line %d: repaired text still unreadable: %s", index + 1, second)
                state.warnings.append(f"Line {index + 1}: kept as text after failed repair ({error.message})")
                return line
        state.warnings.extend(f"Line {index + 1}: {w}" for w in result.warnings)
        return line

    def _detect_key(self, model: CanonicalSongModel) -> None:
        chords = model.chords()
        if not chords:
            return
        detection = detect_key(chords)
        if detection.confidence > 0:
            model.metadata.detected_key = detection.key
            model.metadata.key_confidence = round(detection.confidence, 3)


def apply_metadata(metadata: SongMetadata, name: str, value: str) -> None:
    """Store one ``name: value`` metadata pair on *metadata*."""
    if name == "title":
        metadata.title = value
    elif name == "artist" or (name == "composer" and not metadata.artist):
        metadata.artist = value
    elif name == "key":
        if is_valid_key(value):
            metadata.original_key = value.strip()
        else:
            metadata.extra["key"] = value
    elif name in ("tempo", "capo"):
        m = re.search(r"\d+", value)
        if m:
            setattr(metadata, name, int(m.group()))
    elif name == "time":
        metadata.time_signature = value
    else:
        metadata.extra[name] = value


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


class DialectRenderer(ABC):
    """Render a :class:`~chordshift.models.CanonicalSongModel` to one dialect.

    The returned text ends with a single newline and uses ``\\n`` line
    endings throughout.
    """

    dialect: Dialect

    # Metadata annotations already rendered by render_metadata().
    _METADATA_DIRECTIVES = {"title", "subtitle", "artist", "composer", "key", "tempo", "time", "capo"}

    def render(self, model: CanonicalSongModel) -> str:
        header = self.render_metadata(model)
        body: list[str] = []
        for section in model.sections:
            lines: list[str] = []
            for line in section.lines:
                lines.extend(self._render_line(line, section, model))
            # Closing directives go before the blank lines that separate sections.
            blanks = 0
            while blanks < len(lines) and lines[-1 - blanks] == "":
                blanks += 1
            end = self.render_section_end(section)
            body.extend(lines[: len(lines) - blanks] + end + [""] * blanks)
        while body and not body[0].strip():
            body.pop(0)
        while body and not body[-1].strip():
            body.pop()
        parts = header + ([""] if header and body else []) + body
        return "\n".join(part.rstrip() for part in parts) + "\n"

    def _render_line(self, line: Line, section: Section, model: CanonicalSongModel) -> list[str]:
        if isinstance(line, EmptyLine):
            return [""] * line.count
        if isinstance(line, AnnotationLine):
            if line.directive in self._METADATA_DIRECTIVES:
                return []
            if line.directive and line.directive.startswith("end_of_"):
                return []
            if line.kind is AnnotationKind.SECTION:
                return self.render_section_header(line.text)
            return self.render_annotation(line)
        return self.render_text(line, model)

    def chord_symbol(self, chord: Chord, model: CanonicalSongModel) -> str:
        return chord.notation

    @abstractmethod
    def render_metadata(self, model: CanonicalSongModel) -> list[str]:
        """Return the header lines for the song metadata."""

    @abstractmethod
    def render_section_header(self, label: str) -> list[str]:
        """Return the lines that open a section."""

    @abstractmethod
    def render_annotation(self, line: AnnotationLine) -> list[str]:
        """Return the lines for a non-section annotation."""

    @abstractmethod
    def render_text(self, line: TextLine, model: CanonicalSongModel) -> list[str]:
        """Return the lines for a text line and its chords."""

    def render_section_end(self, section: Section) -> list[str]:
        return []


def split_lines(text: str) -> list[str]:
    """Split on any line ending, dropping leading and trailing blank lines.

    Leading spaces are kept: chord columns depend on them.
    """
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return lines


def metadata_fields(metadata: SongMetadata) -> list[tuple[str, str]]:
    """Return the ``(name, value)`` metadata pairs worth rendering, in header order."""
    fields = [
        ("title", metadata.title),
        ("subtitle", metadata.extra.get("subtitle")),
        ("artist", metadata.artist),
        ("key", metadata.original_key),
        ("tempo", metadata.tempo),
        ("time", metadata.time_signature),
        ("capo", metadata.capo),
    ]
    return [(name, str(value)) for name, value in fields if value not in (None, "")]
