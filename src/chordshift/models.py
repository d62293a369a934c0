"""Canonical, dialect-independent song model.

Every parser produces a :class:`CanonicalSongModel` and every renderer
consumes one; nothing else passes between them.  The model is plain
mutable data: the transposer rewrites its chord placements in place.

Persisted models, results and errors are JSON objects carrying
``schema_version`` (see :func:`model_to_dict` and friends).
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .chords.chord import Chord, Extension, ExtensionType, Quality
from .chords.values import ChordRoot

SCHEMA_VERSION = 1


class Dialect(Enum):
    CHORDPRO = "chordpro"  # brace directives, {C} chords
    ONSONG = "onsong"  # [C] inline chords, *comments
    NASHVILLE = "nashville"  # scale-degree numbers
    SONGBOOK = "songbook"  # chord line above lyric line
    GUITAR_TABS = "guitar_tabs"  # [Verse] headers, chord lines, ASCII tab
    PLANNING_CENTER = "planning_center"  # <b>Verse 1</b> headers

    @classmethod
    def from_id(cls, value: "str | Dialect") -> "Dialect":
        if isinstance(value, Dialect):
            return value
        normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
        return cls(_DIALECT_ALIASES.get(normalized, normalized))


_DIALECT_ALIASES = {
    "pco": "planning_center",
    "planningcenter": "planning_center",
    "guitartabs": "guitar_tabs",
    "tabs": "guitar_tabs",
    "cho": "chordpro",
}


class Placement(Enum):
    INLINE = "inline"  # embedded in the lyric stream
    ABOVE = "above"  # chord line over a lyric line
    BETWEEN = "between"  # chord-only line, no lyric


class AnnotationKind(Enum):
    COMMENT = "comment"
    SECTION = "section"
    INSTRUCTION = "instruction"
    TEMPO = "tempo"
    DYNAMICS = "dynamics"


class ErrorKind(Enum):
    PARSE = "parse"
    VALIDATION = "validation"
    FORMAT = "format"
    KEY = "key"
    RENDER = "render"
    TRANSPOSE = "transpose"
    CONVERSION = "conversion"
    FILE = "file"
    UNKNOWN = "unknown"


_RECOVERABLE_BY_DEFAULT = {ErrorKind.PARSE, ErrorKind.VALIDATION}


# ---------------------------------------------------------------------------
# Lines
# ---------------------------------------------------------------------------


@dataclass
class ChordPlacement:
    """One chord occurrence in a line.

    ``start``/``end`` span the chord's markup in the source line; ``column``
    is where the chord sits in the line's cleaned text.
    """

    chord: Chord
    start: int
    end: int
    placement: Placement = Placement.INLINE
    column: int = 0


@dataclass
class TextLine:
    text: str
    chords: list[ChordPlacement] = field(default_factory=list)

    @property
    def is_chord_only(self) -> bool:
        return bool(self.chords) and not self.text.strip()


@dataclass
class EmptyLine:
    count: int = 1


@dataclass
class AnnotationLine:
    text: str
    kind: AnnotationKind = AnnotationKind.COMMENT
    directive: str | None = None  # source directive name, e.g. "title", "start_of_chorus"


Line = TextLine | EmptyLine | AnnotationLine


@dataclass
class Section:
    """A labelled run of lines (verse, chorus, ...); label is None for unlabelled passages."""

    label: str | None = None
    lines: list[Line] = field(default_factory=list)

    @property
    def kind(self) -> str | None:
        return self.label.split()[0].lower() if self.label else None


# ---------------------------------------------------------------------------
# Song
# ---------------------------------------------------------------------------


@dataclass
class SongMetadata:
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    title: str = ""
    artist: str | None = None
    original_key: str | None = None
    detected_key: str | None = None
    key_confidence: float | None = None
    tempo: int | None = None
    time_signature: str | None = None
    capo: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)  # e.g. transposed_from, semitones


@dataclass
class ConversionError:
    """A problem found by a pipeline step, carried as data in results."""

    kind: ErrorKind
    message: str
    line: int | None = None
    column: int | None = None
    suggestion: str | None = None
    recoverable: bool | None = None
    snippet: str | None = None

    def __post_init__(self):
        if self.recoverable is None:
            self.recoverable = self.kind in _RECOVERABLE_BY_DEFAULT

    def __str__(self) -> str:
        where = f" (line {self.line})" if self.line is not None else ""
        return f"{self.kind.value}: {self.message}{where}"


@dataclass
class ParseInfo:
    source_format: Dialect
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    errors: list[ConversionError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class CanonicalSongModel:
    metadata: SongMetadata
    sections: list[Section]
    parse_info: ParseInfo

    def lines(self):
        for section in self.sections:
            yield from section.lines

    def placements(self):
        for line in self.lines():
            if isinstance(line, TextLine):
                yield from line.chords

    def chords(self) -> list[Chord]:
        return [p.chord for p in self.placements()]


# ---------------------------------------------------------------------------
# Requests and results
# ---------------------------------------------------------------------------


@dataclass
class TransposeOptions:
    from_key: str | None = None
    to_key: str | None = None


@dataclass
class ConversionRequest:
    input: str
    target_format: Dialect | str | None
    source_format: Dialect | str | None = None
    transpose: TransposeOptions | None = None
    key: str | None = None  # declared key for Nashville input
    save: bool = False
    name: str | None = None
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass
class ConversionResult:
    success: bool
    output: str = ""
    errors: list[ConversionError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    model: CanonicalSongModel | None = None


# ---------------------------------------------------------------------------
# JSON shapes
# ---------------------------------------------------------------------------


def chord_to_dict(chord: Chord) -> dict:
    return {
        "root": str(chord.root),
        "quality": chord.quality.value,
        "extensions": [
            {"type": e.type.value, "value": e.value, "position": e.position} for e in chord.extensions
        ],
        "bass": str(chord.bass) if chord.bass else None,
        "position": chord.position,
        "notation": chord.notation,
        "nashville": chord.nashville,
    }


def chord_from_dict(data: dict) -> Chord:
    return Chord(
        root=ChordRoot(data["root"]),
        quality=Quality(data.get("quality", "maj")),
        extensions=tuple(
            Extension(ExtensionType(e["type"]), e["value"], e.get("position", 0))
            for e in data.get("extensions", [])
        ),
        bass=ChordRoot(data["bass"]) if data.get("bass") else None,
        position=data.get("position", 0),
        notation=data.get("notation", ""),
        nashville=data.get("nashville"),
    )


def line_to_dict(line: Line) -> dict:
    if isinstance(line, EmptyLine):
        return {"type": "empty", "count": line.count}
    if isinstance(line, AnnotationLine):
        return {"type": "annotation", "text": line.text, "kind": line.kind.value, "directive": line.directive}
    return {
        "type": "text",
        "text": line.text,
        "chords": [
            {
                "chord": chord_to_dict(p.chord),
                "start": p.start,
                "end": p.end,
                "placement": p.placement.value,
                "column": p.column,
            }
            for p in line.chords
        ],
    }


def line_from_dict(data: dict) -> Line:
    kind = data.get("type")
    if kind == "empty":
        return EmptyLine(data.get("count", 1))
    if kind == "annotation":
        return AnnotationLine(data["text"], AnnotationKind(data.get("kind", "comment")), data.get("directive"))
    return TextLine(
        text=data.get("text", ""),
        chords=[
            ChordPlacement(
                chord=chord_from_dict(p["chord"]),
                start=p["start"],
                end=p["end"],
                placement=Placement(p.get("placement", "inline")),
                column=p.get("column", 0),
            )
            for p in data.get("chords", [])
        ],
    )


def error_to_dict(error: ConversionError) -> dict:
    return {
        "schema_version": SCHEMA_VERSION,
        "kind": error.kind.value,
        "message": error.message,
        "line": error.line,
        "column": error.column,
        "suggestion": error.suggestion,
        "recoverable": error.recoverable,
        "snippet": error.snippet,
    }


def error_from_dict(data: dict) -> ConversionError:
    return ConversionError(
        kind=ErrorKind(data.get("kind", "unknown")),
        message=data.get("message", ""),
        line=data.get("line"),
        column=data.get("column"),
        suggestion=data.get("suggestion"),
        recoverable=data.get("recoverable"),
        snippet=data.get("snippet"),
    )


def model_to_dict(model: CanonicalSongModel) -> dict:
    meta = model.metadata
    return {
        "schema_version": SCHEMA_VERSION,
        "metadata": {
            "id": meta.id,
            "title": meta.title,
            "artist": meta.artist,
            "original_key": meta.original_key,
            "detected_key": meta.detected_key,
            "key_confidence": meta.key_confidence,
            "tempo": meta.tempo,
            "time_signature": meta.time_signature,
            "capo": meta.capo,
            "extra": dict(meta.extra),
        },
        "sections": [
            {"label": s.label, "lines": [line_to_dict(line) for line in s.lines]} for s in model.sections
        ],
        "parse_info": {
            "source_format": model.parse_info.source_format.value,
            "timestamp": model.parse_info.timestamp.isoformat(),
            "errors": [error_to_dict(e) for e in model.parse_info.errors],
            "warnings": list(model.parse_info.warnings),
        },
    }


def model_from_dict(data: dict) -> CanonicalSongModel:
    version = data.get("schema_version", SCHEMA_VERSION)
    if version > SCHEMA_VERSION:
        raise ValueError(f"Unsupported schema_version {version}")
    meta = data.get("metadata", {})
    info = data.get("parse_info", {})
    return CanonicalSongModel(
        metadata=SongMetadata(
            id=meta.get("id") or uuid.uuid4().hex,
            title=meta.get("title", ""),
            artist=meta.get("artist"),
            original_key=meta.get("original_key"),
            detected_key=meta.get("detected_key"),
            key_confidence=meta.get("key_confidence"),
            tempo=meta.get("tempo"),
            time_signature=meta.get("time_signature"),
            capo=meta.get("capo"),
            extra=dict(meta.get("extra", {})),
        ),
        sections=[
            Section(label=s.get("label"), lines=[line_from_dict(line) for line in s.get("lines", [])])
            for s in data.get("sections", [])
        ],
        parse_info=ParseInfo(
            source_format=Dialect(info.get("source_format", "onsong")),
            timestamp=datetime.fromisoformat(info["timestamp"]) if info.get("timestamp") else datetime.now(timezone.utc),
            errors=[error_from_dict(e) for e in info.get("errors", [])],
            warnings=list(info.get("warnings", [])),
        ),
    )


def result_to_dict(result: ConversionResult) -> dict:
    return {
        "schema_version": SCHEMA_VERSION,
        "success": result.success,
        "output": result.output,
        "errors": [error_to_dict(e) for e in result.errors],
        "warnings": list(result.warnings),
        "metadata": dict(result.metadata),
    }
