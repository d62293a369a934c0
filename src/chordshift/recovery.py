"""Line-level error recovery.

When a parser cannot classify or extract a line it builds a
:class:`~chordshift.models.ConversionError` and asks a :class:`RecoveryChain`
for a usable replacement.  The chain walks its handlers in order and
returns the first successful :class:`RecoveryResult`; the terminal
:class:`FallbackHandler` always succeeds, so every line ends up as text,
an annotation or a blank.

Chains by level
---------------

+----------------+------------------------------------------------------------+
| Level          | Handlers (in order)                                        |
+================+============================================================+
| ``strict``     | invalid chord, bracket balance, fallback                   |
+----------------+------------------------------------------------------------+
| ``moderate``   | invalid chord, malformed section, bracket balance,         |
|                | encoding, fallback                                         |
+----------------+------------------------------------------------------------+
| ``permissive`` | moderate plus whitespace, special characters and the       |
|                | target dialect's handler, before fallback                  |
+----------------+------------------------------------------------------------+

A handler that rewrites the line sets ``repaired_text``; the parser then
re-reads that text once and uses ``line`` only if the re-read fails.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from .chords.chord import ExtensionType
from .chords.factory import ChordFactory
from .exceptions import ChordShiftError
from .models import AnnotationKind, AnnotationLine, ConversionError, Dialect, EmptyLine, ErrorKind, Line, TextLine

logger = logging.getLogger(__name__)

RECOVERY_LEVELS = ("strict", "moderate", "permissive")


@dataclass
class RecoveryResult:
    success: bool
    line: Line | None = None
    repaired_text: str | None = None
    warnings: list[str] = field(default_factory=list)
    errors: list[ConversionError] = field(default_factory=list)  # errors left standing after recovery
    handler: str | None = None


class RecoveryHandler(ABC):
    name = "handler"

    @abstractmethod
    def can_handle(self, error: ConversionError) -> bool:
        """Return True if this handler knows how to deal with *error*."""

    @abstractmethod
    def attempt(self, error: ConversionError, line_text: str) -> RecoveryResult:
        """Try to turn *line_text* into a usable line."""

    def _repaired(self, original: str, repaired: str, warning: str) -> RecoveryResult:
        if repaired == original:
            return RecoveryResult(False)
        return RecoveryResult(
            True,
            line=TextLine(_strip_markup(repaired).rstrip()),
            repaired_text=repaired,
            warnings=[warning],
        )


def _message(error: ConversionError) -> str:
    return error.message.lower()


def _strip_markup(text: str) -> str:
    return re.sub(r"[\[\]{}]", "", text)


# ---------------------------------------------------------------------------
# Default handlers
# ---------------------------------------------------------------------------

_ILLEGAL_CHORD_CHARS_RE = re.compile(r"[^A-G#b0-9msujdimaugadd]", re.IGNORECASE)


class InvalidChordHandler(RecoveryHandler):
    """Correct a bad chord token, or demote it to plain text."""

    name = "invalid_chord"

    def __init__(self, factory: ChordFactory | None = None):
        self.factory = factory or ChordFactory()

    def can_handle(self, error: ConversionError) -> bool:
        msg = _message(error)
        return error.kind in (ErrorKind.PARSE, ErrorKind.VALIDATION) and ("chord" in msg or "invalid" in msg)

    def attempt(self, error: ConversionError, line_text: str) -> RecoveryResult:
        token = error.snippet
        if not token or token == line_text or token not in line_text:
            return RecoveryResult(
                True,
                line=TextLine(line_text.rstrip()),
                warnings=[f"Treated line as plain text: {error.message}"],
            )

        marked = re.compile(r"[\[{]\s*" + re.escape(token) + r"\s*[\]}]")
        # Chord-line dialects carry the token bare, as a whole word.
        occurrence = marked if marked.search(line_text) else re.compile(r"(?<!\S)" + re.escape(token) + r"(?!\S)")
        demoted = marked.sub(lambda m: token, line_text, count=1)
        corrected = self.correct(token)
        repaired = None
        if corrected is not None:
            repaired = occurrence.sub(lambda m: m.group().replace(token, corrected, 1), line_text, count=1)
        if repaired is None or repaired == line_text:
            return RecoveryResult(
                True,
                line=TextLine(demoted.rstrip()),
                repaired_text=demoted,
                warnings=[f"Kept unrecognised chord {token!r} as text"],
            )
        return RecoveryResult(
            True,
            line=TextLine(demoted.rstrip()),
            repaired_text=repaired,
            warnings=[f"Corrected chord {token!r} to {corrected!r}"],
        )

    def correct(self, token: str) -> str | None:
        """Return a valid chord spelling close to *token*, or None."""
        cleaned = _ILLEGAL_CHORD_CHARS_RE.sub("", token)
        if not cleaned:
            return None
        candidates = [cleaned[0].upper() + cleaned[1:]]
        m = re.search(r"[A-G][#b]?", cleaned)
        if m and m.start() > 0:
            candidates.append(m.group() + cleaned[: m.start()] + cleaned[m.end():])
        if not cleaned[0].isalpha():
            candidates.append("C" + cleaned)
        for candidate in candidates:
            if self._is_clean_chord(candidate):
                return candidate
        return None

    def _is_clean_chord(self, text: str) -> bool:
        try:
            chord = self.factory.create(text)
        except ChordShiftError:
            return False
        return not any(ext.type is ExtensionType.UNKNOWN for ext in chord.extensions)


_SECTION_KEYWORD_RE = re.compile(
    r"\b(verse|chorus|bridge|intro|outro|pre-?chorus|post-?chorus|refrain|tag|vamp|interlude|solo|"
    r"break|instrumental|coda|hook|ending)\b(?:\s*(\d+))?",
    re.IGNORECASE,
)


class MalformedSectionHandler(RecoveryHandler):
    """Turn a broken section header into a section (by keyword) or a comment."""

    name = "malformed_section"

    def can_handle(self, error: ConversionError) -> bool:
        msg = _message(error)
        return "section" in msg or "annotation" in msg

    def attempt(self, error: ConversionError, line_text: str) -> RecoveryResult:
        cleaned = re.sub(r"[^\w\s\-:()\[\]]", "", line_text).strip()
        m = _SECTION_KEYWORD_RE.search(cleaned)
        if m:
            label = m.group(1).title() + (f" {m.group(2)}" if m.group(2) else "")
            return RecoveryResult(
                True,
                line=AnnotationLine(label, AnnotationKind.SECTION),
                warnings=[f"Recovered section header {label!r}"],
            )
        text = re.sub(r"^(?:comment|c)\s*:\s*", "", cleaned.strip("[]():"), flags=re.IGNORECASE).strip()
        return RecoveryResult(
            True,
            line=AnnotationLine(text or line_text.strip(), AnnotationKind.COMMENT),
            warnings=["Kept malformed annotation as a comment"],
        )


_PAIRS = {"[": "]", "{": "}", "(": ")"}
_CLOSERS = {v: k for k, v in _PAIRS.items()}


def balance_brackets(text: str) -> str:
    """Drop unmatched closers and close any openers left open at end of line."""
    out = []
    stack = []
    for ch in text:
        if ch in _PAIRS:
            stack.append(ch)
        elif ch in _CLOSERS:
            if not stack or stack[-1] != _CLOSERS[ch]:
                continue
            stack.pop()
        out.append(ch)
    return "".join(out).rstrip() + "".join(_PAIRS[ch] for ch in reversed(stack))


class BracketBalanceHandler(RecoveryHandler):
    """Repair unbalanced brackets, braces and parentheses."""

    name = "bracket_balance"

    def can_handle(self, error: ConversionError) -> bool:
        msg = _message(error)
        return error.kind in (ErrorKind.VALIDATION, ErrorKind.FORMAT) or "unbalanced" in msg

    def attempt(self, error: ConversionError, line_text: str) -> RecoveryResult:
        return self._repaired(line_text, balance_brackets(line_text), "Balanced brackets")


_MOJIBAKE = {
    "â€™": "'", "â€˜": "'", "â€œ": '"', "â€\x9d": '"', "â€”": "-", "â€“": "-", "â€¦": "...",
    "Ã©": "é", "Ã¨": "è", "Ã¡": "á", "Ã³": "ó", "Ã±": "ñ", "Ã¼": "ü", "Ã¶": "ö", "Ã¤": "ä",
    "â™¯": "#", "â™­": "b",
}


def clean_encoding(text: str) -> str:
    for bad, good in _MOJIBAKE.items():
        text = text.replace(bad, good)
    text = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", text)
    return "".join(ch if ch.isprintable() or ch == "\t" else "?" for ch in text).replace("�", "?")


class EncodingHandler(RecoveryHandler):
    """Fix common mojibake and strip control characters."""

    name = "encoding"

    def can_handle(self, error: ConversionError) -> bool:
        msg = _message(error)
        return "encoding" in msg or "character" in msg or "unicode" in msg

    def attempt(self, error: ConversionError, line_text: str) -> RecoveryResult:
        return self._repaired(line_text, clean_encoding(line_text), "Cleaned up text encoding")


class FallbackHandler(RecoveryHandler):
    """Always succeeds: blank content becomes an EmptyLine, anything else plain text."""

    name = "fallback"

    def can_handle(self, error: ConversionError) -> bool:
        return True

    def attempt(self, error: ConversionError, line_text: str) -> RecoveryResult:
        line = EmptyLine(1) if not line_text.strip() else TextLine(line_text.rstrip())
        return RecoveryResult(
            True,
            line=line,
            warnings=["Kept line verbatim as plain text"],
            errors=[error],
        )


# ---------------------------------------------------------------------------
# Permissive handlers
# ---------------------------------------------------------------------------


class WhitespaceHandler(RecoveryHandler):
    """Replace tabs and odd spaces (non-breaking, zero-width) with plain spaces."""

    name = "whitespace"

    def can_handle(self, error: ConversionError) -> bool:
        return error.kind in (ErrorKind.PARSE, ErrorKind.FORMAT, ErrorKind.VALIDATION)

    def attempt(self, error: ConversionError, line_text: str) -> RecoveryResult:
        repaired = line_text.expandtabs(4).replace("\u00a0", " ")
        repaired = re.sub("[\u200b\u200c\u200d\ufeff]", "", repaired).rstrip()
        return self._repaired(line_text.rstrip(), repaired, "Normalized whitespace")


_SPECIAL_CHARS = {
    "‘": "'", "’": "'", "“": '"', "”": '"',
    "–": "-", "—": "-", "…": "...", "♯": "#", "♭": "b",
}


class SpecialCharacterHandler(RecoveryHandler):
    """Replace typographic quotes, dashes and music sharps/flats with ASCII."""

    name = "special_characters"

    def can_handle(self, error: ConversionError) -> bool:
        return error.kind in (ErrorKind.PARSE, ErrorKind.FORMAT, ErrorKind.VALIDATION)

    def attempt(self, error: ConversionError, line_text: str) -> RecoveryResult:
        repaired = "".join(_SPECIAL_CHARS.get(ch, ch) for ch in line_text)
        return self._repaired(line_text, repaired, "Replaced special characters")


class ChordProHandler(RecoveryHandler):
    """Close open braces and turn ``{free text}`` into ``{comment: free text}``."""

    name = "chordpro"

    def can_handle(self, error: ConversionError) -> bool:
        return "{" in (error.snippet or "") or error.kind in (ErrorKind.PARSE, ErrorKind.FORMAT)

    def attempt(self, error: ConversionError, line_text: str) -> RecoveryResult:
        repaired = balance_brackets(line_text)
        m = re.match(r"^\s*\{([^:{}]*[a-z][^:{}]*)\}\s*$", repaired)
        if m and not re.match(r"^(?:start|end)_of_", m.group(1)):
            repaired = f"{{comment: {m.group(1).strip()}}}"
        return self._repaired(line_text, repaired, "Repaired ChordPro markup")


class OnSongHandler(RecoveryHandler):
    """Collapse ``**comment`` markers, trim ``[ C ]`` and convert ``{C}`` to ``[C]``."""

    name = "onsong"

    def can_handle(self, error: ConversionError) -> bool:
        return error.kind in (ErrorKind.PARSE, ErrorKind.FORMAT)

    def attempt(self, error: ConversionError, line_text: str) -> RecoveryResult:
        repaired = re.sub(r"^\s*\*{2,}", "*", line_text)
        repaired = re.sub(r"\[\s*([^\]]*?)\s*\]", r"[\1]", repaired)
        repaired = re.sub(r"\{([A-G][#b]?[^}]*)\}", r"[\1]", repaired)
        return self._repaired(line_text, repaired, "Repaired OnSong markup")


class NashvilleHandler(RecoveryHandler):
    """Strip stray characters from number chords and drop a bass equal to the chord number."""

    name = "nashville"

    def can_handle(self, error: ConversionError) -> bool:
        return error.kind in (ErrorKind.PARSE, ErrorKind.VALIDATION, ErrorKind.FORMAT)

    def attempt(self, error: ConversionError, line_text: str) -> RecoveryResult:
        repaired = re.sub(r"\b([#b]?[1-7])([^\s/\]]*)/\1\b", r"\1\2", line_text)
        repaired = re.sub(r"(?<=\d)[^\s\[\]/|◆^.<>#bm°+\-0-9a-z]+", "", repaired)
        return self._repaired(line_text, repaired, "Repaired Nashville chord")


DIALECT_HANDLERS: dict[Dialect, type[RecoveryHandler]] = {
    Dialect.CHORDPRO: ChordProHandler,
    Dialect.ONSONG: OnSongHandler,
    Dialect.NASHVILLE: NashvilleHandler,
}


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------


def default_handlers(level: str = "moderate", dialect: Dialect | None = None) -> list[RecoveryHandler]:
    """Return the standard handler list for *level* (fallback last)."""
    if level not in RECOVERY_LEVELS:
        raise ValueError(f"Unknown recovery level {level!r}; expected one of {', '.join(RECOVERY_LEVELS)}")
    if level == "strict":
        return [InvalidChordHandler(), BracketBalanceHandler(), FallbackHandler()]

    handlers: list[RecoveryHandler] = [
        InvalidChordHandler(),
        MalformedSectionHandler(),
        BracketBalanceHandler(),
        EncodingHandler(),
    ]
    if level == "permissive":
        handlers += [WhitespaceHandler(), SpecialCharacterHandler()]
        if dialect in DIALECT_HANDLERS:
            handlers.append(DIALECT_HANDLERS[dialect]())
    handlers.append(FallbackHandler())
    return handlers


class RecoveryChain:
    """Ordered recovery handlers; the first successful attempt wins.

    Usage::

        chain = RecoveryChain("permissive", Dialect.ONSONG)
        chain.add_handler(MyHandler())       # runs before the fallback
        result = chain.recover(error, "[H7]Hello")
    """

    def __init__(self, level: str = "moderate", dialect: Dialect | None = None):
        self.level = level
        self.dialect = dialect
        self.custom: list[RecoveryHandler] = []
        self.handlers = default_handlers(level, dialect)

    def add_handler(self, handler: RecoveryHandler) -> None:
        """Insert *handler* just ahead of the fallback."""
        self.custom.append(handler)
        self.handlers.insert(len(self.handlers) - 1, handler)

    def rebuild(self, level: str | None = None, dialect: Dialect | None = None) -> None:
        """Rebuild the standard handlers, keeping custom ones ahead of the fallback."""
        self.level = level or self.level
        self.dialect = dialect if dialect is not None else self.dialect
        handlers = default_handlers(self.level, self.dialect)
        self.handlers = handlers[:-1] + self.custom + handlers[-1:]

    def for_dialect(self, dialect: Dialect | None) -> "RecoveryChain":
        """Return this chain, or a copy whose dialect handler targets *dialect*."""
        if dialect == self.dialect:
            return self
        chain = RecoveryChain(self.level, dialect)
        for handler in self.custom:
            chain.add_handler(handler)
        return chain

    @property
    def handler_names(self) -> list[str]:
        return [h.name for h in self.handlers]

    def recover(self, error: ConversionError, line_text: str) -> RecoveryResult:
        """Return the first successful handler result; never raises.

        If no handler succeeds the result is unsuccessful and carries the
        original *error* unchanged.
        """
        for handler in self.handlers:
            try:
                if not handler.can_handle(error):
                    continue
                result = handler.attempt(error, line_text)
            except Exception:
                logger.exception("Recovery handler %s failed on %r", handler.name, line_text)
                continue
            if result.success:
                result.handler = handler.name
                logger.debug("Recovered line %s with %s", error.line, handler.name)
                return result
        return RecoveryResult(False, errors=[error])
