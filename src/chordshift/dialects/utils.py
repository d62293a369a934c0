"""Shared line-level helpers used by every dialect.

Parsing side:

  1. is_section_header(), section_label(): ``[Verse 1]``, ``Chorus:``, ``Bridge``
  2. classify_annotation(): comment, section, tempo, dynamics or instruction
  3. is_chord_line(): chord-only lines for chord-over-lyric dialects
  4. chord_tokens(): (column, token) pairs from a chord line
  5. check_encoding(): reject lines with mojibake or control characters

Rendering side:

  6. insert_inline(): put chord markup into a lyric at each chord's column
  7. layout_tokens(): lay (column, token) pairs out on one line, keeping at
     least one space between neighbours
  8. chord_over_lyric(): a chord row above its lyric
"""

import re

from ..exceptions import TextEncodingError
from ..models import AnnotationKind, ChordPlacement, TextLine

# ---------------------------------------------------------------------------
# Regexes
# ---------------------------------------------------------------------------

SECTION_WORDS = (
    r"Verse|Chorus|Bridge|Intro|Outro|Pre-?Chorus|Post-?Chorus|Refrain|Tag|Vamp|"
    r"Interlude|Solo|Break|Instrumental|Coda|Hook|Ending"
)

# Bare section keyword line: "Verse 1", "Chorus:", "PRE-CHORUS 2:"
SECTION_KEYWORDS_RE = re.compile(rf"^(?:{SECTION_WORDS})(?:\s*\d+)?\s*:?$", re.IGNORECASE)

# Bracketed section header: [Verse 1], [Chorus]
BRACKET_SECTION_RE = re.compile(rf"^\[\s*((?:{SECTION_WORDS})(?:\s*\d+)?)\s*\]$", re.IGNORECASE)

# Lenient chord word for chord-over-lyric lines: A, Am7, Cmaj7, F#m7b5, G/B, Bb(add9).
# No bare "o" for diminished here: "Go" on its own line is a lyric.
CHORD_WORD_RE = re.compile(
    r"^[A-G][#b]?(?:maj|min|m|M|dim|aug|sus|add|no|6/9|°|\+|-|#|b|\d|\(|\))*(?:/[A-G][#b]?)?$"
)

BAR_TOKENS = frozenset({"|", "||", "|:", ":|", "/"})

# ASCII guitar tab staff line: e|--0--1--, E------2--, B|-3-
TAB_LINE_RE = re.compile(r"^[eEbBgGdDaA](?:\|[-\d]|--)")

# Tab notation legend: "(^) Slide Up  (\) Slide Down  (h) Hammer On"
TAB_LEGEND_RE = re.compile(r"\([\\^hpb]\)\s+\w")

_ANNOTATION_RULES = [
    (AnnotationKind.SECTION, re.compile(rf"^(?:{SECTION_WORDS})\b|^[vcb]\d+$", re.IGNORECASE)),
    (AnnotationKind.TEMPO, re.compile(
        r"\b(?:tempo|slow(?:ly)?|fast|moderate(?:ly)?|allegro|andante|adagio|presto|largo|vivace|steady)\b"
        r"|\d+\s*bpm\b",
        re.IGNORECASE,
    )),
    (AnnotationKind.DYNAMICS, re.compile(
        r"\b(?:loud(?:ly)?|soft(?:ly)?|forte|piano|crescendo|diminuendo|sforzando|sfz|ff|mf|mp|pp|f|p)\b",
        re.IGNORECASE,
    )),
    (AnnotationKind.INSTRUCTION, re.compile(
        r"\b(?:repeat|play|stop|pause|hold|fermata|ritard|rit|accel|da capo|dal segno|fine|coda|simile|tacet)\b"
        r"|\b\d+x\b|\bx\d+\b",
        re.IGNORECASE,
    )),
]

_MOJIBAKE_RE = re.compile("\u00e2\u20ac|\u00c3[\u0080-\u00bf]|\ufffd")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

_CHORD_ONLY_TEXT_RE = re.compile(r"^[\s|:/]*$")


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def classify_annotation(text: str) -> AnnotationKind:
    """Classify annotation text by keyword; anything unrecognised is a comment."""
    stripped = text.strip()
    for kind, pattern in _ANNOTATION_RULES:
        if pattern.search(stripped):
            return kind
    return AnnotationKind.COMMENT


def is_section_header(line: str) -> bool:
    stripped = line.strip()
    return bool(BRACKET_SECTION_RE.match(stripped) or SECTION_KEYWORDS_RE.match(stripped))


def section_label(line: str) -> str:
    """Return the human-readable label from a section header line."""
    stripped = line.strip()
    m = BRACKET_SECTION_RE.match(stripped)
    if m:
        return m.group(1).strip()
    return stripped.rstrip(":").strip()


def is_tab_line(line: str) -> bool:
    stripped = line.strip()
    return bool(TAB_LINE_RE.match(stripped) or TAB_LEGEND_RE.search(stripped))


def is_chord_line(line: str, word_re: re.Pattern = CHORD_WORD_RE, filler_re: re.Pattern | None = None) -> bool:
    """True if every token is a chord (or a bar or *filler_re* symbol) and at least one is a chord."""
    chords = [t for t in line.split() if not _is_filler(t, filler_re)]
    return bool(chords) and all(word_re.match(t) for t in chords)


def chord_tokens(line: str, filler_re: re.Pattern | None = None) -> list[tuple[int, str]]:
    """Return ``(column, token)`` for each chord token of a chord line."""
    return [(m.start(), m.group()) for m in re.finditer(r"\S+", line) if not _is_filler(m.group(), filler_re)]


def _is_filler(token: str, filler_re: re.Pattern | None) -> bool:
    return token in BAR_TOKENS or bool(filler_re and filler_re.match(token))


def is_chord_only_text(text: str) -> bool:
    return bool(_CHORD_ONLY_TEXT_RE.match(text))


def check_encoding(line: str) -> None:
    """Raise TextEncodingError for mojibake, replacement or control characters."""
    m = _MOJIBAKE_RE.search(line) or _CONTROL_RE.search(line)
    if m:
        raise TextEncodingError(line, m.group())


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


def layout_tokens(tokens: list[tuple[int, str]]) -> str:
    """Place each token at its column, pushing right to keep one space between tokens."""
    out = ""
    for column, token in sorted(tokens, key=lambda t: t[0]):
        if len(out) < column:
            out += " " * (column - len(out))
        elif out:
            out += " "
        out += token
    return out.rstrip()


def insert_inline(text: str, placements: list[ChordPlacement], markup) -> str:
    """Insert ``markup(placement)`` into *text* at each placement's column.

    A column past the end of the (growing) text appends the chord rather
    than dropping it.
    """
    result = text
    inserted = 0
    for placement in sorted(placements, key=lambda p: p.column):
        token = markup(placement)
        pos = min(placement.column + inserted, len(result))
        result = result[:pos] + token + result[pos:]
        inserted += len(token)
    return result


def chord_only_tokens(line: TextLine, markup) -> list[tuple[int, str]]:
    """Tokens for a chord-only line: chords at their columns plus any bar symbols in the text."""
    tokens = [(p.column, markup(p)) for p in line.chords]
    tokens.extend((m.start(), m.group()) for m in re.finditer(r"\S+", line.text))
    return tokens


def chord_over_lyric(line: TextLine, markup) -> list[str]:
    """Render *line* as a chord row above its lyric (one row for chord-only lines)."""
    if not line.chords:
        return [line.text]
    if line.is_chord_only:
        return [layout_tokens(chord_only_tokens(line, markup))]
    return [layout_tokens([(p.column, markup(p)) for p in line.chords]), line.text]


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

# Strict chord word used when sniffing chord-over-lyric layouts.
_SNIFF_CHORD_RE = re.compile(r"^[A-G][#b]?(?:maj|min|m|dim|aug|\+|°|sus[24]?|add\d+|\d+)*(?:/[A-G][#b]?)?$")


def _chord_share(line: str) -> float:
    words = line.split()
    if not words:
        return 0.0
    return sum(1 for w in words if _SNIFF_CHORD_RE.match(w)) / len(words)


def count_chord_lyric_pairs(text: str, chord_share: float = 0.5) -> int:
    """Count chord lines (at least *chord_share* chord words) directly followed by a lyric line."""
    lines = [line.strip() for line in text.split("\n")]
    pairs = 0
    for current, nxt in zip(lines, lines[1:]):
        if not current or not nxt:
            continue
        chord_words = _chord_share(current) * len(current.split())
        if chord_words < max(1, len(current.split()) * chord_share):
            continue
        if re.search(r"[a-zA-Z]", nxt) and _chord_share(nxt) < 0.3:
            pairs += 1
    return pairs
