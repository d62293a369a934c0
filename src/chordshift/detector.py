"""Weighted-pattern dialect detection.

Each dialect has a fixed list of :class:`Indicator` regexes.  For every
indicator that matches, its weight is added to the dialect's score, with
two boosts:

* repeats: ``weight * min(1.5, 1 + (n - 1) * 0.1)`` for ``n`` matches
  (only *repeatable* indicators count more than one match)
* density: ``* 1.2`` when ``n / len(text) > 0.01``

The sum is divided by the dialect's total indicator weight and capped at
1.0.  Songbook is penalised (``* 0.1``) and guitar tabs boosted (``* 1.5``)
when the text has ``[Verse]``-style bracketed section headers.  Scores of
0.1 or less are reported as 0.

Usage::

    from chordshift.detector import FormatDetector
    result = FormatDetector().detect("[C]Amazing [G]grace")
    result.format, result.confidence
"""

import logging
import re
from dataclasses import dataclass

from .models import Dialect

logger = logging.getLogger(__name__)

DEFAULT_DIALECT = Dialect.ONSONG

_CHORD_WORD = r"[A-G][#b]?(?:maj|min|m|dim|aug|\+|°|sus[24]?|add\d+|\d+)*(?:\/[A-G][#b]?)?"

TAB_SECTION_HEADER_RE = re.compile(
    r"^\[(?:Intro|Verse|Chorus|Bridge|Outro|Solo|Pre-Chorus|Tag|Coda|Instrumental|Refrain|Break|Interlude)"
    r"(?:\s+\d+)?\]$",
    re.IGNORECASE | re.MULTILINE,
)


@dataclass(frozen=True)
class Indicator:
    pattern: re.Pattern
    weight: float
    description: str
    repeatable: bool = False

    def count(self, text: str) -> int:
        if self.repeatable:
            return sum(1 for _ in self.pattern.finditer(text))
        return 1 if self.pattern.search(text) else 0


@dataclass(frozen=True)
class DetectionResult:
    format: Dialect
    confidence: float


def _ind(pattern: str, weight: float, description: str, flags: int = 0, repeatable: bool = False) -> Indicator:
    return Indicator(re.compile(pattern, flags), weight, description, repeatable)


# Declaration order is the tie-break order.
INDICATORS: dict[Dialect, list[Indicator]] = {
    Dialect.CHORDPRO: [
        _ind(r"\{(?:title|t|subtitle|st|artist|composer|key|time|tempo|capo):", 0.9, "directive", re.I),
        _ind(r"\{(?:comment|c):", 0.7, "comment", re.I),
        _ind(r"\{(?:start_of_|end_of_)(?:chorus|verse|bridge)", 0.8, "section marker", re.I),
        _ind(r"\{[A-G][#b]?[^}]*\}", 0.6, "brace chord", repeatable=True),
    ],
    Dialect.ONSONG: [
        _ind(r"^\*[^*\n]+$", 0.8, "comment line", re.M),
        _ind(r"\[[A-G][#b]?[^\]]*\]", 0.7, "bracket chord", repeatable=True),
        _ind(r"^[A-Z][a-z]*\s*\d*:?\s*$", 0.6, "section header", re.M),
        _ind(r"^Title:\s*|^Artist:\s*|^Key:\s*", 0.5, "metadata", re.M),
    ],
    Dialect.NASHVILLE: [
        _ind(r"\b[1-7][#b]?[m°+]?(?:\/[1-7][#b]?)?\b", 0.9, "numbers", repeatable=True),
        _ind(r"[◆^.<>]", 0.7, "rhythmic symbols", repeatable=True),
        _ind(r"\|[^|]*\|", 0.6, "bar lines", repeatable=True),
    ],
    Dialect.SONGBOOK: [
        _ind(r"^\([^)]+\)$", 0.8, "parenthetical comment", re.M),
        _ind(rf"^{_CHORD_WORD}\s+{_CHORD_WORD}\s+{_CHORD_WORD}", 0.85, "chord line", re.M),
        _ind(rf"^{_CHORD_WORD}\s*$", 0.6, "single chord line", re.M),
    ],
    Dialect.GUITAR_TABS: [
        _ind(TAB_SECTION_HEADER_RE.pattern, 0.95, "bracketed section header", re.I | re.M),
        _ind(r"^\s*[A-G][#b]?\s*$", 0.7, "single chord line", re.M),
        _ind(r"^[A-G][#b]?(?:\s+[A-G][#b]?)*\s*$", 0.8, "chord line", re.M),
        _ind(r"^[eEbBgGdDaA][\|\-\d\s]+$", 0.6, "tab staff line", re.M),
        _ind(r"^\s*\d+[\-\d\s]*\d+\s*$", 0.5, "fret numbers", re.M),
        _ind(r"[h^p~\/\\]", 0.3, "technique symbols", repeatable=True),
    ],
    Dialect.PLANNING_CENTER: [
        _ind(r"<b>[^<]+<\/b>", 0.8, "bold annotation", repeatable=True),
        _ind(r"^[A-Z][a-z]+\s+\d+$", 0.6, "numbered section", re.M),
    ],
}


def normalize_text(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n").strip()


class FormatDetector:
    """Rank dialects by how well a text matches their indicators."""

    def __init__(self, indicators: dict[Dialect, list[Indicator]] | None = None):
        self.indicators = {d: list(v) for d, v in (indicators or INDICATORS).items()}

    def add_indicator(self, dialect: Dialect, pattern: str, weight: float, description: str = "",
                      flags: int = 0, repeatable: bool = False) -> None:
        self.indicators.setdefault(dialect, []).append(_ind(pattern, weight, description, flags, repeatable))

    def detect(self, text: str) -> DetectionResult:
        """Return the best-scoring dialect, or the default with confidence 0."""
        if not text or not text.strip():
            return DetectionResult(DEFAULT_DIALECT, 0.0)
        ranked = self.rank(text)
        if not ranked:
            return DetectionResult(DEFAULT_DIALECT, 0.0)
        logger.debug("Detected %s (%.2f)", ranked[0].format.value, ranked[0].confidence)
        return ranked[0]

    def rank(self, text: str) -> list[DetectionResult]:
        """Return every dialect with a non-zero score, best first."""
        normalized = normalize_text(text or "")
        if not normalized:
            return []
        results = []
        for dialect, indicators in self.indicators.items():
            confidence = self._score(dialect, normalized, indicators)
            if confidence > 0:
                results.append(DetectionResult(dialect, confidence))
        # sorted() is stable, so ties keep declaration order.
        return sorted(results, key=lambda r: r.confidence, reverse=True)

    def explain(self, text: str) -> dict[str, list[tuple[str, int, float]]]:
        """Return ``(description, matches, weight)`` for every indicator, per dialect."""
        normalized = normalize_text(text or "")
        return {
            dialect.value: [(i.description, i.count(normalized), i.weight) for i in indicators]
            for dialect, indicators in self.indicators.items()
        }

    def _score(self, dialect: Dialect, text: str, indicators: list[Indicator]) -> float:
        total = 0.0
        possible = 0.0
        for indicator in indicators:
            possible += indicator.weight
            n = indicator.count(text)
            if not n:
                continue
            score = indicator.weight
            if n > 1:
                score *= min(1.5, 1 + (n - 1) * 0.1)
            if n / len(text) > 0.01:
                score *= 1.2
            total += score

        if TAB_SECTION_HEADER_RE.search(text):
            if dialect is Dialect.SONGBOOK:
                total *= 0.1
            elif dialect is Dialect.GUITAR_TABS:
                total *= 1.5

        confidence = min(1.0, total / possible) if possible else 0.0
        return confidence if confidence > 0.1 else 0.0
