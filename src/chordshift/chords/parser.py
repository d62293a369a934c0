"""Split chord symbols into root, quality, extensions and bass.

Parsing order for the text after the root:

  1. compound quality+extension tokens (``maj7``, ``m9``, ``dim7``, ``sus4``);
     the token sets the quality *and* is kept as an extension
  2. a single quality word or symbol, longest first (``minor`` before ``m``)
  3. extension patterns over whatever is left
  4. anything still unrecognised becomes one opaque extension

The parser does not judge whether the result makes musical sense; that is
:class:`~chordshift.chords.validator.ChordValidator`'s job.
"""

import re
from dataclasses import dataclass, field

from ..exceptions import ChordFormatError
from .chord import Extension, ExtensionType, Quality

# Only a trailing /<note> is a bass; any other slash (C6/9) belongs to the suffix.
CHORD_RE = re.compile(r"^([A-G])([#b]?)(\S*?)(?:/([A-G])([#b]?))?$")

# (pattern, quality, extension type, canonical prefix)
_COMPOUNDS = [
    (re.compile(r"^(?:major|maj|M)(13|11|9|7)"), Quality.MAJOR, ExtensionType.MAJ, "maj"),
    (re.compile(r"^(?:minor|min|m|-)(13|11|9|7)"), Quality.MINOR, ExtensionType.MIN, "m"),
    (re.compile(r"^(?:diminished|dim|°|o)(9|7)"), Quality.DIMINISHED, ExtensionType.DIM, "dim"),
    (re.compile(r"^(?:augmented|aug|\+)(9|7)"), Quality.AUGMENTED, ExtensionType.AUG, "aug"),
    (re.compile(r"^(?:suspended|sus)(4|2)"), Quality.SUSPENDED, ExtensionType.SUS, "sus"),
]

_QUALITY_WORDS = sorted(
    [
        ("major", Quality.MAJOR), ("maj", Quality.MAJOR), ("M", Quality.MAJOR),
        ("minor", Quality.MINOR), ("min", Quality.MINOR), ("m", Quality.MINOR), ("-", Quality.MINOR),
        ("diminished", Quality.DIMINISHED), ("dim", Quality.DIMINISHED),
        ("°", Quality.DIMINISHED), ("o", Quality.DIMINISHED),
        ("augmented", Quality.AUGMENTED), ("aug", Quality.AUGMENTED), ("+", Quality.AUGMENTED),
        ("suspended", Quality.SUSPENDED), ("sus", Quality.SUSPENDED),
        ("dom", Quality.DOMINANT),
    ],
    key=lambda pair: len(pair[0]),
    reverse=True,
)

# A bare 7/9/11/13 straight after the root means a dominant chord.
_DOMINANT_RE = re.compile(r"^(?:13|11|9|7)")

_EXTENSION_PATTERNS = [
    (re.compile(r"add\d+"), ExtensionType.ADD),
    (re.compile(r"sus[24]"), ExtensionType.SUS),
    (re.compile(r"maj(?:13|11|9|7)"), ExtensionType.MAJ),
    (re.compile(r"(?:min|m)(?:13|11|9|7)"), ExtensionType.MIN),
    (re.compile(r"dim[79]"), ExtensionType.DIM),
    (re.compile(r"aug[79]"), ExtensionType.AUG),
    (re.compile(r"[#b](?:13|11|9|5)"), ExtensionType.ALTERED),
    (re.compile(r"no[35]"), ExtensionType.OMIT),
    (re.compile(r"6/9"), ExtensionType.NUMERIC),
    (re.compile(r"13|11|[5679]"), ExtensionType.NUMERIC),
    (re.compile(r"[#b]?\d+"), ExtensionType.NUMERIC),
]

# Separators that carry no meaning inside a suffix: Cm(add9), C7,b9
_SEPARATORS = "(),"


@dataclass
class ChordComponents:
    """Raw parse result; root and bass are unvalidated strings."""

    root: str
    quality: Quality = Quality.MAJOR
    extensions: list[Extension] = field(default_factory=list)
    bass: str | None = None
    text: str = ""


class ChordParser:
    """Parse chord symbols like ``Am7``, ``G/B`` or ``Csus4add9``."""

    def parse(self, text: str) -> ChordComponents:
        """Return the components of *text*.

        Raises ChordFormatError if *text* has no valid leading root.
        """
        stripped = text.strip() if isinstance(text, str) else ""
        m = CHORD_RE.match(stripped)
        if not m:
            raise ChordFormatError(text)

        root = m.group(1) + m.group(2)
        suffix = m.group(3)
        bass = m.group(4) + m.group(5) if m.group(4) else None

        quality, extensions, rest, offset = self._parse_quality(suffix)
        extensions.extend(self._parse_extensions(rest, offset))

        if quality is Quality.DOMINANT and not any(e.type is ExtensionType.NUMERIC for e in extensions):
            extensions.insert(0, Extension(ExtensionType.NUMERIC, "7", offset))

        return ChordComponents(root=root, quality=quality, extensions=extensions, bass=bass, text=stripped)

    def is_chord(self, text: str) -> bool:
        return bool(CHORD_RE.match(text.strip()))

    # -- internals ----------------------------------------------------------

    def _parse_quality(self, suffix: str) -> tuple[Quality, list[Extension], str, int]:
        for pattern, quality, ext_type, prefix in _COMPOUNDS:
            m = pattern.match(suffix)
            if m:
                ext = Extension(ext_type, prefix + m.group(1), 0)
                return quality, [ext], suffix[m.end():], m.end()

        for word, quality in _QUALITY_WORDS:
            if suffix.startswith(word):
                return quality, [], suffix[len(word):], len(word)

        if _DOMINANT_RE.match(suffix):
            return Quality.DOMINANT, [], suffix, 0
        return Quality.MAJOR, [], suffix, 0

    def _parse_extensions(self, rest: str, offset: int) -> list[Extension]:
        extensions: list[Extension] = []
        opaque = ""
        opaque_at = 0
        i = 0
        while i < len(rest):
            if rest[i] in _SEPARATORS:
                i += 1
                continue
            for pattern, ext_type in _EXTENSION_PATTERNS:
                m = pattern.match(rest, i)
                if m:
                    extensions.append(Extension(ext_type, m.group(), offset + i))
                    i = m.end()
                    break
            else:
                if not opaque:
                    opaque_at = offset + i
                opaque += rest[i]
                i += 1
        if opaque:
            extensions.append(Extension(ExtensionType.UNKNOWN, opaque, opaque_at))
        return extensions
