"""Immutable chord model and the builder that produces it."""

import copy
from dataclasses import dataclass, field, replace
from enum import Enum

from ..exceptions import ChordValidationError
from .values import ChordRoot


class Quality(Enum):
    MAJOR = "maj"
    MINOR = "min"
    DIMINISHED = "dim"
    AUGMENTED = "aug"
    SUSPENDED = "sus"
    DOMINANT = "dom"


class ExtensionType(Enum):
    ADD = "add"  # add9, add11
    SUS = "sus"  # sus2, sus4
    MAJ = "maj"  # maj7, maj9
    MIN = "min"  # m7, m9
    DIM = "dim"  # dim7
    AUG = "aug"  # aug7
    ALTERED = "altered"  # #5, b9, #11
    OMIT = "omit"  # no3, no5
    NUMERIC = "numeric"  # 6, 7, 9, 11, 13, 5
    UNKNOWN = "unknown"  # unrecognised trailing text, kept verbatim


@dataclass(frozen=True)
class Extension:
    type: ExtensionType
    value: str
    position: int = 0  # offset within the chord suffix


# Written suffix for each quality when no extension already spells it.
_QUALITY_SUFFIX = {
    Quality.MAJOR: "",
    Quality.MINOR: "m",
    Quality.DIMINISHED: "dim",
    Quality.AUGMENTED: "aug",
    Quality.SUSPENDED: "sus",
    Quality.DOMINANT: "7",
}

_SPELLED_BY = {
    Quality.MINOR: ExtensionType.MIN,
    Quality.DIMINISHED: ExtensionType.DIM,
    Quality.AUGMENTED: ExtensionType.AUG,
    Quality.SUSPENDED: ExtensionType.SUS,
}


def spell_suffix(quality: Quality, extensions) -> str:
    """Return the written suffix (everything between root and slash) for a chord."""
    ext_types = {ext.type for ext in extensions}
    if quality is Quality.DOMINANT:
        prefix = "" if ExtensionType.NUMERIC in ext_types else _QUALITY_SUFFIX[quality]
    elif _SPELLED_BY.get(quality) in ext_types:
        prefix = ""
    else:
        prefix = _QUALITY_SUFFIX[quality]
    return prefix + "".join(ext.value for ext in extensions)


def spell_notation(root: ChordRoot, quality: Quality, extensions, bass: ChordRoot | None) -> str:
    notation = f"{root}{spell_suffix(quality, extensions)}"
    if bass is not None:
        notation += f"/{bass}"
    return notation


@dataclass(frozen=True)
class Chord:
    """A chord occurrence: root, quality, extensions and optional bass.

    ``position`` is the chord's character offset in its source line and
    ``notation`` the text the chord was written as (or a synthesized
    spelling for chords built from components).
    """

    root: ChordRoot
    quality: Quality = Quality.MAJOR
    extensions: tuple[Extension, ...] = ()
    bass: ChordRoot | None = None
    position: int = 0
    notation: str = ""
    nashville: str | None = None

    def __str__(self) -> str:
        return self.notation

    @property
    def suffix(self) -> str:
        return spell_suffix(self.quality, self.extensions)

    def with_roots(self, root: ChordRoot, bass: ChordRoot | None) -> "Chord":
        """Return a copy with new root/bass and a rebuilt notation."""
        return replace(
            self,
            root=root,
            bass=bass,
            notation=spell_notation(root, self.quality, self.extensions, bass),
        )


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


@dataclass
class ChordBuilder:
    """Accumulates chord fields; nothing is validated until :meth:`build`.

    Usage::

        chord = (
            ChordBuilder()
            .root("A")
            .quality(Quality.MINOR)
            .extension(Extension(ExtensionType.MIN, "m7"))
            .bass("G")
            .build()
        )
        chord.notation   # "Am7/G"
    """

    _root: str | None = None
    _quality: Quality = Quality.MAJOR
    _extensions: list[Extension] = field(default_factory=list)
    _bass: str | None = None
    _position: int = 0
    _notation: str | None = None
    _nashville: str | None = None

    def root(self, root: str | ChordRoot) -> "ChordBuilder":
        self._root = str(root)
        return self

    def quality(self, quality: Quality) -> "ChordBuilder":
        self._quality = quality
        return self

    def extension(self, extension: Extension) -> "ChordBuilder":
        self._extensions.append(extension)
        return self

    def extensions(self, extensions) -> "ChordBuilder":
        self._extensions.extend(extensions)
        return self

    def bass(self, bass: str | ChordRoot | None) -> "ChordBuilder":
        self._bass = str(bass) if bass is not None else None
        return self

    def position(self, position: int) -> "ChordBuilder":
        self._position = position
        return self

    def notation(self, notation: str | None) -> "ChordBuilder":
        self._notation = notation
        return self

    def nashville(self, nashville: str | None) -> "ChordBuilder":
        self._nashville = nashville
        return self

    def reset(self) -> "ChordBuilder":
        self.__init__()
        return self

    def copy(self) -> "ChordBuilder":
        return copy.deepcopy(self)

    def build(self) -> Chord:
        errors = []
        if not self._root:
            errors.append("root is required")
        elif not ChordRoot.is_valid(self._root):
            errors.append(f"invalid root {self._root!r}")
        if self._bass is not None and not ChordRoot.is_valid(self._bass):
            errors.append(f"invalid bass note {self._bass!r}")
        if self._position < 0:
            errors.append(f"position must be non-negative, got {self._position}")
        for ext in self._extensions:
            if not isinstance(ext.type, ExtensionType) or not ext.value or ext.position < 0:
                errors.append(f"malformed extension {ext!r}")
        if errors:
            raise ChordValidationError(self._notation or self._root or "", errors)

        root = ChordRoot(self._root)
        bass = ChordRoot(self._bass) if self._bass is not None else None
        extensions = tuple(self._extensions)
        notation = self._notation or spell_notation(root, self._quality, extensions, bass)
        return Chord(
            root=root,
            quality=self._quality,
            extensions=extensions,
            bass=bass,
            position=self._position,
            notation=notation,
            nashville=self._nashville,
        )
