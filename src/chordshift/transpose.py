"""Key transposition and undoable transpose commands.

:class:`KeyTransposer` does the note arithmetic; :class:`TransposeKeyCommand`
applies it to every chord placement of a model in place and remembers the
originals so :meth:`~TransposeKeyCommand.undo` restores them exactly.

Usage::

    transposer = KeyTransposer()
    command = transposer.create_command(model, "C", "D")
    command.execute()
    command.undo()
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .chords.chord import Chord
from .chords.keys import (
    FLAT_KEYS,
    KeySignature,
    key_signature,
    parallel_key,
    parse_key,
    relative_key,
    scale,
)
from .chords.values import ChordRoot
from .exceptions import CommandStateError, InvalidKeyError
from .models import CanonicalSongModel, ChordPlacement, SongMetadata

logger = logging.getLogger(__name__)

MAX_HISTORY = 50

_MAJOR_NUMERALS = ("I", "ii", "iii", "IV", "V", "vi", "vii°")
_MINOR_NUMERALS = ("i", "ii°", "III", "iv", "v", "VI", "VII")

# Progressions as scale-degree indexes plus the suffix each chord gets.
COMMON_PROGRESSIONS = {
    "major": {
        "I-V-vi-IV": ((0, ""), (4, ""), (5, "m"), (3, "")),
        "ii-V-I": ((1, "m"), (4, ""), (0, "")),
        "I-vi-ii-V": ((0, ""), (5, "m"), (1, "m"), (4, "")),
    },
    "minor": {
        "i-VI-VII": ((0, "m"), (5, ""), (6, "")),
        "i-iv-V": ((0, "m"), (3, "m"), (4, "")),
        "i-VII-VI-VII": ((0, "m"), (6, ""), (5, ""), (6, "")),
    },
}


class KeyTransposer:
    """Semitone arithmetic on notes, chords and keys."""

    def transpose_note(self, note: str | ChordRoot, semitones: int, target_key: str | None = None) -> str:
        """Move *note* by *semitones*, spelled with flats only when *target_key* is a flat key."""
        root = note if isinstance(note, ChordRoot) else ChordRoot(note)
        return root.transpose(semitones, self._prefers_flats(target_key)).name

    def transpose_chord(self, chord: Chord, semitones: int, target_key: str | None = None) -> Chord:
        root = ChordRoot(self.transpose_note(chord.root, semitones, target_key))
        bass = ChordRoot(self.transpose_note(chord.bass, semitones, target_key)) if chord.bass else None
        return chord.with_roots(root, bass)

    def transpose_chords(self, chords: list[Chord], semitones: int, target_key: str | None = None) -> list[Chord]:
        return [self.transpose_chord(chord, semitones, target_key) for chord in chords]

    def get_key_distance(self, from_key: str, to_key: str) -> int:
        """Semitones (0-11) from the tonic of *from_key* up to the tonic of *to_key*."""
        return (parse_key(to_key).index - parse_key(from_key).index) % 12

    def relative_key(self, key: str) -> str:
        return relative_key(key)

    def parallel_key(self, key: str) -> str:
        return parallel_key(key)

    def are_keys_enharmonic(self, a: str, b: str) -> bool:
        ka, kb = parse_key(a), parse_key(b)
        return ka.index == kb.index and ka.minor == kb.minor

    def key_signature(self, key: str) -> KeySignature:
        return key_signature(key)

    def scale(self, key: str) -> list[str]:
        return scale(key)

    def chord_function(self, chord: Chord, key: str) -> str:
        """Roman numeral of *chord*'s root in *key*, or ``"N/A"`` when it is not diatonic."""
        k = parse_key(key)
        rel = (chord.root.chromatic_index - k.index) % 12
        if rel not in k.intervals:
            return "N/A"
        numerals = _MINOR_NUMERALS if k.minor else _MAJOR_NUMERALS
        return numerals[k.intervals.index(rel)]

    def best_enharmonic(self, key: str) -> str:
        """Return *key* or its enharmonic spelling, whichever has fewer accidentals."""
        k = parse_key(key)
        root = ChordRoot(k.tonic) if ChordRoot.is_valid(k.tonic) else None
        if root is None or root.is_natural:
            return str(k)
        alternative = root.enharmonic().name + ("m" if k.minor else "")
        try:
            ours = key_signature(str(k))
            theirs = key_signature(alternative)
        except InvalidKeyError:
            return str(k)
        if theirs.sharps + theirs.flats < ours.sharps + ours.flats:
            return alternative
        return str(k)

    def common_progressions(self, key: str) -> dict[str, list[str]]:
        """Return the named progressions of COMMON_PROGRESSIONS spelled out in *key*."""
        k = parse_key(key)
        notes = scale(key)
        table = COMMON_PROGRESSIONS["minor" if k.minor else "major"]
        return {name: [notes[degree] + suffix for degree, suffix in steps] for name, steps in table.items()}

    def create_command(self, model: CanonicalSongModel, from_key: str, to_key: str) -> "TransposeKeyCommand":
        return TransposeKeyCommand(model, from_key, to_key, self)

    @staticmethod
    def _prefers_flats(target_key: str | None) -> bool:
        return target_key is not None and str(parse_key(target_key)) in FLAT_KEYS


@dataclass
class _Change:
    placement: ChordPlacement
    section: int
    line: int
    original: Chord
    transposed: Chord


@dataclass
class ChangeSummary:
    sections_affected: int
    lines_affected: int
    chords_affected: int
    semitones: int
    from_key: str
    to_key: str


@dataclass
class ValidationReport:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


class TransposeKeyCommand:
    """Transpose every chord of *model* from *from_key* to *to_key*, undoably."""

    def __init__(self, model: CanonicalSongModel, from_key: str, to_key: str,
                 transposer: KeyTransposer | None = None):
        self.model = model
        self.from_key = from_key
        self.to_key = to_key
        self.transposer = transposer or KeyTransposer()
        self.semitones = self.transposer.get_key_distance(from_key, to_key)
        self.executed = False
        self._changes: list[_Change] = []
        self._metadata: SongMetadata | None = None

    @property
    def description(self) -> str:
        return f"Transpose from {self.from_key} to {self.to_key} ({self.semitones} semitones)"

    @property
    def can_undo(self) -> bool:
        return self.executed

    @property
    def affected_chord_count(self) -> int:
        return len(self._changes)

    def execute(self) -> None:
        if self.executed:
            raise CommandStateError("Command has already been executed")
        self._metadata = _copy_metadata(self.model.metadata)
        self._changes = []
        for s, line_index, placement in _walk(self.model):
            transposed = self.transposer.transpose_chord(placement.chord, self.semitones, self.to_key)
            self._changes.append(_Change(placement, s, line_index, placement.chord, transposed))
            placement.chord = transposed

        meta = self.model.metadata
        meta.original_key = self.to_key
        meta.extra["transposed_from"] = self.from_key
        meta.extra["semitones"] = self.semitones
        meta.extra["last_transposed"] = datetime.now(timezone.utc).isoformat()
        self.executed = True
        logger.info("%s: %d chords", self.description, len(self._changes))

    def undo(self) -> None:
        if not self.executed:
            raise CommandStateError("Cannot undo a command that has not been executed")
        for change in self._changes:
            change.placement.chord = change.original
        self.model.metadata = self._metadata
        self._changes = []
        self.executed = False

    def change_summary(self) -> ChangeSummary:
        return ChangeSummary(
            sections_affected=len({c.section for c in self._changes}),
            lines_affected=len({(c.section, c.line) for c in self._changes}),
            chords_affected=len(self._changes),
            semitones=self.semitones,
            from_key=self.from_key,
            to_key=self.to_key,
        )

    def preview(self) -> list[tuple[str, int, str, str]]:
        """Return ``(section, line number, before, after)`` for every chord, without changing the model."""
        changes = []
        for s, line_index, placement in _walk(self.model):
            transposed = self.transposer.transpose_chord(placement.chord, self.semitones, self.to_key)
            label = self.model.sections[s].label or "Unknown"
            changes.append((label, line_index + 1, placement.chord.notation, transposed.notation))
        return changes

    def validate(self) -> ValidationReport:
        errors = []
        if self.model is None:
            errors.append("Canonical model is required")
        if not self.from_key or not self.to_key:
            errors.append("Both original and target keys are required")
        elif self.from_key == self.to_key:
            errors.append("Original and target keys cannot be the same")
        if self.executed:
            errors.append("Command has already been executed")
        try:
            self.transposer.get_key_distance(self.from_key, self.to_key)
        except InvalidKeyError as exc:
            errors.append(str(exc))
        return ValidationReport(not errors, errors)


def _walk(model: CanonicalSongModel):
    for s, section in enumerate(model.sections):
        for line_index, line in enumerate(section.lines):
            for placement in getattr(line, "chords", ()):
                yield s, line_index, placement


def _copy_metadata(metadata: SongMetadata) -> SongMetadata:
    copied = SongMetadata(**{k: v for k, v in vars(metadata).items() if k != "extra"})
    copied.extra = dict(metadata.extra)
    return copied


class TransposeCommandManager:
    """Undo/redo history of transpose commands, capped at *max_history* entries."""

    def __init__(self, max_history: int = MAX_HISTORY):
        if max_history < 1:
            raise ValueError("Maximum history size must be at least 1")
        self.max_history = max_history
        self.history: list[TransposeKeyCommand] = []
        self.index = -1

    def execute(self, command: TransposeKeyCommand) -> None:
        command.execute()
        del self.history[self.index + 1:]
        self.history.append(command)
        self.index += 1
        if len(self.history) > self.max_history:
            self.history.pop(0)
            self.index -= 1

    def can_undo(self) -> bool:
        return 0 <= self.index < len(self.history) and self.history[self.index].can_undo

    def can_redo(self) -> bool:
        return self.index < len(self.history) - 1

    def undo(self) -> bool:
        if not self.can_undo():
            return False
        self.history[self.index].undo()
        self.index -= 1
        return True

    def redo(self) -> bool:
        if not self.can_redo():
            return False
        self.history[self.index + 1].execute()
        self.index += 1
        return True

    def clear(self) -> None:
        self.history = []
        self.index = -1

    def descriptions(self) -> list[str]:
        return [command.description for command in self.history]

    def set_max_history(self, size: int) -> None:
        if size < 1:
            raise ValueError("Maximum history size must be at least 1")
        self.max_history = size
        excess = len(self.history) - size
        if excess > 0:
            del self.history[:excess]
            self.index = max(-1, self.index - excess)

