"""Rule-based validation of parsed chord components.

Errors make a chord unusable; warnings flag spellings that are unusual but
playable (a ``sus`` chord that also names a third, a bass equal to the
root, and so on).
"""

from dataclasses import dataclass, field

from .chord import Quality
from .parser import ChordComponents
from .values import ChordRoot

VALID_EXTENSIONS = frozenset({
    "5", "6", "7", "9", "11", "13", "6/9",
    "maj7", "maj9", "maj11", "maj13",
    "m7", "m9", "m11", "m13",
    "min7", "min9", "min11", "min13",
    "dim7", "dim9", "aug7", "aug9",
    "sus2", "sus4",
    "add2", "add4", "add6", "add9", "add11", "add13",
    "#5", "b5", "#9", "b9", "#11", "b13",
    "no3", "no5",
})

INCOMPATIBLE_PAIRS = [
    ("sus2", "sus4"),
    ("#5", "b5"),
    ("#9", "b9"),
    ("no3", "sus2"),
    ("no3", "sus4"),
    ("maj7", "m7"),
    ("maj7", "dim7"),
]


@dataclass
class ValidationResult:
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def error(self, message: str) -> None:
        self.errors.append(message)
        self.is_valid = False


class ChordValidator:
    def validate(self, components: ChordComponents) -> ValidationResult:
        result = ValidationResult()

        if not ChordRoot.is_valid(components.root):
            result.error(f"Invalid root note: {components.root}")
        if components.bass is not None:
            if not ChordRoot.is_valid(components.bass):
                result.error(f"Invalid bass note: {components.bass}")
            elif components.bass == components.root:
                result.warnings.append(f"Bass note {components.bass} is the same as the root")

        if not isinstance(components.quality, Quality):
            result.error(f"Invalid chord quality: {components.quality}")

        values = [ext.value for ext in components.extensions]
        for value in values:
            if value not in VALID_EXTENSIONS:
                result.warnings.append(f"Unknown extension: {value}")

        seen = set()
        for value in values:
            if value in seen:
                result.warnings.append(f"Duplicate extension: {value}")
            seen.add(value)

        for first, second in INCOMPATIBLE_PAIRS:
            if first in seen and second in seen:
                result.error(f"Incompatible extensions: {first} and {second}")

        if "no3" in seen and any("3" in v for v in seen if v != "no3"):
            result.error("Cannot omit the third while extending with a third")
        if "no5" in seen and any("5" in v for v in seen if v != "no5"):
            result.error("Cannot omit the fifth while altering the fifth")
        if components.quality is Quality.AUGMENTED and "b5" in seen:
            result.error("Augmented chord cannot have a flat fifth")

        if components.quality is Quality.SUSPENDED and any("3" in v for v in seen):
            result.warnings.append("Suspended chord also names a third")
        if components.quality is Quality.DIMINISHED and any("5" in v for v in seen):
            result.warnings.append("Diminished chord already alters the fifth")

        return result
