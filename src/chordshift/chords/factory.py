import logging

from ..exceptions import ChordFormatError, ChordValidationError
from .chord import Chord, ChordBuilder
from .parser import ChordParser
from .validator import ChordValidator, ValidationResult

logger = logging.getLogger(__name__)


class ChordFactory:
    """Parse, validate and build chords from text in one step."""

    def __init__(self, parser: ChordParser | None = None, validator: ChordValidator | None = None):
        self.parser = parser or ChordParser()
        self.validator = validator or ChordValidator()

    def create(self, text: str, position: int = 0, nashville: str | None = None) -> Chord:
        """Return a :class:`Chord` for *text*.

        Raises ChordFormatError if *text* has no root, and ChordValidationError
        (listing every problem) if the components are invalid.
        """
        components = self.parser.parse(text)
        result = self.validator.validate(components)
        if not result.is_valid:
            raise ChordValidationError(text, result.errors)
        for warning in result.warnings:
            logger.debug("Chord %r: %s", text, warning)

        return (
            ChordBuilder()
            .root(components.root)
            .quality(components.quality)
            .extensions(components.extensions)
            .bass(components.bass)
            .position(position)
            .notation(components.text)
            .nashville(nashville)
            .build()
        )

    def validate(self, text: str) -> ValidationResult:
        return self.validator.validate(self.parser.parse(text))

    def is_valid(self, text: str) -> bool:
        try:
            return self.validate(text).is_valid
        except ChordFormatError:
            return False
