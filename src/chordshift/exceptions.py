class ChordShiftError(Exception):
    """Base exception for chordshift."""


class InvalidRootError(ChordShiftError):
    """Raised when a chord root is not one of the 17 canonical spellings."""

    def __init__(self, root: str):
        self.root = root
        super().__init__(f"Invalid chord root: {root!r}")


class InvalidNashvilleNumberError(ChordShiftError):
    """Raised when a Nashville number falls outside 1-7."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Nashville number must be between 1 and 7, got {value!r}")


class ChordFormatError(ChordShiftError):
    """Raised when chord text cannot be split into components."""

    def __init__(self, text: str, reason: str = "no valid root"):
        self.text = text
        self.reason = reason
        super().__init__(f"Invalid chord {text!r}: {reason}")


class ChordValidationError(ChordShiftError):
    """Raised when parsed chord components fail validation."""

    def __init__(self, text: str, errors: list[str]):
        self.text = text
        self.errors = errors
        super().__init__(f"Invalid chord {text!r}: {'; '.join(errors)}")


class MarkupError(ChordShiftError):
    """Raised when a content line has unbalanced or broken markup."""

    def __init__(self, line: str, reason: str):
        self.line = line
        self.reason = reason
        super().__init__(reason)


class SectionError(ChordShiftError):
    """Raised when a section header or annotation cannot be parsed."""

    def __init__(self, line: str, reason: str = "malformed section header"):
        self.line = line
        self.reason = reason
        super().__init__(f"Could not parse annotation: {reason}")


class UnsupportedDialectError(ChordShiftError):
    """Raised when no parser or renderer is registered for a dialect id."""

    def __init__(self, dialect: str):
        self.dialect = dialect
        super().__init__(f"Unsupported format: {dialect}")


class InvalidKeyError(ChordShiftError):
    """Raised when a key name cannot be resolved to a pitch class."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Invalid key: {key!r}")


class CommandStateError(ChordShiftError):
    """Raised when a command is executed twice or undone before execution."""


class FetchError(ChordShiftError):
    """Raised when an HTTP request fails."""

    def __init__(self, url: str, status_code: int):
        self.url = url
        self.status_code = status_code
        super().__init__(f"HTTP {status_code} fetching {url}")


class StorageError(ChordShiftError):
    """Raised when the storage collaborator cannot read or write a path."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Storage error for {path}: {reason}")


class ConfigError(ChordShiftError):
    """Raised when a configuration file is missing or invalid."""


class TextEncodingError(ChordShiftError):
    """Raised when a line contains mojibake, replacement or control characters."""

    def __init__(self, line: str, character: str):
        self.line = line
        self.character = character
        super().__init__(f"Unexpected character {character!r} in line (bad unicode encoding?)")
