"""Conversion pipeline: validate, detect, parse, transpose, render.

:class:`ConversionEngine` never raises from :meth:`~ConversionEngine.convert`.
Every failure ends up as a :class:`~chordshift.models.ConversionError` in
the returned :class:`~chordshift.models.ConversionResult`:

==============================  =========  ===========
Problem                         Kind       Recoverable
==============================  =========  ===========
empty input, missing target     VALIDATION no
unsupported source or target    FORMAT     no
undetectable input format       FORMAT     no
invalid key                     KEY        no
transposition failure           TRANSPOSE  no
renderer failure                RENDER     no
unexpected exception            CONVERSION yes
==============================  =========  ===========

Unexpected exceptions get one last try through the recovery chain, which
keeps the input verbatim rather than returning nothing.
"""

import logging
import time
from typing import Any

from .chords.keys import is_valid_key
from .detector import DetectionResult, FormatDetector
from .events import CONVERSION_COMPLETED, CONVERSION_FAILED, CONVERSION_STARTED, EventBus
from .exceptions import ChordShiftError, StorageError, UnsupportedDialectError
from .models import (
    CanonicalSongModel,
    ConversionError,
    ConversionRequest,
    ConversionResult,
    Dialect,
    EmptyLine,
    ErrorKind,
)
from .recovery import RecoveryChain
from .registry import DialectRegistry, resolve_dialect
from .storage import StorageService
from .transpose import KeyTransposer, TransposeKeyCommand

logger = logging.getLogger(__name__)


class ConversionEngine:
    """Facade over the conversion collaborators; all of them are injectable.

    Usage::

        engine = ConversionEngine()
        result = engine.convert(ConversionRequest("[C]Amazing [G]grace", "chordpro"))
        result.output
    """

    def __init__(self, registry: DialectRegistry | None = None, detector: FormatDetector | None = None,
                 recovery: RecoveryChain | None = None, transposer: KeyTransposer | None = None,
                 events: EventBus | None = None, storage: StorageService | None = None):
        self.registry = registry or DialectRegistry()
        self.detector = detector or FormatDetector()
        self.recovery = recovery or RecoveryChain()
        self.transposer = transposer or KeyTransposer()
        self.events = events or EventBus()
        self.storage = storage

    # -- public API ---------------------------------------------------------

    def detect_format(self, text: str) -> DetectionResult:
        """Return the most likely dialect of *text*; confidence 0 means a default guess."""
        if not isinstance(text, str):
            return self.detector.detect("")
        return self.detector.detect(text)

    def convert(self, request: ConversionRequest) -> ConversionResult:
        started = time.perf_counter()
        try:
            return self._convert(request, started)
        except Exception as exc:
            logger.exception("Conversion %s failed unexpectedly", request.request_id)
            error = ConversionError(ErrorKind.CONVERSION, str(exc) or type(exc).__name__, recoverable=True)
            return self._last_resort(request, error, started)

    def validate_request(self, request: ConversionRequest) -> list[ConversionError]:
        errors = []
        if not isinstance(request.input, str):
            errors.append(_fatal(ErrorKind.VALIDATION, "Input text is required and must be a string"))
        elif not request.input.strip():
            errors.append(_fatal(ErrorKind.VALIDATION, "Input text cannot be empty"))

        if not request.target_format:
            errors.append(_fatal(ErrorKind.VALIDATION, "Target format is required"))
        elif not self._supported(request.target_format, self.registry.renderers):
            errors.append(_fatal(ErrorKind.FORMAT, f"Target format {_id(request.target_format)} is not supported"))

        if request.source_format and not self._supported(request.source_format, self.registry.parsers):
            errors.append(_fatal(ErrorKind.FORMAT, f"Source format {_id(request.source_format)} is not supported"))

        if request.transpose is not None:
            from_key, to_key = request.transpose.from_key, request.transpose.to_key
            if not from_key or not to_key:
                errors.append(_fatal(ErrorKind.VALIDATION, "Both from_key and to_key are required for transposition"))
            else:
                for key in (from_key, to_key):
                    if not is_valid_key(key):
                        errors.append(_fatal(ErrorKind.KEY, f"Invalid key: {key!r}"))

        if request.key is not None and not is_valid_key(request.key):
            errors.append(_fatal(ErrorKind.KEY, f"Invalid key: {request.key!r}"))
        return errors

    # -- pipeline -----------------------------------------------------------

    def _convert(self, request: ConversionRequest, started: float) -> ConversionResult:
        errors = self.validate_request(request)
        if errors:
            return self._failure(request, errors, started)

        target = resolve_dialect(request.target_format)
        self.events.publish(CONVERSION_STARTED, {
            "request_id": request.request_id,
            "source_format": _id(request.source_format),
            "target_format": target.value,
        })

        detection = None
        if request.source_format:
            source = resolve_dialect(request.source_format)
        else:
            detection = self.detect_format(request.input)
            if detection.confidence == 0:
                return self._failure(request, [_fatal(ErrorKind.FORMAT, "Could not detect input format")], started)
            source = detection.format
            logger.info("Detected %s (confidence %.2f)", source.value, detection.confidence)

        parser = self.registry.get_parser(source, recovery=self.recovery.for_dialect(target), key=request.key)
        parsed = parser.parse(request.input)
        if not parsed.success or parsed.model is None:
            return self._failure(request, parsed.errors, started, parsed.warnings)
        model = parsed.model
        warnings = list(parsed.warnings)

        if request.transpose is not None:
            command = TransposeKeyCommand(model, request.transpose.from_key, request.transpose.to_key, self.transposer)
            try:
                command.execute()
            except ChordShiftError as exc:
                error = _fatal(ErrorKind.TRANSPOSE, f"Transposition error: {exc}")
                return self._failure(request, [error], started, warnings)

        if target is Dialect.NASHVILLE and not (model.metadata.original_key or model.metadata.detected_key):
            warnings.append("No key known for Nashville output; numbering against C")

        try:
            output = self.registry.get_renderer(target).render(model)
        except UnsupportedDialectError:
            raise
        except ChordShiftError as exc:
            error = _fatal(ErrorKind.RENDER, f"Render error: {exc}")
            return self._failure(request, [error], started, warnings)

        result = ConversionResult(
            success=True,
            output=output,
            errors=list(parsed.errors),
            warnings=warnings,
            metadata=self._metadata(request, started, source, target, detection, model),
            model=model,
        )
        self._save(request, result)
        self.events.publish(CONVERSION_COMPLETED, {
            "request_id": request.request_id,
            "success": True,
            "warnings": len(result.warnings),
            "processing_time": result.metadata["processing_time"],
        })
        logger.info("Converted %s -> %s (%d warnings)", source.value, target.value, len(warnings))
        return result

    def _last_resort(self, request: ConversionRequest, error: ConversionError, started: float) -> ConversionResult:
        """Keep the input usable when the pipeline blew up; surface *error* otherwise."""
        text = request.input if isinstance(request.input, str) else ""
        if error.recoverable and text.strip():
            recovered = self.recovery.recover(error, text)
            if recovered.success and recovered.line is not None and not isinstance(recovered.line, EmptyLine):
                output = recovered.repaired_text or text
                result = ConversionResult(
                    success=True,
                    output=output if output.endswith("\n") else output + "\n",
                    errors=recovered.errors,
                    warnings=recovered.warnings + ["Result generated using error recovery"],
                    metadata={
                        "request_id": request.request_id,
                        "recovery_applied": True,
                        "original_error": error.message,
                        "processing_time": _elapsed(started),
                    },
                )
                self.events.publish(CONVERSION_COMPLETED, {
                    "request_id": request.request_id,
                    "success": True,
                    "warnings": len(result.warnings),
                    "processing_time": result.metadata["processing_time"],
                })
                return result
        return self._failure(request, [error], started)

    def _failure(self, request: ConversionRequest, errors: list[ConversionError], started: float,
                 warnings: list[str] | None = None) -> ConversionResult:
        for error in errors:
            logger.warning("Conversion %s: %s", request.request_id, error)
        self.events.publish(CONVERSION_FAILED, {
            "request_id": request.request_id,
            "errors": [str(e) for e in errors],
        })
        return ConversionResult(
            success=False,
            errors=list(errors),
            warnings=list(warnings or []),
            metadata={"request_id": request.request_id, "processing_time": _elapsed(started)},
        )

    def _metadata(self, request: ConversionRequest, started: float, source: Dialect, target: Dialect,
                  detection: DetectionResult | None, model: CanonicalSongModel) -> dict[str, Any]:
        transpose = request.transpose
        return {
            "request_id": request.request_id,
            "detected_format": detection.format.value if detection else None,
            "detection_confidence": detection.confidence if detection else None,
            "source_format": source.value,
            "target_format": target.value,
            "transpose": {"from_key": transpose.from_key, "to_key": transpose.to_key} if transpose else None,
            "title": model.metadata.title,
            "key": model.metadata.original_key or model.metadata.detected_key,
            "processing_time": _elapsed(started),
        }

    def _save(self, request: ConversionRequest, result: ConversionResult) -> None:
        if not request.save or self.storage is None:
            return
        try:
            result.metadata["saved_as"] = self.storage.save(request, result)
        except StorageError as exc:
            logger.warning("Failed to save conversion result: %s", exc)
            result.warnings.append(f"Failed to save conversion result: {exc}")

    @staticmethod
    def _supported(dialect: Dialect | str, table: dict) -> bool:
        try:
            return resolve_dialect(dialect) in table
        except UnsupportedDialectError:
            return False


def _fatal(kind: ErrorKind, message: str) -> ConversionError:
    return ConversionError(kind, message, recoverable=False)


def _id(dialect: Dialect | str | None) -> str | None:
    return dialect.value if isinstance(dialect, Dialect) else dialect


def _elapsed(started: float) -> float:
    return round(time.perf_counter() - started, 6)
