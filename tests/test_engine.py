from chordshift.dialects.chordpro import ChordProRenderer
from chordshift.engine import ConversionEngine
from chordshift.events import CONVERSION_COMPLETED, CONVERSION_FAILED, CONVERSION_STARTED, EventBus
from chordshift.exceptions import StorageError
from chordshift.models import ConversionRequest, Dialect, ErrorKind, TransposeOptions
from chordshift.registry import DialectRegistry
from chordshift.storage import MemoryStorage, StorageService

ONSONG = "Title: Amazing Grace\n\nVerse 1:\n[C]Amazing [G]grace\n*Repeat twice"


def convert(text, target="chordpro", engine=None, **kwargs):
    return (engine or ConversionEngine()).convert(ConversionRequest(text, target, **kwargs))


def messages(result):
    return [e.message for e in result.errors]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def test_empty_input_rejected():
    result = convert("   ")
    assert not result.success
    assert messages(result) == ["Input text cannot be empty"]
    assert result.errors[0].kind is ErrorKind.VALIDATION
    assert not result.errors[0].recoverable


def test_non_string_input_rejected():
    assert messages(convert(None)) == ["Input text is required and must be a string"]


def test_missing_target_rejected():
    assert "Target format is required" in messages(convert("[C]Hi", target=None))


def test_unsupported_formats_rejected():
    result = convert("[C]Hi", target="musicxml", source_format="abc")
    assert messages(result) == [
        "Target format musicxml is not supported",
        "Source format abc is not supported",
    ]
    assert all(e.kind is ErrorKind.FORMAT for e in result.errors)


def test_transpose_needs_both_keys():
    result = convert("[C]Hi", transpose=TransposeOptions("C", None))
    assert messages(result) == ["Both from_key and to_key are required for transposition"]


def test_invalid_keys_rejected():
    result = convert("[C]Hi", transpose=TransposeOptions("C", "H"), key="X")
    assert messages(result) == ["Invalid key: 'H'", "Invalid key: 'X'"]
    assert all(e.kind is ErrorKind.KEY for e in result.errors)


def test_validation_failure_metadata():
    result = convert("")
    assert set(result.metadata) == {"request_id", "processing_time"}
    assert result.output == ""


# ---------------------------------------------------------------------------
# Detection and conversion
# ---------------------------------------------------------------------------


def test_detect_format():
    engine = ConversionEngine()
    assert engine.detect_format(ONSONG).format is Dialect.ONSONG
    assert engine.detect_format(None).confidence == 0


def test_undetectable_input_fails():
    result = convert("hello world")
    assert not result.success
    assert result.errors[0].kind is ErrorKind.FORMAT
    assert result.errors[0].message == "Could not detect input format"


def test_onsong_to_chordpro_with_detection():
    result = convert(ONSONG)
    assert result.success
    assert "{title: Amazing Grace}" in result.output
    assert "{C}Amazing {G}grace" in result.output
    assert result.metadata["detected_format"] == "onsong"
    assert result.metadata["source_format"] == "onsong"
    assert result.metadata["target_format"] == "chordpro"
    assert result.metadata["detection_confidence"] > 0
    assert result.metadata["title"] == "Amazing Grace"
    assert result.model is not None


def test_explicit_source_skips_detection():
    result = convert("[C]Hello", source_format="onsong")
    assert result.success
    assert result.metadata["detected_format"] is None
    assert result.metadata["detection_confidence"] is None


def test_transpose_during_conversion():
    result = convert(
        "{key: C}\n{C}Hello {G}world",
        source_format="chordpro",
        transpose=TransposeOptions("C", "D"),
    )
    assert result.success
    assert result.output == "{key: D}\n\n{D}Hello {A}world\n"
    assert result.metadata["transpose"] == {"from_key": "C", "to_key": "D"}
    assert result.metadata["key"] == "D"


def test_nashville_to_chordpro():
    result = convert("Key: G\n\n1 4 5 1", source_format="nashville")
    assert result.success
    assert result.output == "{key: G}\n\n{G} {C} {D} {G}\n"


def test_nashville_target_without_key_warns():
    result = convert("{title: Foo}\nHello", target="nashville", source_format="chordpro")
    assert result.success
    assert "No key known for Nashville output; numbering against C" in result.warnings
    assert result.output == "Title: Foo\nKey: C\n\nHello\n"


def test_recovered_parse_errors_are_reported():
    result = convert("[C]Hello [G", source_format="onsong")
    assert result.success
    assert result.warnings


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


def test_events_published_on_success():
    bus = EventBus()
    seen = []
    for name in (CONVERSION_STARTED, CONVERSION_COMPLETED, CONVERSION_FAILED):
        bus.subscribe(name, lambda n, payload: seen.append((n, payload)))
    result = convert("[C]Hello", source_format="onsong", engine=ConversionEngine(events=bus))

    assert [n for n, _ in seen] == [CONVERSION_STARTED, CONVERSION_COMPLETED]
    assert seen[0][1]["target_format"] == "chordpro"
    assert seen[1][1]["request_id"] == result.metadata["request_id"]
    assert seen[1][1]["success"] is True


def test_failed_event_on_validation_error():
    bus = EventBus()
    seen = []
    bus.subscribe(CONVERSION_FAILED, lambda n, payload: seen.append(payload))
    convert("", engine=ConversionEngine(events=bus))
    assert seen[0]["errors"] == ["validation: Input text cannot be empty"]


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


def test_save_result():
    adapter = MemoryStorage()
    engine = ConversionEngine(storage=StorageService(adapter))
    result = convert(ONSONG, engine=engine, save=True)
    rid = result.metadata["saved_as"]
    assert rid == result.metadata["request_id"]
    assert adapter.exists(f"conversions/{rid}.json")
    assert adapter.exists(f"models/{rid}.json")
    assert adapter.read(f"inputs/{rid}.txt") == ONSONG


def test_save_not_requested():
    adapter = MemoryStorage()
    result = convert(ONSONG, engine=ConversionEngine(storage=StorageService(adapter)))
    assert "saved_as" not in result.metadata
    assert adapter.files == {}


def test_storage_failure_becomes_warning():
    class BrokenStorage(MemoryStorage):
        def write(self, path, data):
            raise StorageError(path, "disk full")

    engine = ConversionEngine(storage=StorageService(BrokenStorage()))
    result = convert(ONSONG, engine=engine, save=True)
    assert result.success
    assert any(w.startswith("Failed to save conversion result:") for w in result.warnings)
    assert "saved_as" not in result.metadata


# ---------------------------------------------------------------------------
# Unexpected failures
# ---------------------------------------------------------------------------


def test_unexpected_renderer_failure_uses_recovery():
    class ExplodingRenderer(ChordProRenderer):
        def render(self, model):
            raise RuntimeError("boom")

    registry = DialectRegistry()
    registry.register(Dialect.CHORDPRO, renderer=ExplodingRenderer)
    result = convert("[C]Hello", source_format="onsong", engine=ConversionEngine(registry=registry))

    assert result.success
    assert result.output == "[C]Hello\n"
    assert "Result generated using error recovery" in result.warnings
    assert result.metadata["recovery_applied"] is True
    assert result.metadata["original_error"] == "boom"
