import pytest

from chordshift.chords.factory import ChordFactory
from chordshift.dialects.onsong import OnSongParser
from chordshift.exceptions import CommandStateError, InvalidKeyError
from chordshift.transpose import KeyTransposer, TransposeCommandManager, TransposeKeyCommand


def make_model(text="[C]Hello [Am]world [F]and [G7]more"):
    return OnSongParser().parse(text).model


def notations(model):
    return [c.notation for c in model.chords()]


# ---------------------------------------------------------------------------
# KeyTransposer
# ---------------------------------------------------------------------------


def test_transpose_note_defaults_to_sharps():
    t = KeyTransposer()
    assert t.transpose_note("C#", 2) == "D#"
    assert t.transpose_note("Db", 2) == "D#"
    assert t.transpose_note("Bb", 3) == "C#"
    assert t.transpose_note("Bb", 2) == "C"


def test_transpose_note_follows_target_key():
    t = KeyTransposer()
    assert t.transpose_note("A", 1, "F") == "Bb"
    assert t.transpose_note("A", 1, "E") == "A#"


def test_transpose_chord_moves_bass():
    chord = KeyTransposer().transpose_chord(ChordFactory().create("G/B"), 2, "A")
    assert chord.notation == "A/C#"


def test_key_distance():
    t = KeyTransposer()
    assert t.get_key_distance("C", "A") == 9
    assert t.get_key_distance("A", "C") == 3
    with pytest.raises(InvalidKeyError):
        t.get_key_distance("C", "H")


def test_key_relationships():
    t = KeyTransposer()
    assert t.relative_key("C") == "Am"
    assert t.parallel_key("Em") == "E"
    assert t.are_keys_enharmonic("F#", "Gb")
    assert not t.are_keys_enharmonic("F#", "F#m")


def test_chord_function():
    t = KeyTransposer()
    factory = ChordFactory()
    assert t.chord_function(factory.create("G"), "C") == "V"
    assert t.chord_function(factory.create("Am"), "C") == "vi"
    assert t.chord_function(factory.create("Eb"), "C") == "N/A"


def test_best_enharmonic():
    t = KeyTransposer()
    assert t.best_enharmonic("C#") == "Db"
    assert t.best_enharmonic("Gb") == "Gb"
    assert t.best_enharmonic("G") == "G"


def test_common_progressions():
    t = KeyTransposer()
    assert t.common_progressions("C")["I-V-vi-IV"] == ["C", "G", "Am", "F"]
    assert t.common_progressions("Am")["i-iv-V"] == ["Am", "Dm", "E"]


# ---------------------------------------------------------------------------
# TransposeKeyCommand
# ---------------------------------------------------------------------------


def test_execute_transposes_every_chord():
    model = make_model()
    command = TransposeKeyCommand(model, "C", "D")
    command.execute()
    assert notations(model) == ["D", "Bm", "G", "A7"]
    assert model.metadata.original_key == "D"
    assert model.metadata.extra["transposed_from"] == "C"
    assert model.metadata.extra["semitones"] == 2


def test_flat_target_key_uses_flats():
    model = make_model("[C]One [G]two [Am]three [F]four")
    TransposeKeyCommand(model, "C", "Eb").execute()
    assert notations(model) == ["Eb", "Bb", "Cm", "Ab"]


def test_undo_restores_chords_and_metadata():
    model = make_model()
    before = notations(model)
    command = TransposeKeyCommand(model, "C", "D")
    command.execute()
    command.undo()
    assert notations(model) == before
    assert model.metadata.original_key is None
    assert "transposed_from" not in model.metadata.extra


def test_execute_twice_and_undo_first_raise():
    command = TransposeKeyCommand(make_model(), "C", "D")
    with pytest.raises(CommandStateError):
        command.undo()
    command.execute()
    with pytest.raises(CommandStateError):
        command.execute()


def test_change_summary_and_description():
    command = TransposeKeyCommand(make_model(), "C", "D")
    command.execute()
    summary = command.change_summary()
    assert summary.chords_affected == 4
    assert summary.lines_affected == 1
    assert summary.semitones == 2
    assert command.description == "Transpose from C to D (2 semitones)"


def test_preview_does_not_modify():
    model = make_model("[C]Hello")
    preview = TransposeKeyCommand(model, "C", "G").preview()
    assert preview == [("Unknown", 1, "C", "G")]
    assert notations(model) == ["C"]


def test_validate_same_key():
    report = TransposeKeyCommand(make_model(), "C", "C").validate()
    assert not report.is_valid
    assert "cannot be the same" in report.errors[0]


def test_invalid_key_rejected_at_construction():
    with pytest.raises(InvalidKeyError):
        TransposeKeyCommand(make_model(), "C", "X")


# ---------------------------------------------------------------------------
# TransposeCommandManager
# ---------------------------------------------------------------------------


def test_manager_undo_redo():
    model = make_model("[C]Hello")
    manager = TransposeCommandManager()
    manager.execute(TransposeKeyCommand(model, "C", "D"))
    manager.execute(TransposeKeyCommand(model, "D", "E"))
    assert notations(model) == ["E"]

    assert manager.undo()
    assert notations(model) == ["D"]
    assert manager.can_redo()

    assert manager.redo()
    assert notations(model) == ["E"]
    assert not manager.can_redo()


def test_manager_new_command_discards_redo():
    model = make_model("[C]Hello")
    manager = TransposeCommandManager()
    manager.execute(TransposeKeyCommand(model, "C", "D"))
    manager.undo()
    manager.execute(TransposeKeyCommand(model, "C", "G"))
    assert manager.descriptions() == ["Transpose from C to G (7 semitones)"]


def test_manager_history_is_capped():
    model = make_model("[C]Hello")
    manager = TransposeCommandManager(max_history=2)
    for from_key, to_key in (("C", "D"), ("D", "E"), ("E", "F")):
        manager.execute(TransposeKeyCommand(model, from_key, to_key))
    assert len(manager.history) == 2
    assert manager.undo() and manager.undo()
    assert not manager.undo()
    assert notations(model) == ["D"]


def test_manager_rejects_empty_history_size():
    with pytest.raises(ValueError):
        TransposeCommandManager(max_history=0)
    manager = TransposeCommandManager()
    with pytest.raises(ValueError):
        manager.set_max_history(0)
