import pytest

from chordshift.dialects.onsong import OnSongParser, OnSongRenderer
from chordshift.exceptions import UnsupportedDialectError
from chordshift.models import Dialect
from chordshift.recovery import RecoveryChain
from chordshift.registry import DialectRegistry, get_parser, get_renderer, resolve_dialect, supported_dialects


def test_resolve_dialect():
    assert resolve_dialect("pco") is Dialect.PLANNING_CENTER
    assert resolve_dialect(Dialect.NASHVILLE) is Dialect.NASHVILLE
    with pytest.raises(UnsupportedDialectError, match="Unsupported format: musicxml"):
        resolve_dialect("musicxml")


def test_supported_dialects():
    assert supported_dialects() == list(Dialect)
    assert len(supported_dialects()) == 6


def test_get_parser_passes_recovery_and_key():
    chain = RecoveryChain("strict")
    parser = get_parser("nashville", recovery=chain, key="G")
    assert parser.recovery is chain
    assert parser.key == "G"


def test_get_renderer():
    assert isinstance(get_renderer("onsong"), OnSongRenderer)


def test_unregistered_dialect():
    registry = DialectRegistry(parsers={Dialect.ONSONG: OnSongParser}, renderers={})
    assert registry.supported_dialects() == []
    with pytest.raises(UnsupportedDialectError):
        registry.get_renderer(Dialect.ONSONG)
    with pytest.raises(UnsupportedDialectError):
        registry.get_parser(Dialect.CHORDPRO)


def test_register():
    registry = DialectRegistry(parsers={}, renderers={})
    registry.register(Dialect.ONSONG, parser=OnSongParser, renderer=OnSongRenderer)
    assert registry.supported_dialects() == [Dialect.ONSONG]
    assert isinstance(registry.get_parser("onsong"), OnSongParser)
