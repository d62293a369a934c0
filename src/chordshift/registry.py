from .dialects.base import DialectParser, DialectRenderer
from .dialects.chordpro import ChordProParser, ChordProRenderer
from .dialects.guitar_tabs import GuitarTabsParser, GuitarTabsRenderer
from .dialects.nashville import NashvilleParser, NashvilleRenderer
from .dialects.onsong import OnSongParser, OnSongRenderer
from .dialects.planning_center import PlanningCenterParser, PlanningCenterRenderer
from .dialects.songbook import SongbookParser, SongbookRenderer
from .exceptions import UnsupportedDialectError
from .models import Dialect
from .recovery import RecoveryChain

_PARSERS: dict[Dialect, type[DialectParser]] = {
    Dialect.CHORDPRO: ChordProParser,
    Dialect.ONSONG: OnSongParser,
    Dialect.NASHVILLE: NashvilleParser,
    Dialect.SONGBOOK: SongbookParser,
    Dialect.GUITAR_TABS: GuitarTabsParser,
    Dialect.PLANNING_CENTER: PlanningCenterParser,
}

_RENDERERS: dict[Dialect, type[DialectRenderer]] = {
    Dialect.CHORDPRO: ChordProRenderer,
    Dialect.ONSONG: OnSongRenderer,
    Dialect.NASHVILLE: NashvilleRenderer,
    Dialect.SONGBOOK: SongbookRenderer,
    Dialect.GUITAR_TABS: GuitarTabsRenderer,
    Dialect.PLANNING_CENTER: PlanningCenterRenderer,
}


def resolve_dialect(dialect: Dialect | str) -> Dialect:
    """Return the Dialect for an id or alias.

    Raises UnsupportedDialectError for unknown ids.
    """
    try:
        return Dialect.from_id(dialect)
    except (ValueError, AttributeError) as exc:
        raise UnsupportedDialectError(str(dialect)) from exc


class DialectRegistry:
    """Parser and renderer classes keyed by dialect."""

    def __init__(self, parsers: dict[Dialect, type[DialectParser]] | None = None,
                 renderers: dict[Dialect, type[DialectRenderer]] | None = None):
        self.parsers = dict(_PARSERS if parsers is None else parsers)
        self.renderers = dict(_RENDERERS if renderers is None else renderers)

    def register(self, dialect: Dialect, parser: type[DialectParser] | None = None,
                 renderer: type[DialectRenderer] | None = None) -> None:
        if parser is not None:
            self.parsers[dialect] = parser
        if renderer is not None:
            self.renderers[dialect] = renderer

    def get_parser(self, dialect: Dialect | str, recovery: RecoveryChain | None = None,
                   key: str | None = None) -> DialectParser:
        """Return an instantiated parser for *dialect*.

        Raises UnsupportedDialectError if none is registered.
        """
        resolved = resolve_dialect(dialect)
        if resolved not in self.parsers:
            raise UnsupportedDialectError(resolved.value)
        return self.parsers[resolved](recovery=recovery, key=key)

    def get_renderer(self, dialect: Dialect | str) -> DialectRenderer:
        """Return an instantiated renderer for *dialect*.

        Raises UnsupportedDialectError if none is registered.
        """
        resolved = resolve_dialect(dialect)
        if resolved not in self.renderers:
            raise UnsupportedDialectError(resolved.value)
        return self.renderers[resolved]()

    def supported_dialects(self) -> list[Dialect]:
        return [d for d in Dialect if d in self.parsers and d in self.renderers]


_DEFAULT = DialectRegistry()


def get_parser(dialect: Dialect | str, recovery: RecoveryChain | None = None, key: str | None = None) -> DialectParser:
    return _DEFAULT.get_parser(dialect, recovery, key)


def get_renderer(dialect: Dialect | str) -> DialectRenderer:
    return _DEFAULT.get_renderer(dialect)


def supported_dialects() -> list[Dialect]:
    return _DEFAULT.supported_dialects()
