import logging
import re
import sys
from pathlib import Path

import click

from .config import load_config, merge_overrides
from .engine import ConversionEngine
from .exceptions import ChordShiftError, FetchError
from .models import ConversionRequest, ConversionResult, Dialect, TransposeOptions
from .recovery import RECOVERY_LEVELS, RecoveryChain
from .registry import supported_dialects
from .sources import is_url, read_source
from .storage import DirectoryStorage, StorageService

EXTENSIONS = {
    Dialect.CHORDPRO: ".cho",
    Dialect.ONSONG: ".onsong",
    Dialect.NASHVILLE: ".txt",
    Dialect.SONGBOOK: ".txt",
    Dialect.GUITAR_TABS: ".txt",
    Dialect.PLANNING_CENTER: ".txt",
}

_DIALECT_IDS = [d.value for d in Dialect]


def _slugify(text: str) -> str:
    """Convert a string to a lowercase hyphenated slug suitable for filenames."""
    text = text.lower()
    text = re.sub(r"[^\w\s-]", "", text)   # drop punctuation
    text = re.sub(r"[\s_]+", "-", text)
    text = re.sub(r"-{2,}", "-", text)
    return text.strip("-")


def _default_filename(artist: str | None, title: str | None, dialect: Dialect, fallback: str = "song") -> str:
    parts = [_slugify(p) for p in (artist, title) if p]
    stem = "-".join(p for p in parts if p) or _slugify(fallback) or "song"
    return stem + EXTENSIONS[dialect]


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _read(source: str) -> str:
    try:
        return read_source(source)
    except FetchError as exc:
        msg = f"Could not fetch {exc.url}"
        if exc.status_code:
            msg += f" (HTTP {exc.status_code})"
        _fail(msg)
    except OSError as exc:
        _fail(f"Could not read {source}: {exc.strerror or exc}")


def _report(result: ConversionResult) -> None:
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    for error in result.errors:
        prefix = "Error" if not result.success else "Recovered"
        click.echo(f"{prefix}: {error}", err=True)


@click.group()
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log debug output to stderr.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Convert chord charts between chord sheet dialects.

    \b
    Supported dialects:
      chordpro, onsong, nashville, songbook, guitar_tabs, planning_center
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("source")
@click.option("-t", "--to", "target", type=click.Choice(_DIALECT_IDS), default=None,
              help="Target dialect (default: from config, else chordpro).")
@click.option("-f", "--from", "source_format", type=click.Choice(_DIALECT_IDS), default=None,
              help="Source dialect (default: detect).")
@click.option("--transpose", nargs=2, default=None, metavar="FROM TO",
              help="Transpose from one key to another, e.g. --transpose C D.")
@click.option("--key", default=None, help="Key of a Nashville chart being read.")
@click.option("--recovery", type=click.Choice(RECOVERY_LEVELS), default=None,
              help="Error recovery level (default: moderate).")
@click.option("--config", "config_path", default=None, metavar="PATH",
              help="YAML config file.")
@click.option("-o", "--output", "output_path", default=None, metavar="PATH",
              help="Output file path (default: <artist>-<title> with the dialect's extension).")
@click.option("--stdout", is_flag=True, default=False,
              help="Print to stdout instead of writing a file.")
@click.option("--save-dir", default=None, metavar="DIR",
              help="Also store the conversion result under DIR.")
@click.pass_context
def convert(ctx: click.Context, source: str, target: str | None, source_format: str | None,
            transpose: tuple[str, str] | None, key: str | None, recovery: str | None,
            config_path: str | None, output_path: str | None, stdout: bool, save_dir: str | None) -> None:
    """Convert SOURCE (a file, URL, or - for stdin) to another dialect."""
    try:
        config = merge_overrides(
            load_config(config_path),
            target_format=target,
            recovery_level=recovery,
            default_key=key,
            storage_dir=save_dir,
            save_results=True if save_dir else None,
        )
    except ChordShiftError as exc:
        _fail(str(exc))
    if not (ctx.obj or {}).get("verbose"):
        logging.getLogger("chordshift").setLevel(config.log_level)

    text = _read(source)
    engine = ConversionEngine(
        recovery=RecoveryChain(config.recovery_level),
        storage=StorageService(DirectoryStorage(config.storage_dir)) if config.save_results else None,
    )
    request = ConversionRequest(
        input=text,
        target_format=config.target_format,
        source_format=source_format,
        transpose=TransposeOptions(*transpose) if transpose else None,
        key=config.default_key,
        save=config.save_results,
        name=Path(source).stem if source != "-" and not is_url(source) else None,
    )
    result = engine.convert(request)
    _report(result)
    if not result.success:
        sys.exit(1)

    if stdout or (source == "-" and output_path is None):
        click.echo(result.output, nl=False)
        return

    dialect = Dialect.from_id(config.target_format)
    if output_path:
        dest = Path(output_path)
    else:
        meta = result.model.metadata if result.model else None
        fallback = request.name or "song"
        dest = Path(_default_filename(meta.artist if meta else None, meta.title if meta else None,
                                      dialect, fallback))
    try:
        dest.write_text(result.output, encoding="utf-8")
    except OSError as exc:
        _fail(f"Could not write {dest}: {exc.strerror or exc}")
    click.echo(f"Written to {dest}")


@main.command()
@click.argument("source")
@click.option("--all", "show_all", is_flag=True, default=False, help="Show every candidate dialect.")
def detect(source: str, show_all: bool) -> None:
    """Guess the dialect of SOURCE."""
    text = _read(source)
    engine = ConversionEngine()
    if show_all:
        ranked = engine.detector.rank(text)
        if not ranked:
            _fail("Could not detect input format")
        for candidate in ranked:
            click.echo(f"{candidate.format.value}\t{candidate.confidence:.2f}")
        return
    result = engine.detect_format(text)
    if result.confidence == 0:
        _fail("Could not detect input format")
    click.echo(f"{result.format.value}\t{result.confidence:.2f}")


@main.command()
def dialects() -> None:
    """List the supported dialects."""
    for dialect in supported_dialects():
        click.echo(dialect.value)
