"""PSARC Toolkit CLI."""

import functools
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click

from . import __version__


def parse_key(ctx, param, value: Optional[str]) -> Optional[bytes]:
    """Click callback turning a hex string into key bytes."""
    if value is None:
        return None
    try:
        key = bytes.fromhex(value)
    except ValueError:
        raise click.BadParameter("must be a hex string")
    if len(key) not in (16, 24, 32):
        raise click.BadParameter(f"AES keys are 16, 24 or 32 bytes, got {len(key)}")
    return key


def archive_options(command):
    """Options shared by every command that opens an archive."""

    @click.argument("archive", type=click.Path(exists=True, dir_okay=False, path_type=Path))
    @click.option(
        "--key",
        envvar="PSARC_TOC_KEY",
        callback=parse_key,
        help="TOC decryption key as hex (default: the standard PSARC key)",
    )
    @click.option(
        "--mmap/--no-mmap",
        "memory_map",
        default=False,
        help="Memory-map the archive instead of reading through a file handle",
    )
    @click.option(
        "--lenient",
        is_flag=True,
        help="Tolerate block table cells that no entry uses",
    )
    @functools.wraps(command)
    def wrapper(archive: Path, key: Optional[bytes], memory_map: bool, lenient: bool, **kwargs):
        from .psarc import OpenOptions

        options = OpenOptions(memory_map=memory_map, strict_block_table=not lenient)
        if key is not None:
            options = replace(options, decryption_key=key)
        return command(archive=archive, options=options, **kwargs)

    return wrapper


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr")
def main(verbose: bool):
    """PSARC Toolkit - inspect and read PSARC archives.

    \b
    info  Show the archive header
    list  List entries with their sizes and names
    cat   Write one entry's bytes to stdout
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@main.command()
@archive_options
def info(archive: Path, options):
    """Show the header of a PSARC archive."""
    from .psarc import PSARCError, open_archive

    try:
        with open_archive(archive, options) as reader:
            header = reader.header
            click.echo(f"Archive:     {archive}")
            click.echo(f"Version:     {header.version_major}.{header.version_minor}")
            click.echo(f"Compression: {header.compression.value}")
            click.echo(f"Entries:     {header.toc_entry_count}")
            click.echo(f"Block size:  {header.block_size}")
            click.echo(f"TOC length:  {header.toc_length}")
            click.echo(f"Flags:       0x{header.archive_flags:08X}")
            encrypted = header.is_toc_encrypted(options.encrypted_flag)
            click.echo(f"Encrypted:   {'yes' if encrypted else 'no'}")
            click.echo(f"Blocks:      {len(reader.block_table)}")
    except (PSARCError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command(name="list")
@archive_options
def list_entries(archive: Path, options):
    """List the entries of a PSARC archive."""
    from .psarc import PSARCError, open_archive

    try:
        with open_archive(archive, options) as reader:
            click.echo(f"Files in archive ({len(reader) - 1}):")
            for entry in reader.list():
                if entry.name:
                    name = entry.name
                elif entry.is_manifest:
                    name = "(manifest)"
                else:
                    name = "-"
                click.echo(f"  {entry.index:>6}  {entry.uncompressed_size:>12}  {name}")
    except (PSARCError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@archive_options
@click.argument("entry")
@click.option("--offset", type=click.IntRange(min=0), default=0, help="First byte to write")
@click.option("--length", type=click.IntRange(min=0), default=None, help="Number of bytes to write")
def cat(archive: Path, options, entry: str, offset: int, length: Optional[int]):
    """Write an entry's contents to stdout.

    ENTRY is an entry name, or a TOC index when no entry has that name.
    """
    from .psarc import PSARCError, open_archive

    try:
        with open_archive(archive, options) as reader:
            key = entry
            if entry not in reader and entry.isdigit():
                key = int(entry)
            if offset or length is not None:
                target = reader.get_entry(key)
                if length is None:
                    length = target.uncompressed_size
                data = reader.read_range(target, offset, length)
            else:
                data = reader.read(key)
        with click.open_file("-", "wb") as out:
            out.write(data)
    except (PSARCError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
