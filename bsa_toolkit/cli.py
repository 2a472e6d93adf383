"""BSA Toolkit CLI."""

import logging
import shutil
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from . import __version__
from .errors import BSAError, ReaderError, format_chain

READ_CHUNK_SIZE = 64 * 1024


def _fail(error: BaseException) -> None:
    click.echo(f"Error: {format_chain(error)}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable trace logging on stderr")
def main(verbose: bool):
    """BSA Toolkit - inspect and extract Bethesda Softworks Archives.

    \b
    Supported versions:
    103  Oblivion
    104  Skyrim, Fallout 3, Fallout: New Vegas
    105  Skyrim Special Edition
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def ls(file: Path):
    """List the files in an archive as folder\\file paths."""
    from .archive import open as open_archive

    try:
        with open_archive(file) as archive:
            for path in archive.list_files():
                click.echo(path)
    except (BSAError, OSError) as e:
        _fail(e)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("path")
def cat(file: Path, path: str):
    """Write the contents of PATH inside the archive to stdout.

    PATH may use either / or \\ as the separator.
    """
    from .archive import open as open_archive

    try:
        with open_archive(file) as archive:
            entry = archive.find(path)
            if entry is None:
                wanted = path.replace("/", "\\")
                raise ReaderError(f"File {wanted} does not exist in {file}")
            stdout = sys.stdout.buffer
            with entry.read_contents(archive) as reader:
                shutil.copyfileobj(reader, stdout)
            stdout.flush()
    except (BSAError, OSError) as e:
        _fail(e)


@main.command()
@click.argument(
    "files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--into",
    type=click.Path(file_okay=False, path_type=Path),
    help="Output directory (default: current directory)",
)
def extract(files: Tuple[Path, ...], into: Optional[Path]):
    """Extract every file from one or more archives.

    The folder tree stored in each archive is recreated below the output
    directory.
    """
    from .archive import open as open_archive

    output = into if into is not None else Path(".")
    try:
        for file in files:
            with open_archive(file) as archive:
                for _, output_path in archive.extract_all(output):
                    click.echo(f"Creating {output_path}")
    except (BSAError, OSError) as e:
        _fail(e)


@main.command()
@click.argument(
    "files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--fast",
    count=True,
    help="Once: skip decompression and only check file bounds. Twice: only parse headers and hashes.",
)
def validate(files: Tuple[Path, ...], fast: int):
    """Check that archives parse and that their contents can be read.

    \b
    Default:      parse, verify name hashes, decode every file
    --fast:       parse, verify name hashes, check file regions fit the archive
    --fast --fast parse and verify name hashes only
    """
    from .archive import open as open_archive

    failed = False
    for file in files:
        try:
            with open_archive(file) as archive:
                if fast < 2:
                    validate_contents(archive, decode=fast == 0)
            click.echo(f"OK {file}")
        except (BSAError, OSError) as e:
            click.echo(f"Error: {file}: {format_chain(e)}", err=True)
            failed = True

    if failed:
        sys.exit(1)


def validate_contents(archive, decode: bool = True) -> int:
    """Check every file region of an archive. Returns the number of files checked.

    With ``decode`` every file is streamed to the end, which also verifies
    the decompressed length against the declared size. Without it only the
    file regions are checked against the archive size.
    """
    archive_size = archive.size
    count = 0
    for folder, file in archive.files():
        if decode:
            with file.read_contents(archive) as reader:
                while reader.read(READ_CHUNK_SIZE):
                    pass
        elif file.offset + file.size > archive_size:
            label = folder.path_of(file) or f"{file.name_hash:#018x}"
            raise ReaderError(
                f"{label}: region {file.offset}+{file.size} exceeds archive size {archive_size}"
            )
        count += 1
    return count


if __name__ == "__main__":
    main()
