"""
Extracts documentation from annotated C++ headers.
Each header is documented on its own and the results are printed to stdout.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click

from . import __version__
from .config import ConfigError, build_config
from .document import build_document
from .exceptions import DocError
from .filesystem import get_max_file_size, iter_header_files, read_header
from .serializer import dump_header, model_to_dict

__all__ = ["cli"]


@click.command()
@click.version_option(version=__version__, prog_name="header-doc")
@click.option(
    "--show-all/--exported-only",
    default=None,
    help="Document every declaration, or only documented ones",
)
@click.option(
    "--document-protected/--no-document-protected",
    default=None,
    help="Include protected members",
)
@click.option(
    "--document-private/--no-document-private",
    default=None,
    help="Include private members",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "header"]),
    default="json",
    show_default=True,
    help="Output format",
)
@click.option("--keep-going", is_flag=True, help="Report failing files and continue")
@click.option("-v", "--verbose", is_flag=True, help="Log pipeline details to stderr")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
def cli(
    paths: tuple[Path, ...],
    show_all: bool | None = None,
    document_protected: bool | None = None,
    document_private: bool | None = None,
    output_format: str = "json",
    keep_going: bool = False,
    verbose: bool = False,
):
    """
    Entry point for documenting header files.

    Args:
        paths: Header files, or directories searched recursively for headers.
        show_all: Override for documenting undocumented declarations.
        document_protected: Override for including protected members.
        document_private: Override for including private members.
        output_format: `json` for the document models, `header` for the
            re-serialized declarations.
        keep_going: Report errors on stderr and continue with the next file.
        verbose: Enable debug logging.

    Returns:
        None.

    Raises:
        click.BadParameter: If configuration values are invalid.
        click.ClickException: If a file cannot be read or documented.

    Examples:
        header-doc Source/Public --exported-only --no-document-private
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    models = []
    headers = []
    failures = 0

    for filepath in iter_header_files(list(paths)):
        try:
            config = build_config(
                filepath.parent,
                show_all=show_all,
                document_protected=document_protected,
                document_private=document_private,
            )
        except ConfigError as error:
            raise click.BadParameter(str(error)) from error

        try:
            max_file_size = get_max_file_size(default=config.max_file_size)
        except ValueError as error:
            raise click.ClickException(str(error)) from error

        try:
            content = read_header(filepath, max_file_size)
            model = build_document(content, str(filepath), config)
        except (IOError, DocError) as error:
            if not keep_going:
                raise click.ClickException(str(error)) from error
            click.echo(f"Error: {error}", err=True)
            failures += 1
            continue

        if output_format == "json":
            models.append(model_to_dict(model))
        else:
            headers.append(f"// {filepath}\n{dump_header(model, config.snippet_language)}")

    if not models and not headers and not failures:
        click.echo("Warning: no header files found", err=True)

    if output_format == "json":
        click.echo(json.dumps(models, indent=2, ensure_ascii=False))
    else:
        click.echo("\n".join(headers), nl=False)

    if failures:
        raise click.ClickException(f"{failures} file(s) failed")


if __name__ == "__main__":
    cli()
