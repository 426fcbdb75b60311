"""
CLI entry point for xml-context.

Provides a command-line interface for turning a request file into an XML-tagged
prompt document.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from . import __version__
from .formatter import format_request, summarize_request
from .models import DocumentStats, FormatRequest
from .request_loader import (
    RequestError,
    load_request,
    load_request_text,
    merge_cli_with_request,
)
from .utils import read_text_safe

# Initialize CLI app
app = typer.Typer(
    name="xml-context",
    help="Format project files, tree, git context and instructions into an XML-tagged LLM prompt.",
    add_completion=False,
)

console = Console(stderr=True)

STDIN_MARKER = "-"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"xml-context version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version", "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Format project context into an XML-tagged prompt document."""


def read_request(source: str, input_format: str) -> FormatRequest:
    """Load a request from a file path, or from stdin when `source` is '-'.

    Raises:
        RequestError: If the request cannot be read or is invalid.
    """
    if source == STDIN_MARKER:
        return load_request_text(sys.stdin.read(), input_format)

    path = Path(source)
    if not path.is_file():
        raise RequestError(f"Request file does not exist: {path}")
    return load_request(path)


def print_stats(stats: DocumentStats) -> None:
    """Print document statistics to the console."""
    console.print("[cyan]Statistics:[/cyan]")
    console.print(f"  Files received: {stats.files_received}")
    console.print(f"  Files included: {stats.files_included}")
    console.print(f"  Files skipped: {stats.files_skipped}")
    console.print(f"  Sections: {', '.join(stats.sections)}")
    console.print(f"  Characters: {stats.output_chars:,}")
    console.print(f"  Estimated tokens: {stats.tokens_estimated:,}")


@app.command()
def render(
    request_source: str = typer.Argument(
        ...,
        metavar="REQUEST",
        help="Request file (.json, .toml, .yml, .yaml), or '-' to read stdin.",
    ),
    input_format: str = typer.Option(
        "json",
        "--format", "-f",
        help="Format of stdin input: 'json', 'toml', 'yaml' or 'yml'.",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Write the document to this file instead of stdout.",
        dir_okay=False,
    ),
    project_path: Optional[str] = typer.Option(
        None,
        "--project-path", "-p",
        help="Override the project path from the request.",
    ),
    instructions: Optional[str] = typer.Option(
        None,
        "--instructions", "-I",
        help="Override the instructions from the request.",
    ),
    instructions_file: Optional[Path] = typer.Option(
        None,
        "--instructions-file",
        help="Read instructions from a text file.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    no_git: bool = typer.Option(
        False,
        "--no-git",
        help="Leave out all git sections.",
    ),
    no_tree: bool = typer.Option(
        False,
        "--no-tree",
        help="Leave out the source tree section.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Show tracebacks on unexpected errors.",
    ),
) -> None:
    """
    Render a request as an XML-tagged prompt document.

    Examples:

        # Print the document for a JSON request
        xml-context render request.json

        # Pipe a YAML request through stdin and save the result
        cat request.yaml | xml-context render - -f yaml -o prompt.xml

        # Replace the instructions and skip git context
        xml-context render request.toml -I "Add type hints" --no-git
    """
    if instructions is not None and instructions_file is not None:
        console.print("[red]Error: Cannot specify both --instructions and --instructions-file.[/red]")
        raise typer.Exit(1)

    try:
        if instructions_file is not None:
            instructions, _ = read_text_safe(instructions_file)

        if output is None:
            request = read_request(request_source, input_format)
            request = merge_cli_with_request(
                request,
                project_path=project_path,
                instructions=instructions,
                no_git=no_git,
                no_tree=no_tree,
            )
            typer.echo(format_request(request), nl=False)
            return

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task("Loading request...", total=None)
            request = read_request(request_source, input_format)
            request = merge_cli_with_request(
                request,
                project_path=project_path,
                instructions=instructions,
                no_git=no_git,
                no_tree=no_tree,
            )

            progress.add_task("Rendering document...", total=None)
            document = format_request(request)
            stats = summarize_request(request, document)

            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(document, encoding="utf-8")

        console.print("[bold green]✓ Document written![/bold green]")
        console.print(f"  {escape(str(output))}")
        console.print()
        print_stats(stats)

        if stats.files_skipped:
            console.print(
                f"[yellow]Warning: {stats.files_skipped} file record(s) without a "
                f"string path and code were skipped.[/yellow]"
            )

    except RequestError as e:
        console.print(f"[red]Error loading request: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if verbose:
            console.print_exception()
        raise typer.Exit(1)


@app.command()
def inspect(
    request_source: str = typer.Argument(
        ...,
        metavar="REQUEST",
        help="Request file (.json, .toml, .yml, .yaml), or '-' to read stdin.",
    ),
    input_format: str = typer.Option(
        "json",
        "--format", "-f",
        help="Format of stdin input: 'json', 'toml', 'yaml' or 'yml'.",
    ),
) -> None:
    """
    Show what a request would produce without printing the document.

    Lists the emitted sections, file counts and an estimated token count.
    """
    try:
        request = read_request(request_source, input_format)
        stats = summarize_request(request)

        console.print(f"\n[bold]Project: {escape(str(request.project_path))}[/bold]\n")

        records = request.valid_files()
        if records:
            console.print("[cyan]Files:[/cyan]")
            for record in records:
                console.print(f"  {record.path}", markup=False, highlight=False)
            console.print()

        print_stats(stats)

        if stats.files_skipped:
            console.print(
                f"\n[yellow]Warning: {stats.files_skipped} file record(s) will be skipped.[/yellow]"
            )

    except RequestError as e:
        console.print(f"[red]Error loading request: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
