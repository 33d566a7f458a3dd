"""CLI error handling utilities."""

import tomllib
from collections.abc import Generator
from contextlib import contextmanager

import typer
from rich.console import Console
from rich.markup import escape

from duelboard.exceptions import (
    ConflictError,
    DuelboardError,
    InvalidArgumentError,
    NotFoundError,
    StorageFailureError,
)

console = Console()


@contextmanager
def handle_cli_errors(*, debug: bool = False) -> Generator[None, None, None]:
    """Turn engine errors into a short message and exit code 1.

    Args:
        debug: If True, re-raise so the full traceback is shown.

    """
    try:
        yield
    except (KeyboardInterrupt, SystemExit, typer.Exit):
        raise
    except NotFoundError as e:
        if debug:
            raise
        console.print(f"[bold red]Not found:[/bold red] {e}")
        raise typer.Exit(1) from e
    except InvalidArgumentError as e:
        if debug:
            raise
        console.print(f"[bold red]Invalid argument:[/bold red] {e}")
        raise typer.Exit(1) from e
    except ConflictError as e:
        if debug:
            raise
        console.print(f"[bold red]Conflict:[/bold red] {e}")
        raise typer.Exit(1) from e
    except StorageFailureError as e:
        if debug:
            raise
        console.print(f"[bold red]Storage failure:[/bold red] {e}")
        console.print("No changes were written.")
        raise typer.Exit(1) from e
    except DuelboardError as e:
        if debug:
            raise
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1) from e
    except tomllib.TOMLDecodeError as e:
        if debug:
            raise
        console.print(f"[bold red]Configuration error:[/bold red] invalid duelboard.toml: {escape(str(e))}")
        raise typer.Exit(1) from e
    except Exception as e:
        if debug:
            console.print_exception(show_locals=False)
            raise typer.Exit(1) from e

        console.print(f"[bold red]An unexpected error occurred:[/bold red] {e}")
        console.print("[dim]Run with [bold]--debug[/bold] for more details.[/dim]")
        raise typer.Exit(1) from e
