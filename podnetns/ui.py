import os

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

# Diagnostics go to stderr so stdout stays clean for the shell we hand off to
_console = Console(stderr=True)

# Check if we should use simple UI (e.g., when running under a plain terminal or CI log)
_use_simple_ui = os.getenv("PODNETNS_SIMPLE_UI") == "1"

_verbose = False


def set_verbose(enabled: bool) -> None:
    global _verbose
    _verbose = enabled


def print_debug(message: str, prefix: str = "🔍"):
    """Print a diagnostic message, only in verbose mode."""
    if _verbose:
        _console.print(Text(f"{prefix} {message}", style="dim"))


def print_info(message: str, prefix: str = "ℹ️"):
    """Print an info message."""
    _console.print(f"[blue]{prefix}[/blue]  {message}")


def print_step(message: str, prefix: str = "🔧"):
    """Print a step/progress message."""
    _console.print(f"[cyan]{prefix}[/cyan] {message}")


def print_success(message: str, prefix: str = "✅"):
    """Print a success message."""
    _console.print(f"[green]{prefix}[/green] {message}")


def print_error(stage: str, message: str, hint: str | None = None):
    """Print a pipeline failure with the stage it happened in."""
    _console.print(Text.assemble(("❌ ", "red"), (f"[{stage}] ", "red bold"), message))
    if hint:
        _console.print(Text(f"   {hint}", style="yellow"))


def print_attach_banner(pod: str, namespace: str, container: str, pid: int):
    """Print where the operator is about to land before the shell takes over."""
    _console.print()

    if _use_simple_ui:
        _console.print("[green]" + "=" * 60 + "[/green]")
        _console.print(
            f"Entering network namespace of [cyan bold]{namespace}/{pod}[/cyan bold] "
            f"container [blue]{container}[/blue] (PID [cyan]{pid}[/cyan])"
        )
        _console.print("Type [bold]exit[/bold] to leave the namespace.")
        _console.print("[green]" + "=" * 60 + "[/green]")
    else:
        _console.print(
            Panel(
                f"[green bold]Entering network namespace[/green bold]\n\n"
                f"Pod:       [cyan bold]{namespace}/{pod}[/cyan bold]\n"
                f"Container: [blue]{container}[/blue]\n"
                f"PID:       [cyan]{pid}[/cyan]\n\n"
                f"[dim]Type 'exit' to leave the namespace.[/dim]",
                border_style="green",
                expand=False,
            )
        )
