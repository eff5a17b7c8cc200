"""Console output for the CLI, wrapping rich."""

from rich.console import Console as RichConsole


class Console:
    def __init__(self) -> None:
        self._console = RichConsole()
        self._err_console = RichConsole(stderr=True)

    def success(self, message: str) -> None:
        self._console.print(f"[green]✓[/green] {message}")

    def error(self, message: str, *, hint: str | None = None) -> None:
        self._err_console.print(f"[red]✗[/red] {message}")
        if hint:
            self._err_console.print(f"  [dim]{hint}[/dim]")

    def info(self, message: str) -> None:
        self._console.print(f"[dim]{message}[/dim]")


_console: Console | None = None


def get_console() -> Console:
    global _console
    if _console is None:
        _console = Console()
    return _console
