"""Rich display helpers for CLI output."""

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from src.dice.errors import DiceEvaluationError, DiceParseError
from src.dice.history import HistoryStatistics
from src.dice.types import DieResult, RollResult


# Shared console instance
console = Console()

DROPPED_MARK = "✗"
EXPLODED_MARK = "!"


def format_die(die: DieResult, markup: bool = True) -> str:
    """Render one die, marking dropped and exploded dice.

    Args:
        die: The die to render.
        markup: Emit Rich markup instead of plain text.
    """
    text = str(die.value)
    if die.exploded:
        text += EXPLODED_MARK
    if die.kept:
        return text
    return f"[dim strike]{text}[/dim strike]" if markup else text + DROPPED_MARK


def format_roll(result: RollResult, markup: bool = True) -> str:
    """Render a result as "4d6dl1+2 = [5, 3, 6, 2✗] = 16".

    Dice are grouped per term in left-to-right order.

    Args:
        result: The roll to render.
        markup: Emit Rich markup instead of plain text.
    """
    term_indices = sorted({die.term_index for die in result.per_die_results})
    # A literal "[" must be escaped so Rich does not read it as a tag
    opening = "\\[" if markup else "["
    groups = [
        opening + ", ".join(format_die(die, markup) for die in result.dice_for_term(i)) + "]"
        for i in term_indices
    ]
    expression = escape(result.expression) if markup else result.expression
    total = f"[bold]{result.total}[/bold]" if markup else str(result.total)

    if not groups:
        return f"{expression} = {total}"
    return f"{expression} = {' '.join(groups)} = {total}"


def display_roll(result: RollResult) -> None:
    """Display a roll result.

    Args:
        result: Roll to display.
    """
    line = format_roll(result)
    if result.context:
        line += f" [dim]({escape(result.context)})[/dim]"
    console.print(line)


def display_statistics(stats: HistoryStatistics, frequencies: dict[int, int], sides: int) -> None:
    """Display aggregate statistics and a face frequency table.

    Args:
        stats: Aggregates over the history window.
        frequencies: Face counts for one die size.
        sides: The die size the frequencies describe.
    """
    summary = Table(title="Totals")
    summary.add_column("Rolls", justify="right")
    summary.add_column("Mean", justify="right")
    summary.add_column("Variance", justify="right")
    summary.add_column("Min", justify="right")
    summary.add_column("Max", justify="right")
    summary.add_row(
        str(stats.count),
        f"{stats.mean:.3f}" if stats.mean is not None else "-",
        f"{stats.variance:.3f}" if stats.variance is not None else "-",
        str(stats.minimum) if stats.minimum is not None else "-",
        str(stats.maximum) if stats.maximum is not None else "-",
    )
    console.print(summary)
    if not frequencies:
        return

    observed = sum(frequencies.values())
    table = Table(title=f"d{sides} faces")
    table.add_column("Face", style="cyan", justify="right")
    table.add_column("Count", justify="right")
    table.add_column("Share", justify="right")
    for face, count in frequencies.items():
        share = f"{count / observed:.1%}" if observed else "-"
        table.add_row(str(face), str(count), share)
    console.print(table)


def display_error(message: str) -> None:
    """Display error message.

    Args:
        message: Error message.
    """
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")


def display_success(message: str) -> None:
    """Display success message.

    Args:
        message: Success message.
    """
    console.print(f"[bold green]{escape(message)}[/bold green]")


def display_info(message: str) -> None:
    """Display info message.

    Args:
        message: Info message.
    """
    console.print(f"[dim]{escape(message)}[/dim]")


def display_dice_error(error: DiceParseError | DiceEvaluationError) -> None:
    """Display an engine error with its kind and the expression verbatim.

    Args:
        error: Parse or evaluation error raised by the engine.
    """
    display_error(f"{error.kind.value}: {error}")
