"""Main CLI application for the dice engine."""

import logging

import typer

from src.cli.commands import rolling, stats
from src.config import get_settings

# Create main app
app = typer.Typer(
    name="dice",
    help="Roll and inspect dice expressions",
    add_completion=True,
)

# Add sub-commands
app.add_typer(stats.app, name="stats")

app.command(name="roll")(rolling.roll)
app.command(name="validate")(rolling.validate)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Dice engine - parse, roll, and inspect dice notation.

    Use 'dice roll 4d6dl1+2' to roll, or 'dice stats frequency 1d20' to
    sample a distribution.
    """
    level = "DEBUG" if verbose else get_settings().effective_log_level
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


if __name__ == "__main__":
    app()
