"""Statistics commands."""

from typing import Optional

import typer

from src.cli.display import console, display_dice_error, display_roll, display_statistics
from src.cli.engine import build_engine
from src.dice.errors import DiceEvaluationError, DiceParseError
from src.dice.roller import ABILITY_SCORE_COUNT, roll_ability_scores

app = typer.Typer(help="Roll statistics commands")


@app.command()
def frequency(
    expression: str = typer.Argument(..., help="Dice expression to sample"),
    times: int = typer.Option(1000, "--times", "-n", min=1, help="Number of rolls"),
    sides: Optional[int] = typer.Option(None, "--sides", min=1, help="Die size to tabulate (default: first term)"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Use the seeded pseudorandom source"),
) -> None:
    """Roll an expression many times and show the distribution."""
    engine = build_engine(seed=seed, history_capacity=times)

    try:
        terms = engine.parse(expression).terms
        engine.roll_batch([expression] * times)
    except (DiceParseError, DiceEvaluationError) as e:
        display_dice_error(e)
        raise typer.Exit(1)

    if sides is None:
        sides = terms[0].sides if terms else 0

    frequencies = engine.history.frequency_table(sides) if sides else {}
    display_statistics(engine.history.statistics(), frequencies, sides)


@app.command()
def abilities(
    count: int = typer.Option(ABILITY_SCORE_COUNT, "--count", min=1, help="Number of scores"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Use the seeded pseudorandom source"),
) -> None:
    """Roll ability scores with 4d6, dropping the lowest die."""
    engine = build_engine(seed=seed)

    results = roll_ability_scores(engine, count=count)
    for result in results:
        display_roll(result)

    console.print(f"[bold]Sum:[/bold] {sum(r.total for r in results)}")
