"""Roll and validate commands."""

import json
from typing import Optional

import typer

from src.cli.display import display_dice_error, display_error, display_roll, display_success
from src.cli.engine import build_engine
from src.dice.errors import DiceEvaluationError, DiceParseError


def roll(
    expressions: list[str] = typer.Argument(..., help="Dice expressions, e.g. 4d6dl1+2"),
    context: str = typer.Option("", "--context", "-c", help="Label stored with each roll"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Use the seeded pseudorandom source"),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON"),
) -> None:
    """Roll one or more dice expressions."""
    engine = build_engine(seed=seed, show_diagnostics=not as_json)

    try:
        results = engine.roll_batch(expressions, context=context)
    except (DiceParseError, DiceEvaluationError) as e:
        display_dice_error(e)
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps([result.to_dict() for result in results], indent=2))
        return

    for result in results:
        display_roll(result)


def validate(
    expression: str = typer.Argument(..., help="Dice expression to check"),
) -> None:
    """Check an expression without rolling it."""
    engine = build_engine()
    validation = engine.validate(expression)

    if not validation.valid:
        kind = validation.kind.value if validation.kind else "invalid"
        display_error(f"{kind}: {validation.error}")
        raise typer.Exit(1)

    display_success(f"'{expression}' is valid ({validation.term_count} dice terms)")
