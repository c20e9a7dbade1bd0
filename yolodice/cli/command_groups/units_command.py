"""Units command group: bet target and amount conversions."""

from __future__ import annotations

import typer
from rich.console import Console


def register_units_commands(app: typer.Typer, console: Console) -> None:
    """Register units command group."""
    units_app = typer.Typer(help="Convert multipliers, probabilities and BTC amounts")
    app.add_typer(units_app, name="units")

    @units_app.command("target")
    def units_target(
        multiplier: float = typer.Option(None, "--multiplier", "-m", help="Payout multiplier, e.g. 2.0"),
        probability: float = typer.Option(None, "--probability", "-p", help="Win probability between 0 and 1"),
        edge: float = typer.Option(0.01, "--edge", help="House edge used with --multiplier"),
    ) -> None:
        """Print the bet target for a multiplier or a win probability."""
        from yolodice.units import target_from_multiplier, target_from_probability

        if (multiplier is None) == (probability is None):
            raise typer.BadParameter("pass exactly one of --multiplier or --probability")
        try:
            if multiplier is not None:
                target = target_from_multiplier(multiplier, edge)
            else:
                target = target_from_probability(probability)
        except ValueError as e:
            raise typer.BadParameter(str(e))
        console.print(str(target))

    @units_app.command("btc")
    def units_btc(satoshi: int = typer.Argument(..., help="Amount in satoshi")) -> None:
        """Convert satoshi to BTC."""
        from yolodice.units import satoshi_to_btc

        console.print(f"{satoshi_to_btc(satoshi):.8f}")

    @units_app.command("satoshi")
    def units_satoshi(btc: float = typer.Argument(..., help="Amount in BTC")) -> None:
        """Convert BTC to satoshi."""
        from yolodice.units import btc_to_satoshi

        console.print(str(btc_to_satoshi(btc)))
