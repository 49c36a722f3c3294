#!/usr/bin/env python3
"""
CLI for the Crease scoring engine
"""
import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from app.database import init_db
from app.auth.utils import create_access_token, create_refresh_token
from app.engine import StatisticsEngine
from app.engine.profile import PROFILES, get_profile
from app.generators.ledger_generator import LedgerGenerator

console = Console()


@click.group()
def cli():
    """Crease - live ball-by-ball cricket scoring"""
    pass


@cli.command()
def init():
    """Initialize the database"""
    console.print("[yellow]Initializing database...[/yellow]")
    init_db()
    console.print("[green]Database initialized successfully![/green]")


@cli.command()
def profiles():
    """List the preset match profiles"""
    table = Table(title="Match Profiles")
    table.add_column("Name", style="cyan")
    table.add_column("Overs", justify="right")
    table.add_column("Balls/over", justify="right")
    table.add_column("Wide", justify="right")
    table.add_column("No-ball", justify="right")
    table.add_column("Free hit")
    table.add_column("Powerplay", justify="right")
    table.add_column("Max/bowler", justify="right")
    table.add_column("Wickets", justify="right")
    table.add_column("Retire at", justify="right")
    table.add_column("Last man")

    for profile in PROFILES.values():
        table.add_row(
            profile.name,
            str(profile.overs_per_innings or "unlimited"),
            str(profile.balls_per_over),
            str(profile.wide_runs),
            str(profile.no_ball_runs),
            "yes" if profile.free_hit_enabled else "no",
            str(profile.powerplay_overs),
            str(profile.max_overs_per_bowler or "unlimited"),
            str(profile.max_wickets),
            str(profile.retire_at_score or "-"),
            "yes" if profile.last_man_can_play else "no",
        )

    console.print(table)


@cli.command()
@click.option("--seed", default=42, help="Random seed; the same seed replays the same match")
@click.option("--profile", "profile_name", default="ICC T20", help="Match profile name")
@click.option("--team-a", default="Home XI", help="First side")
@click.option("--team-b", default="Away XI", help="Second side")
def simulate(seed: int, profile_name: str, team_a: str, team_b: str):
    """Score a random match through the engine and print the scorecards"""
    try:
        profile = get_profile(profile_name)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--profile")

    generator = LedgerGenerator(seed)
    match = generator.simulate_match(profile, team_a, team_b)
    stats_engine = StatisticsEngine()

    console.print(Panel(f"[bold]{team_a} vs {team_b}[/bold] ({profile.name}, seed {seed})"))
    console.print(f"{match.toss_winner} won the toss and chose to {match.toss_decision.value}\n")

    for innings in match.innings:
        stats = stats_engine.compute(
            innings.deliveries,
            profile,
            target=innings.target,
            lineup=generator.squad(innings.batting_side),
        )
        console.print(
            f"\n[bold]Innings {innings.innings_number}: {innings.batting_side} "
            f"{stats.totals.runs}/{stats.totals.wickets} ({stats.totals.overs} overs)[/bold]"
        )
        _print_scorecard(stats)

    result = match.result
    console.print(Panel(f"[bold green]{result.summary}[/bold green]"))


def _print_scorecard(stats):
    """Print innings scorecard"""
    # Batting
    bat_table = Table(title="Batting")
    bat_table.add_column("Batter", style="cyan")
    bat_table.add_column("Dismissal")
    bat_table.add_column("R", justify="right")
    bat_table.add_column("B", justify="right")
    bat_table.add_column("4s", justify="right")
    bat_table.add_column("6s", justify="right")
    bat_table.add_column("SR", justify="right")

    for entry in stats.batting:
        bat_table.add_row(
            entry.batsman,
            entry.dismissal or entry.status,
            str(entry.runs),
            str(entry.balls),
            str(entry.fours),
            str(entry.sixes),
            f"{entry.strike_rate:.1f}",
        )

    console.print(bat_table)

    extras = stats.extras
    console.print(
        f"Extras: {extras.total} (w {extras.wides}, nb {extras.no_balls}, "
        f"b {extras.byes}, lb {extras.leg_byes}, p {extras.penalties})"
    )

    # Bowling
    bowl_table = Table(title="Bowling")
    bowl_table.add_column("Bowler", style="magenta")
    bowl_table.add_column("O", justify="right")
    bowl_table.add_column("M", justify="right")
    bowl_table.add_column("R", justify="right")
    bowl_table.add_column("W", justify="right")
    bowl_table.add_column("Econ", justify="right")

    for entry in stats.bowling:
        bowl_table.add_row(
            entry.bowler,
            entry.overs,
            str(entry.maidens),
            str(entry.runs),
            str(entry.wickets),
            f"{entry.economy:.1f}",
        )

    console.print(bowl_table)

    if stats.fall_of_wickets:
        fow = ", ".join(f"{w.wicket}-{w.score} ({w.batsman}, {w.overs})" for w in stats.fall_of_wickets)
        console.print(f"[dim]Fall of wickets: {fow}[/dim]")


@cli.command()
@click.argument("scorer_id")
def token(scorer_id: str):
    """Issue access and refresh tokens for a scorer"""
    console.print(f"[bold]Access token:[/bold] {create_access_token(scorer_id)}")
    console.print(f"[bold]Refresh token:[/bold] {create_refresh_token(scorer_id)}")


if __name__ == "__main__":
    cli()
