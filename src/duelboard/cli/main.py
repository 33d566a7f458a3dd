"""Main Typer application for duelboard."""

import contextlib
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from duelboard.cli.errorhandler import handle_cli_errors
from duelboard.config import create_default_config, find_duelboard_config, load_duelboard_config
from duelboard.constants import QualificationState
from duelboard.database.records import Submission
from duelboard.engine import RankingEngine
from duelboard.logging_setup import configure_logging
from duelboard.ranking.admin import AdministrationResult
from duelboard.ranking.leaderboard import LeaderboardFilter

logger = logging.getLogger(__name__)
console = Console()

app = typer.Typer(
    name="duelboard",
    help="Rank submissions through pairwise peer votes and Elo ratings",
    add_completion=False,
)


@dataclass(slots=True)
class CLIState:
    project_root: Path
    debug: bool


@app.callback()
def main(
    ctx: typer.Context,
    project_root: Annotated[
        Path,
        typer.Option("--project", "-p", help="Project directory containing .duelboard/"),
    ] = Path(),
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show full tracebacks on errors"),
    ] = False,
) -> None:
    """duelboard command line."""
    configure_logging(logging.DEBUG if debug else None)
    ctx.obj = CLIState(project_root=project_root.expanduser().resolve(), debug=debug)


@contextlib.contextmanager
def _engine(ctx: typer.Context) -> Iterator[RankingEngine]:
    state: CLIState = ctx.obj
    logger.debug("Opening rating store for %s", state.project_root)
    with handle_cli_errors(debug=state.debug):
        config = load_duelboard_config(state.project_root)
        engine = RankingEngine.from_config(config, state.project_root)
        try:
            yield engine
        finally:
            engine.close()


def _submission_table(title: str, submissions: list[Submission], *, per_category: bool) -> Table:
    table = Table(title=title)
    table.add_column("Rank", style="cyan", justify="right")
    table.add_column("Submission", style="green")
    table.add_column("Category")
    table.add_column("Rating", style="magenta", justify="right")
    table.add_column("State")

    rank = 0
    previous_category: str | None = None
    for submission in submissions:
        restart = per_category and submission.category_id != previous_category
        rank = 1 if restart else rank + 1
        previous_category = submission.category_id
        table.add_row(
            str(rank),
            submission.title or submission.submission_id,
            submission.category_id,
            f"{submission.rating:.1f}",
            submission.qualification.value,
        )
    return table


def _report(result: AdministrationResult) -> None:
    console.print(
        f"Deleted {len(result.deleted_submission_ids)} submission(s) and "
        f"{len(result.deleted_vote_ids)} vote(s)"
    )
    for submission_id, rating in sorted(result.recalculation.ratings.items()):
        console.print(f"  {submission_id}: {rating:.1f}")


@app.command()
def init(ctx: typer.Context) -> None:
    """Create .duelboard/duelboard.toml and an empty rating store."""
    state: CLIState = ctx.obj
    if find_duelboard_config(state.project_root) is None:
        create_default_config(state.project_root)
        console.print(f"Created {state.project_root / '.duelboard' / 'duelboard.toml'}")
    with _engine(ctx) as engine:
        stats = engine.store.stats()
    console.print(f"Rating store ready ({stats['total_submissions']} submissions, {stats['total_votes']} votes)")


@app.command()
def submit(
    ctx: typer.Context,
    submission_id: Annotated[str, typer.Argument(help="Identifier of the new submission")],
    owner: Annotated[str, typer.Option("--owner", "-o", help="Identity of the submitting voter")],
    category: Annotated[str, typer.Option("--category", "-c", help="Category the submission competes in")],
    title: Annotated[str, typer.Option("--title", "-t", help="Display title")] = "",
    state: Annotated[
        QualificationState,
        typer.Option("--state", help="Initial qualification state"),
    ] = QualificationState.PENDING,
) -> None:
    """Register a submission at the baseline rating."""
    with _engine(ctx) as engine:
        submission = engine.add_submission(submission_id, owner, category, title=title, qualification=state)
    console.print(f"Added {submission.submission_id} ({submission.category_id}) at {submission.rating:.1f}")


@app.command()
def qualify(
    ctx: typer.Context,
    submission_id: Annotated[str, typer.Argument(help="Submission to update")],
    state: Annotated[QualificationState, typer.Argument(help="New qualification state")],
) -> None:
    """Change a submission's qualification state."""
    with _engine(ctx) as engine:
        submission = engine.set_qualification(submission_id, state)
    console.print(f"{submission.submission_id} is now {submission.qualification.value}")


@app.command()
def pair(
    ctx: typer.Context,
    voter: Annotated[str, typer.Argument(help="Voter requesting a comparison")],
) -> None:
    """Offer a random unseen pair to a voter."""
    with _engine(ctx) as engine:
        offered = engine.request_pair(voter)
    if offered is None:
        console.print("[yellow]No pairs available[/yellow]")
        raise typer.Exit(0)
    console.print(f"{offered.first.submission_id} vs {offered.second.submission_id} ({offered.category_id})")


@app.command()
def vote(
    ctx: typer.Context,
    voter: Annotated[str, typer.Argument(help="Voter casting the decision")],
    winner: Annotated[str, typer.Argument(help="Preferred submission")],
    loser: Annotated[str, typer.Argument(help="Other submission")],
) -> None:
    """Record a pairwise decision (repeating a vote is harmless)."""
    with _engine(ctx) as engine:
        outcome = engine.record_vote(voter, winner, loser)
    if not outcome.recorded:
        console.print(f"[dim]Already recorded as vote {outcome.vote.vote_id}[/dim]")
        return
    console.print(
        f"Vote {outcome.vote.vote_id}: {winner} {outcome.winner_rating:.1f}, {loser} {outcome.loser_rating:.1f}"
    )


@app.command()
def top(  # noqa: PLR0913
    ctx: typer.Context,
    limit: Annotated[int | None, typer.Option("--limit", "-n", help="Rows (per category with --per-category)")] = None,
    category: Annotated[str | None, typer.Option("--category", "-c", help="Restrict to one category")] = None,
    per_category: Annotated[bool, typer.Option("--per-category", help="Cap each category independently")] = False,
    approved_only: Annotated[bool, typer.Option("--approved-only", help="Only approved submissions")] = False,
    include_disqualified: Annotated[
        bool,
        typer.Option("--include-disqualified", help="Also list disqualified submissions"),
    ] = False,
) -> None:
    """Show the leaderboard."""
    state: CLIState = ctx.obj
    leaderboard_filter = LeaderboardFilter(
        category_id=category,
        states=[QualificationState.APPROVED] if approved_only else None,
        include_disqualified=include_disqualified,
    )
    with _engine(ctx) as engine:
        if limit is None:
            config = load_duelboard_config(state.project_root)
            limit = config.leaderboard.per_category_limit if per_category else config.leaderboard.default_limit
        ranked = engine.top_n(leaderboard_filter, limit, per_category=per_category)

    if not ranked:
        console.print("[yellow]No rankings found[/yellow]")
        raise typer.Exit(0)
    console.print(_submission_table("Leaderboard", ranked, per_category=per_category))


@app.command()
def history(
    ctx: typer.Context,
    submission: Annotated[str | None, typer.Option("--submission", "-s", help="Only votes on this submission")] = None,
    voter: Annotated[str | None, typer.Option("--voter", "-v", help="Only votes by this voter")] = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Number of votes to show")] = 20,
) -> None:
    """Show the vote ledger, newest first."""
    with _engine(ctx) as engine:
        votes = engine.vote_history(submission_id=submission, voter_id=voter, limit=limit)

    if not votes:
        console.print("[yellow]No votes found[/yellow]")
        return

    table = Table(title="Vote ledger")
    table.add_column("Vote", justify="right")
    table.add_column("Timestamp", style="dim")
    table.add_column("Voter", style="cyan")
    table.add_column("Winner", style="green")
    table.add_column("Loser", style="red")
    for row in votes:
        table.add_row(str(row.vote_id), str(row.created_at)[:19], row.voter_id, row.winner_id, row.loser_id)
    console.print(table)


@app.command()
def recalculate(
    ctx: typer.Context,
    submission_ids: Annotated[list[str], typer.Argument(help="Submissions to rederive from the ledger")],
    exclude_vote: Annotated[
        list[int] | None,
        typer.Option("--exclude-vote", "-x", help="Vote id to treat as removed (repeatable)"),
    ] = None,
) -> None:
    """Replay the ledger for the given submissions from the baseline."""
    with _engine(ctx) as engine:
        result = engine.recalculate(submission_ids, exclude_vote or ())
    console.print(f"Replayed {result.replayed_votes} vote(s)")
    for submission_id, rating in sorted(result.ratings.items()):
        console.print(f"  {submission_id}: {rating:.1f}")


@app.command(name="delete-vote")
def delete_vote(
    ctx: typer.Context,
    vote_id: Annotated[int, typer.Argument(help="Vote to remove")],
) -> None:
    """Remove one vote and recalculate the two submissions it judged."""
    with _engine(ctx) as engine:
        result = engine.delete_vote(vote_id)
    _report(result)


@app.command(name="delete-submission")
def delete_submission(
    ctx: typer.Context,
    submission_id: Annotated[str, typer.Argument(help="Submission to remove")],
) -> None:
    """Remove a submission with its votes and recalculate its former opponents."""
    with _engine(ctx) as engine:
        result = engine.delete_submission(submission_id)
    _report(result)


@app.command(name="delete-voter")
def delete_voter(
    ctx: typer.Context,
    voter: Annotated[str, typer.Argument(help="Voter account to remove")],
) -> None:
    """Remove a voter's votes and submissions and recalculate everything they touched."""
    with _engine(ctx) as engine:
        result = engine.delete_voter(voter)
    _report(result)
