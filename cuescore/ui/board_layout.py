"""Scoreboard and bracket layout rendering using Rich."""

from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from cuescore.bracket.engine import champion
from cuescore.bracket.models import MatchStatus, Tournament, round_key, round_prefix, stage_name
from cuescore.core.score_state import ScoreState
from cuescore.ui.i18n import t

STATUS_STYLES = {
    MatchStatus.PENDING: "dim",
    MatchStatus.LIVE: "bold yellow",
    MatchStatus.ENDED: "green",
}


def _score_style(score: int) -> str:
    return "green" if score > 0 else "red" if score < 0 else ""


def render_scoreboard(console: Console, state: ScoreState, live_code: Optional[str] = None,
                      read_only: bool = False, show_teams: bool = False):
    """Render scores in turn order; the player at the table is marked."""
    header = Text()
    if live_code:
        header.append(f"  {t('label.live', code=live_code)}", style="bold red")
        if read_only:
            header.append(f"  ({t('label.read_only')})", style="dim")
    else:
        header.append(f"  {t('label.offline')}", style="dim")
    rates = state.rates
    header.append(f"\n  {t('label.rates')}: win {rates.win} / foul {rates.foul} / bc {rates.bc}")
    console.print(Panel(header, title=f"[bold]{t('label.title')}[/bold]", border_style="cyan"))

    table = Table(border_style="cyan")
    table.add_column(t("label.turn"), justify="center")
    table.add_column("#", justify="center")
    table.add_column(t("label.player"), style="bold")
    if show_teams:
        table.add_column(t("label.team"))
    table.add_column(t("label.score"), justify="right")

    for position, pid in enumerate(state.order):
        marker = "▶" if position == 0 else str(position + 1)
        score = state.scores.get(pid, 0)
        row = [marker, str(pid), state.name_of(pid)]
        if show_teams:
            row.append(state.teams.get(pid, ""))
        row.append(str(score))
        table.add_row(*row, style=_score_style(score))

    console.print(table)
    if state.history_log:
        console.print(f"  [dim]{state.history_log[-1].text}[/dim]")


def render_history(console: Console, state: ScoreState, limit: int = 20):
    """Render the newest history entries, newest first."""
    table = Table(title=t("label.history"), border_style="cyan")
    table.add_column("#", justify="right")
    table.add_column(t("label.history"))
    table.add_column(t("label.score"), justify="right")

    entries = list(enumerate(zip(state.history_log, state.score_log)))[-limit:]
    for i, (entry, scores) in reversed(entries):
        totals = " ".join(f"{state.name_of(pid)}:{scores.get(pid, 0)}" for pid in sorted(scores))
        table.add_row(str(i), entry.text, totals)
    console.print(table)


STAT_LABELS = {
    "win": "label.win",
    "foul": "label.foul",
    "golden": "label.golden",
    "bc": "label.bc",
}


def render_stats(console: Console, state: ScoreState):
    """Render per-player action counters."""
    table = Table(title=t("label.stats"), border_style="cyan")
    table.add_column(t("label.player"), style="bold")
    kinds = [k for k in STAT_LABELS if k in state.action_stats]
    for kind in kinds:
        table.add_column(t(STAT_LABELS[kind]), justify="right")

    for pid in sorted(state.order):
        table.add_row(state.name_of(pid),
                      *(str(state.action_stats[k].get(pid, 0)) for k in kinds))
    console.print(table)


def _match_line(match) -> Text:
    p1 = match.p1 or t("bracket.tbd")
    p2 = match.p2 or t("bracket.tbd")
    line = Text()
    line.append(p1, style="bold" if match.winner_name == match.p1 and match.decided else "")
    line.append(f" {match.score1} - {match.score2} ")
    line.append(p2, style="bold" if match.winner_name == match.p2 and match.decided else "")
    return line


def render_bracket(console: Console, tournament: Tournament, title: str = ""):
    """Render every round as a table of matches."""
    heading = tournament.name or title
    if tournament.date:
        heading = f"{heading}  {tournament.date}".strip()
    console.print(Panel(f"[bold]{heading or t('mode.bracket')}[/bold]", border_style="gold1"))

    total = tournament.total_rounds
    for r, matches in enumerate(tournament.rounds):
        key = round_key(r)
        caption = stage_name(r, total)
        if key in tournament.race_to:
            caption += f"  ({t('bracket.race_to', n=tournament.race_to[key])})"
        table = Table(title=caption, border_style="cyan", show_header=False)
        table.add_column("id")
        table.add_column("match")
        table.add_column("code", justify="right")
        for i, match in enumerate(matches):
            table.add_row(f"{round_prefix(r, total)}-{i + 1}", _match_line(match),
                          match.join_code or "",
                          style=STATUS_STYLES.get(match.status, ""))
        console.print(table)

    winner = champion(tournament)
    if winner:
        console.print(f"\n  [bold gold1]{t('bracket.champion', player=winner)}[/bold gold1]")


def render_notices(console: Console, notices: List[dict], limit: int = 5):
    if not notices:
        return
    console.print(f"  [bold]{t('label.notices')}[/bold]")
    for notice in notices[:limit]:
        console.print(f"    {notice.get('message', '')}  [dim]{notice.get('createdAt', '')}[/dim]")
