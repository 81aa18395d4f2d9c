#!/usr/bin/env python3
"""Cue Score - Pool Scoreboard Terminal App"""

import os

from rich.console import Console
from rich.panel import Panel

from cuescore.bracket.feed import TournamentFeed
from cuescore.core.errors import ScoreboardError
from cuescore.engine.config import MatchConfig, SyncConfig, data_dir
from cuescore.engine.event import EventBus, EventType, GameEvent
from cuescore.engine.session import MatchSession, config_for_document, load_client_id
from cuescore.engine.session_store import JsonFileSessionStore
from cuescore.sync.document_store import FileDocumentStore
from cuescore.sync.join import find_by_join_code
from cuescore.sync.timers import TimerQueue
from cuescore.ui.board_layout import render_bracket, render_notices
from cuescore.ui.i18n import error_message, set_language, t
from cuescore.ui.input_handler import parse_bracket_command, parse_command, read_line
from cuescore.ui.renderer import Renderer, configure_logging

console = Console()

LAST_TOURNAMENT_KEY = "tournament.last"


class App:
    """Shared stores and timers for every screen of the terminal app."""

    def __init__(self, home: str):
        self.sync_config = SyncConfig()
        self.timers = TimerQueue()
        self.session_store = JsonFileSessionStore(os.path.join(home, "session"))
        self.document_store = FileDocumentStore(
            os.path.join(home, "documents"), self.timers, self.sync_config.poll_interval)


def change_language():
    """Show language selection submenu."""
    console.print(f"\n  {t('lang.select')}")
    console.print(f"    1. {t('lang.en')}")
    console.print(f"    2. {t('lang.zh')}")
    console.print()

    while True:
        try:
            choice = int(console.input("  > 1/2: ").strip())
            if choice == 1:
                set_language("en")
                return
            elif choice == 2:
                set_language("zh")
                return
        except ValueError:
            pass
        console.print("  [red]Invalid / 无效[/red]")


def show_menu() -> int:
    """Show mode selection menu and return choice."""
    console.print()
    console.print(Panel(
        f"[bold cyan]{t('label.title')}[/bold cyan]\n"
        f"[dim]{t('label.subtitle')}[/dim]",
        border_style="cyan",
        padding=(1, 4),
    ))
    console.print()
    console.print(f"  {t('mode.select')}")
    console.print(f"    1. {t('mode.3p')}")
    console.print(f"    2. {t('mode.4p')}")
    console.print(f"    3. {t('mode.race')}")
    console.print(f"    4. {t('mode.join')}")
    console.print(f"    5. {t('mode.bracket')}")
    console.print(f"    6. {t('mode.language')}")
    console.print(f"    0. {t('mode.quit')}")
    console.print()

    while True:
        try:
            choice = int(console.input(f"  > {t('prompt.choose_mode', n=6)} ").strip())
            if 0 <= choice <= 6:
                return choice
        except ValueError:
            pass
        console.print(f"  [red]{t('prompt.invalid_input')}[/red]")


def execute(session: MatchSession, renderer: Renderer, cmd) -> bool:
    """Run one scoreboard command. Returns False when the user quits."""
    machine = session.machine
    if cmd.name == "quit":
        return False
    if cmd.name == "action":
        machine.apply_action(cmd.player, cmd.action)
    elif cmd.name == "set":
        machine.set_score_manually(cmd.player, cmd.value)
    elif cmd.name == "undo":
        machine.undo()
    elif cmd.name == "rename":
        machine.rename_player(cmd.player, cmd.text)
    elif cmd.name == "team":
        machine.set_team(cmd.player, cmd.text)
    elif cmd.name == "rate":
        machine.set_rates(**{cmd.text: cmd.value})
    elif cmd.name == "mode":
        machine.switch_player_count(cmd.value)
    elif cmd.name == "live":
        code = session.start_live()
        if code:
            console.print(f"  [bold green]{t('msg.live_started', code=code)}[/bold green]")
    elif cmd.name == "stop":
        if session.stop_live():
            console.print(f"  {t('msg.live_stopped')}")
    elif cmd.name == "history":
        renderer.show_history()
    elif cmd.name == "stats":
        renderer.show_stats()
    elif cmd.name == "clear":
        session.clear_game()
        console.print(f"  {t('msg.cleared')}")
    elif cmd.name == "help":
        console.print(t("help.commands"))
    return True


def play_scoreboard(app: App, config: MatchConfig, join_code: str = None,
                    player_count: int = None):
    """Run the scoreboard screen until the user quits."""
    event_bus = EventBus()
    session = MatchSession(config, app.session_store, app.document_store,
                           app.timers, app.sync_config, event_bus)
    renderer = Renderer(console, event_bus, session)
    try:
        session.resume()
        if join_code is not None:
            if not session.join(join_code):
                console.print(f"  [red]{t('error.not_found', code=join_code)}[/red]")
                return
            console.print(f"  {t('msg.joined', code=join_code)}")
        elif player_count and session.machine.player_count != player_count:
            session.machine.switch_player_count(player_count)

        while True:
            app.timers.run_due()
            renderer.render()
            line = read_line(console)
            app.timers.run_due()
            try:
                cmd = parse_command(line)
                if cmd is None:
                    continue
                if not execute(session, renderer, cmd):
                    break
            except ScoreboardError as e:
                console.print(f"  [red]{error_message(e)}[/red]")
    finally:
        if session.channel is not None:
            session.channel.flush()
        session.close()
        renderer.close()


def join_game(app: App):
    code = read_line(console, "prompt.join_code")
    found = find_by_join_code(app.document_store, code)
    if found is None:
        console.print(f"  [red]{t('error.not_found', code=code)}[/red]")
        return
    ref, doc = found
    play_scoreboard(app, config_for_document(ref, doc), join_code=code)


def create_tournament(app: App, feed: TournamentFeed) -> bool:
    names = read_line(console, "prompt.players")
    players = [n.strip() for n in names.split(",") if n.strip()]
    try:
        size = int(read_line(console, "prompt.size"))
    except ValueError:
        console.print(f"  [red]{t('prompt.invalid_input')}[/red]")
        return False
    name = read_line(console, "prompt.tournament_name")
    tournament_id = feed.create(players, size, name=name)
    app.session_store.save(LAST_TOURNAMENT_KEY, tournament_id)
    console.print(f"  [bold green]{t('bracket.created', id=tournament_id)}[/bold green]")
    return True


def run_bracket(app: App):
    """Run the bracket screen until the user quits."""
    event_bus = EventBus()
    feed = TournamentFeed(app.document_store, load_client_id(app.session_store),
                          app.timers, app.sync_config, event_bus)

    def on_decided(event: GameEvent):
        console.print(f"  [green]{event.data['ref'].round_key} #{event.data['ref'].match_index + 1}: "
                      f"{event.data['winner']}[/green]")

    event_bus.subscribe(EventType.MATCH_DECIDED, on_decided)

    last = app.session_store.load(LAST_TOURNAMENT_KEY)
    if last:
        console.print(f"  [dim]{t('msg.last_tournament', id=last)}[/dim]")
    try:
        tournament_id = read_line(console, "prompt.tournament_id")
        if tournament_id:
            if not feed.attach(tournament_id):
                console.print(f"  [red]{t('error.no_tournament', id=tournament_id)}[/red]")
                return
            app.session_store.save(LAST_TOURNAMENT_KEY, tournament_id)
        elif not create_tournament(app, feed):
            return

        while True:
            app.timers.run_due()
            render_bracket(console, feed.tournament)
            render_notices(console, feed.notices())
            line = read_line(console)
            app.timers.run_due()
            try:
                cmd = parse_bracket_command(line)
                if cmd is None or cmd.name == "refresh":
                    continue
                if cmd.name == "quit":
                    break
                if cmd.name == "race":
                    feed.set_race_to(cmd.text, cmd.value)
                elif cmd.name == "notice":
                    feed.post_notice(cmd.text)
                elif cmd.name == "end":
                    feed.end_tournament()
                elif cmd.name == "help":
                    console.print(t("bracket.help"))
            except ScoreboardError as e:
                console.print(f"  [red]{error_message(e)}[/red]")
    except ScoreboardError as e:
        console.print(f"  [red]{error_message(e)}[/red]")
    finally:
        feed.detach()


def main():
    """Main entry point."""
    configure_logging(console)
    set_language(os.environ.get("CUESCORE_LANG", "en"))
    app = App(data_dir())
    try:
        while True:
            choice = show_menu()
            if choice == 0:
                console.print(f"\n  {t('msg.goodbye')}\n")
                break
            elif choice == 1:
                play_scoreboard(app, MatchConfig.rotation(3), player_count=3)
            elif choice == 2:
                play_scoreboard(app, MatchConfig.rotation(3), player_count=4)
            elif choice == 3:
                play_scoreboard(app, MatchConfig.race())
            elif choice == 4:
                join_game(app)
            elif choice == 5:
                run_bracket(app)
            elif choice == 6:
                change_language()
            console.print()
    except (KeyboardInterrupt, EOFError):
        console.print(f"\n\n  [dim]{t('msg.goodbye')}[/dim]\n")
    finally:
        app.document_store.close()


if __name__ == "__main__":
    main()
