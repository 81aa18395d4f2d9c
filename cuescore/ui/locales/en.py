"""English strings."""

TRANSLATIONS = {
    # History log
    "log.game_started": "Game Started",
    "log.win": "{player} won {loser}.",
    "log.foul": "{player} fouled to {receiver}.",
    "log.bc": "{player} broke clear!",
    "log.golden": "{player} golden break!",
    "log.manual": "{player}'s score manually set to {value}.",
    "log.switch_players": "Switched to {n} players.",
    "log.plus": "{player} +1 point",
    "log.minus": "{player} -1 point",
    "log.race_foul": "{player} committed a foul",

    # Errors
    "error.generic": "Error: {detail}",
    "error.invalid_actor": "Invalid player: {detail}",
    "error.invalid_input": "Invalid input: {detail}",
    "error.nothing_to_undo": "Nothing to undo.",
    "error.bracket": "Bracket error: {detail}",
    "error.not_found": "No game found for code {code}.",
    "error.sync": "Live sync unavailable: {detail}",

    # Menu
    "label.title": "Cue Score",
    "label.subtitle": "Pool scoreboard with live sharing and brackets",
    "mode.select": "Choose a mode:",
    "mode.3p": "3 players",
    "mode.4p": "4 players",
    "mode.race": "2-player race scoreboard",
    "mode.join": "Join a live game by code",
    "mode.bracket": "Tournament bracket",
    "mode.language": "Language / 语言",
    "mode.quit": "Quit",
    "prompt.choose_mode": "Choose (0-{n}):",
    "prompt.invalid_input": "Invalid input",
    "prompt.command": "Command (? for help):",
    "prompt.join_code": "Join code:",
    "prompt.players": "Player names, comma separated:",
    "prompt.size": "Bracket size (power of two):",
    "prompt.tournament_id": "Tournament id (blank for new):",
    "prompt.tournament_name": "Tournament name (optional):",
    "lang.select": "Select language:",
    "lang.en": "English",
    "lang.zh": "中文",

    # Scoreboard
    "label.turn": "Turn",
    "label.player": "Player",
    "label.team": "Team",
    "label.score": "Score",
    "label.history": "History",
    "label.stats": "Stats",
    "label.rates": "Rates",
    "label.live": "LIVE {code}",
    "label.offline": "offline",
    "label.read_only": "read only",
    "label.notices": "Notices",
    "label.win": "Wins",
    "label.foul": "Fouls",
    "label.golden": "Golden breaks",
    "label.bc": "Break clears",
    "msg.live_started": "Live sharing started. Join code: {code}",
    "msg.live_stopped": "Live sharing stopped.",
    "msg.joined": "Joined game {code}.",
    "msg.goodbye": "Goodbye!",
    "msg.cleared": "Scores and history cleared.",
    "help.commands": (
        "w/f/bc/g <p>  win / foul / break-clear / golden\n"
        "+/- <p>       race point up / down, f <p> foul\n"
        "set <p> <n>   set score, u undo\n"
        "n <p> <name>  rename, team <p> <name>\n"
        "rate win|foul|bc <n>, mode 3|4\n"
        "live, stop, h history, s stats, clear, q quit"
    ),

    # Bracket
    "bracket.round": "Round {n}",
    "bracket.tbd": "TBD",
    "bracket.race_to": "Race to {n}",
    "bracket.champion": "Champion: {player}",
    "bracket.created": "Tournament {id} created.",
    "msg.last_tournament": "Last tournament: {id}",
    "error.no_tournament": "No tournament {id}.",
    "bracket.help": (
        "race <round> <n>  set race-to, notice <text>\n"
        "end  end tournament, r refresh, q back"
    ),
    "stage.final": "Finals",
    "stage.semi": "Semifinals",
    "stage.quarter": "Quarterfinals",
    "stage.r16": "Round of 16",
    "stage.r32": "Round of 32",
}
