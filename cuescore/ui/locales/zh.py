"""Chinese strings. Missing keys fall back to English."""

TRANSLATIONS = {
    "log.game_started": "比赛开始",
    "log.win": "{player} 赢了 {loser}。",
    "log.foul": "{player} 犯规，罚给 {receiver}。",
    "log.bc": "{player} 炸清！",
    "log.golden": "{player} 黄金开球！",
    "log.manual": "{player} 的分数被手动设为 {value}。",
    "log.switch_players": "切换为 {n} 人模式。",
    "log.plus": "{player} +1 分",
    "log.minus": "{player} -1 分",
    "log.race_foul": "{player} 犯规",

    "error.generic": "错误：{detail}",
    "error.invalid_actor": "无效玩家：{detail}",
    "error.invalid_input": "无效输入：{detail}",
    "error.nothing_to_undo": "没有可撤销的操作。",
    "error.bracket": "对阵表错误：{detail}",
    "error.not_found": "找不到代码为 {code} 的比赛。",
    "error.sync": "实时同步不可用：{detail}",

    "label.title": "台球记分",
    "label.subtitle": "支持实时共享与淘汰赛对阵表",
    "mode.select": "请选择模式：",
    "mode.3p": "三人",
    "mode.4p": "四人",
    "mode.race": "双人抢局记分",
    "mode.join": "输入代码加入实时比赛",
    "mode.bracket": "淘汰赛对阵表",
    "mode.quit": "退出",
    "prompt.choose_mode": "请选择 (0-{n})：",
    "prompt.invalid_input": "输入无效",
    "prompt.command": "指令（? 查看帮助）：",
    "prompt.join_code": "加入代码：",
    "prompt.players": "选手名单（逗号分隔）：",
    "prompt.size": "对阵表规模（2 的幂）：",
    "prompt.tournament_id": "赛事编号（留空新建）：",
    "prompt.tournament_name": "赛事名称（可选）：",
    "lang.select": "选择语言：",

    "label.turn": "顺序",
    "label.player": "玩家",
    "label.team": "队伍",
    "label.score": "得分",
    "label.history": "记录",
    "label.stats": "统计",
    "label.rates": "分值",
    "label.live": "直播中 {code}",
    "label.offline": "离线",
    "label.read_only": "只读",
    "label.notices": "公告",
    "label.win": "胜局",
    "label.foul": "犯规",
    "label.golden": "黄金开球",
    "label.bc": "炸清",
    "msg.live_started": "已开始实时共享，加入代码：{code}",
    "msg.live_stopped": "已停止实时共享。",
    "msg.joined": "已加入比赛 {code}。",
    "msg.goodbye": "再见！",
    "msg.cleared": "分数与记录已清空。",

    "bracket.round": "第 {n} 轮",
    "bracket.tbd": "待定",
    "bracket.race_to": "抢 {n}",
    "bracket.champion": "冠军：{player}",
    "bracket.created": "赛事 {id} 已创建。",
    "msg.last_tournament": "上次的赛事：{id}",
    "error.no_tournament": "找不到赛事 {id}。",
    "stage.final": "决赛",
    "stage.semi": "半决赛",
    "stage.quarter": "四分之一决赛",
    "stage.r16": "十六强",
    "stage.r32": "三十二强",
}
