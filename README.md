# zbplugin

Building blocks for a group chat bot. Each module does one job: it parses
commands, builds reply text, keeps a small SQLite store, talks to one web
service or renders media. Sending and receiving chat messages is left to
your own code.

## Modules

| Module | Purpose |
| --- | --- |
| `zbplugin.timer` | `Timer`, a group reminder whose month, day, weekday, hour and minute are packed into one integer; builds timers from Chinese date text |
| `zbplugin.schedule` | `next_wake_time` and `should_fire` for calendar timers, `first_week` |
| `zbplugin.clock` | `Clock`, which stores timers in SQLite and fires them from a worker thread; `parse_cron` and `CronSchedule` for cron lines |
| `zbplugin.manager` | `ManagerStore` for welcome/farewell texts and admitted members; mute lengths, greeting placeholders, flag bits, lucky-member pick, join quiz and gist-based join checks |
| `zbplugin.midi` | Note strings to MIDI, MIDI back to note strings, WAV rendering with `timidity`, `ListeningQuiz` |
| `zbplugin.nbnhhsh` | Guesses what a pinyin abbreviation stands for |
| `zbplugin.juejuezi` | "绝绝子" sentence generator client |
| `zbplugin.gif` | `GifMaker`: avatar memes 摸 搓 敲 吃 蹭 啃 拍 冲 丢 爬 撕 and simple filters; Pillow helpers |
| `zbplugin.moyu` | `Holiday` countdowns, `weekend`, and the daily reminder text |
| `zbplugin.nsfw` | Turns classifier scores (`Picture`) into a short verdict |
| `zbplugin.hyaku` | The hundred poems of 小倉百人一首 read from a CSV file |
| `zbplugin.github` | GitHub repository search and text summary |
| `zbplugin.omikuji` | 浅草寺 fortune slips: one per user per day, explanations in `KujiStore` |
| `zbplugin.hs` | Hearthstone card search and deck image lookups |
| `zbplugin.imagefinder` | Keyword illustration search and its caption |
| `zbplugin.jandan` | `PictureStore` of picture URLs keyed by CRC-64, filled by walking a paged board |
| `zbplugin.nativesetu` | `SetuLibrary`: local pictures indexed per folder with a difference hash |
| `zbplugin.nativewife` | `WifeAlbum`: per-group picture folders with a daily draw |

## Examples

Reminders from Chinese date text:

```python
from zbplugin.timer import filled_timer, chinese_num_to_int

t = filled_timer(["", "12", "-1", "12", "0", "", "test"], 0, 0, False)
t.timer_info()            # "[0]12月0日1周12:0"
t.timer_id()              # 32-bit id taken from the md5 of timer_info()
chinese_num_to_int("二十")  # 20
```

Running them. The sender is called as `sender(self_id, group_id, segments)`,
where `segments` is the list returned by `Timer.message()`:

```python
from zbplugin.clock import Clock, parse_cron
from zbplugin.timer import filled_cron_timer

with Clock("config.db", sender=lambda bot_id, group_id, segments: print(group_id, segments)) as clock:
    clock.register_timer(filled_cron_timer("0 9 * * 1", "周会", "", 0, 123), True, False)
    print(clock.list_timers(123))

parse_cron("@daily").matches(...)  # five-field lines and @yearly/@monthly/@weekly/@daily/@hourly
```

Group management:

```python
from zbplugin.manager import ManagerStore, ban_minutes, welcome_to_cq, check_new_user

ban_minutes(2, "小时")   # 120, never more than 43199
welcome_to_cq("欢迎{at}加入{groupname}", 10001, "nick", 123, "group")

with ManagerStore("manager.db") as store:
    ok, reason = check_new_user(store, 10001, 123, "someone", "abc",
                                fetch=lambda url: b"1700000000", now=1700000100)
```

Music:

```python
from zbplugin.midi import parse_note, note_name, make_midi, midi_to_text, text_to_music

parse_note("C#6")   # 73
note_name(61)       # "Db"
path = make_midi("tune.mid", "CCGGAAGR FFEEDDCR", 40)
midi_to_text(path.read_bytes(), 0)
text_to_music("CDE", "tune2.mid")   # runs timidity, returns the .wav path
```

Memes, given a download function `download(url, path)`:

```python
from zbplugin.gif import GifMaker, parse_command

command, target = parse_command("摸123456")
maker = GifMaker("data/gif", 10001, download=my_download)
maker.prepare_logos(target, "10001")
maker.make(command)        # "file:///.../摸.gif"
```

Small helpers:

```python
from zbplugin.github import notnull
from zbplugin.manager import unescape_brackets

notnull("", "None")                          # "None"
unescape_brackets("&#91;CQ:face,id=1&#93;")  # "[CQ:face,id=1]"
```

Modules that call web services (`nbnhhsh`, `juejuezi`, `github`, `hs`,
`imagefinder`) take an optional `session`, so a `requests.Session` of your
own can be passed in. `manager.check_new_user`, `jandan.update` and
`moyu.build_message` take a `fetch` callable instead.

## What the package does not do

- It does not connect to a chat server, receive events or send messages;
  there is no bot runner and no command line program.
- `moyu.build_message` needs a `fetch` callable for holiday records; no
  client for a record server is included.
- `nsfw` only words scores; it does not classify pictures.
- `omikuji` returns slip numbers, image URLs and explanation text; it does
  not render the text as a picture.
- `imagefinder` searches and formats results; it does not download the
  illustrations.

## Requirements

Python 3.10 or later. WAV rendering needs the `timidity` program on the
`PATH`. Tests use pytest, installed with the `test` extra.