# magnets

This package provides building blocks for a service that keeps a catalogue of
anime shows, their torrents and their airing schedule in a PostgreSQL
database. It has no dependencies outside the standard library.

## Modules

- **`magnets.format`**
  - `Format` is the kind of a show: `TV`, `TV_SHORT`, `MOVIE`, `SPECIAL`,
    `OVA` or `ONA`.
  - `Format.from_anilist` parses the AniList API names. `to_db` and `from_db`
    convert to and from the database constants 1 to 6. `str()` gives a
    readable label such as `TV Short`.
  - `ShowNameType` is an `IntEnum` with the values `ROMAJI`, `ENGLISH` and
    `ADDITIONAL`.
- **`magnets.season`**
  - `Season` is one of `WINTER`, `SPRING`, `SUMMER` or `FALL`.
  - `YearSeason` is a year together with a season. Its database form is
    `year * 100 + season`, so Spring 2020 is `202002`.
  - Its URL form is `Season-Year`, for example `Spring-2020`.
  - It has `prev()` and `next()`. `current()` returns the season of a given
    date, or of today's UTC date when no date is given.
  - Invalid input raises `ValueError`. Stepping past year 0 or 65535 raises
    `OverflowError`.
- **`magnets.durations`**
  - `MINUTE` and `HOUR` are durations in seconds.
  - `format_duration` renders a non-negative duration, given in seconds or as
    a `timedelta`, in ISO 8601 form such as `PT90S` or `P1DT0.500S`. It
    returns `?` when the duration is too large.
  - `sleep_until` is a coroutine that sleeps until a given `datetime` or
    POSIX timestamp.
- **`magnets.config`**
  - `load(path="config.toml")` reads a TOML file into a frozen `Config`. The
    file has the sections `db`, `http`, `anilist` and `nyaa`.
  - Duration fields are parsed by `parse_duration`, which accepts strings such
    as `"1h 30m"`, `"10 min"` or `"90"` (seconds) and returns a `timedelta`.
  - Problems raise `ConfigError`.
- **`magnets.logenv`**
  - `configure_logger()` adds a stderr handler to the root logger, sets the
    level to INFO and returns the handler.
  - When `logging_to_journal()` finds that stderr is the systemd journal
    (through `JOURNAL_STREAM`), the handler uses `JournalFormatter`. That
    formatter prefixes each line with a syslog priority such as `<6>` and the
    logger name.
- **`magnets.codecs`**
  - `codec_for` returns the `Codec` for a `PgType` or a type OID. The
    supported types are `text`, `int4`, `int8`, `timestamptz`, `jsonb`,
    `bytea` and `bool`. Each codec turns one value into one line and back.
  - `read_text` and `write_text` handle the quoted text format.
- **`magnets.schema`**
  - `Schema`, `Table`, `Column` and `Sequence` describe the `magnets`
    tables and sequences.
  - `Schema.to_json` and `Schema.from_json` write and read `schema.json`.
  - `get_schema(tran)` reads the description from the database.
- **`magnets.dumper`**
  - `dump(location, tran)` writes every table and sequence to a new directory
    tree.
  - `load(root, tran)` reads such a tree back into a database. It checks the
    schema first and requires the tables to be empty.
  - Both are coroutines and raise `DumpError` on failure.
- **`magnets.heap`**
  - `AsciiHeap` is a compact trie over `[a-z0-9]` keys. Keys are lower-cased
    and stripped of all other characters.
  - `find(text)` returns the node of the longest stored prefix.
    `iter(index)` yields every payload at or below that node.
- **`magnets.schedule`**
  - `compute_diff(existing, new)` compares the stored airing schedule
    (`ExistingItem`s) with a freshly fetched one (`Item`s). It returns `Diff`
    entries of kind `DiffKind.ADD` or `DiffKind.DEL`.
  - `QUERY` is the AniList GraphQL query for a schedule page, and
    `items_from_page` parses one response page.
  - `schedule_window` gives the timestamps from yesterday's midnight to the
    midnight seven days after today (UTC).
- **`magnets.db_state`**
  - `get_state` and `set_state` read and write JSON values in the
    `magnets.state` key/value table.
  - `DbWatcher` holds one `Notify` per watched row.
  - `WatchMessageHandler` listens on the `state_change` channel and wakes up
    the matching `Notify`.

## Examples

```python
from magnets.format import Format
from magnets.season import YearSeason

fmt = Format.from_anilist("TV_SHORT")
print(fmt.to_db(), str(fmt))          # 2 TV Short

spring = YearSeason.from_url_str("Spring-2020")
print(spring.to_db())                 # 202002
print(spring.next().display_name())   # Summer 2020
```

```python
from magnets.heap import AsciiHeap

heap = AsciiHeap([("Kimi no Na wa", 1), ("Kimetsu no Yaiba", 2)])
node = heap.find("kime")
print(sorted(heap.iter(node)))        # [2]
```

## Dump layout

A dump directory contains the following:

- `schema.json`: the tables, their columns and the sequences. Column types are
  given as PostgreSQL type OIDs.
- `tables/<table>/...`: one file per row, with one line per column. Rows of
  tables whose first column is an integer are grouped into subdirectories
  named `key // 1000`. Rows keyed by text are stored in files named after the
  key.
- `sequences/<sequence>`: the next value of each sequence.

The line format of each type is as follows:

- Text and JSON values are written in double quotes, with `\"`, `\\` and
  `\n` escapes.
- Binary values are written as quoted hexadecimal.
- Timestamps are written as microseconds since the Unix epoch.
- Booleans are written as `true` or `false`.
- A missing value is written as `null`.

## What the package does not do

The package has no PostgreSQL driver, no command line and no long-running
service.

`dump`, `load`, `get_schema`, `get_state`, `set_state` and
`WatchMessageHandler.listen` all expect the caller to pass a connection or
transaction object. That object must provide the coroutines `query`,
`query_one`, `execute`, `simple_query`, `copy_out` and `copy_in`, as the
module docstrings describe.

The package also does not contain the following:

- an HTTP client for the AniList API;
- the loops that poll the schedule and the show list;
- torrent scraping;
- the matching of torrent titles to shows.

## Tests

The test suite uses `pytest` and `pytest-asyncio`. Both are installed with the
`test` extra:

```
pip install -e .[test]
pytest
```