"""Dumping the ``magnets`` schema to a directory tree and loading it back.

A dump directory holds ``schema.json``, a ``sequences`` directory with one file
per sequence, and a ``tables`` directory with one sub-directory per table. Each
row is stored in its own file with one line per column, encoded by
:mod:`magnets.codecs`.

The transaction object passed to :func:`dump` and :func:`load` provides these
coroutines:

* ``query(sql, params)`` returning a sequence of rows,
* ``query_one(sql, params)`` returning a single row,
* ``execute(sql, params)``,
* ``copy_out(sql, type_oids)``, an asynchronous iterable of decoded rows,
* ``copy_in(sql, type_oids, rows)``, which stores the given rows.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterable, Iterator, Sequence as Seq
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Protocol

from .codecs import codec_for
from .schema import Schema, Sequence, Table, get_schema

__all__ = ["DumpError", "dump", "load"]

_SEQUENCES_SQL = """
                select sequencename, data_type::oid, nextval('magnets.' || sequencename)
                from pg_catalog.pg_sequences
                where schemaname = 'magnets'"""


class DumpError(Exception):
    """A dump or load of the database failed."""


class _Transaction(Protocol):
    async def query(self, sql: str, params: Seq[Any] = ...) -> Seq[Seq[Any]]: ...

    async def query_one(self, sql: str, params: Seq[Any] = ...) -> Seq[Any]: ...

    async def execute(self, sql: str, params: Seq[Any] = ...) -> Any: ...

    def copy_out(self, sql: str, type_oids: list[int]) -> AsyncIterable[Seq[Any]]: ...

    async def copy_in(
        self, sql: str, type_oids: list[int], rows: list[tuple[Any, ...]]
    ) -> Any: ...


@contextmanager
def _context(message: str) -> Iterator[None]:
    try:
        yield
    except Exception as exc:
        raise DumpError(f"{message}: {exc}") from exc


def _write_file(path: Path, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as fh:
        fh.write(content)


def _read_file(path: Path) -> str:
    with open(path, encoding="utf-8", newline="") as fh:
        return fh.read()


def _split_lines(content: str) -> list[str]:
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


# ---------------------------------------------------------------- dumping


async def dump(location: str | os.PathLike[str], tran: _Transaction) -> None:
    """Dump the database to the directory ``location``, which must not exist yet."""
    path = Path(location)
    if path.exists():
        raise DumpError(f"error: {location} already exists")
    path.mkdir(parents=True, exist_ok=True)
    schema = await get_schema(tran)
    with _context("cannot dump tables"):
        await _dump_tables(path, schema, tran)
    with _context("cannot dump sequences"):
        await _dump_sequences(path, tran)
    with _context("cannot dump schema.json"):
        _write_file(path / "schema.json", schema.to_json())


async def _dump_tables(path: Path, schema: Schema, tran: _Transaction) -> None:
    root = path / "tables"
    root.mkdir()
    for table in schema.tables:
        with _context(f"cannot dump table {table.name}"):
            await _dump_table(root, table, tran)


async def _dump_sequences(path: Path, tran: _Transaction) -> None:
    root = path / "sequences"
    root.mkdir()
    for name, type_oid, value in await tran.query(_SEQUENCES_SQL, []):
        with _context(f"cannot serialize sequence {name}"):
            _write_file(root / name, codec_for(int(type_oid)).serialize(value))


async def _dump_table(root: Path, table: Table, tran: _Transaction) -> None:
    type_oids = [column.type_oid for column in table.columns]
    codecs = [codec_for(oid) for oid in type_oids]
    directory = root / table.name
    directory.mkdir()
    sql = f"copy magnets.{table.name} to stdout binary"
    async for row in tran.copy_out(sql, type_oids):
        target = codecs[0].file_path(directory, row[0])
        content = "".join(
            codec.serialize(value) for codec, value in zip(codecs, row, strict=True)
        )
        _write_file(target, content)


# ---------------------------------------------------------------- loading


async def load(root: str | os.PathLike[str], tran: _Transaction) -> None:
    """Load a dump from ``root`` into the database, whose tables must be empty."""
    path = Path(root)
    created_schema = await get_schema(tran)
    with _context("cannot deserialize schema.json"):
        data_schema = Schema.from_json(_read_file(path / "schema.json"))
    if created_schema != data_schema:
        raise DumpError("schema.json is different from actual schema")
    with _context("cannot load tables"):
        await _load_tables(path, data_schema, tran)
    with _context("cannot load sequences"):
        await _load_sequences(path, data_schema, tran)


async def _load_sequences(path: Path, schema: Schema, tran: _Transaction) -> None:
    root = path / "sequences"
    for sequence in schema.sequences:
        await _load_sequence(root, sequence, tran)


async def _load_sequence(root: Path, sequence: Sequence, tran: _Transaction) -> None:
    text = _read_file(root / sequence.name).strip()
    value = codec_for(sequence.type_oid).read(text)
    sql = f"select setval('magnets.{sequence.name}', $1, false)"
    await tran.execute(sql, [value])


async def _load_tables(path: Path, schema: Schema, tran: _Transaction) -> None:
    root = path / "tables"
    for table in schema.tables:
        await _check_table_empty(table, tran)
        with _context(f"cannot load table {table.name}"):
            await _load_table(root, table, tran)


async def _check_table_empty(table: Table, tran: _Transaction) -> None:
    row = await tran.query_one(f"select count(*) from magnets.{table.name}", [])
    if row[0] > 0:
        raise DumpError(f"table {table.name} is not empty")


def _walk_files(directory: Path) -> Iterator[Path]:
    """Yield every file below ``directory``, files of a directory before its sub-directories."""
    if directory.is_file():
        yield directory
        return
    entries = sorted(directory.iterdir())
    for entry in entries:
        if entry.is_file():
            yield entry
    for entry in entries:
        if entry.is_dir():
            yield from _walk_files(entry)


async def _load_table(root: Path, table: Table, tran: _Transaction) -> None:
    type_oids = [column.type_oid for column in table.columns]
    rows = []
    for file in _walk_files(root / table.name):
        with _context(f"cannot load row {file}"):
            rows.append(_read_row(table, file))
    await tran.copy_in(f"copy magnets.{table.name} from stdin binary", type_oids, rows)


def _read_row(table: Table, file: Path) -> tuple[Any, ...]:
    values = []
    for index, line in enumerate(_split_lines(_read_file(file))):
        if index >= len(table.columns):
            raise DumpError("too many columns")
        values.append(codec_for(table.columns[index].type_oid).read(line))
    if len(values) < len(table.columns):
        raise DumpError("too few columns")
    return tuple(values)