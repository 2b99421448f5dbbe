"""Description of the tables and sequences in the ``magnets`` database schema."""

from __future__ import annotations

import json
from collections.abc import Sequence as Seq
from dataclasses import dataclass, field
from typing import Any, Protocol

__all__ = ["Column", "Table", "Sequence", "Schema", "get_schema"]

_U32_MAX = 2**32 - 1

_TABLES_SQL = (
    "select tablename from pg_catalog.pg_tables "
    "where schemaname = 'magnets' order by tablename"
)
_SEQUENCES_SQL = "select sequencename, data_type::oid from pg_sequences order by sequencename"
_COLUMNS_SQL = """
        select col.attname, col.atttypid
        from pg_namespace schm
        join pg_class tbl on schm.oid = tbl.relnamespace
        join pg_attribute col on tbl.oid = col.attrelid
        where schm.nspname = 'magnets' and tbl.relname = $1 and tbl.relkind = 'r' and col.attnum > 0
        order by col.attnum"""


class _Queryable(Protocol):
    async def query(self, sql: str, params: Seq[Any] = ...) -> Seq[Seq[Any]]: ...


@dataclass(frozen=True)
class Column:
    name: str
    type_oid: int


@dataclass(frozen=True)
class Table:
    name: str
    columns: list[Column] = field(default_factory=list)


@dataclass(frozen=True)
class Sequence:
    name: str
    type_oid: int


def _get(obj: Any, key: str) -> Any:
    if not isinstance(obj, dict):
        raise ValueError(f"expected an object containing `{key}`")
    if key not in obj:
        raise ValueError(f"missing field `{key}`")
    return obj[key]


def _str(obj: Any, key: str) -> str:
    value = _get(obj, key)
    if not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string")
    return value


def _list(obj: Any, key: str) -> list[Any]:
    value = _get(obj, key)
    if not isinstance(value, list):
        raise ValueError(f"field `{key}` must be an array")
    return value


def _oid(obj: Any) -> int:
    value = _get(obj, "ty")
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _U32_MAX:
        raise ValueError(f"invalid oid {value!r}")
    return value


@dataclass(frozen=True)
class Schema:
    tables: list[Table] = field(default_factory=list)
    sequences: list[Sequence] = field(default_factory=list)

    def to_json(self) -> str:
        """Return the pretty-printed ``schema.json`` representation."""
        data = {
            "tables": [
                {
                    "name": table.name,
                    "columns": [{"name": c.name, "ty": c.type_oid} for c in table.columns],
                }
                for table in self.tables
            ],
            "sequences": [{"name": s.name, "ty": s.type_oid} for s in self.sequences],
        }
        return json.dumps(data, indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> Schema:
        """Parse a ``schema.json`` document."""
        data = json.loads(text)
        tables = [
            Table(
                name=_str(table, "name"),
                columns=[
                    Column(name=_str(col, "name"), type_oid=_oid(col))
                    for col in _list(table, "columns")
                ],
            )
            for table in _list(data, "tables")
        ]
        sequences = [
            Sequence(name=_str(seq, "name"), type_oid=_oid(seq))
            for seq in _list(data, "sequences")
        ]
        return cls(tables=tables, sequences=sequences)


async def _get_columns(tran: _Queryable, table: str) -> list[Column]:
    rows = await tran.query(_COLUMNS_SQL, [table])
    return [Column(name=name, type_oid=int(oid)) for name, oid in rows]


async def get_schema(tran: _Queryable) -> Schema:
    """Read the schema of the ``magnets`` tables and the sequences from the database."""
    try:
        tables = [
            Table(name=name, columns=await _get_columns(tran, name))
            for (name,) in await tran.query(_TABLES_SQL, [])
        ]
        sequences = [
            Sequence(name=name, type_oid=int(oid))
            for name, oid in await tran.query(_SEQUENCES_SQL, [])
        ]
    except Exception as exc:
        exc.add_note("cannot load schema")
        raise
    return Schema(tables=tables, sequences=sequences)