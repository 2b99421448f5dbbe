import json

import pytest

from magnets.codecs import PgType
from magnets.schema import Column, Schema, Sequence, Table, get_schema


def _sample():
    return Schema(
        tables=[
            Table("show", [Column("show_id", PgType.INT8), Column("name", PgType.TEXT)]),
            Table("state", [Column("key", PgType.TEXT), Column("value", PgType.JSONB)]),
        ],
        sequences=[Sequence("show_show_id_seq", PgType.INT8)],
    )


def test_json_round_trip():
    schema = _sample()
    assert Schema.from_json(schema.to_json()) == schema


def test_empty_round_trip():
    assert Schema.from_json(Schema().to_json()) == Schema()


def test_json_layout_uses_oids():
    data = json.loads(_sample().to_json())
    assert data["tables"][0]["columns"][0] == {"name": "show_id", "ty": int(PgType.INT8)}
    assert data["sequences"] == [{"name": "show_show_id_seq", "ty": int(PgType.INT8)}]


def test_from_json_ignores_unknown_fields():
    text = json.dumps({"tables": [], "sequences": [], "extra": 1})
    assert Schema.from_json(text) == Schema()


@pytest.mark.parametrize(
    "data",
    [
        {"tables": []},
        {"sequences": []},
        {"tables": [{"name": "t"}], "sequences": []},
        {"tables": [], "sequences": [{"name": "s", "ty": -1}]},
        {"tables": [], "sequences": [{"name": "s", "ty": "25"}]},
        {"tables": [], "sequences": [{"name": "s", "ty": True}]},
        {"tables": [], "sequences": [{"name": 5, "ty": 25}]},
        [],
    ],
)
def test_from_json_rejects_invalid(data):
    with pytest.raises(ValueError):
        Schema.from_json(json.dumps(data))


def test_from_json_rejects_bad_json():
    with pytest.raises(ValueError):
        Schema.from_json("{")


class FakeTransaction:
    def __init__(self, tables, sequences):
        self.tables = tables
        self.sequences = sequences
        self.column_requests = []

    async def query(self, sql, params=()):
        if "pg_tables" in sql:
            return [(name,) for name in self.tables]
        if "pg_sequences" in sql:
            return list(self.sequences)
        if "pg_attribute" in sql:
            self.column_requests.append(list(params))
            return list(self.tables[params[0]])
        raise AssertionError(sql)


@pytest.mark.asyncio
async def test_get_schema_reads_tables_and_sequences():
    tran = FakeTransaction(
        tables={"show": [("show_id", 20), ("name", 25)], "state": [("key", 25)]},
        sequences=[("show_show_id_seq", 20)],
    )
    schema = await get_schema(tran)
    assert schema == Schema(
        tables=[
            Table("show", [Column("show_id", 20), Column("name", 25)]),
            Table("state", [Column("key", 25)]),
        ],
        sequences=[Sequence("show_show_id_seq", 20)],
    )
    assert tran.column_requests == [["show"], ["state"]]


class FailingTransaction:
    async def query(self, sql, params=()):
        raise ConnectionError("gone")


@pytest.mark.asyncio
async def test_get_schema_adds_context_to_errors():
    with pytest.raises(ConnectionError) as info:
        await get_schema(FailingTransaction())
    assert "cannot load schema" in info.value.__notes__