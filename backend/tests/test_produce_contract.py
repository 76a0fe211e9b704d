"""
FarmTrace Backend — Produce Contract Tests
============================================

What:  Ledger function rules against a real (temporary SQLite) world state.
"""

import json

import pytest
from sqlalchemy import select

from farmtrace.database import session_scope
from farmtrace.exceptions import (
    DuplicateRecordError,
    NotFoundError,
    UnknownFunctionError,
    ValidationError,
)
from farmtrace.models.produce import ProduceState
from farmtrace.services.produce_contract import ProduceContract
from farmtrace.services.world_state import WorldState

APPLES = ["6", "Apples", "300.00", "true", "12.1, 33.4", "Mon Jan 1 2024", "Alice"]


async def _run(factory, function, args=()):
    async with session_scope(factory) as session:
        return await ProduceContract(WorldState(session)).invoke(function, args)


class TestInitLedger:

    @pytest.mark.asyncio
    async def test_seeds_five_records(self, session_factory):
        await _run(session_factory, "initLedger")

        records = await _run(session_factory, "queryAllProduce")
        assert [r.key for r in records] == ["1", "2", "3", "4", "5"]
        assert [r.record.holder for r in records] == ["Sakya", "Ilya", "Dan", "George", "John"]

    @pytest.mark.asyncio
    async def test_overwrites_existing_seed_keys(self, seeded_session_factory):
        await _run(seeded_session_factory, "changeProduceHolder", ["1", "Mallory"])
        await _run(seeded_session_factory, "initLedger")

        produce = await _run(seeded_session_factory, "queryProduce", ["1"])
        assert produce.holder == "Sakya"


class TestQueryProduce:

    @pytest.mark.asyncio
    async def test_returns_seeded_record(self, seeded_session_factory):
        produce = await _run(seeded_session_factory, "queryProduce", ["1"])

        assert produce.product == "Chicken"
        assert produce.weight == "1400.00"
        assert produce.organic == "true"
        assert produce.location == "67.0006, -70.5476"

    @pytest.mark.asyncio
    async def test_missing_key(self, seeded_session_factory):
        with pytest.raises(NotFoundError, match="Could not locate produce"):
            await _run(seeded_session_factory, "queryProduce", ["77"])

    @pytest.mark.asyncio
    async def test_argument_count(self, session_factory):
        with pytest.raises(ValidationError, match="Expecting 1"):
            await _run(session_factory, "queryProduce", ["1", "2"])


class TestRecordProduce:

    @pytest.mark.asyncio
    async def test_records_new_produce(self, session_factory):
        tx_id = await _run(session_factory, "recordProduce", APPLES)

        produce = await _run(session_factory, "queryProduce", ["6"])
        assert produce.product == "Apples"
        assert produce.holder == "Alice"
        assert len(tx_id) == 32

    @pytest.mark.asyncio
    async def test_stored_json_uses_ledger_field_names(self, session_factory):
        tx_id = await _run(session_factory, "recordProduce", APPLES)

        async with session_scope(session_factory) as session:
            row = (await session.execute(select(ProduceState))).scalar_one()
        assert row.tx_id == tx_id
        assert json.loads(row.value) == {
            "product": "Apples",
            "weight": "300.00",
            "organic": "true",
            "location": "12.1, 33.4",
            "timestamp": "Mon Jan 1 2024",
            "holder": "Alice",
        }

    @pytest.mark.asyncio
    async def test_rejects_non_integer_key(self, session_factory):
        with pytest.raises(ValidationError, match="non integer ID: six"):
            await _run(session_factory, "recordProduce", ["six"] + APPLES[1:])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["1_000", " 7", "7 ", "\u0667", "0x1F", "", "9223372036854775808", "99999999999999999999"])
    async def test_rejects_keys_outside_int64_decimal(self, session_factory, key):
        with pytest.raises(ValidationError, match="non integer ID"):
            await _run(session_factory, "recordProduce", [key] + APPLES[1:])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["+7", "-3", "007", "9223372036854775807"])
    async def test_accepts_signed_and_padded_decimal_keys(self, session_factory, key):
        await _run(session_factory, "recordProduce", [key] + APPLES[1:])

        produce = await _run(session_factory, "queryProduce", [key])
        assert produce.product == "Apples"

    @pytest.mark.asyncio
    async def test_rejects_wrong_argument_count(self, session_factory):
        with pytest.raises(ValidationError, match="Expecting 7"):
            await _run(session_factory, "recordProduce", APPLES[:6])

    @pytest.mark.asyncio
    async def test_rejects_duplicate_key(self, seeded_session_factory):
        with pytest.raises(DuplicateRecordError, match="changeProduceHolder"):
            await _run(seeded_session_factory, "recordProduce", ["3"] + APPLES[1:])

        produce = await _run(seeded_session_factory, "queryProduce", ["3"])
        assert produce.product == "Pork"

    @pytest.mark.asyncio
    async def test_concurrent_record_of_same_key_is_rejected(self, session_factory):
        pears = ["8", "Pears", "90.00", "false", "1.0, 2.0", "Tue Feb 6 2024", "Bob"]

        class LateWriterState(WorldState):
            """Another transaction records key 8 right after this one checks it."""

            async def get_state(self, key):
                async with session_scope(session_factory) as other:
                    await ProduceContract(WorldState(other)).record_produce(pears)
                return None

        with pytest.raises(DuplicateRecordError) as excinfo:
            async with session_scope(session_factory) as session:
                await ProduceContract(LateWriterState(session)).record_produce(["8"] + APPLES[1:])
        assert excinfo.value.context["concurrent"] is True

        produce = await _run(session_factory, "queryProduce", ["8"])
        assert produce.product == "Pears"
        assert produce.holder == "Bob"


class TestQueryAllProduce:

    @pytest.mark.asyncio
    async def test_empty_ledger(self, session_factory):
        assert await _run(session_factory, "queryAllProduce") == []

    @pytest.mark.asyncio
    async def test_keys_in_lexical_order(self, seeded_session_factory):
        await _run(seeded_session_factory, "recordProduce", ["10"] + APPLES[1:])

        records = await _run(seeded_session_factory, "queryAllProduce")
        assert [r.key for r in records] == ["1", "10", "2", "3", "4", "5"]

    @pytest.mark.asyncio
    async def test_range_end_is_exclusive(self, session_factory):
        await _run(session_factory, "recordProduce", ["998"] + APPLES[1:])
        await _run(session_factory, "recordProduce", ["999"] + APPLES[1:])

        records = await _run(session_factory, "queryAllProduce")
        assert [r.key for r in records] == ["998"]


class TestChangeProduceHolder:

    @pytest.mark.asyncio
    async def test_changes_only_holder(self, seeded_session_factory):
        await _run(seeded_session_factory, "changeProduceHolder", ["4", "Hiro"])

        produce = await _run(seeded_session_factory, "queryProduce", ["4"])
        assert produce.holder == "Hiro"
        assert produce.product == "Salmon"
        assert produce.weight == "1500.00"

    @pytest.mark.asyncio
    async def test_missing_key(self, session_factory):
        with pytest.raises(NotFoundError, match="Could not locate produce record"):
            await _run(session_factory, "changeProduceHolder", ["4", "Hiro"])

    @pytest.mark.asyncio
    async def test_argument_count(self, seeded_session_factory):
        with pytest.raises(ValidationError, match="Expecting 2"):
            await _run(seeded_session_factory, "changeProduceHolder", ["4"])


class TestInvoke:

    @pytest.mark.asyncio
    async def test_unknown_function(self, session_factory):
        with pytest.raises(UnknownFunctionError, match="Invalid Smart Contract function name"):
            await _run(session_factory, "deleteProduce", ["1"])

    @pytest.mark.asyncio
    async def test_function_names(self, session_factory):
        async with session_scope(session_factory) as session:
            contract = ProduceContract(WorldState(session))
        assert set(contract.function_names) == {
            "initLedger",
            "queryProduce",
            "recordProduce",
            "queryAllProduce",
            "changeProduceHolder",
        }
