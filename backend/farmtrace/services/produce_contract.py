"""
FarmTrace Backend — Produce Contract (ledger functions)
=========================================================

What:  The rules for recording, querying and transferring produce.
How:   Each ledger function takes positional string arguments, validates them,
       and reads or writes JSON through WorldState. Functions can be called
       directly or dispatched by name through `invoke()`.
Who:   Called by ProduceInvoker inside a unit of work.

Ledger Functions:
    initLedger            []                                    → seed keys 1..5
    queryProduce          [key]                                 → Produce
    recordProduce         [key, product, weight, organic,
                           location, timestamp, holder]         → tx id
    queryAllProduce       []                                    → [ProduceRecord]
    changeProduceHolder   [key, holder]                         → tx id

Errors are raised, never returned:
    wrong argument count / non-integer key → ValidationError
    missing key                            → NotFoundError
    key already recorded                   → DuplicateRecordError
    unknown function name                  → UnknownFunctionError
"""

import logging
import re
import uuid
from typing import Any, Callable, Dict, List, Sequence

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError

from farmtrace.exceptions import (
    DuplicateRecordError,
    LedgerError,
    NotFoundError,
    UnknownFunctionError,
    ValidationError,
)
from farmtrace.schemas.produce import Produce, ProduceRecord
from farmtrace.services.world_state import WorldState

logger = logging.getLogger(__name__)

# Bounds of the full-ledger scan (end key exclusive)
QUERY_ALL_START_KEY = "0"
QUERY_ALL_END_KEY = "999"

# Keys accepted by recordProduce: optionally signed ASCII decimal within int64
KEY_PATTERN = re.compile(r"[+-]?[0-9]+")
INT64_MIN, INT64_MAX = -(2 ** 63), 2 ** 63 - 1

SEED_PRODUCE: List[Produce] = [
    Produce(
        product="Chicken", weight="1400.00", organic="true", location="67.0006, -70.5476",
        timestamp="Fri Jun 22 2018 11:02:01 GMT+0530 (India Standard Time)", holder="Sakya",
    ),
    Produce(
        product="Beef", weight="1000.00", organic="false", location="91.2395, -49.4594",
        timestamp="Fri Jan 11 2019 12:01:01 GMT+0800 (Singapore Standard Time)", holder="Ilya",
    ),
    Produce(
        product="Pork", weight="1200.00", organic="false", location="58.0148, 59.01391",
        timestamp="Fri Jan 11 2019 12:05:21 GMT+0800 (Singapore Standard Time)", holder="Dan",
    ),
    Produce(
        product="Salmon", weight="1500.00", organic="true", location="-45.0945, 0.7949",
        timestamp="Wed Mar 13 2019 10:05:01 GMT+0800 (Singapore Standard Time)", holder="George",
    ),
    Produce(
        product="Salmon", weight="2400.00", organic="true", location="-107.6043, 19.5003",
        timestamp="Fri Mar 15 2019 20:00:01 GMT+0800 (Singapore Standard Time)", holder="John",
    ),
]


def new_tx_id() -> str:
    return uuid.uuid4().hex


def _expect_args(args: Sequence[str], count: int) -> None:
    if len(args) != count:
        raise ValidationError(
            message=f"Incorrect number of arguments. Expecting {count}",
            context={"received": len(args)},
        )


def _is_int64(key: str) -> bool:
    return KEY_PATTERN.fullmatch(key) is not None and INT64_MIN <= int(key) <= INT64_MAX


def _decode(key: str, raw: str) -> Produce:
    try:
        return Produce.model_validate_json(raw)
    except PydanticValidationError as e:
        logger.error("Stored value for key %s is not a produce record: %s", key, e)
        raise LedgerError(context={"key": key})


class ProduceContract:
    """
    Produce ledger functions bound to one WorldState (one transaction).

    Usage:
        contract = ProduceContract(WorldState(session))
        tx_id = await contract.record_produce(["6", "Apples", ...])
        produce = await contract.invoke("queryProduce", ["6"])
    """

    def __init__(self, state: WorldState):
        self.state = state
        self._functions: Dict[str, Callable[..., Any]] = {
            "initLedger": self.init_ledger,
            "queryProduce": self.query_produce,
            "recordProduce": self.record_produce,
            "queryAllProduce": self.query_all_produce,
            "changeProduceHolder": self.change_produce_holder,
        }

    @property
    def function_names(self) -> List[str]:
        return list(self._functions)

    async def invoke(self, function: str, args: Sequence[str] = ()) -> Any:
        """Dispatch a ledger function by name."""
        handler = self._functions.get(function)
        if handler is None:
            logger.warning("Rejected unknown ledger function %r", function)
            raise UnknownFunctionError(function)
        if function in ("initLedger", "queryAllProduce"):
            return await handler()
        return await handler(list(args))

    async def init_ledger(self) -> str:
        """Write the sample records under keys "1".."5", overwriting existing state."""
        tx_id = new_tx_id()
        for index, produce in enumerate(SEED_PRODUCE, start=1):
            await self.state.put_state(str(index), produce.model_dump_json(), tx_id)
            logger.info("Seeded ledger key %d: %s held by %s", index, produce.product, produce.holder)
        return tx_id

    async def query_produce(self, args: Sequence[str]) -> Produce:
        _expect_args(args, 1)
        key = args[0]
        raw = await self.state.get_state(key)
        if raw is None:
            raise NotFoundError(
                message="Could not locate produce, verify if the key number is correct!",
                resource_id=key,
            )
        return _decode(key, raw)

    async def record_produce(self, args: Sequence[str]) -> str:
        """
        Record a new produce batch.

        Args (in order): key, product, weight, organic, location, timestamp, holder.
        The key must parse as a base-10 integer and must not already exist.
        """
        _expect_args(args, 7)
        key = args[0]
        if not _is_int64(key):
            raise ValidationError(
                message=f"Failed to record into ledger for non integer ID: {key}",
                field="key",
            )

        if await self.state.get_state(key) is not None:
            raise DuplicateRecordError(key)

        produce = Produce(
            product=args[1],
            weight=args[2],
            organic=args[3],
            location=args[4],
            timestamp=args[5],
            holder=args[6],
        )
        tx_id = new_tx_id()
        try:
            await self.state.create_state(key, produce.model_dump_json(), tx_id)
        except IntegrityError:
            logger.warning("Produce %s was recorded concurrently; rejecting tx %s", key, tx_id)
            raise DuplicateRecordError(key, context={"concurrent": True})
        logger.info("Recorded produce %s (%s) held by %s [tx %s]", key, produce.product, produce.holder, tx_id)
        return tx_id

    async def query_all_produce(self) -> List[ProduceRecord]:
        rows = await self.state.get_state_by_range(QUERY_ALL_START_KEY, QUERY_ALL_END_KEY)
        records = [ProduceRecord(key=key, record=_decode(key, raw)) for key, raw in rows]
        logger.debug("Global state of the ledger: %d records", len(records))
        return records

    async def change_produce_holder(self, args: Sequence[str]) -> str:
        _expect_args(args, 2)
        key, holder = args[0], args[1]
        raw = await self.state.get_state(key)
        if raw is None:
            raise NotFoundError(message="Could not locate produce record on ledger", resource_id=key)

        produce = _decode(key, raw)
        previous = produce.holder
        produce.holder = holder

        tx_id = new_tx_id()
        await self.state.put_state(key, produce.model_dump_json(), tx_id)
        logger.info("Produce %s changed holder %s -> %s [tx %s]", key, previous, holder, tx_id)
        return tx_id
