"""
FarmTrace Backend — Produce Invoker
=====================================

What:  The HTTP-facing operations behind the four produce routes.
How:   Reads the route's path parameter from the request, unpacks it into
       ledger arguments, runs the matching ProduceContract function inside
       one unit of work, and writes status and headers onto the response.
Who:   Bound to routes by routes.produce.register_routes().

Path parameter encodings (separator from settings, default "-"):
    /get_produce/{id}          id
    /add_produce/{produce}     key-product-weight-organic-location-timestamp-holder
    /get_all_produce           (none)
    /change_holder/{holder}    key-newHolder   (split once; holder may contain "-")

Resilience:
    Each call opens its own session. Transient storage failures
    (OperationalError, e.g. "database is locked") are retried with tenacity
    using exponential backoff and jitter; the whole unit of work is replayed
    on a fresh session. Ledger rule violations are never retried.
"""

import logging
from typing import Any, Awaitable, Callable, List, Optional, Protocol, TypeVar

from fastapi import Request, Response
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from farmtrace.config import settings
from farmtrace.database import async_session_factory, session_scope
from farmtrace.exceptions import LedgerError, ValidationError
from farmtrace.schemas.produce import Produce, ProduceRecord, TransactionResponse
from farmtrace.services.produce_contract import ProduceContract
from farmtrace.services.world_state import WorldState

logger = logging.getLogger(__name__)

T = TypeVar("T")

RECORD_FIELDS = ("key", "product", "weight", "organic", "location", "timestamp", "holder")


class Invoker(Protocol):
    """Operations the produce routes delegate to."""

    async def get_produce(self, request: Request, response: Response) -> Any: ...

    async def add_produce(self, request: Request, response: Response) -> Any: ...

    async def get_all_produce(self, request: Request, response: Response) -> Any: ...

    async def change_holder(self, request: Request, response: Response) -> Any: ...


class ProduceInvoker:
    """
    Ledger-backed implementation of the Invoker operations.

    Args:
        session_factory: Source of sessions for each unit of work.
                         Defaults to the application's engine.
        separator:       Field separator for packed path parameters.
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        separator: Optional[str] = None,
    ):
        self.session_factory = session_factory or async_session_factory
        self.separator = separator or settings.produce_field_separator

    # ── Unit of Work ──────────────────────────────────────────────────────

    async def _transact(self, operation: Callable[[ProduceContract], Awaitable[T]]) -> T:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(settings.retry_max_attempts),
            wait=wait_exponential_jitter(
                initial=settings.retry_min_wait,
                max=settings.retry_max_wait,
                jitter=settings.retry_min_wait,
            ),
            retry=retry_if_exception_type(OperationalError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            return await retrying(self._run_once, operation)
        except SQLAlchemyError as e:
            logger.error("Ledger storage failure: %s", e, exc_info=True)
            raise LedgerError(context={"error_type": type(e).__name__})

    async def _run_once(self, operation: Callable[[ProduceContract], Awaitable[T]]) -> T:
        async with session_scope(self.session_factory) as session:
            return await operation(ProduceContract(WorldState(session)))

    async def seed(self) -> str:
        """Write the sample records (initLedger)."""
        return await self._transact(lambda contract: contract.init_ledger())

    # ── Route Operations ──────────────────────────────────────────────────

    async def get_produce(self, request: Request, response: Response) -> Produce:
        key = request.path_params["id"]
        return await self._transact(lambda contract: contract.query_produce([key]))

    async def add_produce(self, request: Request, response: Response) -> TransactionResponse:
        raw = request.path_params["produce"]
        fields = raw.split(self.separator)
        if len(fields) != len(RECORD_FIELDS):
            raise ValidationError(
                message=(
                    f"Expected {len(RECORD_FIELDS)} fields separated by '{self.separator}' "
                    f"({', '.join(RECORD_FIELDS)}), got {len(fields)}"
                ),
                field="produce",
            )

        tx_id = await self._transact(lambda contract: contract.record_produce(fields))

        response.status_code = 201
        response.headers["X-Transaction-ID"] = tx_id
        return TransactionResponse(message="Produce recorded", tx_id=tx_id, key=fields[0])

    async def get_all_produce(self, request: Request, response: Response) -> List[ProduceRecord]:
        records = await self._transact(lambda contract: contract.query_all_produce())
        response.headers["X-Total-Count"] = str(len(records))
        return records

    async def change_holder(self, request: Request, response: Response) -> TransactionResponse:
        raw = request.path_params["holder"]
        key, sep, holder = raw.partition(self.separator)
        if not sep or not key or not holder:
            raise ValidationError(
                message=f"Expected '<key>{self.separator}<holder>', got '{raw}'",
                field="holder",
            )

        tx_id = await self._transact(lambda contract: contract.change_produce_holder([key, holder]))

        response.headers["X-Transaction-ID"] = tx_id
        return TransactionResponse(message="Produce holder changed", tx_id=tx_id, key=key, holder=holder)
