"""
FarmTrace Backend — World State (key/value store)
===================================================

What:  Key/value view over the `produce_state` table.
How:   Thin wrapper around an AsyncSession. Values are opaque JSON strings;
       decoding belongs to the contract layer.
Who:   ProduceContract is the only caller.

Transactions:
    WorldState never commits. The session's owner (the invoker's unit of
    work) decides whether a call's writes are kept.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from farmtrace.models.produce import ProduceState

logger = logging.getLogger(__name__)


class WorldState:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_state(self, key: str) -> Optional[str]:
        """Return the stored JSON for `key`, or None when the key is absent."""
        row = await self.session.get(ProduceState, key)
        return row.value if row is not None else None

    async def put_state(self, key: str, value: str, tx_id: str) -> None:
        """Insert or overwrite `key`."""
        row = await self.session.get(ProduceState, key)
        if row is None:
            self.session.add(ProduceState(key=key, value=value, tx_id=tx_id))
        else:
            row.value = value
            row.tx_id = tx_id
        await self.session.flush()
        logger.debug("put_state key=%s tx=%s", key, tx_id)

    async def create_state(self, key: str, value: str, tx_id: str) -> None:
        """
        Insert `key`; never overwrites.

        Raises sqlalchemy.exc.IntegrityError when the key was written by
        another transaction after this one last looked.
        """
        self.session.add(ProduceState(key=key, value=value, tx_id=tx_id))
        await self.session.flush()
        logger.debug("create_state key=%s tx=%s", key, tx_id)

    async def get_state_by_range(self, start_key: str, end_key: str) -> List[Tuple[str, str]]:
        """
        Return (key, value) pairs with start_key <= key < end_key.

        Keys compare lexically and come back in ascending order. An empty
        end_key means no upper bound.
        """
        query = select(ProduceState.key, ProduceState.value).where(ProduceState.key >= start_key)
        if end_key:
            query = query.where(ProduceState.key < end_key)
        result = await self.session.execute(query.order_by(ProduceState.key))
        return [(key, value) for key, value in result.all()]
