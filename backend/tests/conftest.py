"""
FarmTrace Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the test suite.
How:   Every test gets its own SQLite file under tmp_path, so tests never
       share ledger state. The routing tests swap in a RecordingInvoker.

Fixtures:
    ├── session_factory:        empty world state (schema created)
    ├── seeded_session_factory: world state holding the five sample records
    ├── recording_invoker:      test double that records each delegated call
    ├── routing_client:         HTTPX client over an app using the test double
    └── ledger_client:          HTTPX client over an app using the real invoker
"""

import os
import tempfile

# Settings are read at import time; point them at a scratch database first
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{tempfile.mkdtemp(prefix='farmtrace_test_')}/app.db")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["SEED_LEDGER"] = "false"

from typing import Any, Dict, List, Tuple  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import Request, Response  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402

from farmtrace.database import build_session_factory, create_schema  # noqa: E402
from farmtrace.main import create_app  # noqa: E402
from farmtrace.services.invoker import ProduceInvoker  # noqa: E402


class RecordingInvoker:
    """Invoker test double: remembers (operation, path params) for every call."""

    def __init__(self):
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def _record(self, operation: str, request: Request, response: Response) -> Dict[str, Any]:
        params = dict(request.path_params)
        self.calls.append((operation, params))
        response.headers["X-Invoked"] = operation
        return {"operation": operation, "params": params}

    async def get_produce(self, request: Request, response: Response):
        return self._record("get_produce", request, response)

    async def add_produce(self, request: Request, response: Response):
        return self._record("add_produce", request, response)

    async def get_all_produce(self, request: Request, response: Response):
        return self._record("get_all_produce", request, response)

    async def change_holder(self, request: Request, response: Response):
        return self._record("change_holder", request, response)


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await create_schema(engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def seeded_session_factory(session_factory):
    await ProduceInvoker(session_factory).seed()
    return session_factory


@pytest.fixture
def recording_invoker():
    return RecordingInvoker()


@pytest_asyncio.fixture
async def routing_client(recording_invoker, session_factory):
    app = create_app(invoker=recording_invoker, session_factory=session_factory)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def ledger_client(seeded_session_factory):
    app = create_app(session_factory=seeded_session_factory)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
