from __future__ import annotations

import asyncio
from collections import defaultdict, deque
from collections.abc import AsyncIterator
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from tasktracker.core.config import Settings
from tasktracker.core.security import WILDCARD, CallerIdentity
from tasktracker.db.base import RawResult
from tasktracker.db.binder import BoundRoutine
from tasktracker.main import create_app


class FakeDriverError(Exception):
    """Driver exception carrying a server error number, like pymssql/pyodbc errors."""

    def __init__(self, message: str, number: int | None = None) -> None:
        super().__init__(message)
        if number is not None:
            self.number = number


class FakeConnection:
    def __init__(self, pool: "FakePool", *, supports_cancellation: bool) -> None:
        self._pool = pool
        self.supports_cancellation = supports_cancellation
        self.events: list[str] = []
        self.calls: list[BoundRoutine] = []
        self.released = False

    async def begin(self) -> None:
        if self._pool.fail_on == "begin":
            raise FakeDriverError("begin failed")
        self.events.append("begin")

    async def commit(self) -> None:
        if self._pool.fail_on == "commit":
            raise FakeDriverError("commit failed")
        self.events.append("commit")

    async def rollback(self) -> None:
        self.events.append("rollback")

    async def execute(self, bound: BoundRoutine) -> RawResult:
        self.calls.append(bound)
        self._pool.calls.append(bound)
        if self._pool.execute_delay:
            await asyncio.sleep(self._pool.execute_delay)
        response = self._pool.next_response(bound.routine)
        if isinstance(response, BaseException):
            raise response
        self._pool.completed.append(bound)
        return response


class FakePool:
    """In-memory stand-in for the connection pool collaborator."""

    def __init__(self, *, supports_cancellation: bool = False) -> None:
        self.supports_cancellation = supports_cancellation
        self._responses: dict[str, deque[RawResult | BaseException]] = defaultdict(deque)
        self.calls: list[BoundRoutine] = []
        self.completed: list[BoundRoutine] = []
        self.connections: list[FakeConnection] = []
        self.acquired = 0
        self.released = 0
        self.execute_delay = 0.0
        self.fail_on: str | None = None

    def respond(self, routine: str, *responses: RawResult | BaseException) -> None:
        self._responses[routine].extend(responses)

    def next_response(self, routine: str) -> RawResult | BaseException:
        queue = self._responses[routine]
        if queue:
            return queue.popleft()
        return RawResult()

    @property
    def outstanding(self) -> int:
        return self.acquired - self.released

    def calls_to(self, routine: str) -> list[BoundRoutine]:
        return [call for call in self.calls if call.routine == routine]

    async def acquire(self) -> FakeConnection:
        if self.fail_on == "acquire":
            raise FakeDriverError("Login timeout expired")
        connection = FakeConnection(self, supports_cancellation=self.supports_cancellation)
        self.connections.append(connection)
        self.acquired += 1
        return connection

    async def release(self, connection: Any) -> None:
        connection.released = True
        self.released += 1


def rows(*records: dict[str, Any], rows_affected: int = 0) -> RawResult:
    return RawResult(tables=[list(records)], rows_affected=rows_affected)


@pytest.fixture
def pool() -> FakePool:
    return FakePool()


@pytest.fixture
def settings() -> Settings:
    return Settings(environment="test", log_level="WARNING", reload=False)


@pytest.fixture
def credential() -> CallerIdentity:
    return CallerIdentity.with_grants(1, 1, [(WILDCARD, WILDCARD)])


@pytest.fixture
def app(settings: Settings, pool: FakePool) -> FastAPI:
    return create_app(settings, pool=pool)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client
