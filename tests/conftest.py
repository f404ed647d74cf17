"""Shared fixtures: an in-memory database and monitor factory."""

from __future__ import annotations

import itertools

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from stackwatch.database import create_schema
from stackwatch.models import Monitor
from stackwatch.storage import Storage


@pytest_asyncio.fixture
async def engine():
    # StaticPool keeps every session on the same in-memory database
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_schema(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def storage(session) -> Storage:
    return Storage(session)


@pytest.fixture
def make_monitor(session):
    counter = itertools.count(1)

    async def _make(**overrides) -> Monitor:
        index = next(counter)
        fields = dict(
            slug=f"svc-{index}",
            name=f"Service {index}",
            type="http",
            target="http://svc.test/health",
            timeout_ms=1000,
            interval_sec=0,
            enabled=True,
        )
        fields.update(overrides)
        monitor = Monitor(**fields)
        session.add(monitor)
        await session.commit()
        return monitor

    return _make
