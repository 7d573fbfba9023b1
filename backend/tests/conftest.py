"""
Shared fixtures for the profile engine tests.

Engine tests run against a real SQLite file (aiosqlite) so transactions,
rollbacks and the partial unique index behave as they do in production.
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-pro-profiles-core-0123456789")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
import pytest_asyncio
from sqlalchemy import event, select, func
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import create_async_engine

from database.connection import Base, make_session_factory
from database.profile_models import ProfessionalDB


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'profiles.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


async def _create_professional(session_factory, user_id: str, **fields) -> int:
    async with session_factory() as session:
        professional = ProfessionalDB(user_id=user_id, **fields)
        session.add(professional)
        await session.commit()
        return professional.id


@pytest_asyncio.fixture
async def professional_id(session_factory) -> int:
    return await _create_professional(session_factory, "user-ana", full_name="Ana Torres")


@pytest_asyncio.fixture
async def other_professional_id(session_factory) -> int:
    return await _create_professional(session_factory, "user-luis", full_name="Luis Rojas")


@pytest.fixture
def make_professional(session_factory):
    """Factory for professionals with custom base attributes."""
    counter = {"n": 0}

    async def factory(**fields) -> int:
        counter["n"] += 1
        return await _create_professional(session_factory, f"user-extra-{counter['n']}", **fields)

    return factory


@pytest.fixture
def count_rows(session_factory):
    """Count rows of a model in a fresh session, optionally filtered."""

    async def counter(model, *criteria) -> int:
        async with session_factory() as session:
            result = await session.execute(
                select(func.count()).select_from(model).where(*criteria)
            )
            return result.scalar_one()

    return counter


class WriteFailure:
    """
    Fails the n-th INSERT/UPDATE/DELETE statement sent to the database.

    Hooks `before_cursor_execute` on the sync engine, so the statement never
    reaches SQLite and the surrounding transaction sees a driver error.
    """

    def __init__(self, engine, fail_on: int):
        self.engine = engine.sync_engine
        self.fail_on = fail_on
        self.writes = 0

    def __call__(self, conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith(("INSERT", "UPDATE", "DELETE")):
            self.writes += 1
            if self.writes == self.fail_on:
                raise OperationalError(statement, parameters, Exception("injected write failure"))

    def __enter__(self):
        event.listen(self.engine, "before_cursor_execute", self)
        return self

    def __exit__(self, *exc_info):
        event.remove(self.engine, "before_cursor_execute", self)
        return False


@pytest.fixture
def fail_write(engine):
    """Usage: `with fail_write(3): ...` fails the third write inside the block."""

    def factory(fail_on: int) -> WriteFailure:
        return WriteFailure(engine, fail_on)

    return factory
