"""Database fixtures and an in-memory session double for filterql tests (shared)."""

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Beverage, Bucket, Dish, Marble, Person, Pet


async def create_sample_people(session: AsyncSession):
    people = [
        Person(name="Alice", gender="female", age=34),
        Person(name="Bob", gender="male", age=27),
        Person(name="Carol", gender="female", age=51),
    ]
    session.add_all(people)
    await session.flush()
    await session.commit()
    return people


@pytest.fixture(scope="function")
async def sample_people(db_session: AsyncSession):
    return await create_sample_people(db_session)


async def create_sample_buckets(session: AsyncSession, people):
    alice, bob, _ = people
    buckets = [
        Bucket(color="red", material="plastic", used=False, person_id=alice.id),
        Bucket(color="red", material="metal", used=True, person_id=alice.id),
        Bucket(color="blue", material="plastic", used=True, person_id=bob.id),
        Bucket(color="green", material="wood", used=False, person_id=None),
    ]
    session.add_all(buckets)
    await session.flush()
    await session.commit()
    return buckets


@pytest.fixture(scope="function")
async def sample_buckets(db_session: AsyncSession, sample_people):
    return await create_sample_buckets(db_session, sample_people)


async def create_sample_marbles(session: AsyncSession, buckets):
    """Each of the first two buckets gets a small and a large marble; the first also a clear one."""
    first, second, _, _ = buckets
    marbles = [
        Marble(color="blue", radius=5, weight=1.5, bucket_id=first.id),
        Marble(color="green", radius=15, weight=4.25, bucket_id=first.id),
        Marble(color="clear", radius=3, weight=0.5, bucket_id=first.id),
        Marble(color="a,b", radius=7, weight=2.0, bucket_id=second.id),
        Marble(color='quote "me"', radius=9, weight=2.5, bucket_id=second.id),
        Marble(color="red", radius=20, weight=8.0, bucket_id=second.id),
    ]
    session.add_all(marbles)
    await session.flush()
    await session.commit()
    return marbles


@pytest.fixture(scope="function")
async def sample_marbles(db_session: AsyncSession, sample_buckets):
    return await create_sample_marbles(db_session, sample_buckets)


async def create_sample_pets(session: AsyncSession, people):
    alice, bob, _ = people
    pets = [
        Pet(name="Rex", color="brown", nicknames=["rexy", "the, dog"], favorite_dishes=["bone"],
            lucky_numbers=[3, 7], owner_id=alice.id),
        Pet(name="Tom", color="red", nicknames=["tommy"], favorite_dishes=[], lucky_numbers=[1], owner_id=bob.id),
        Pet(name="Ghost", color="white", nicknames=None, favorite_dishes=None, lucky_numbers=None, owner_id=None),
    ]
    session.add_all(pets)
    await session.flush()
    await session.commit()
    return pets


@pytest.fixture(scope="function")
async def sample_pets(db_session: AsyncSession, sample_people):
    return await create_sample_pets(db_session, sample_people)


async def create_sample_dishes(session: AsyncSession, people):
    alice = people[0]
    pasta = Dish(name="pasta", ingredients=["flour", "egg"], person_id=alice.id)
    salad = Dish(name="salad", ingredients=["lettuce"], person_id=None)
    session.add_all([pasta, salad])
    await session.flush()
    session.add(Beverage(name="wine", flavors=["oak", "cherry"], dish_id=pasta.id))
    await session.flush()
    await session.commit()
    return [pasta, salad]


@pytest.fixture(scope="function")
async def sample_dishes(db_session: AsyncSession, sample_people):
    return await create_sample_dishes(db_session, sample_people)


@pytest.fixture(scope="function")
async def populated_db(sample_people, sample_buckets, sample_marbles, sample_pets, sample_dishes):
    return {
        'people': sample_people,
        'buckets': sample_buckets,
        'marbles': sample_marbles,
        'pets': sample_pets,
        'dishes': sample_dishes,
    }


# --- session double ---------------------------------------------------------
class FakeResult:
    def __init__(self, keys=(), rows=()):
        self._keys = list(keys)
        self._rows = [tuple(r) for r in rows]

    def keys(self):
        return list(self._keys)

    def fetchall(self):
        return list(self._rows)

    def fetchone(self):
        return self._rows[0] if self._rows else None


class FakeConnection:
    """Returns queued results in order and records every statement."""

    def __init__(self, results=(), error=None):
        self.results = list(results)
        self.error = error
        self.executed = []
        self.options = []

    async def exec_driver_sql(self, statement, parameters=None, execution_options=None):
        self.executed.append(statement)
        self.options.append(execution_options)
        if self.error is not None:
            raise self.error
        return self.results.pop(0)


class FakeBind:
    def __init__(self, dialect):
        self.dialect = dialect


class FakeSession:
    def __init__(self, connection, dialect=None):
        self.conn = connection
        self.bind = FakeBind(dialect if dialect is not None else postgresql.dialect())

    def get_bind(self):
        return self.bind

    async def connection(self):
        return self.conn


@pytest.fixture
def fake_session():
    """Factory: ``fake_session(count_result, data_result, error=..., dialect=...)``."""
    def _make(*results, error=None, dialect=None):
        return FakeSession(FakeConnection(results, error=error), dialect=dialect)
    return _make
