# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator, Sequence

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("REDIS_URL", None)
os.environ.pop("SERVER_SIDE_COOLDOWN", None)

from rrc_coupons.api.v1.dependencies import get_clock
from rrc_coupons.db.session import Base
from rrc_coupons.db.session import get_db as app_get_session
from rrc_coupons.main import app as fastapi_app
from rrc_coupons.models import AvailableCoupon, CouponBatch
from rrc_coupons.services.ledger import reset_claim_cache
from rrc_coupons.services.pool import PoolManager

TEST_DB_URL = "sqlite://"
CLOCK_START_MS = 1_700_000_000_000


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = CLOCK_START_MS) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture(autouse=True)
def clear_claim_ledger() -> Iterator[None]:
    reset_claim_cache()
    yield
    reset_claim_cache()


@pytest.fixture()
def clock(app: FastAPI) -> Iterator[FakeClock]:
    """Freeze the request clock used for cooldown bookkeeping."""
    fake = FakeClock()
    app.dependency_overrides[get_clock] = lambda: fake
    try:
        yield fake
    finally:
        app.dependency_overrides.pop(get_clock, None)


@pytest.fixture()
def client(app: FastAPI, clock: FakeClock) -> Iterator[TestClient]:
    # https so the Secure tracking cookies are kept by the client
    with TestClient(app, base_url="https://testserver") as test_client:
        yield test_client


@pytest.fixture()
def pool(db_session: Session) -> PoolManager:
    """Pool manager with a small batch size."""
    return PoolManager(db_session, batch_size=10)


def seed_batch(db_session: Session, codes: Sequence[str]) -> CouponBatch:
    """Persist ``codes`` as one available-pool batch."""
    batch = CouponBatch()
    batch.coupons = [
        AvailableCoupon(code=code, position=position) for position, code in enumerate(codes)
    ]
    db_session.add(batch)
    db_session.commit()
    db_session.refresh(batch)
    return batch


@pytest.fixture()
def seeded_batch(db_session: Session) -> CouponBatch:
    """A batch holding a single known coupon."""
    return seed_batch(db_session, ["RRC-111111"])
