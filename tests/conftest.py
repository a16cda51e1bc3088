"""Pytest fixtures for testing"""

import pytest
from datetime import date, time
from decimal import Decimal
from typing import Generator
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from trip_reports.api.dependencies import get_tariff_client
from trip_reports.api.main import create_app
from trip_reports.config import settings
from trip_reports.infrastructure.database.models import Base
from trip_reports.infrastructure.database.session import get_db
from trip_reports.infrastructure.queue import SubmissionQueue
from trip_reports.domain.models import (
    PartA,
    PartB,
    PriceList,
    Report,
    TariffBand,
    TeamMember,
    TransportMode,
    TravelGroup,
    TravelSegment,
)


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

LEADER_ID = 101
MEMBER_ID = 102
ADMIN_ID = 900


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def price_lists() -> list[PriceList]:
    """Two published price lists; the 2024 one has a 6-8h band"""
    return [
        PriceList(
            effective_from=date(2023, 1, 1),
            rate_per_km=Decimal("5.00"),
            elevated_rate_per_km=Decimal("6.00"),
            bands=(
                TariffBand(0, 6, Decimal("0"), Decimal("0")),
                TariffBand(6, 24, Decimal("100"), Decimal("150")),
            ),
        ),
        PriceList(
            effective_from=date(2024, 1, 1),
            rate_per_km=Decimal("6.00"),
            elevated_rate_per_km=Decimal("7.50"),
            bands=(
                TariffBand(0, 6, Decimal("0"), Decimal("0")),
                TariffBand(6, 8, Decimal("120"), Decimal("200")),
                TariffBand(8, 24, Decimal("180"), Decimal("300")),
            ),
        ),
    ]


@pytest.fixture
def team() -> dict[int, TeamMember]:
    return {
        LEADER_ID: TeamMember(member_id=LEADER_ID, name="Jana", is_leader=True),
        MEMBER_ID: TeamMember(member_id=MEMBER_ID, name="Petr"),
    }


@pytest.fixture
def part_a() -> PartA:
    """Leader drives 42 km over a 7 hour day"""
    return PartA(
        execution_date=date(2024, 5, 10),
        travel_groups=[
            TravelGroup(
                id="g1",
                travelers=[LEADER_ID, MEMBER_ID],
                driver=LEADER_ID,
                vehicle_plate="1AB 2345",
                segments=[
                    TravelSegment(
                        id="s1",
                        date=date(2024, 5, 10),
                        start_time=time(8, 0),
                        end_time=time(10, 0),
                        start_place="Praha",
                        end_place="Beroun",
                        transport_mode=TransportMode.VEHICLE,
                        distance_km=Decimal("21"),
                    ),
                    TravelSegment(
                        id="s2",
                        date=date(2024, 5, 10),
                        start_time=time(13, 0),
                        end_time=time(15, 0),
                        start_place="Beroun",
                        end_place="Praha",
                        transport_mode=TransportMode.VEHICLE,
                        distance_km=Decimal("21"),
                    ),
                ],
            )
        ],
        completed=True,
    )


@pytest.fixture
def report(team, part_a) -> Report:
    return Report(
        order_id=5001,
        order_number="ZP-2024-5001",
        processor=LEADER_ID,
        team=team,
        part_a=part_a,
        part_b=PartB(route_note="Route passable", completed=True),
    )


@pytest.fixture
def tariff_client(price_lists) -> AsyncMock:
    """Tariff feed stand-in returning the sample price lists"""
    client = AsyncMock()
    client.get_price_lists.return_value = price_lists
    return client


@pytest.fixture
def submission_queue() -> SubmissionQueue:
    """Queue that is never consumed; tests inspect what was enqueued"""
    return SubmissionQueue(handler=AsyncMock(), max_attempts=3, backoff_base=1.0)


@pytest.fixture
def client(db: Session, tariff_client: AsyncMock, submission_queue: SubmissionQueue, monkeypatch) -> TestClient:
    """Create FastAPI test client with test database"""
    monkeypatch.setattr(settings, "admin_member_ids", [ADMIN_ID])
    app = create_app(queue=submission_queue)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_tariff_client] = lambda: tariff_client
    return TestClient(app)


@pytest.fixture
def session_factory(db: Session):
    """Session factory bound to the test database, for code that opens its own sessions"""
    return TestingSessionLocal
