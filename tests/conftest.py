"""Root conftest for all tests.

This file makes shared fixtures available across all test modules.
"""

import os
from collections.abc import Sequence
from datetime import date

# Keep tests off real infrastructure before any boxmatch import reads settings
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")
os.environ["OPENAI_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from boxmatch.db.models import Base, Boxer, Club, ClubMember
from boxmatch.matchmaking.types import BoxerSnapshot


# Enable foreign key constraints for SQLite
@event.listens_for(Engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints in SQLite connections."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


SHOW_DATE = date(2025, 6, 1)


@pytest.fixture
def show_date() -> date:
    """Fixed show date used across compliance and matchmaking tests."""
    return SHOW_DATE


@pytest.fixture
def make_boxer():
    """Factory for boxer snapshots with sensible elite defaults."""

    def _make(
        boxer_id: str = "b1",
        first_name: str = "Jake",
        last_name: str = "Smith",
        dob: date = date(2000, 1, 1),
        gender: str = "male",
        category: str = "elite",
        declared_weight: float = 72.0,
        declared_bouts: int = 10,
        declared_wins: int = 5,
        declared_losses: int = 5,
        availability: str = "available",
        club_id: str = "club-a",
        club_name: str = "Club A",
    ) -> BoxerSnapshot:
        return BoxerSnapshot(
            boxer_id=boxer_id,
            first_name=first_name,
            last_name=last_name,
            dob=dob,
            gender=gender,
            category=category,
            declared_weight=declared_weight,
            declared_bouts=declared_bouts,
            declared_wins=declared_wins,
            declared_losses=declared_losses,
            availability=availability,
            club_id=club_id,
            club_name=club_name,
        )

    return _make


class FakeBoxerRepository:
    """In-memory BoxerRepository.

    ``list_active_boxers`` ignores its equality filters unless ``apply_filters``
    is set, which models a store whose filters are advisory only.
    """

    def __init__(
        self,
        memberships: dict[str, list[str]] | None = None,
        roster: list[BoxerSnapshot] | None = None,
        candidates: list[BoxerSnapshot] | None = None,
        apply_filters: bool = False,
    ) -> None:
        self.memberships = memberships or {}
        self.roster = roster or []
        self.candidates = candidates or []
        self.apply_filters = apply_filters
        self.active_calls: list[dict] = []

    def get_user_club_ids(self, user_id: str) -> list[str]:
        return list(self.memberships.get(user_id, []))

    def list_club_boxers(self, club_ids: Sequence[str]) -> list[BoxerSnapshot]:
        return [b for b in self.roster if b.club_id in club_ids]

    def get_club_boxer(self, boxer_id: str, club_ids: Sequence[str]) -> BoxerSnapshot | None:
        return next((b for b in self.roster if b.boxer_id == boxer_id and b.club_id in club_ids), None)

    def list_active_boxers(self, gender=None, category=None, availability=None, exclude_club_ids=()):
        self.active_calls.append(
            {"gender": gender, "category": category, "availability": availability, "exclude": list(exclude_club_ids)}
        )
        boxers = [b for b in self.candidates if b.club_id not in exclude_club_ids]
        if self.apply_filters:
            boxers = [
                b
                for b in boxers
                if (gender is None or b.gender == gender)
                and (category is None or b.category == category)
                and (availability is None or b.availability == availability)
            ]
        return boxers

    def get_club_names(self, club_ids):
        return {club_id: "Unknown Club" for club_id in club_ids}


@pytest.fixture
def fake_repository():
    """Factory for in-memory repositories."""
    return FakeBoxerRepository


@pytest.fixture
def db_session():
    """In-memory SQLite session with the schema created."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def seed_boxer(db_session):
    """Insert a stored boxer, creating its club on first use."""

    def _seed(
        boxer_id: str,
        club_id: str = "club-a",
        first_name: str = "Jake",
        last_name: str = "Smith",
        dob: date = date(2000, 1, 1),
        gender: str = "male",
        category: str = "elite",
        declared_weight: float = 72.0,
        declared_bouts: int = 10,
        availability: str = "available",
        data_status: str = "active",
        notes: str | None = None,
    ) -> Boxer:
        if db_session.get(Club, club_id) is None:
            db_session.add(Club(id=club_id, name=f"Club {club_id}"))
            db_session.flush()
        boxer = Boxer(
            id=boxer_id,
            club_id=club_id,
            first_name=first_name,
            last_name=last_name,
            dob=dob,
            gender=gender,
            category=category,
            declared_weight=declared_weight,
            declared_bouts=declared_bouts,
            declared_wins=declared_bouts // 2,
            declared_losses=declared_bouts - declared_bouts // 2,
            availability=availability,
            data_status=data_status,
            notes=notes,
        )
        db_session.add(boxer)
        db_session.commit()
        return boxer

    return _seed


@pytest.fixture
def add_member(db_session):
    """Add a user to a club, creating the club on first use."""

    def _add(user_id: str, club_id: str) -> ClubMember:
        if db_session.get(Club, club_id) is None:
            db_session.add(Club(id=club_id, name=f"Club {club_id}"))
            db_session.flush()
        member = ClubMember(club_id=club_id, user_id=user_id)
        db_session.add(member)
        db_session.commit()
        return member

    return _add
