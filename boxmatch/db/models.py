from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Date, DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""


class Club(Base):
    """Boxing club."""

    __tablename__ = "clubs"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))


class ClubMember(Base):
    """Membership of a user in a club.

    A user may belong to several clubs. Membership grants access to the
    club roster and to matchmaking on behalf of its boxers.
    """

    __tablename__ = "club_members"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    club_id: Mapped[str] = mapped_column(String, ForeignKey("clubs.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    role: Mapped[str] = mapped_column(String, nullable=False, default="member")

    __table_args__ = (UniqueConstraint("club_id", "user_id", name="uq_club_member"),)


class Boxer(Base):
    """Boxer belonging to exactly one club.

    Stores declared data only. Age is derived from ``dob`` and never stored.
    ``notes`` is club-private and must never leave the owning club.

    data_status lifecycle: draft -> active -> archived. Only active boxers
    take part in discovery and matchmaking.
    """

    __tablename__ = "boxers"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    club_id: Mapped[str] = mapped_column(String, ForeignKey("clubs.id"), nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    dob: Mapped[date] = mapped_column(Date, nullable=False)
    gender: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    declared_weight: Mapped[float] = mapped_column(Float, nullable=False)
    declared_bouts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    declared_wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    declared_losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    data_status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    availability: Mapped[str] = mapped_column(String, nullable=False, default="available")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_boxers_discovery", "data_status", "gender", "category", "availability"),
    )
