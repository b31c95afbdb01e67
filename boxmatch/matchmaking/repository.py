"""Boxer retrieval for matchmaking and discovery.

The core depends only on the ``BoxerRepository`` protocol. Filters are
equality-only; weight ranges are applied in memory by callers. Every
snapshot handed out is public-safe: club-private notes never leave this
module.
"""

from collections.abc import Iterable, Sequence
from typing import Protocol

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from boxmatch.db.models import Boxer, Club, ClubMember
from boxmatch.matchmaking.types import BoxerSnapshot

UNKNOWN_CLUB_NAME = "Unknown Club"
ACTIVE_STATUS = "active"


class BoxerRepository(Protocol):
    """Read-only access to clubs, memberships and active boxers."""

    def get_user_club_ids(self, user_id: str) -> list[str]: ...

    def list_club_boxers(self, club_ids: Sequence[str]) -> list[BoxerSnapshot]: ...

    def get_club_boxer(self, boxer_id: str, club_ids: Sequence[str]) -> BoxerSnapshot | None: ...

    def list_active_boxers(
        self,
        gender: str | None = None,
        category: str | None = None,
        availability: str | None = None,
        exclude_club_ids: Sequence[str] = (),
    ) -> list[BoxerSnapshot]: ...

    def get_club_names(self, club_ids: Iterable[str]) -> dict[str, str]: ...


def to_snapshot(boxer: Boxer, club_name: str = UNKNOWN_CLUB_NAME) -> BoxerSnapshot:
    """Convert a stored boxer to a public-safe snapshot (no notes)."""
    return BoxerSnapshot(
        boxer_id=boxer.id,
        first_name=boxer.first_name,
        last_name=boxer.last_name,
        dob=boxer.dob,
        gender=boxer.gender,
        category=boxer.category,
        declared_weight=boxer.declared_weight,
        declared_bouts=boxer.declared_bouts,
        declared_wins=boxer.declared_wins,
        declared_losses=boxer.declared_losses,
        availability=boxer.availability,
        club_id=boxer.club_id,
        club_name=club_name,
    )


class SqlBoxerRepository:
    """SQLAlchemy implementation of BoxerRepository.

    Results are ordered by boxer id so retrieval order is stable across calls.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_user_club_ids(self, user_id: str) -> list[str]:
        stmt = select(ClubMember.club_id).where(ClubMember.user_id == user_id).order_by(ClubMember.club_id)
        return list(self.session.execute(stmt).scalars().all())

    def get_club_names(self, club_ids: Iterable[str]) -> dict[str, str]:
        """Batch-fetch club names. Unknown ids map to "Unknown Club"."""
        wanted = set(club_ids)
        if not wanted:
            return {}
        rows = self.session.execute(select(Club.id, Club.name).where(Club.id.in_(wanted))).all()
        names = {club_id: UNKNOWN_CLUB_NAME for club_id in wanted}
        for club_id, name in rows:
            names[club_id] = name or UNKNOWN_CLUB_NAME
        return names

    def _snapshots(self, boxers: list[Boxer]) -> list[BoxerSnapshot]:
        names = self.get_club_names(boxer.club_id for boxer in boxers)
        return [to_snapshot(boxer, names.get(boxer.club_id, UNKNOWN_CLUB_NAME)) for boxer in boxers]

    def list_club_boxers(self, club_ids: Sequence[str]) -> list[BoxerSnapshot]:
        if not club_ids:
            return []
        stmt = (
            select(Boxer)
            .where(Boxer.club_id.in_(list(club_ids)), Boxer.data_status == ACTIVE_STATUS)
            .order_by(Boxer.id)
        )
        return self._snapshots(list(self.session.execute(stmt).scalars().all()))

    def get_club_boxer(self, boxer_id: str, club_ids: Sequence[str]) -> BoxerSnapshot | None:
        if not club_ids:
            return None
        stmt = select(Boxer).where(
            Boxer.id == boxer_id,
            Boxer.club_id.in_(list(club_ids)),
            Boxer.data_status == ACTIVE_STATUS,
        )
        boxer = self.session.execute(stmt).scalars().first()
        if boxer is None:
            return None
        return self._snapshots([boxer])[0]

    def list_active_boxers(
        self,
        gender: str | None = None,
        category: str | None = None,
        availability: str | None = None,
        exclude_club_ids: Sequence[str] = (),
    ) -> list[BoxerSnapshot]:
        stmt = select(Boxer).where(Boxer.data_status == ACTIVE_STATUS)
        if gender:
            stmt = stmt.where(Boxer.gender == gender)
        if category:
            stmt = stmt.where(Boxer.category == category)
        if availability:
            stmt = stmt.where(Boxer.availability == availability)
        if exclude_club_ids:
            stmt = stmt.where(Boxer.club_id.not_in(list(exclude_club_ids)))
        stmt = stmt.order_by(Boxer.id)

        boxers = list(self.session.execute(stmt).scalars().all())
        logger.debug(
            "Active boxers retrieved",
            count=len(boxers),
            gender=gender,
            category=category,
            availability=availability,
            excluded_clubs=len(exclude_club_ids),
        )
        return self._snapshots(boxers)
