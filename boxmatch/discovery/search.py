"""Boxer discovery search across clubs.

Lets club members browse active boxers from other clubs with direct filters,
without the natural language parsing stage.

Invariants:
- Only club members can search
- Club-private notes are never exposed
- Age is computed at read time, never stored
- Only active boxers are returned
"""

from loguru import logger

from boxmatch.core.errors import InternalError, InvalidArgumentError, MatchmakingError, PermissionDeniedError
from boxmatch.matchmaking.repository import BoxerRepository
from boxmatch.matchmaking.types import SearchBoxersRequest, SearchBoxersResponse

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
DEFAULT_OFFSET = 0

VALID_GENDERS = ("male", "female")
VALID_AVAILABILITY = ("available", "unavailable", "injured")


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def validate_search_request(request: SearchBoxersRequest) -> None:
    """Reject malformed filters.

    Raises:
        InvalidArgumentError: Any filter is out of range or not recognised
    """
    if request.weight_min is not None and (not _is_number(request.weight_min) or request.weight_min < 0):
        raise InvalidArgumentError("weightMin must be a non-negative number")
    if request.weight_max is not None and (not _is_number(request.weight_max) or request.weight_max < 0):
        raise InvalidArgumentError("weightMax must be a non-negative number")
    if request.gender is not None and request.gender not in VALID_GENDERS:
        raise InvalidArgumentError("gender must be 'male' or 'female'")
    if request.availability is not None and request.availability not in VALID_AVAILABILITY:
        raise InvalidArgumentError("availability must be 'available', 'unavailable', or 'injured'")
    if request.limit is not None and (not _is_number(request.limit) or request.limit < 1):
        raise InvalidArgumentError("limit must be a positive number")
    if request.offset is not None and (not _is_number(request.offset) or request.offset < 0):
        raise InvalidArgumentError("offset must be a non-negative number")


def search_boxers(request: SearchBoxersRequest, user_id: str, repository: BoxerRepository) -> SearchBoxersResponse:
    """Search active boxers across clubs.

    ``total`` counts every boxer passing the filters before pagination, and
    ``has_more`` is true while ``offset + limit < total``.

    Raises:
        PermissionDeniedError: Caller belongs to no club
        InvalidArgumentError: Malformed filters
        InternalError: Retrieval failure
    """
    try:
        user_club_ids = repository.get_user_club_ids(user_id)
    except Exception as e:
        logger.error("Club membership lookup failed", user_id=user_id, error=str(e))
        raise InternalError("Failed to retrieve club membership") from e

    if not user_club_ids:
        raise PermissionDeniedError("You must be a member of at least one club to search boxers")

    validate_search_request(request)

    limit = min(request.limit or DEFAULT_LIMIT, MAX_LIMIT)
    offset = request.offset or DEFAULT_OFFSET

    try:
        boxers = repository.list_active_boxers(
            gender=request.gender,
            category=request.category,
            availability=request.availability,
            exclude_club_ids=user_club_ids if request.exclude_own_club else (),
        )
    except MatchmakingError:
        raise
    except Exception as e:
        logger.error("Boxer search failed", user_id=user_id, error_type=type(e).__name__, error=str(e))
        raise InternalError("Failed to search boxers") from e

    if request.weight_min is not None:
        boxers = [b for b in boxers if b.declared_weight >= request.weight_min]
    if request.weight_max is not None:
        boxers = [b for b in boxers if b.declared_weight <= request.weight_max]

    total = len(boxers)
    page = boxers[offset : offset + limit]
    has_more = offset + limit < total

    logger.info(
        "Boxer search completed",
        user_id=user_id,
        total_results=total,
        returned_results=len(page),
        gender=request.gender,
        category=request.category,
        weight_min=request.weight_min,
        weight_max=request.weight_max,
        availability=request.availability,
        exclude_own_club=request.exclude_own_club,
    )

    return SearchBoxersResponse(success=True, boxers=page, total=total, has_more=has_more)
