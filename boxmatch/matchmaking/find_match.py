"""Find-match orchestration.

Turns a natural language match request into a ranked list of compliant
opponents from other clubs.

Flow:
1. Validate the request
2. Check club membership
3. Admit the request through the general rate limiter
4. Resolve the source boxer (explicit id, or assisted/deterministic parsing)
5. Retrieve candidates of the same gender and category from other clubs
6. Evaluate compliance, rank by score, truncate
7. Explain the result

Nothing computed here is persisted.
"""

import asyncio
from collections.abc import Callable
from datetime import date, datetime

from loguru import logger

from boxmatch.core.errors import InternalError, InvalidArgumentError, MatchmakingError, NotFoundError, PermissionDeniedError
from boxmatch.matchmaking.compliance import calculate_age_at_date, evaluate_match_compliance, generate_compliance_notes
from boxmatch.matchmaking.explanation import (
    ExplanationGenerator,
    build_no_matches_explanation,
    build_template_explanation,
)
from boxmatch.matchmaking.llm_service import AssistedIntentParser, AssistedOutcome
from boxmatch.matchmaking.rate_limit import RateLimiter
from boxmatch.matchmaking.repository import BoxerRepository
from boxmatch.matchmaking.types import (
    BoxerSnapshot,
    FindMatchRequest,
    FindMatchResponse,
    MatchCandidate,
    ParsedIntent,
)

DEFAULT_LIMIT = 10
MAX_LIMIT = 50
CANDIDATE_POOL_FACTOR = 6


def parse_show_date(value: str | None, today: date) -> date:
    """Parse an ISO show date (date or datetime form). Missing means today.

    Raises:
        InvalidArgumentError: Value is not a valid ISO date
    """
    if value is None:
        return today
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError("showDate must be an ISO date string")
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError as e:
        raise InvalidArgumentError(f"showDate is not a valid ISO date: {value}") from e


class MatchmakingService:
    """Coordinates parsing, retrieval, compliance and explanation for one request.

    Args:
        repository: Boxer and membership lookups
        limiter: General find-match limiter (fail-closed)
        intent_parser: Assisted parser with deterministic fallback
        explanation_generator: Explanation generator with template fallback
        clock: Returns today's date
    """

    def __init__(
        self,
        repository: BoxerRepository,
        limiter: RateLimiter,
        intent_parser: AssistedIntentParser,
        explanation_generator: ExplanationGenerator,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.repository = repository
        self.limiter = limiter
        self.intent_parser = intent_parser
        self.explanation_generator = explanation_generator
        self.clock = clock

    def _validate(self, request: FindMatchRequest) -> int:
        query = request.natural_language_query
        if not isinstance(query, str) or not query.strip():
            raise InvalidArgumentError("naturalLanguageQuery is required")

        if request.boxer_id is not None and (not isinstance(request.boxer_id, str) or not request.boxer_id.strip()):
            raise InvalidArgumentError("boxerId must be a non-empty string")

        limit = request.options.limit
        if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 1):
            raise InvalidArgumentError("limit must be a positive number")
        return min(limit or DEFAULT_LIMIT, MAX_LIMIT)

    async def find_match(self, request: FindMatchRequest, user_id: str) -> FindMatchResponse:
        """Find ranked, compliant opponents for one of the caller's boxers.

        Raises:
            InvalidArgumentError: Malformed request
            PermissionDeniedError: Caller belongs to no club
            ResourceExhaustedError: General rate limit reached
            NotFoundError: Explicit boxer id outside the caller's clubs
            InternalError: Retrieval or rate-limit store failure
        """
        today = self.clock()
        limit = self._validate(request)
        requested_show_date = parse_show_date(request.show_date, today) if request.show_date is not None else None

        user_club_ids = await self._retrieve(self.repository.get_user_club_ids, user_id)
        if not user_club_ids:
            raise PermissionDeniedError("You must be a member of at least one club to find matches")

        await asyncio.to_thread(self.limiter.enforce, user_id)

        if request.boxer_id is not None:
            source = await self._retrieve(self.repository.get_club_boxer, request.boxer_id, user_club_ids)
            if source is None:
                raise NotFoundError("Boxer not found in your club roster")
            show_date = requested_show_date or today
            intent = ParsedIntent(
                source_boxer_id=source.boxer_id,
                source_boxer_name=source.full_name,
                show_date=show_date.isoformat(),
                confidence="high",
            )
        else:
            roster = await self._retrieve(self.repository.list_club_boxers, user_club_ids)
            outcome = await self.intent_parser.parse(request.natural_language_query, roster, user_id, today)
            intent = outcome.intent
            if not isinstance(outcome, AssistedOutcome):
                logger.debug("Deterministic intent parsing used", user_id=user_id, reason=outcome.reason)

            source = next((b for b in roster if b.boxer_id == intent.source_boxer_id), None)
            if source is None:
                explanation = intent.error or f'Could not find boxer "{intent.source_boxer_name}" in your club roster'
                return FindMatchResponse(success=False, explanation=explanation, parsed_intent=intent)

            if requested_show_date is not None:
                show_date = requested_show_date
            elif intent.show_date is not None:
                show_date = date.fromisoformat(intent.show_date)
            else:
                show_date = today
            intent = intent.model_copy(update={"show_date": show_date.isoformat()})

        candidates = await self._retrieve(
            self.repository.list_active_boxers,
            gender=source.gender,
            category=source.category,
            availability="available",
            exclude_club_ids=user_club_ids,
        )
        pool = candidates[: limit * CANDIDATE_POOL_FACTOR]

        matches, filtered = self._rank(source, pool, show_date)
        matches = matches[:limit]

        if not matches:
            explanation = build_no_matches_explanation(source, len(pool), filtered)
        elif request.options.include_explanation:
            explanation = await self.explanation_generator.generate(
                source, matches, request.natural_language_query, user_id
            )
        else:
            explanation = build_template_explanation(source, len(matches), intent.target_criteria)

        logger.info(
            "Match search completed",
            user_id=user_id,
            source_boxer_id=source.boxer_id,
            parser_used=intent.parser_used,
            total_candidates=len(pool),
            filtered=filtered,
            returned=len(matches),
        )

        return FindMatchResponse(
            success=True,
            matches=matches,
            explanation=explanation,
            parsed_intent=intent,
            source_boxer=source,
            total=len(pool),
            filtered=filtered,
        )

    def _rank(
        self,
        source: BoxerSnapshot,
        pool: list[BoxerSnapshot],
        show_date: date,
    ) -> tuple[list[MatchCandidate], int]:
        """Score each candidate, drop non-compliant ones, sort by score (stable)."""
        candidates: list[MatchCandidate] = []
        filtered = 0
        for candidate in pool:
            compliance = evaluate_match_compliance(source, candidate, show_date)
            if not compliance.is_compliant:
                filtered += 1
                continue
            candidates.append(
                MatchCandidate(
                    **candidate.model_dump(exclude={"age"}),
                    age_at_show_date=calculate_age_at_date(candidate.dob, show_date),
                    compliance_score=compliance.score,
                    compliance_notes=generate_compliance_notes(compliance),
                    compliance=compliance,
                )
            )
        candidates.sort(key=lambda c: c.compliance_score, reverse=True)
        return candidates, filtered

    @staticmethod
    async def _retrieve(fetch: Callable, *args, **kwargs):
        try:
            return await asyncio.to_thread(fetch, *args, **kwargs)
        except MatchmakingError:
            raise
        except Exception as e:
            logger.error(
                "Boxer retrieval failed",
                operation=getattr(fetch, "__name__", "unknown"),
                error_type=type(e).__name__,
                error=str(e),
            )
            raise InternalError("Failed to retrieve boxers") from e
