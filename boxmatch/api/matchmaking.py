"""Matchmaking and discovery HTTP endpoints.

Authentication happens upstream; the authenticated caller arrives in the
``X-User-Id`` header. Domain errors propagate to the application-level
handler in ``boxmatch.main``, which maps error codes to HTTP statuses.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from boxmatch.db.session import get_db
from boxmatch.discovery.search import search_boxers
from boxmatch.matchmaking.explanation import ExplanationGenerator
from boxmatch.matchmaking.find_match import MatchmakingService
from boxmatch.matchmaking.llm_service import AssistedIntentParser
from boxmatch.matchmaking.rate_limit import (
    CounterStore,
    build_counter_store,
    create_find_match_limiter,
    create_llm_limiter,
)
from boxmatch.matchmaking.repository import BoxerRepository, SqlBoxerRepository
from boxmatch.matchmaking.types import FindMatchRequest, FindMatchResponse, SearchBoxersRequest, SearchBoxersResponse
from boxmatch.services.llm.model import ModelClient, create_model_client

ERROR_STATUS = {
    "INVALID_ARGUMENT": status.HTTP_400_BAD_REQUEST,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "PERMISSION_DENIED": status.HTTP_403_FORBIDDEN,
    "RESOURCE_EXHAUSTED": status.HTTP_429_TOO_MANY_REQUESTS,
    "INTERNAL": status.HTTP_500_INTERNAL_SERVER_ERROR,
}

matchmaking_router = APIRouter(prefix="/api/matchmaking", tags=["matchmaking"])
discovery_router = APIRouter(prefix="/api/discovery", tags=["discovery"])


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    return x_user_id.strip()


@lru_cache(maxsize=1)
def get_counter_store() -> CounterStore:
    """Shared counter store; one per process."""
    return build_counter_store()


@lru_cache(maxsize=1)
def get_intent_model_client() -> ModelClient | None:
    return create_model_client(purpose="intent")


@lru_cache(maxsize=1)
def get_explanation_model_client() -> ModelClient | None:
    return create_model_client(purpose="explanation")


def get_repository(db: Session = Depends(get_db)) -> BoxerRepository:
    return SqlBoxerRepository(db)


def get_matchmaking_service(
    repository: BoxerRepository = Depends(get_repository),
    store: CounterStore = Depends(get_counter_store),
    intent_client: ModelClient | None = Depends(get_intent_model_client),
    explanation_client: ModelClient | None = Depends(get_explanation_model_client),
) -> MatchmakingService:
    llm_limiter = create_llm_limiter(store)
    return MatchmakingService(
        repository=repository,
        limiter=create_find_match_limiter(store),
        intent_parser=AssistedIntentParser(intent_client, llm_limiter),
        explanation_generator=ExplanationGenerator(explanation_client, llm_limiter),
    )


@matchmaking_router.post("/find-match", response_model=FindMatchResponse)
async def find_match(
    request: FindMatchRequest,
    user_id: str = Depends(get_current_user_id),
    service: MatchmakingService = Depends(get_matchmaking_service),
) -> FindMatchResponse:
    """Find ranked, compliant opponents for one of the caller's boxers."""
    return await service.find_match(request, user_id)


@discovery_router.post("/search-boxers", response_model=SearchBoxersResponse)
def search(
    request: SearchBoxersRequest,
    user_id: str = Depends(get_current_user_id),
    repository: BoxerRepository = Depends(get_repository),
) -> SearchBoxersResponse:
    """Browse active boxers from other clubs with direct filters."""
    return search_boxers(request, user_id, repository)
