import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from boxmatch.api.matchmaking import ERROR_STATUS, discovery_router, matchmaking_router
from boxmatch.config.settings import settings
from boxmatch.core.errors import MatchmakingError
from boxmatch.core.logger import setup_logger
from boxmatch.db.session import init_db


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Ensure database tables exist on startup."""
    init_db()
    yield


async def handle_matchmaking_error(request: Request, exc: MatchmakingError) -> JSONResponse:
    status_code = ERROR_STATUS.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error(f"Request failed: {exc}", path=request.url.path)
    else:
        logger.info(f"Request rejected: {exc}", path=request.url.path)
    return JSONResponse(status_code=status_code, content={"error": {"code": exc.code, "message": exc.message}})


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Request validation failed", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": {"code": "INVALID_ARGUMENT", "message": "Malformed request body"}},
    )


def create_app() -> FastAPI:
    setup_logger(level=settings.log_level, log_file=settings.log_file, serialize=settings.log_json)

    app = FastAPI(title="Boxmatch", lifespan=lifespan)
    app.include_router(matchmaking_router)
    app.include_router(discovery_router)
    app.add_exception_handler(MatchmakingError, handle_matchmaking_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all HTTP requests; records emitted while handling carry the request id."""
        request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex[:12]
        with logger.contextualize(request_id=request_id):
            logger.debug(f"Request: {request.method} {request.url.path}")
            started = time.perf_counter()
            response = await call_next(request)
            logger.debug(
                f"Response: {response.status_code} for {request.method} {request.url.path}",
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
        response.headers["X-Request-Id"] = request_id
        return response

    logger.info("FastAPI application initialized")
    return app


app = create_app()
