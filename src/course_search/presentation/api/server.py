"""
HTTP API Server for federated course search.

Routes (all under ``/search``):
    POST /courses                       Search (rate limited)
    GET  /recommendations               Listings for a learner profile (X-User-Id required, rate limited)
    GET  /courses/{listing_id}/insights LLM analysis of one listing (rate limited)
    GET  /platforms                     Known content sources
    GET  /history                       Caller's recent searches (X-User-Id required)
    GET  /popular                       Most frequent queries
    POST /track-click                   Record a click on a listing (rate limited)
    GET  /analytics                     Trends, platform usage, popular queries (X-User-Id required, hourly limit)
    GET  /health                        Liveness and collaborator status

The caller id is taken from the ``X-User-Id`` header set by the upstream
authentication layer. Validation errors map to 400 (422 for malformed
bodies), rate limiting to 429 with a ``Retry-After`` header.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Literal

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from course_search import __version__
from course_search.application.search import CourseSearchService
from course_search.container import ApplicationContainer, close_container
from course_search.domain.entities import ClientInfo, SearchFilters, SearchRequest
from course_search.infrastructure.ratelimit import ANALYTICS_SCOPE, SEARCH_SCOPE
from course_search.presentation.settings import Settings
from course_search.shared.exceptions import RateLimitExceeded, ValidationError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from course_search.infrastructure.ratelimit import SearchRateLimiter

logger = logging.getLogger(__name__)

DEFAULT_API_PORT = 8000


# =============================================================================
# Pydantic models
# =============================================================================


class FiltersModel(BaseModel):
    """Structured filters; camelCase aliases match the public JSON contract."""

    model_config = ConfigDict(populate_by_name=True)

    max_price: float | None = Field(None, ge=0, alias="maxPrice")
    platforms: list[str] | None = None
    level: Literal["Beginner", "Intermediate", "Advanced"] | None = None
    max_duration_hours: int | None = Field(None, ge=1, alias="maxDuration")
    language: str | None = Field(None, min_length=1, max_length=50)


class SearchCoursesRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=200)
    filters: FiltersModel = Field(default_factory=FiltersModel)
    limit: int = Field(7, ge=1, le=20)


class TrackClickRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course_id: str = Field(..., min_length=1, alias="courseId")
    search_id: str | None = Field(None, alias="searchId")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    providers: list[str]
    enhancer: bool
    ranker: bool


# =============================================================================
# Dependencies
# =============================================================================


def get_container(request: Request) -> ApplicationContainer:
    return request.app.state.container


def get_service(container: ApplicationContainer = Depends(get_container)) -> CourseSearchService:
    return container.search_service()


def get_caller_id(x_user_id: str | None = Header(None)) -> str | None:
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None


def require_caller_id(caller_id: str | None = Depends(get_caller_id)) -> str:
    if caller_id is None:
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    return caller_id


def _client_ip(request: Request) -> str | None:
    # X-Forwarded-For is applied by uvicorn for trusted proxies only (--forwarded-allow-ips)
    return request.client.host if request.client else None


def _admit(
    request: Request,
    response: Response,
    caller_id: str | None,
    container: ApplicationContainer,
    scope: str,
) -> None:
    limiter: SearchRateLimiter = container.rate_limiter()
    decision = limiter.check(caller_id, _client_ip(request), scope=scope)
    response.headers["X-RateLimit-Remaining"] = str(decision.remaining)


def enforce_rate_limit(
    request: Request,
    response: Response,
    caller_id: str | None = Depends(get_caller_id),
    container: ApplicationContainer = Depends(get_container),
) -> None:
    """Admit the request or raise RateLimitExceeded (rendered as 429)."""
    _admit(request, response, caller_id, container, SEARCH_SCOPE)


def enforce_analytics_limit(
    request: Request,
    response: Response,
    caller_id: str = Depends(require_caller_id),
    container: ApplicationContainer = Depends(get_container),
) -> None:
    _admit(request, response, caller_id, container, ANALYTICS_SCOPE)


# =============================================================================
# App factory
# =============================================================================


def create_api_server(
    settings: Settings | None = None,
    container: ApplicationContainer | None = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Runtime settings; read from the environment when omitted.
        container: Pre-built container (tests override providers on it).

    Returns:
        Configured FastAPI instance.
    """
    if container is None:
        settings = settings or Settings.from_env()
        container = ApplicationContainer()
        container.config.from_dict(settings.to_config())
        logger.info(f"Course search API configured: {settings.describe()}")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Lifecycle: startup, course search API ready")
        try:
            yield
        finally:
            await close_container(container)

    app = FastAPI(
        title="Course Search API",
        description="Federated course search across edX, GeeksforGeeks, SWAYAM and curated catalogs.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"success": False, **exc.to_dict()})

    @app.exception_handler(RateLimitExceeded)
    async def _rate_limited(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        retry_after = int(exc.retry_after)
        return JSONResponse(
            status_code=429,
            content={"success": False, "message": str(exc), "retry_after": retry_after},
            headers={"Retry-After": str(retry_after)},
        )

    app.include_router(_build_router())
    return app


def create_app() -> FastAPI:
    """Factory for ``uvicorn --factory``."""
    return create_api_server()


# =============================================================================
# Routes
# =============================================================================


def _build_router() -> APIRouter:
    router = APIRouter(prefix="/search", tags=["search"])

    @router.post("/courses", dependencies=[Depends(enforce_rate_limit)])
    async def search_courses(
        body: SearchCoursesRequest,
        request: Request,
        caller_id: str | None = Depends(get_caller_id),
        service: CourseSearchService = Depends(get_service),
    ) -> dict[str, Any]:
        filters = SearchFilters.from_dict(body.filters.model_dump(exclude_none=True))
        outcome = await service.search(
            SearchRequest(
                query=body.query,
                filters=filters,
                limit=body.limit,
                caller_id=caller_id,
                client=ClientInfo(user_agent=request.headers.get("user-agent"), ip_address=_client_ip(request)),
            )
        )
        return {"success": True, "data": outcome.to_dict()}

    @router.get("/recommendations", dependencies=[Depends(require_caller_id), Depends(enforce_rate_limit)])
    async def recommendations(
        interests: list[str] | None = Query(None),
        skills: list[str] | None = Query(None),
        level: str | None = Query(None, max_length=50),
        goals: str | None = Query(None, max_length=200),
        limit: int = Query(10, ge=1, le=20),
        caller_id: str = Depends(require_caller_id),
        service: CourseSearchService = Depends(get_service),
    ) -> dict[str, Any]:
        profile: dict[str, Any] = {"interests": interests or [], "skills": skills or []}
        if level:
            profile["level"] = level
        if goals:
            profile["goals"] = goals
        courses = await service.recommendations(profile, limit, caller_id=caller_id)
        return {
            "success": True,
            "data": {"recommendations": [c.to_dict() for c in courses], "total": len(courses)},
        }

    @router.get("/courses/{listing_id}/insights", dependencies=[Depends(enforce_rate_limit)])
    async def course_insights(
        listing_id: str,
        service: CourseSearchService = Depends(get_service),
    ) -> dict[str, Any]:
        insights = await service.insights(listing_id)
        if insights is None:
            raise HTTPException(status_code=404, detail="Course not found")
        return {"success": True, "data": insights}

    @router.get("/platforms")
    async def platforms(service: CourseSearchService = Depends(get_service)) -> dict[str, Any]:
        return {"success": True, "data": service.platforms()}

    @router.get("/history")
    async def history(
        limit: int = Query(20, ge=1, le=50),
        caller_id: str = Depends(require_caller_id),
        service: CourseSearchService = Depends(get_service),
    ) -> dict[str, Any]:
        records = await service.history(caller_id, limit)
        return {"success": True, "data": [r.to_dict() for r in records]}

    @router.get("/popular")
    async def popular(
        limit: int = Query(10, ge=1, le=50),
        service: CourseSearchService = Depends(get_service),
    ) -> dict[str, Any]:
        return {"success": True, "data": await service.popular(limit)}

    @router.post("/track-click", dependencies=[Depends(enforce_rate_limit)])
    async def track_click(
        body: TrackClickRequest,
        caller_id: str | None = Depends(get_caller_id),
        service: CourseSearchService = Depends(get_service),
    ) -> dict[str, Any]:
        result = await service.track_click(body.course_id, record_id=body.search_id, caller_id=caller_id)
        return {"success": True, "data": result}

    @router.get("/analytics", dependencies=[Depends(enforce_analytics_limit)])
    async def analytics(
        days: int = Query(7, ge=1, le=365),
        service: CourseSearchService = Depends(get_service),
    ) -> dict[str, Any]:
        return {"success": True, "data": await service.analytics(days)}

    @router.get("/health", response_model=HealthResponse)
    async def health(service: CourseSearchService = Depends(get_service)) -> HealthResponse:
        return HealthResponse(version=__version__, **service.health())

    return router
