"""purgehook operations API."""

from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Header, HTTPException, Request, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from purgehook import __version__
from purgehook.config import Settings, get_settings
from purgehook.invalidation import InvalidationDispatcher, close_http_client
from purgehook.schemas import HealthResponse, InvalidationRequest, InvalidationResponse

# Header the origin sets on responses that should purge the cache
INVALIDATE_HEADER = "X-Cache-Invalidate"

router = APIRouter(prefix="/api/v1", tags=["operations"])


def get_dispatcher(request: Request) -> InvalidationDispatcher:
    return request.app.state.dispatcher


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint - returns server status."""
    return HealthResponse(
        status="ok",
        version=__version__,
        pending=get_dispatcher(request).pending,
    )


@router.post(
    "/invalidations",
    response_model=InvalidationResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def schedule_invalidation(
    request: Request,
    data: InvalidationRequest | None = None,
    x_cache_invalidate: str | None = Header(default=None, alias=INVALIDATE_HEADER),
) -> InvalidationResponse:
    """Schedule a debounced cache invalidation.

    The pattern is taken from the body, falling back to the
    X-Cache-Invalidate header.
    """
    pattern = data.pattern if data and data.pattern is not None else x_cache_invalidate
    if pattern is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"No pattern in body or {INVALIDATE_HEADER} header",
        )

    dispatcher = get_dispatcher(request)
    dispatcher.schedule(pattern)
    return InvalidationResponse(
        pattern=pattern,
        debounce_seconds=dispatcher.debounce_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    yield
    # Shutdown: send the last pending invalidation rather than dropping it
    await app.state.dispatcher.aclose()
    await close_http_client()


def create_app(
    settings: Settings | None = None,
    dispatcher: InvalidationDispatcher | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override for testing. If not provided,
                  default settings will be loaded from environment.
        dispatcher: Optional dispatcher override for testing.
    """
    if settings is None:
        settings = get_settings()

    if dispatcher is None:
        dispatcher = InvalidationDispatcher(
            settings.dispatch_config(),
            debounce_seconds=settings.debounce_seconds,
            request_timeout=settings.request_timeout,
        )

    app = FastAPI(
        title="purgehook",
        description="Cache invalidation webhook dispatcher",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.dispatcher = dispatcher

    app.include_router(router)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose Prometheus metrics."""
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST,
        )

    return app
