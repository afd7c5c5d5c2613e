from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Routers
from .routers.analysis import router as analysis_router

# Core modules
from .core.config import settings
from .core.logging import configure_logging, CorrelationIdMiddleware
from .core.metrics import PromMiddleware, metrics_endpoint
from .dependencies import Dependencies, build_dependencies

def create_app(dependencies: Dependencies | None = None) -> FastAPI:
    """
    App factory so tests and ASGI servers can instantiate cleanly.
    Pass ``dependencies`` to skip building the DB pool / provider client
    from settings.
    """
    configure_logging()  # Set up JSON logs + request-id field

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        deps = dependencies or await build_dependencies()
        app.state.deps = deps
        try:
            yield
        finally:
            if dependencies is None:
                await deps.aclose()

    app = FastAPI(
        title="StaySTRA Analyzer API",
        version="2.0.0",
        description="Short-term-rental revenue projections from market statistics and comparable listings.",
        lifespan=lifespan,
    )
    if dependencies is not None:
        app.state.deps = dependencies

    allow_origins = [o.strip() for o in settings.ALLOW_ORIGINS.split(",")] if settings.ALLOW_ORIGINS else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )

    # Observability middlewares
    app.add_middleware(CorrelationIdMiddleware)  # Adds/propagates X-Request-Id
    if settings.PROMETHEUS_ENABLED:
        app.add_middleware(PromMiddleware)       # Records req/latency metrics
        app.add_route("/metrics", metrics_endpoint, methods=["GET"])

    # Business routes
    app.include_router(analysis_router, prefix="/api", tags=["analysis"])

    return app

app = create_app()
