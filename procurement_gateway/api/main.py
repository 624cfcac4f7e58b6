"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from procurement_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from procurement_gateway.api.v1 import audit, projects, spending_requests, stock, suppliers
from procurement_gateway.infrastructure.observability.logging import setup_logging
from procurement_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Procurement Gateway",
        description="Capital-constrained spending approval and supplier sourcing service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(projects.router, prefix="/v1", tags=["capital"])
    app.include_router(spending_requests.router, prefix="/v1", tags=["spending-requests"])
    app.include_router(suppliers.router, prefix="/v1", tags=["suppliers"])
    app.include_router(stock.router, prefix="/v1", tags=["stock"])
    app.include_router(audit.router, prefix="/v1", tags=["audit"])

    return app


app = create_app()
