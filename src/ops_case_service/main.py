"""Main FastAPI application for ops-case-service."""

import logging
import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ops_case_service import __version__
from ops_case_service.api.dependencies import close_case_manager, get_case_manager
from ops_case_service.api.routes.cases import router as cases_router
from ops_case_service.api.routes.reference import router as reference_router
from ops_case_service.config import settings
from ops_case_service.models import HealthResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Ops Case Service",
    description="Unified case dashboard over the operational case families",
    version=__version__,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(cases_router)
app.include_router(reference_router)


@app.on_event("startup")
async def startup():
    """Create the upstream client on startup."""
    logger.info(f"Starting {settings.service_name} on port {settings.port}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Upstream: {settings.upstream_base_url}")
    logger.info(f"Reference time zone: {settings.reference_timezone}")
    get_case_manager()


@app.on_event("shutdown")
async def shutdown():
    """Clean up resources on shutdown."""
    logger.info("Shutting down service")
    await close_case_manager()


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="""
Returns the health status of the Case Service.

**Response Example**:
```json
{
  "status": "healthy",
  "service": "ops-case-service",
  "version": "1.0.0",
  "upstream": "http://localhost:3000"
}
```

**Use Cases**:
- Kubernetes liveness/readiness probes
- Load balancer health checks
- Docker Compose healthcheck

**Upstream**: Reports the configured upstream URL only (no request is made)
**Authorization**: None required (public endpoint)
    """,
    responses={
        200: {"description": "Service is healthy and operational"},
        500: {"description": "Service is unhealthy or experiencing issues"}
    }
)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        service=settings.service_name,
        version=__version__,
        upstream=settings.upstream_base_url,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ops_case_service.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.environment == "development",
    )
