"""
Workflow Canvas API
FastAPI application serving the visual workflow editor backend

Endpoints:
- Health: /health, /ping
- Canvas: /graph/*, /steps/completeness
"""
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flowcanvas.api.routes import graph, health
from flowcanvas.core.config import get_settings
from flowcanvas.core.logging import get_logger, setup_logging
from flowcanvas.validator.errors import GraphModelException

# Initialize logging
setup_logging()
logger = get_logger(__name__)

# Get settings
settings = get_settings()

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Workflow <-> graph conversion and auto-layout for the visual workflow editor"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# CUSTOM EXCEPTION HANDLERS
# ============================================================================

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Custom handler for request validation errors
    Flattens pydantic error locations for API consumers
    """
    errors = []
    for error in exc.errors():
        field = " -> ".join(str(x) for x in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"]
        })

    logger.warning(f"Validation error on {request.url.path}: {errors}")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation Error",
            "message": "Request validation failed. Please check the required fields and formats.",
            "details": errors
        }
    )


@app.exception_handler(GraphModelException)
async def graph_model_exception_handler(request: Request, exc: GraphModelException):
    """
    Handler for workflow/graph domain errors
    (dangling references, duplicate IDs, rejected edits, unserializable nodes)
    """
    logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc.error.message}")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": type(exc).__name__,
            "message": exc.error.message,
            "details": exc.error.to_dict()
        }
    )


# ============================================================================
# INCLUDE API ROUTERS
# ============================================================================

app.include_router(health.router)
app.include_router(graph.router)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint with API information"""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "endpoints": [
            "/health",
            "/ping",
            "/graph/build",
            "/graph/layout",
            "/graph/serialize",
            "/graph/validate",
            "/graph/edit",
            "/steps/completeness"
        ]
    }


# ============================================================================
# STARTUP/SHUTDOWN EVENTS
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Application startup"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Default layout: {settings.DEFAULT_LAYOUT_STRATEGY} ({settings.DEFAULT_LAYOUT_DIRECTION})")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown"""
    logger.info(f"Shutting down {settings.APP_NAME}")


# ============================================================================
# MAIN (for running directly)
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "flowcanvas.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
