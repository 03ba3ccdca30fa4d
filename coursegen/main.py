"""
Course Generator API

An AI-assisted course generator: a learner submits a topic, Groq
generates the syllabus, tutorials, quizzes and mini-games, and the
API tracks which sub-topics are unlocked and completed.

To run:
    uvicorn coursegen.main:app --reload --port 8000

For production:
    ENVIRONMENT=production uvicorn coursegen.main:app --host 0.0.0.0 --port 8000
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coursegen.config import get_settings, validate_settings
from coursegen.errors import (
    ConfigurationError,
    ContentLoadFailed,
    CourseGenError,
    CourseNotFound,
    InvalidTransition,
    MalformedResponse,
    ProviderUnavailable,
)
from coursegen.logging_config import configure_logging, get_logger
from coursegen.routers import course
from coursegen.services.llm import LLMService, get_llm_service

settings = get_settings()
logger = get_logger(__name__)

ERROR_STATUS = {
    CourseNotFound: 404,
    InvalidTransition: 409,
    ContentLoadFailed: 502,
    MalformedResponse: 502,
    ProviderUnavailable: 503,
    ConfigurationError: 500,
}

ERROR_MESSAGES = {
    ContentLoadFailed: "Failed to load sub-topic content. Please try again.",
    MalformedResponse: "The AI returned an unexpected response. Please start over.",
    ProviderUnavailable: "The AI may be busy, please try again.",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate configuration before serving any request."""
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )
    validate_settings(settings)
    logger.info(
        "Course Generator API starting (debug=%s, redis=%s:%s, model=%s)",
        settings.debug, settings.redis_host, settings.redis_port, settings.llm_model,
    )
    yield
    logger.info("Course Generator API shutting down")


app = FastAPI(
    title="Course Generator API",
    description="AI-generated courses with unlockable sub-topics, quizzes and games",
    version="1.0.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# CORS middleware (for development)
if settings.debug:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(course.router, tags=["Courses"])


@app.exception_handler(CourseGenError)
async def course_error_handler(request: Request, exc: CourseGenError):
    """Map domain errors to HTTP status codes."""
    status = next(
        (code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)),
        500,
    )
    message = next(
        (msg for kind, msg in ERROR_MESSAGES.items() if isinstance(exc, kind)),
        str(exc),
    )
    if status >= 500:
        logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(
        status_code=status,
        content={"error": type(exc).__name__, "detail": message},
    )


# =============================================================================
# HEALTH & INFO ENDPOINTS
# =============================================================================

@app.get("/")
async def root():
    """Root endpoint - service info."""
    return {
        "service": "Course Generator API",
        "version": "1.0.0",
        "status": "running",
        "debug": settings.debug,
        "endpoints": {
            "courses": "/api/courses",
            "health": "/health",
            "llm_health": "/health/llm",
            "docs": "/docs" if settings.debug else "disabled",
        },
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/health/llm")
async def llm_health(llm: LLMService = Depends(get_llm_service)):
    """Groq connectivity and response time; 503 when unreachable."""
    result = await llm.health_check()
    return JSONResponse(status_code=200 if result["healthy"] else 503, content=result)
