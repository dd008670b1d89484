from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.exceptions import CoachException
from app.logging_config import setup_logging
from app.routers import health, interview, sessions
from app.services.service_factory import service_factory
from app.utils.logger import get_logger

# Setup logging configuration
setup_logging()
# Get logger instance
logger = get_logger(__name__)

settings = get_settings()

app = FastAPI(
    title="Interview Coach API",
    description="""
    Mock-interview sessions: interview lifecycle, append-only transcripts,
    processing-stage tracking and AI feedback reports.

    Requests are authenticated with a Bearer token whose `sub` claim is the user id.
    """,
    version="1.0.0",
)

app.add_middleware(CORSMiddleware, **settings.cors_config)

app.include_router(health.router)
app.include_router(interview.router)
app.include_router(sessions.router)


@app.exception_handler(CoachException)
async def coach_exception_handler(request: Request, exc: CoachException):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed ({exc.kind}): {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.kind}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ())[1:]), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "validation_error", "message": "Invalid request", "details": {"errors": errors}},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "message": "Internal server error"},
    )


# Startup and shutdown event handlers
@app.on_event("startup")
async def startup_event():
    """Build storage and services; fail fast on bad configuration."""
    service_factory.initialize()
    logger.info(f"Interview Coach API started with backends {settings.configured_backends}")


@app.on_event("shutdown")
async def shutdown_event():
    await service_factory.shutdown()


@app.get("/")
async def root():
    return {
        "message": "Interview Coach API",
        "version": "1.0.0",
        "docs": "/docs",
    }
