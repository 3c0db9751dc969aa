import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from internlink.core.config import settings
from internlink.core.database import aget_db, session_manager
from internlink.core.ratelimit import limiter

from internlink.api.v1.endpoints.admin import router as admin_router
from internlink.api.v1.endpoints.attendance import router as attendance_router
from internlink.api.v1.endpoints.auth import router as auth_router
from internlink.api.v1.endpoints.cohorts import router as cohorts_router
from internlink.api.v1.endpoints.dashboard import router as dashboard_router
from internlink.api.v1.endpoints.leaderboard import router as leaderboard_router
from internlink.api.v1.endpoints.milestones import router as milestones_router
from internlink.api.v1.endpoints.taskprogress import router as taskprogress_router
from internlink.api.v1.endpoints.tasks import router as tasks_router
from internlink.api.v1.endpoints.users import router as users_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Async context manager for app lifespan events"""

    try:
        logger.info("🚀 Starting InternLink application...")

        logger.info("🔌 Initializing database connection pool...")
        await session_manager.init()
        logger.info("✅ Database ready, tables created")

        if not settings.GITLAB_ENABLED:
            logger.info("ℹ️ GitLab token not configured; contribution counters disabled")

    except Exception as e:
        logger.critical(f"🔥 Application startup failed: {str(e)}")
        raise

    try:
        logger.info("🏁 InternLink application startup complete")
        yield
    finally:
        try:
            logger.info("🔌 Closing database connections...")
            await session_manager.close()
            logger.info("✅ Database connections closed cleanly")
        except Exception as e:
            logger.error(f"⚠️ Error during shutdown: {str(e)}")
            raise
        finally:
            logger.info("👋 Application shutdown complete")


app = FastAPI(
    title="InternLink API",
    description="API for InternLink - internship program tracking",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET_KEY,
    max_age=3600,
    same_site="none" if settings.IS_PRODUCTION else "lax",
    https_only=settings.IS_PRODUCTION
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"Request: {request.method} {request.url}")
    response = await call_next(request)
    logger.info(f"Response status: {response.status_code}")
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _field_name(loc) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def validation_message(errors) -> str:
    """One line naming the offending field(s), e.g. "Missing required field(s): title, dueDate"."""
    missing = [_field_name(e["loc"]) for e in errors if e.get("type") == "missing"]
    if missing:
        return f"Missing required field(s): {', '.join(missing)}"
    if not errors:
        return "Invalid request"
    first = errors[0]
    return f"{_field_name(first['loc'])}: {first['msg']}"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.warning(f"Validation Error: {errors}")
    return JSONResponse(
        status_code=400,
        content={
            "error": validation_message(errors),
            "details": [
                {"field": _field_name(e["loc"]), "message": e["msg"], "type": e.get("type")}
                for e in errors
            ],
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    content = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled error on {request.method} {request.url.path}: {str(exc)}", exc_info=exc)
    content = {"error": "Internal server error"}
    if not settings.IS_PRODUCTION:
        content["details"] = str(exc)
    return JSONResponse(status_code=500, content=content)


@app.get("/", tags=["Health Check"])
async def health_check(db: AsyncSession = Depends(aget_db)):
    try:
        await db.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "service": "InternLink API",
            "database": "connected",
        }
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return {
            "status": "unhealthy",
            "service": "InternLink API",
            "database": "disconnected",
            "error": str(e) if not settings.IS_PRODUCTION else None,
        }


app.include_router(auth_router, prefix="/api/v1", tags=["Authentication"])
app.include_router(admin_router, prefix="/api/v1", tags=["Admin"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(cohorts_router, prefix="/api/v1", tags=["Cohorts"])
app.include_router(tasks_router, prefix="/api/v1", tags=["Tasks"])
app.include_router(taskprogress_router, prefix="/api/v1", tags=["Task Progress"])
app.include_router(leaderboard_router, prefix="/api/v1", tags=["Leaderboard"])
app.include_router(milestones_router, prefix="/api/v1", tags=["Milestones"])
app.include_router(attendance_router, prefix="/api/v1", tags=["Attendance"])
app.include_router(dashboard_router, prefix="/api/v1", tags=["Dashboard"])

logger.info(f"✅ Loaded {len(app.routes)} routes")
